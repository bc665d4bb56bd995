"""
Core map generation functionality.
"""

from .alea_prng import AleaPRNG
from .biomes import TerrainClassifier, TerrainInfo, TerrainOptions, TerrainType, terrain_catalog
from .climate import Climate, ClimateOptions
from .generator import MapGenerator, generate_map
from .hydrology import Hydrology, HydrologyOptions, River
from .noise import NoiseField
from .resources import ResourceInstance, ResourcePlacer
from .simulation import ResourceChange, SimulationResult, simulate
from .sites import sample_sites
from .voronoi_graph import VoronoiGraph, generate_voronoi_graph, relax_points
from .world_map import Cell, WorldMap

__all__ = ['AleaPRNG', 'NoiseField', 'sample_sites',
           'VoronoiGraph', 'generate_voronoi_graph', 'relax_points',
           'Climate', 'ClimateOptions',
           'TerrainClassifier', 'TerrainInfo', 'TerrainOptions', 'TerrainType', 'terrain_catalog',
           'Hydrology', 'HydrologyOptions', 'River',
           'ResourceInstance', 'ResourcePlacer',
           'ResourceChange', 'SimulationResult', 'simulate',
           'Cell', 'WorldMap', 'MapGenerator', 'generate_map']
