"""
Procedural polygonal world map generation.
"""

from .config import MapConfig, ResourceConfig, build_map_config, load_resource_config
from .core import MapGenerator, TerrainType, WorldMap, generate_map, simulate
from .exceptions import ConfigurationError, GenerationCancelledError, WorldGenError

__version__ = "0.1.0"

__all__ = ['MapConfig', 'ResourceConfig', 'build_map_config', 'load_resource_config',
           'MapGenerator', 'TerrainType', 'WorldMap', 'generate_map', 'simulate',
           'ConfigurationError', 'GenerationCancelledError', 'WorldGenError']
