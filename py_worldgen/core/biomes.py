"""
Terrain classification from elevation, temperature and moisture.

This module implements:
- The closed terrain enumeration and its display catalog
- Rank-based water split into deep ocean and shallow water
- The land decision table (beach, mountain/snow, hills, then biome rules)
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, List, Optional

import numpy as np
import structlog

from .climate import land_elevation, rank_water_cells
from .voronoi_graph import VoronoiGraph

logger = structlog.get_logger()


class TerrainType(IntEnum):
    """Terrain categories."""

    OCEAN = 0
    SHALLOW_WATER = 1
    BEACH = 2
    GRASSLAND = 3
    FOREST = 4
    JUNGLE = 5
    DESERT = 6
    TUNDRA = 7
    HILLS = 8
    MOUNTAIN = 9
    SNOW = 10


# Terrain names for display
TERRAIN_NAMES = {
    TerrainType.OCEAN: "Ocean",
    TerrainType.SHALLOW_WATER: "Shallow Water",
    TerrainType.BEACH: "Beach",
    TerrainType.GRASSLAND: "Grassland",
    TerrainType.FOREST: "Forest",
    TerrainType.JUNGLE: "Jungle",
    TerrainType.DESERT: "Desert",
    TerrainType.TUNDRA: "Tundra",
    TerrainType.HILLS: "Hills",
    TerrainType.MOUNTAIN: "Mountain",
    TerrainType.SNOW: "Snow",
}

TERRAIN_DESCRIPTIONS = {
    TerrainType.OCEAN: "Deep ocean water",
    TerrainType.SHALLOW_WATER: "Shallow coastal waters and rivers",
    TerrainType.BEACH: "Sandy shoreline between land and sea",
    TerrainType.GRASSLAND: "Flat grasslands suitable for farming",
    TerrainType.FOREST: "Dense woodland",
    TerrainType.JUNGLE: "Hot, wet rainforest",
    TerrainType.DESERT: "Arid desert with little vegetation",
    TerrainType.TUNDRA: "Cold arctic region",
    TerrainType.HILLS: "Rolling hills with varied terrain",
    TerrainType.MOUNTAIN: "Tall mountain ranges",
    TerrainType.SNOW: "Snow-capped peaks",
}

TERRAIN_COLORS = {
    TerrainType.OCEAN: "#1a5276",
    TerrainType.SHALLOW_WATER: "#5dade2",
    TerrainType.BEACH: "#f5deb3",
    TerrainType.GRASSLAND: "#82e0aa",
    TerrainType.FOREST: "#196f3d",
    TerrainType.JUNGLE: "#0b5345",
    TerrainType.DESERT: "#f9e79f",
    TerrainType.TUNDRA: "#d5dbdb",
    TerrainType.HILLS: "#a9745c",
    TerrainType.MOUNTAIN: "#7f8c8d",
    TerrainType.SNOW: "#fdfefe",
}

WATER_TERRAINS = frozenset({TerrainType.OCEAN, TerrainType.SHALLOW_WATER})


def is_water(terrain: int) -> bool:
    return terrain in WATER_TERRAINS


def terrain_key(terrain: int) -> str:
    """Slug used as the key of per-terrain resource rules."""
    return TerrainType(terrain).name.lower()


@dataclass(frozen=True)
class TerrainInfo:
    """Catalog entry for one terrain category."""

    id: int
    name: str
    description: str
    color: str

    def to_dict(self) -> Dict[str, object]:
        return {"id": self.id, "name": self.name, "description": self.description, "color": self.color}


def terrain_catalog() -> List[TerrainInfo]:
    """Every terrain category, ordered by id."""
    return [
        TerrainInfo(int(t), TERRAIN_NAMES[t], TERRAIN_DESCRIPTIONS[t], TERRAIN_COLORS[t])
        for t in TerrainType
    ]


@dataclass
class TerrainOptions:
    """Terrain classification thresholds.

    Elevation thresholds apply to land elevation, i.e. elevation rescaled so
    that sea level is 0 and the highest cell is 1.
    """

    shallow_band_start: float = 0.7  # relative rank inside the water band
    beach_elevation: float = 0.05
    hills_elevation: float = 0.6
    mountain_elevation: float = 0.8
    snow_temperature: float = 0.3
    tundra_temperature: float = 0.25
    desert_temperature: float = 0.7
    desert_moisture: float = 0.3
    jungle_temperature: float = 0.6
    jungle_moisture: float = 0.6
    forest_moisture: float = 0.5


class TerrainClassifier:
    """Assigns a terrain category to every cell."""

    def __init__(self, graph: VoronoiGraph, ocean_percentage: float,
                 options: Optional[TerrainOptions] = None):
        """
        Initialize terrain classifier.

        Args:
            graph: VoronoiGraph with elevation, temperature and moisture
            ocean_percentage: Fraction of cells that become water
            options: Classification thresholds
        """
        self.graph = graph
        self.ocean_percentage = ocean_percentage
        self.options = options or TerrainOptions()
        self.terrain = None

    def classify_land(self, altitude: float, temperature: float, moisture: float,
                      coastal: bool) -> TerrainType:
        """Decision table for a single land cell."""
        opts = self.options
        if coastal and altitude < opts.beach_elevation:
            return TerrainType.BEACH
        if altitude > opts.mountain_elevation:
            if temperature < opts.snow_temperature:
                return TerrainType.SNOW
            return TerrainType.MOUNTAIN
        if altitude > opts.hills_elevation:
            return TerrainType.HILLS
        if temperature < opts.tundra_temperature:
            return TerrainType.TUNDRA
        if temperature > opts.desert_temperature and moisture < opts.desert_moisture:
            return TerrainType.DESERT
        if temperature > opts.jungle_temperature and moisture > opts.jungle_moisture:
            return TerrainType.JUNGLE
        if moisture > opts.forest_moisture:
            return TerrainType.FOREST
        return TerrainType.GRASSLAND

    def classify(self) -> np.ndarray:
        """
        Classify every cell.

        The lowest ``floor(n * ocean_percentage)`` cells by elevation are
        water; the upper part of that band (by rank) is shallow water, the
        rest deep ocean. Land cells go through ``classify_land``.
        """
        graph = self.graph
        if graph.elevation is None or graph.temperature is None or graph.moisture is None:
            raise ValueError("Climate must be calculated before terrain classification")

        logger.info("Classifying terrain")
        n_cells = graph.n_cells
        ranking = rank_water_cells(graph.elevation, self.ocean_percentage)
        terrain = np.full(n_cells, TerrainType.GRASSLAND, dtype=np.uint8)

        water_ids = ranking.order[:ranking.water_count]
        if ranking.water_count:
            position = np.arange(ranking.water_count) / ranking.water_count
            shallow = position >= self.options.shallow_band_start
            terrain[water_ids[shallow]] = TerrainType.SHALLOW_WATER
            terrain[water_ids[~shallow]] = TerrainType.OCEAN

        water = ranking.water_mask
        altitude = land_elevation(graph.elevation, ranking.sea_level)
        for i in range(n_cells):
            if water[i]:
                continue
            coastal = any(water[j] for j in graph.cell_neighbors[i])
            terrain[i] = self.classify_land(
                float(altitude[i]), float(graph.temperature[i]), float(graph.moisture[i]), coastal)

        self.terrain = terrain
        graph.terrain = terrain
        graph.sea_level = ranking.sea_level

        counts = np.bincount(terrain, minlength=len(TerrainType))
        logger.info(
            "Terrain classification completed",
            water_cells=int(ranking.water_count),
            land_cells=int(n_cells - ranking.water_count),
            **{terrain_key(t): int(counts[t]) for t in TerrainType if counts[t]},
        )
        return terrain
