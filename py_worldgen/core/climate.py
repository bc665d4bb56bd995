"""
Climate calculation for elevation, temperature and moisture.

This module implements:
- Noise-driven elevation with continent bias, ridge islands and coastal roughness
- Rank-based water coverage (sea level follows the configured ocean fraction)
- Latitude temperature bands with altitude cooling
- Moisture with forced saturation over water and a coastal boost
"""

from dataclasses import dataclass
from typing import NamedTuple, Optional

import numpy as np
import structlog

from ..config.map_config import TerrainSettings
from .noise import NoiseField
from .voronoi_graph import VoronoiGraph

logger = structlog.get_logger()


@dataclass
class ClimateOptions:
    """Noise frequencies and weights for climate synthesis."""

    # Elevation
    elevation_scale: float = 4.0
    elevation_octaves: int = 6
    elevation_persistence: float = 0.5
    continent_scale_per_continent: float = 0.5  # continent fbm frequency per requested continent
    continent_octaves: int = 4
    continent_persistence: float = 0.6
    island_scale: float = 8.0
    island_octaves: int = 4
    island_persistence: float = 0.6
    island_weight: float = 0.3
    roughness_scale: float = 16.0
    roughness_weight: float = 0.1

    # Temperature
    temperature_noise_scale: float = 2.0
    temperature_noise_weight: float = 0.2
    elevation_lapse: float = 0.5  # temperature drop at the highest land

    # Moisture
    moisture_scale: float = 6.0
    moisture_octaves: int = 4
    moisture_persistence: float = 0.5
    coastal_band: float = 0.1  # land elevation band above sea level
    coastal_moisture: float = 0.7


class WaterRanking(NamedTuple):
    """Result of ranking cells by elevation."""

    water_mask: np.ndarray  # True for the lowest ``fraction`` of cells
    order: np.ndarray       # cell ids sorted by ascending elevation (stable)
    water_count: int
    sea_level: float        # highest elevation inside the water band


def rank_water_cells(elevation: np.ndarray, fraction: float) -> WaterRanking:
    """
    Mark the lowest ``floor(n * fraction)`` cells by elevation as water.

    The split is by rank, not by threshold, so the realized water fraction
    always matches the configured one regardless of the elevation
    distribution. Ties are broken by cell id.
    """
    n = len(elevation)
    order = np.argsort(elevation, kind="stable")
    water_count = int(np.floor(n * fraction))
    water_count = min(max(water_count, 0), n)

    water_mask = np.zeros(n, dtype=bool)
    water_mask[order[:water_count]] = True
    if water_count > 0:
        sea_level = float(elevation[order[water_count - 1]])
    else:
        sea_level = float(np.min(elevation)) if n else 0.0
    return WaterRanking(water_mask, order, water_count, sea_level)


def land_elevation(elevation: np.ndarray, sea_level: float) -> np.ndarray:
    """Elevation rescaled so sea level is 0 and the highest cell is 1."""
    peak = float(np.max(elevation)) if len(elevation) else 1.0
    span = peak - sea_level
    if span <= 0:
        return np.zeros_like(elevation)
    return np.clip((elevation - sea_level) / span, 0.0, 1.0)


class Climate:
    """Handles elevation, temperature and moisture calculations."""

    def __init__(
        self,
        graph: VoronoiGraph,
        terrain: TerrainSettings,
        seed,
        climate_variance: float = 0.2,
        options: Optional[ClimateOptions] = None,
    ):
        """
        Initialize climate calculator.

        Args:
            graph: Tessellated map
            terrain: Terrain shaping settings from the map configuration
            seed: Map seed; each field gets its own salted noise stream
            climate_variance: Weight of temperature noise
            options: Climate calculation options
        """
        self.graph = graph
        self.terrain = terrain
        self.climate_variance = climate_variance
        self.options = options or ClimateOptions()

        self.elevation_noise = NoiseField(seed, "elevation")
        self.temperature_noise = NoiseField(seed, "temperature")
        self.moisture_noise = NoiseField(seed, "moisture")

        points = graph.points
        self.nx = points[:, 0] / graph.width
        self.ny = points[:, 1] / graph.height

        self.elevation = None
        self.temperature = None
        self.moisture = None
        self.ranking = None

    def _frequency(self, scale: float):
        """Sampling scale and lattice period honoring wrapped axes.

        Tiling noise needs an integer lattice period, so wrapped axes round
        the scale to the nearest integer (at least 1).
        """
        scale_x = max(1, int(round(scale))) if self.graph.wrap_horizontal else scale
        scale_y = max(1, int(round(scale))) if self.graph.wrap_vertical else scale
        period = None
        if self.graph.wrap_horizontal or self.graph.wrap_vertical:
            period = (
                scale_x if self.graph.wrap_horizontal else None,
                scale_y if self.graph.wrap_vertical else None,
            )
        return self.nx * scale_x, self.ny * scale_y, period

    def calculate_elevation(self) -> np.ndarray:
        """
        Elevation per cell, normalized to [0, 1].

        Base fbm, plus a low-frequency continent term biased by the target
        land fraction, plus ridge-noise islands and high-frequency coastline
        roughness.
        """
        logger.info("Calculating elevation")
        opts = self.options
        terrain = self.terrain

        x, y, period = self._frequency(opts.elevation_scale)
        elevation = self.elevation_noise.fbm(
            x, y, opts.elevation_octaves, opts.elevation_persistence, period=period)

        x, y, period = self._frequency(terrain.continent_count * opts.continent_scale_per_continent)
        continent = self.elevation_noise.fbm(
            x + 101.7, y + 53.3, opts.continent_octaves, opts.continent_persistence, period=period)
        target_land = 1.0 - terrain.ocean_percentage
        elevation = elevation + continent * target_land - (1.0 - target_land)

        if terrain.island_frequency > 0:
            x, y, period = self._frequency(opts.island_scale)
            ridges = self.elevation_noise.ridge_noise(
                x + 17.1, y + 91.9, opts.island_octaves, opts.island_persistence, period=period)
            elevation = elevation + ridges * terrain.island_frequency * opts.island_weight

        if terrain.coastal_roughness > 0:
            x, y, period = self._frequency(opts.roughness_scale)
            rough = self.elevation_noise.noise2d(x + 7.3, y + 29.5, period=period)
            elevation = elevation + rough * terrain.coastal_roughness * opts.roughness_weight

        elevation = np.asarray(elevation, dtype=np.float64)
        low = float(np.min(elevation))
        span = float(np.max(elevation)) - low
        if span > 0:
            elevation = (elevation - low) / span
        else:
            elevation = np.full_like(elevation, 0.5)

        self.elevation = elevation
        self.ranking = rank_water_cells(elevation, terrain.ocean_percentage)
        self.graph.elevation = elevation
        self.graph.sea_level = self.ranking.sea_level
        return elevation

    def calculate_temperatures(self) -> np.ndarray:
        """
        Temperature per cell in [0, 1].

        Warmest at the equator (ny = 0.5), coldest at the poles, perturbed by
        noise weighted with ``climate_variance``, and cooled with altitude
        above sea level.
        """
        logger.info("Calculating temperatures")
        if self.elevation is None:
            self.calculate_elevation()
        opts = self.options

        latitude = np.abs(self.ny - 0.5) * 2.0  # 0 at the equator, 1 at the poles
        x, y, period = self._frequency(opts.temperature_noise_scale)
        variation = self.temperature_noise.noise2d(x, y, period=period)

        altitude = land_elevation(self.elevation, self.ranking.sea_level)
        altitude[self.ranking.water_mask] = 0.0

        temperature = (
            (1.0 - latitude)
            + variation * self.climate_variance * opts.temperature_noise_weight
            - altitude * opts.elevation_lapse
        )
        self.temperature = np.clip(temperature, 0.0, 1.0)
        self.graph.temperature = self.temperature
        return self.temperature

    def calculate_moisture(self) -> np.ndarray:
        """
        Moisture per cell in [0, 1].

        Water cells are saturated; land in the coastal band gets a floor.
        """
        logger.info("Calculating moisture")
        if self.elevation is None:
            self.calculate_elevation()
        opts = self.options

        x, y, period = self._frequency(opts.moisture_scale)
        moisture = self.moisture_noise.fbm(
            x, y, opts.moisture_octaves, opts.moisture_persistence, period=period)
        moisture = (np.asarray(moisture, dtype=np.float64) + 1.0) / 2.0

        water = self.ranking.water_mask
        altitude = land_elevation(self.elevation, self.ranking.sea_level)
        coastal = ~water & (altitude < opts.coastal_band)
        moisture[coastal] = np.maximum(moisture[coastal], opts.coastal_moisture)
        moisture[water] = 1.0

        self.moisture = np.clip(moisture, 0.0, 1.0)
        self.graph.moisture = self.moisture
        return self.moisture

    def run_full_simulation(self) -> None:
        """Calculate elevation, temperature and moisture in order."""
        self.calculate_elevation()
        self.calculate_temperatures()
        self.calculate_moisture()
        logger.info(
            "Climate calculated",
            cells=len(self.elevation),
            sea_level=round(self.ranking.sea_level, 4),
            mean_temperature=round(float(np.mean(self.temperature)), 4),
            mean_moisture=round(float(np.mean(self.moisture)), 4),
        )
