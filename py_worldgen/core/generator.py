"""
Map generation pipeline.

Sites -> Tessellate -> Relax -> Climate -> Terrain -> Rivers -> Resources,
each phase finishing before the next starts. Every random phase draws from
its own stream derived from the map seed, so the output depends on the seed
and configuration alone.
"""

import time
from typing import Any, Callable, Mapping, Optional, Union

import numpy as np
import structlog

from ..config.config import get_settings
from ..config.map_config import MapConfig, build_map_config
from ..config.resource_config import DEFAULT_RESOURCE_CONFIG, ResourceConfig
from ..exceptions import GenerationCancelledError
from .alea_prng import AleaPRNG
from .biomes import TerrainClassifier, TerrainType, terrain_catalog
from .climate import Climate
from .hydrology import Hydrology
from .resources import ResourcePlacer
from .sites import sample_sites
from .voronoi_graph import VoronoiGraph, generate_voronoi_graph, relax_points
from .world_map import Cell, WorldMap

logger = structlog.get_logger()


def time_seed() -> int:
    """32-bit seed derived from the wall clock."""
    return int(time.time() * 1000) & 0xFFFFFFFF


class MapGenerator:
    """Runs the generation pipeline for one configuration."""

    def __init__(
        self,
        config: MapConfig,
        resource_config: Optional[ResourceConfig] = None,
        should_cancel: Optional[Callable[[], bool]] = None,
    ):
        """
        Args:
            config: Validated map configuration
            resource_config: Resource table; the stock table when omitted
            should_cancel: Polled between phases; returning True aborts
        """
        if config.random_seed is None:
            config = config.model_copy(update={"random_seed": time_seed()})
        self.config = config
        self.seed = config.random_seed
        self.resource_config = resource_config or DEFAULT_RESOURCE_CONFIG
        self.should_cancel = should_cancel
        self.stats = {}

    def _checkpoint(self, phase: str) -> None:
        if self.should_cancel is not None and self.should_cancel():
            logger.info("Generation cancelled", phase=phase, seed=self.seed)
            raise GenerationCancelledError(phase)

    def build_graph(self) -> VoronoiGraph:
        """Sample sites, tessellate and relax."""
        config = self.config
        width = config.dimensions.width
        height = config.dimensions.height
        projection = config.projection

        sampling = sample_sites(
            config.plot_count,
            width,
            height,
            AleaPRNG((self.seed, "sites")),
            wrap_horizontal=projection.wrap_horizontal,
            wrap_vertical=projection.wrap_vertical,
            pole_scaling=projection.pole_scaling,
        )
        self.stats["site_attempts"] = sampling.attempts
        self.stats["site_fallbacks"] = sampling.fallback_count
        self._checkpoint("sites")

        logger.info("Generating Voronoi graph", cells=config.plot_count)
        graph = generate_voronoi_graph(
            sampling.points, width, height,
            wrap_horizontal=projection.wrap_horizontal,
            wrap_vertical=projection.wrap_vertical,
        )
        self._checkpoint("tessellate")

        graph = relax_points(graph, config.relaxation_steps)
        self.stats["degenerate_cells"] = graph.degenerate_count
        self._checkpoint("relax")
        return graph

    def generate(self) -> WorldMap:
        """Run every phase and assemble the WorldMap."""
        config = self.config
        logger.info("Starting map generation", seed=self.seed, plot_count=config.plot_count)
        started = time.perf_counter()

        graph = self.build_graph()

        climate = Climate(graph, config.terrain, self.seed, climate_variance=config.climate_variance)
        climate.run_full_simulation()
        TerrainClassifier(graph, config.terrain.ocean_percentage).classify()
        self._checkpoint("classify")

        hydrology = Hydrology(graph, AleaPRNG((self.seed, "rivers")))
        rivers = hydrology.run_full_simulation()
        self.stats["river_sources"] = hydrology.stats.sources_sampled
        self.stats["rivers_committed"] = hydrology.stats.rivers_committed
        self.stats["rivers_discarded"] = hydrology.stats.rivers_discarded
        self._checkpoint("rivers")

        placer = ResourcePlacer(
            AleaPRNG((self.seed, "resources")),
            self.resource_config,
            resource_density=config.resource_density,
        )
        resources = placer.place(graph.terrain, graph.moisture)
        self._checkpoint("resources")

        world_map = WorldMap(
            cells=self._build_cells(graph, resources),
            terrain_types=terrain_catalog(),
            config=config,
            rivers=rivers,
            stats=dict(self.stats),
        )
        logger.info(
            "Map generation completed",
            seed=self.seed,
            cells=len(world_map.cells),
            rivers=len(rivers),
            elapsed=round(time.perf_counter() - started, 3),
        )
        return world_map

    @staticmethod
    def _build_cells(graph: VoronoiGraph, resources) -> tuple:
        river_flags = graph.river_flags
        if river_flags is None:
            river_flags = np.zeros(graph.n_cells, dtype=bool)
        return tuple(
            Cell(
                id=i,
                center=(float(graph.points[i, 0]), float(graph.points[i, 1])),
                vertices=tuple((float(x), float(y)) for x, y in graph.cell_vertices[i]),
                terrain=TerrainType(int(graph.terrain[i])),
                neighbors=tuple(int(n) for n in graph.cell_neighbors[i]),
                area=float(graph.cell_areas[i]),
                perimeter=float(graph.cell_perimeters[i]),
                resources=tuple(resources[i]),
                elevation=float(graph.elevation[i]),
                moisture=float(graph.moisture[i]),
                temperature=float(graph.temperature[i]),
                river=bool(river_flags[i]),
                border=bool(graph.cell_border_flags[i]),
            )
            for i in range(graph.n_cells)
        )


def generate_map(
    config: Union[MapConfig, Mapping[str, Any], None] = None,
    resource_config: Optional[ResourceConfig] = None,
    should_cancel: Optional[Callable[[], bool]] = None,
    **overrides: Any,
) -> WorldMap:
    """
    Validate ``config`` (merged over the defaults) and generate a map.

    Raises:
        ConfigurationError: before any generation work, for invalid input
        GenerationCancelledError: if ``should_cancel`` fires between phases
    """
    map_config = build_map_config(config, max_plot_count=get_settings().max_plot_count, **overrides)
    return MapGenerator(map_config, resource_config, should_cancel).generate()
