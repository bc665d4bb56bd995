"""
River tracing from high land down to the sea.

This module implements:
- Random sampling of river sources among high, moist land cells
- Downhill path construction with a randomized choice among the lowest neighbors
- Commit-or-discard: only paths that reach water within the step budget
  change the map
"""

from dataclasses import dataclass, field
from typing import List, Optional, Set

import numpy as np
import structlog

from .alea_prng import AleaPRNG
from .biomes import TerrainType, is_water
from .climate import land_elevation
from .voronoi_graph import VoronoiGraph

logger = structlog.get_logger()


@dataclass
class HydrologyOptions:
    """River tracing options."""

    source_elevation: float = 0.5  # minimum land elevation of a source
    source_moisture: float = 0.3
    source_chance: float = 0.025  # probability an eligible cell spawns a river
    max_steps: int = 25
    lowest_pick_chance: float = 0.7  # otherwise pick among the few lowest
    top_candidates: int = 3
    river_moisture: float = 0.9  # moisture floor applied to river cells


@dataclass
class River:
    """A committed river."""

    id: int
    cells: List[int]  # source first, terminating water cell last
    length: float  # path length in map units

    @property
    def source_cell(self) -> int:
        return self.cells[0]

    @property
    def mouth_cell(self) -> int:
        return self.cells[-1]

    def to_dict(self):
        return {
            "id": self.id,
            "cells": list(self.cells),
            "source": self.source_cell,
            "mouth": self.mouth_cell,
            "length": self.length,
        }


@dataclass
class HydrologyStats:
    sources_sampled: int = 0
    rivers_committed: int = 0
    rivers_discarded: int = 0
    river_cells: Set[int] = field(default_factory=set)


class Hydrology:
    """Traces rivers over a classified map."""

    def __init__(self, graph: VoronoiGraph, prng: AleaPRNG,
                 options: Optional[HydrologyOptions] = None):
        """
        Initialize hydrology system.

        Args:
            graph: VoronoiGraph with elevation, moisture and terrain populated
            prng: River stream; consumed in cell id order
            options: River tracing options
        """
        self.graph = graph
        self.prng = prng
        self.options = options or HydrologyOptions()

        self.rivers: List[River] = []
        self.stats = HydrologyStats()

    def _altitude(self) -> np.ndarray:
        sea_level = self.graph.sea_level
        if sea_level is None:
            sea_level = 0.0
        return land_elevation(self.graph.elevation, sea_level)

    def find_river_sources(self) -> List[int]:
        """
        Sample source cells in id order.

        A cell is eligible when it is land, above ``source_elevation`` and
        wetter than ``source_moisture``; each eligible cell then spawns a
        river with probability ``source_chance``.
        """
        graph = self.graph
        opts = self.options
        altitude = self._altitude()

        sources = []
        for i in range(graph.n_cells):
            if is_water(graph.terrain[i]):
                continue
            if altitude[i] <= opts.source_elevation or graph.moisture[i] <= opts.source_moisture:
                continue
            if self.prng.chance(opts.source_chance):
                sources.append(i)

        self.stats.sources_sampled = len(sources)
        return sources

    def _is_eligible_step(self, current: int, neighbor: int) -> bool:
        graph = self.graph
        # Original water is always a valid terminus; committed river cells
        # are land underneath and must not lie uphill
        if is_water(graph.terrain[neighbor]) and not graph.river_flags[neighbor]:
            return True
        return graph.elevation[neighbor] <= graph.elevation[current]

    def find_downhill_neighbor(self, current: int, visited: Set[int]) -> Optional[int]:
        """
        Pick the next cell of a river path.

        Candidates are unvisited neighbors that are water or no higher than
        ``current``. The lowest candidate is taken with probability
        ``lowest_pick_chance``; otherwise one of the ``top_candidates``
        lowest is chosen at random.
        """
        elevation = self.graph.elevation
        candidates = [
            j for j in self.graph.cell_neighbors[current]
            if j not in visited and self._is_eligible_step(current, j)
        ]
        if not candidates:
            return None

        candidates.sort(key=lambda j: (elevation[j], j))
        if len(candidates) == 1 or self.prng.chance(self.options.lowest_pick_chance):
            return candidates[0]
        top = candidates[:self.options.top_candidates]
        return top[self.prng.next_int(0, len(top))]

    def trace_river_path(self, source: int) -> Optional[List[int]]:
        """
        Walk downhill from ``source``.

        Returns:
            The path ending at a water cell, or None when the walk stalls or
            runs out of steps first
        """
        terrain = self.graph.terrain
        path = [source]
        visited = {source}
        current = source

        for _ in range(self.options.max_steps):
            next_cell = self.find_downhill_neighbor(current, visited)
            if next_cell is None:
                return None
            path.append(next_cell)
            visited.add(next_cell)
            if is_water(terrain[next_cell]):
                return path
            current = next_cell
        return None

    def commit_river(self, path: List[int]) -> River:
        """Turn every land cell of ``path`` into river water."""
        graph = self.graph
        floor = self.options.river_moisture
        for cell in path[:-1]:
            graph.terrain[cell] = TerrainType.SHALLOW_WATER
            graph.river_flags[cell] = True
            graph.moisture[cell] = max(float(graph.moisture[cell]), floor)
            self.stats.river_cells.add(cell)

        river = River(id=len(self.rivers), cells=list(path), length=self._path_length(path))
        self.rivers.append(river)
        return river

    def _path_length(self, path: List[int]) -> float:
        """Length of a river path, measured the short way across wrap seams."""
        graph = self.graph
        total = 0.0
        for a, b in zip(path, path[1:]):
            dx = abs(graph.points[a, 0] - graph.points[b, 0])
            dy = abs(graph.points[a, 1] - graph.points[b, 1])
            if graph.wrap_horizontal:
                dx = min(dx, graph.width - dx)
            if graph.wrap_vertical:
                dy = min(dy, graph.height - dy)
            total += float(np.hypot(dx, dy))
        return total

    def run_full_simulation(self) -> List[River]:
        """Sample sources, trace each one and commit the rivers that reach water."""
        graph = self.graph
        if graph.terrain is None or graph.elevation is None or graph.moisture is None:
            raise ValueError("Terrain must be classified before tracing rivers")

        logger.info("Generating rivers")
        if graph.river_flags is None:
            graph.river_flags = np.zeros(graph.n_cells, dtype=bool)

        for source in self.find_river_sources():
            # An earlier river may have flooded this source
            if is_water(graph.terrain[source]):
                self.stats.rivers_discarded += 1
                continue
            path = self.trace_river_path(source)
            if path is None:
                self.stats.rivers_discarded += 1
                continue
            self.commit_river(path)
            self.stats.rivers_committed += 1

        logger.info(
            "Rivers generated",
            sources=self.stats.sources_sampled,
            committed=self.stats.rivers_committed,
            discarded=self.stats.rivers_discarded,
            river_cells=len(self.stats.river_cells),
        )
        return self.rivers
