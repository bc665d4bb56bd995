"""Tests for hydrology module."""

import numpy as np
import pytest
from py_worldgen.core.alea_prng import AleaPRNG
from py_worldgen.core.biomes import TerrainType, is_water
from py_worldgen.core.hydrology import Hydrology, HydrologyOptions, River
from py_worldgen.core.voronoi_graph import generate_voronoi_graph

WIDTH, HEIGHT = 1000.0, 600.0
SPACING = 50.0


def _nearest(graph, x, y):
    return int(np.argmin(np.hypot(graph.points[:, 0] - x, graph.points[:, 1] - y)))


def is_water_mask(graph):
    return np.isin(graph.terrain, [TerrainType.OCEAN, TerrainType.SHALLOW_WATER])


class TestHydrology:
    """Test river tracing."""

    @pytest.fixture
    def graph(self):
        """Create a slope rising eastward from a western sea."""
        rng = np.random.default_rng(0)
        cols, rows = int(WIDTH // SPACING), int(HEIGHT // SPACING)
        gx, gy = np.meshgrid((np.arange(cols) + 0.5) * SPACING, (np.arange(rows) + 0.5) * SPACING)
        points = np.column_stack([gx.ravel(), gy.ravel()]) + rng.uniform(-10, 10, size=(cols * rows, 2))
        graph = generate_voronoi_graph(points, WIDTH, HEIGHT)

        x = graph.points[:, 0]
        graph.elevation = x / WIDTH
        water = x < 150
        graph.terrain = np.where(water, TerrainType.OCEAN, TerrainType.GRASSLAND).astype(np.uint8)
        graph.moisture = np.where(water, 1.0, 0.5)
        graph.temperature = np.full(graph.n_cells, 0.5)
        graph.sea_level = float(graph.elevation[water].max())
        return graph

    def test_requires_terrain(self):
        """Test tracing refuses an unclassified graph."""
        points = np.random.default_rng(1).uniform([0, 0], [WIDTH, HEIGHT], size=(30, 2))
        graph = generate_voronoi_graph(points, WIDTH, HEIGHT)
        with pytest.raises(ValueError):
            Hydrology(graph, AleaPRNG(1)).run_full_simulation()

    def test_path_reaches_water(self, graph):
        """Test a path from high land ends in the sea."""
        graph.river_flags = np.zeros(graph.n_cells, dtype=bool)
        hydrology = Hydrology(graph, AleaPRNG(2), HydrologyOptions(max_steps=200))
        source = _nearest(graph, 925, 300)
        path = hydrology.trace_river_path(source)
        assert path is not None
        assert path[0] == source
        assert is_water(graph.terrain[path[-1]])
        assert not any(is_water(graph.terrain[c]) for c in path[:-1])

    def test_step_budget_discards_path(self, graph):
        """Test a path that runs out of steps is rejected."""
        graph.river_flags = np.zeros(graph.n_cells, dtype=bool)
        hydrology = Hydrology(graph, AleaPRNG(2), HydrologyOptions(max_steps=2))
        assert hydrology.trace_river_path(_nearest(graph, 925, 300)) is None

    def test_dead_end_leaves_map_untouched(self, graph):
        """Test a source in a pit commits nothing."""
        pit = _nearest(graph, 600, 300)
        graph.elevation[pit] = -1.0
        graph.moisture[:] = np.where(is_water_mask(graph), 1.0, 0.0)
        graph.moisture[pit] = 0.5
        terrain_before = graph.terrain.copy()
        moisture_before = graph.moisture.copy()

        options = HydrologyOptions(source_chance=1.0, source_elevation=-1.0)
        hydrology = Hydrology(graph, AleaPRNG(3), options)
        rivers = hydrology.run_full_simulation()

        assert rivers == []
        assert hydrology.stats.sources_sampled == 1
        assert hydrology.stats.rivers_discarded == 1
        np.testing.assert_array_equal(graph.terrain, terrain_before)
        np.testing.assert_array_equal(graph.moisture, moisture_before)
        assert not graph.river_flags.any()

    def test_committed_rivers_are_monotonic(self, graph):
        """Test every committed river flows downhill into water without cycles."""
        elevation = graph.elevation.copy()
        options = HydrologyOptions(source_chance=1.0, source_elevation=0.5, max_steps=200)
        hydrology = Hydrology(graph, AleaPRNG(4), options)
        rivers = hydrology.run_full_simulation()

        assert rivers
        assert hydrology.stats.rivers_committed == len(rivers)
        for river in rivers:
            cells = river.cells
            assert len(set(cells)) == len(cells)
            steps = np.diff(elevation[cells])
            assert np.all(steps <= 0)
            assert is_water(graph.terrain[river.mouth_cell])
            assert river.length > 0

    def test_commit_converts_cells(self, graph):
        """Test river cells become shallow water with raised moisture."""
        options = HydrologyOptions(source_chance=1.0, source_elevation=0.5, max_steps=200)
        hydrology = Hydrology(graph, AleaPRNG(4), options)
        rivers = hydrology.run_full_simulation()

        for river in rivers:
            for cell in river.cells[:-1]:
                assert graph.terrain[cell] == TerrainType.SHALLOW_WATER
                assert graph.river_flags[cell]
                assert graph.moisture[cell] >= options.river_moisture
        flagged = set(np.nonzero(graph.river_flags)[0])
        assert flagged == hydrology.stats.river_cells

    def test_deterministic(self, graph):
        """Test the same stream yields the same rivers."""
        options = HydrologyOptions(source_chance=0.3, source_elevation=0.3, max_steps=200)
        base = (graph.terrain.copy(), graph.moisture.copy())

        first = Hydrology(graph, AleaPRNG(5), options).run_full_simulation()
        graph.terrain, graph.moisture = base[0].copy(), base[1].copy()
        graph.river_flags = None
        second = Hydrology(graph, AleaPRNG(5), options).run_full_simulation()

        assert [r.cells for r in first] == [r.cells for r in second]


class TestRiver:
    """Test the river record."""

    def test_source_and_mouth(self):
        """Test endpoints and serialization."""
        river = River(id=0, cells=[5, 3, 1], length=12.5)
        assert river.source_cell == 5
        assert river.mouth_cell == 1
        assert river.to_dict() == {"id": 0, "cells": [5, 3, 1], "source": 5, "mouth": 1, "length": 12.5}
