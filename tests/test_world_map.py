"""Tests for the WorldMap aggregate and its serialized shape."""

import json

import pytest
from py_worldgen.core.biomes import TerrainType
from py_worldgen.core.generator import generate_map
from py_worldgen.core.world_map import Cell, WorldMap


@pytest.fixture(scope="module")
def world_map():
    return generate_map({"plotCount": 80, "randomSeed": 17, "relaxationSteps": 1})


class TestSerialization:
    """Test dict conversion."""

    def test_top_level_keys(self, world_map):
        """Test the serialized map exposes the expected sections."""
        data = world_map.to_dict()
        assert set(data) == {"cells", "terrainTypes", "config", "rivers", "createdAt", "stats"}
        assert len(data["cells"]) == 80
        assert data["config"]["randomSeed"] == 17

    def test_cell_shape(self, world_map):
        """Test each cell carries geometry, terrain and adjacency."""
        cell = world_map.to_dict()["cells"][0]
        for key in ("id", "center", "vertices", "terrain", "neighbors", "area", "resources"):
            assert key in cell
        assert isinstance(cell["terrain"], int)

    def test_json_safe(self, world_map):
        """Test the dict serializes to JSON."""
        text = json.dumps(world_map.to_dict())
        assert json.loads(text)["config"]["plotCount"] == 80

    def test_round_trip(self, world_map):
        """Test a map rebuilt from its dict matches the original."""
        rebuilt = WorldMap.from_dict(world_map.to_dict())
        assert rebuilt.cells == world_map.cells
        assert rebuilt.terrain_types == world_map.terrain_types
        assert rebuilt.config == world_map.config
        assert rebuilt.rivers == world_map.rivers
        assert rebuilt.created_at == world_map.created_at

    def test_cell_is_immutable(self, world_map):
        """Test cell geometry cannot be reassigned."""
        with pytest.raises(AttributeError):
            world_map.cells[0].terrain = TerrainType.DESERT


class TestStatistics:
    """Test summary statistics."""

    def test_counts_add_up(self, world_map):
        """Test land and water counts cover every cell."""
        stats = world_map.statistics()
        assert stats["cells"] == 80
        assert stats["land_cells"] + stats["water_cells"] == 80
        assert sum(stats["terrain"].values()) == 80
        assert stats["rivers"] == len(world_map.rivers)

    def test_resource_totals(self, world_map):
        """Test resource totals match the cell stocks."""
        stats = world_map.statistics()
        for resource_type, total in stats["resource_totals"].items():
            expected = sum(r.current for c in world_map.cells for r in c.resources if r.type == resource_type)
            assert total == pytest.approx(expected)

    def test_degenerate_cell_reported(self):
        """Test placeholder cells are counted."""
        cell = Cell(0, (0.0, 0.0), (), TerrainType.OCEAN, (), 0.0, 0.0)
        assert cell.is_degenerate
        assert cell.is_water
