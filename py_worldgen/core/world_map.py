"""
The generated map: cells, terrain catalog, configuration and diagnostics.

A WorldMap is built once per generation. Cell geometry, terrain and adjacency
never change afterwards; only resource stocks are advanced by ``simulate``.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple

from ..config.map_config import MapConfig, build_map_config
from .biomes import TerrainInfo, TerrainType, is_water, terrain_key
from .hydrology import River
from .resources import ResourceInstance

Point = Tuple[float, float]


@dataclass(frozen=True)
class Cell:
    """One polygonal cell of the map."""

    id: int
    center: Point
    vertices: Tuple[Point, ...]  # CCW; empty for degenerate cells
    terrain: TerrainType
    neighbors: Tuple[int, ...]
    area: float
    perimeter: float
    resources: Tuple[ResourceInstance, ...] = ()
    elevation: float = 0.0
    moisture: float = 0.0
    temperature: float = 0.0
    river: bool = False
    border: bool = False

    @property
    def is_degenerate(self) -> bool:
        return len(self.vertices) < 3

    @property
    def is_water(self) -> bool:
        return is_water(self.terrain)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "center": list(self.center),
            "vertices": [list(v) for v in self.vertices],
            "terrain": int(self.terrain),
            "neighbors": list(self.neighbors),
            "area": self.area,
            "perimeter": self.perimeter,
            "elevation": self.elevation,
            "moisture": self.moisture,
            "temperature": self.temperature,
            "river": self.river,
            "border": self.border,
            "resources": [r.to_dict() for r in self.resources],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Cell":
        return cls(
            id=int(data["id"]),
            center=(float(data["center"][0]), float(data["center"][1])),
            vertices=tuple((float(x), float(y)) for x, y in data.get("vertices", ())),
            terrain=TerrainType(int(data["terrain"])),
            neighbors=tuple(int(n) for n in data.get("neighbors", ())),
            area=float(data.get("area", 0.0)),
            perimeter=float(data.get("perimeter", 0.0)),
            resources=tuple(ResourceInstance.from_dict(r) for r in data.get("resources", ())),
            elevation=float(data.get("elevation", 0.0)),
            moisture=float(data.get("moisture", 0.0)),
            temperature=float(data.get("temperature", 0.0)),
            river=bool(data.get("river", False)),
            border=bool(data.get("border", False)),
        )


@dataclass
class WorldMap:
    """Top-level result of a generation run."""

    cells: Tuple[Cell, ...]
    terrain_types: List[TerrainInfo]
    config: MapConfig
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    rivers: List[River] = field(default_factory=list)
    stats: Dict[str, Any] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.cells)

    def cell(self, cell_id: int) -> Cell:
        return self.cells[cell_id]

    def statistics(self) -> Dict[str, Any]:
        """Cell counts per terrain, land/water/river counts and resource totals."""
        terrain_counts = Counter(terrain_key(c.terrain) for c in self.cells)
        resource_totals: Dict[str, float] = {}
        resource_counts: Counter = Counter()
        for c in self.cells:
            for r in c.resources:
                resource_totals[r.type] = resource_totals.get(r.type, 0.0) + r.current
                resource_counts[r.type] += 1

        water = sum(1 for c in self.cells if c.is_water)
        return {
            "cells": len(self.cells),
            "water_cells": water,
            "land_cells": len(self.cells) - water,
            "river_cells": sum(1 for c in self.cells if c.river),
            "border_cells": sum(1 for c in self.cells if c.border),
            "degenerate_cells": sum(1 for c in self.cells if c.is_degenerate),
            "rivers": len(self.rivers),
            "terrain": dict(terrain_counts),
            "resource_totals": resource_totals,
            "resource_counts": dict(resource_counts),
        }

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe representation."""
        return {
            "cells": [c.to_dict() for c in self.cells],
            "terrainTypes": [t.to_dict() for t in self.terrain_types],
            "config": self.config.to_dict(),
            "rivers": [r.to_dict() for r in self.rivers],
            "createdAt": self.created_at.isoformat(),
            "stats": dict(self.stats),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorldMap":
        return cls(
            cells=tuple(Cell.from_dict(c) for c in data["cells"]),
            terrain_types=[
                TerrainInfo(int(t["id"]), t["name"], t.get("description", ""), t.get("color", ""))
                for t in data.get("terrainTypes", ())
            ],
            config=build_map_config(data.get("config")),
            created_at=datetime.fromisoformat(data["createdAt"]) if "createdAt" in data
            else datetime.now(timezone.utc),
            rivers=[
                River(id=int(r["id"]), cells=[int(c) for c in r["cells"]], length=float(r.get("length", 0.0)))
                for r in data.get("rivers", ())
            ],
            stats=dict(data.get("stats", {})),
        )
