"""
Resource definitions and per-terrain spawn rules.

The stock table ships ten resources. A custom table can be loaded from JSON
with ``load_resource_config`` and handed to the generator; there is no global
registry. Terrain rules are keyed by terrain slug (``"ocean"``,
``"shallow_water"``, ``"grassland"``, ...).
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from ..exceptions import ConfigurationError


class _ResourceModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        allow_inf_nan=False,
    )


class ResourceDefinition(_ResourceModel):
    """Static properties of one resource kind."""

    id: str
    name_key: Optional[str] = None
    maximum: float = Field(ge=0, description="Upper bound on a cell's stock")
    change_rate: float = Field(default=0.0, description="Stock change per unit of simulated time")
    consumable: bool = True
    edible: bool = False
    satiety: Optional[float] = None
    energy_efficiency: Optional[float] = None
    rarity: Optional[float] = Field(default=None, ge=0, le=1)
    custom_attributes: Dict[str, Any] = Field(default_factory=dict)

    @property
    def display_key(self) -> str:
        return self.name_key or self.id


class TerrainResourceRule(_ResourceModel):
    """Which resources a terrain can host and how often."""

    resource_ids: List[str] = Field(default_factory=list)
    probability: float = Field(ge=0, le=1)


class ResourceConfig(_ResourceModel):
    """Complete resource table."""

    definitions: Dict[str, ResourceDefinition]
    terrain_rules: Dict[str, TerrainResourceRule] = Field(default_factory=dict)

    def rule_for(self, terrain_key: str) -> Optional[TerrainResourceRule]:
        return self.terrain_rules.get(terrain_key)


def _definition(id: str, maximum: float, change_rate: float, consumable: bool, edible: bool,
                rarity: float, satiety: Optional[float] = None,
                energy_efficiency: Optional[float] = None) -> ResourceDefinition:
    return ResourceDefinition(
        id=id,
        name_key=id,
        maximum=maximum,
        change_rate=change_rate,
        consumable=consumable,
        edible=edible,
        satiety=satiety,
        energy_efficiency=energy_efficiency,
        rarity=rarity,
    )


DEFAULT_RESOURCE_CONFIG = ResourceConfig(
    definitions={
        d.id: d
        for d in (
            _definition("water", 1000, 0.0, True, False, 0.2, energy_efficiency=0.0),
            _definition("wood", 500, 0.5, True, False, 0.3, energy_efficiency=0.8),
            _definition("stone", 800, 0.0, True, False, 0.4, energy_efficiency=0.0),
            _definition("iron", 300, 0.0, True, False, 0.6, energy_efficiency=0.0),
            _definition("gold", 150, 0.0, False, False, 0.8),
            _definition("oil", 400, 0.0, True, False, 0.7, energy_efficiency=1.5),
            _definition("coal", 600, 0.0, True, False, 0.5, energy_efficiency=1.2),
            _definition("fertile_soil", 100, 0.2, False, False, 0.3),
            _definition("fish", 300, 0.3, True, True, 0.4, satiety=50, energy_efficiency=0.9),
            _definition("game", 200, 0.4, True, True, 0.5, satiety=75, energy_efficiency=1.0),
        )
    },
    terrain_rules={
        "ocean": TerrainResourceRule(resource_ids=["fish", "oil"], probability=0.4),
        "shallow_water": TerrainResourceRule(resource_ids=["fish", "water"], probability=0.5),
        "beach": TerrainResourceRule(resource_ids=["stone"], probability=0.2),
        "grassland": TerrainResourceRule(resource_ids=["fertile_soil", "game", "stone"], probability=0.6),
        "forest": TerrainResourceRule(resource_ids=["wood", "game", "fertile_soil"], probability=0.7),
        "jungle": TerrainResourceRule(resource_ids=["wood", "game", "gold"], probability=0.65),
        "desert": TerrainResourceRule(resource_ids=["oil", "stone"], probability=0.3),
        "tundra": TerrainResourceRule(resource_ids=["game", "iron"], probability=0.35),
        "hills": TerrainResourceRule(resource_ids=["stone", "iron", "game"], probability=0.55),
        "mountain": TerrainResourceRule(resource_ids=["stone", "iron", "gold", "coal"], probability=0.8),
        "snow": TerrainResourceRule(resource_ids=["water"], probability=0.2),
    },
)


def load_resource_config(path: Union[str, Path]) -> ResourceConfig:
    """
    Load a resource table from a JSON file.

    The file holds ``definitions`` and ``terrainRules`` objects (snake_case
    keys are accepted too).

    Raises:
        ConfigurationError: if the file is not valid JSON or not a valid table
    """
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Resource table {path} is not valid JSON: {exc}") from exc

    try:
        return ResourceConfig.model_validate(data)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ()))
        raise ConfigurationError(f"Invalid resource table {path}: {first['msg']}", field=field) from exc
