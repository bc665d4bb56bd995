"""
Resource placement on classified cells.

Each cell rolls against the spawn rule of its terrain; a successful roll picks
one to three distinct resources from the rule's shuffled list. Moist
grassland and forest can additionally receive water.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import structlog

from ..config.resource_config import DEFAULT_RESOURCE_CONFIG, ResourceConfig, ResourceDefinition
from .alea_prng import AleaPRNG
from .biomes import TerrainType, terrain_key

logger = structlog.get_logger()

WATER_RESOURCE = "water"
WATER_BONUS_TERRAINS = frozenset({TerrainType.GRASSLAND, TerrainType.FOREST})


@dataclass
class ResourceInstance:
    """A resource stock held by one cell.

    ``current`` is the only field that changes after generation.
    """

    type: str
    current: float
    maximum: float
    change_rate: float
    consumable: bool = True
    edible: bool = False
    satiety: Optional[float] = None
    energy_efficiency: Optional[float] = None
    attributes: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_definition(cls, definition: ResourceDefinition, current: float) -> "ResourceInstance":
        return cls(
            type=definition.id,
            current=current,
            maximum=definition.maximum,
            change_rate=definition.change_rate,
            consumable=definition.consumable,
            edible=definition.edible,
            satiety=definition.satiety,
            energy_efficiency=definition.energy_efficiency,
            attributes=dict(definition.custom_attributes),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "type": self.type,
            "current": self.current,
            "maximum": self.maximum,
            "changeRate": self.change_rate,
            "consumable": self.consumable,
            "edible": self.edible,
        }
        if self.satiety is not None:
            data["satiety"] = self.satiety
        if self.energy_efficiency is not None:
            data["energyEfficiency"] = self.energy_efficiency
        if self.attributes:
            data["attributes"] = dict(self.attributes)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResourceInstance":
        return cls(
            type=data["type"],
            current=float(data["current"]),
            maximum=float(data["maximum"]),
            change_rate=float(data.get("changeRate", 0.0)),
            consumable=bool(data.get("consumable", True)),
            edible=bool(data.get("edible", False)),
            satiety=data.get("satiety"),
            energy_efficiency=data.get("energyEfficiency"),
            attributes=dict(data.get("attributes", {})),
        )


@dataclass
class ResourceOptions:
    """Resource placement options."""

    two_resource_chance: float = 0.4
    three_resource_chance: float = 0.1
    min_fill: float = 0.3  # initial stock as a fraction of maximum
    max_fill: float = 0.9
    water_bonus_moisture: float = 0.7
    water_bonus_chance: float = 0.5


class ResourcePlacer:
    """Attaches resource instances to cells."""

    def __init__(self, prng: AleaPRNG, config: Optional[ResourceConfig] = None,
                 resource_density: float = 1.0, options: Optional[ResourceOptions] = None):
        self.prng = prng
        self.config = config or DEFAULT_RESOURCE_CONFIG
        self.resource_density = resource_density
        self.options = options or ResourceOptions()
        self.skipped_ids = set()

    def _resource_count(self) -> int:
        # Weighted toward a single resource
        if self.prng.chance(self.options.two_resource_chance):
            return 2
        if self.prng.chance(self.options.three_resource_chance):
            return 3
        return 1

    def _instantiate(self, definition: ResourceDefinition) -> ResourceInstance:
        fill = self.prng.uniform(self.options.min_fill, self.options.max_fill)
        return ResourceInstance.from_definition(definition, definition.maximum * fill)

    def _known(self, resource_id: str) -> bool:
        if resource_id in self.config.definitions:
            return True
        if resource_id not in self.skipped_ids:
            self.skipped_ids.add(resource_id)
            logger.debug("Skipping resource without definition", resource_id=resource_id)
        return False

    def place_cell(self, terrain: int, moisture: float) -> List[ResourceInstance]:
        """Roll the resources of a single cell."""
        resources: List[ResourceInstance] = []
        selected = set()

        rule = self.config.rule_for(terrain_key(terrain))
        if rule is not None and self.prng.chance(rule.probability * self.resource_density):
            count = self._resource_count()
            candidates = self.prng.shuffle(list(rule.resource_ids))
            for resource_id in candidates:
                if len(selected) >= count:
                    break
                if resource_id in selected or not self._known(resource_id):
                    continue
                resources.append(self._instantiate(self.config.definitions[resource_id]))
                selected.add(resource_id)

        opts = self.options
        if (
            terrain in WATER_BONUS_TERRAINS
            and moisture > opts.water_bonus_moisture
            and self.prng.chance(opts.water_bonus_chance)
            and WATER_RESOURCE not in selected
            and self._known(WATER_RESOURCE)
        ):
            resources.append(self._instantiate(self.config.definitions[WATER_RESOURCE]))

        return resources

    def place(self, terrain: Sequence[int], moisture: Sequence[float]) -> List[List[ResourceInstance]]:
        """Roll resources for every cell in id order."""
        logger.info("Placing resources", density=self.resource_density)
        placed = [self.place_cell(int(t), float(m)) for t, m in zip(terrain, moisture)]
        logger.info(
            "Resources placed",
            cells_with_resources=sum(1 for r in placed if r),
            instances=sum(len(r) for r in placed),
            skipped_ids=sorted(self.skipped_ids),
        )
        return placed
