"""Advance resource stocks over elapsed time."""

import math
from dataclasses import dataclass, field
from typing import List

import structlog

from .world_map import WorldMap

logger = structlog.get_logger()


@dataclass(frozen=True)
class ResourceChange:
    cell_id: int
    resource_type: str
    previous: float
    current: float


@dataclass
class SimulationResult:
    """Changes applied by one ``simulate`` call."""

    delta_time: float
    changes: List[ResourceChange] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.changes)

    def to_dict(self):
        return {
            "deltaTime": self.delta_time,
            "changes": [
                {
                    "cellId": c.cell_id,
                    "resourceType": c.resource_type,
                    "previous": c.previous,
                    "current": c.current,
                }
                for c in self.changes
            ],
        }


def simulate(world_map: WorldMap, delta_time: float) -> SimulationResult:
    """
    Apply ``current += change_rate * delta_time`` to every resource, clamped
    to ``[0, maximum]``.

    Only resource stocks change. Negative ``delta_time`` runs the rates
    backwards; the clamp still holds.

    Raises:
        ValueError: if ``delta_time`` is NaN or infinite
    """
    delta_time = float(delta_time)
    if not math.isfinite(delta_time):
        raise ValueError(f"delta_time must be finite, got {delta_time}")

    result = SimulationResult(delta_time=delta_time)
    for cell in world_map.cells:
        for resource in cell.resources:
            previous = resource.current
            updated = previous + resource.change_rate * delta_time
            resource.current = min(max(updated, 0.0), resource.maximum)
            if resource.current != previous:
                result.changes.append(ResourceChange(cell.id, resource.type, previous, resource.current))

    logger.debug("Simulation step applied", delta_time=delta_time, changes=len(result.changes))
    return result
