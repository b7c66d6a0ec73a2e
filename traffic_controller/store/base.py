from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from traffic_controller.core.type_aliases import HealthCheckId, WeightPercent
from traffic_controller.core.weight_state import WeightSnapshot


@dataclass(frozen=True, slots=True)
class StoreConfig:
    """The ``(desired, current)`` weight pair persisted for one cluster."""

    desired_weight: WeightPercent
    current_weight: WeightPercent
    health_check_id: HealthCheckId = ""

    @classmethod
    def from_snapshot(cls, snapshot: WeightSnapshot) -> StoreConfig:
        return cls(
            desired_weight=snapshot.desired_weight,
            current_weight=snapshot.current_weight,
            health_check_id=snapshot.health_check_id,
        )


class WeightStore(Protocol):
    """Cross-cluster weight store shared by every controller replica."""

    async def read_weight(self) -> WeightPercent:
        """Return the desired weight for this cluster.

        Raises ``WeightNotFoundError`` when no row exists yet.
        """
        ...

    async def on_weight_update(self, config: StoreConfig) -> None:
        """Persist the weight this cluster now acts upon."""
        ...

    async def ensure_initialized(self, config: StoreConfig) -> bool:
        """Seed the row for this cluster if absent; True when this call seeded it."""
        ...
