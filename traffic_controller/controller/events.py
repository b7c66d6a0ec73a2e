from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from traffic_controller.cluster.objects import NamespacedName
from traffic_controller.core.type_aliases import WeightVersion


@dataclass(frozen=True, slots=True)
class RouteEvent:
    """Request to re-run the per-route pipeline for one route.

    Each event is its own immutable object; producers never reuse one instance
    across routes.
    """

    key: NamespacedName
    reason: str = "weight-change"
    weight_version: WeightVersion | None = None


class EventSink(Protocol):
    async def emit(self, event: RouteEvent) -> None: ...
