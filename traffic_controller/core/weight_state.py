"""
Process-wide traffic weight state.

The reconciliation loop is the only writer once the controller is running; the
startup bootstrap seeds it before the loop starts. Every per-route pipeline run
takes one immutable ``WeightSnapshot`` up front and passes it explicitly, so a
concurrent publish never changes the inputs of a computation already in flight.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from threading import Lock

from .type_aliases import HealthCheckId, WeightPercent, WeightVersion


@dataclass(frozen=True, slots=True)
class WeightSnapshot:
    """Immutable view of the cluster weight at one point in time."""

    desired_weight: WeightPercent = 0
    current_weight: WeightPercent = 0
    health_check_id: HealthCheckId = ""
    version: WeightVersion = 0

    @property
    def in_sync(self) -> bool:
        return self.desired_weight == self.current_weight


class WeightState:
    """Versioned holder for the latest ``WeightSnapshot``.

    Writers swap in a new snapshot under a lock; readers just grab the current
    reference, which is always a complete snapshot.
    """

    def __init__(self, initial: WeightSnapshot | None = None) -> None:
        self._lock = Lock()
        self._snapshot = initial or WeightSnapshot()

    def snapshot(self) -> WeightSnapshot:
        return self._snapshot

    def publish(
        self,
        *,
        desired_weight: WeightPercent | None = None,
        current_weight: WeightPercent | None = None,
        health_check_id: HealthCheckId | None = None,
    ) -> WeightSnapshot:
        """Swap in a new snapshot with the given fields replaced."""
        with self._lock:
            previous = self._snapshot
            updated = replace(
                previous,
                desired_weight=(
                    previous.desired_weight
                    if desired_weight is None
                    else desired_weight
                ),
                current_weight=(
                    previous.current_weight
                    if current_weight is None
                    else current_weight
                ),
                health_check_id=(
                    previous.health_check_id
                    if health_check_id is None
                    else health_check_id
                ),
                version=previous.version + 1,
            )
            self._snapshot = updated
            return updated

    def seed(
        self, weight: WeightPercent, health_check_id: HealthCheckId = ""
    ) -> WeightSnapshot:
        """Set desired and current weight to the same value."""
        return self.publish(
            desired_weight=weight,
            current_weight=weight,
            health_check_id=health_check_id,
        )
