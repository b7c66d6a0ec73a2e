from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from traffic_controller.cluster.client import ClusterClient
from traffic_controller.cluster.objects import NamespacedName
from traffic_controller.core.errors import OrchestrationAPIError, ResourceNotFoundError
from traffic_controller.core.metrics import WeightMetrics
from traffic_controller.core.type_aliases import DurationSeconds
from traffic_controller.core.weight_state import WeightState

from .synthesizer import RouteRecordSynthesizer, SynthesisOutcome


@dataclass(frozen=True, slots=True)
class ReconcileResult:
    """Outcome of one route reconciliation.

    ``requeue_after`` asks the work queue to run the same key again after the
    given delay without counting it as a failure.
    """

    requeue_after: DurationSeconds | None = None
    outcome: SynthesisOutcome | None = None

    @property
    def requeue(self) -> bool:
        return self.requeue_after is not None


class RouteReconciler:
    """Per-route pipeline: fetch, check deletion races, synthesize or delete."""

    def __init__(
        self,
        client: ClusterClient,
        synthesizer: RouteRecordSynthesizer,
        state: WeightState,
        *,
        deleting_requeue_delay: DurationSeconds = 5.0,
        metrics: WeightMetrics | None = None,
    ) -> None:
        self._client = client
        self._synthesizer = synthesizer
        self._state = state
        self.deleting_requeue_delay = deleting_requeue_delay
        self.metrics = metrics or WeightMetrics()

    async def reconcile(self, key: NamespacedName) -> ReconcileResult:
        log = logger.bind(route=str(key))
        snapshot = self._state.snapshot()
        self.metrics.observe(snapshot)

        try:
            route = await self._client.get_route(key)
        except ResourceNotFoundError:
            log.info(
                "The route does not exist. Ensuring the weighted record does not exist either"
            )
            await self._synthesizer.delete(key)
            return ReconcileResult()
        except OrchestrationAPIError as exc:
            log.info("Unable to fetch route, skipping: {}", exc)
            raise

        if route.metadata.being_deleted:
            return ReconcileResult()

        # Creating now could resurrect a record an earlier event meant to remove.
        if await self.record_being_deleted(key):
            log.info("Weighted record being removed, requeuing notification")
            return ReconcileResult(requeue_after=self.deleting_requeue_delay)

        outcome = await self._synthesizer.reconcile(snapshot, route)
        log.debug("route reconciled: {}", outcome)
        return ReconcileResult(outcome=outcome)

    async def record_being_deleted(self, key: NamespacedName) -> bool:
        try:
            record = await self._client.get_record(key)
        except OrchestrationAPIError:
            return False
        return record.metadata.being_deleted
