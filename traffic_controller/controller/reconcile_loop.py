"""
Periodic weight reconciliation.

The shared weight store has no change notifications, so the loop polls it. When
the desired weight differs from the weight this process last acted upon, every
known route is fanned out to the work queue and the new current weight is
persisted. A failed tick changes nothing that the next tick cannot re-derive:

- read failure: nothing happened, try again next tick;
- listing failure: desired is updated but current is not, so the mismatch is
  seen again;
- persist failure: current stays behind in memory as well, so the fan-out and
  write are repeated (per-route reconciliation is idempotent).
"""

from __future__ import annotations

import asyncio
from enum import StrEnum

from loguru import logger

from traffic_controller.cluster.client import ClusterClient
from traffic_controller.core.metrics import WeightMetrics
from traffic_controller.core.task_manager import TaskManager
from traffic_controller.core.type_aliases import DurationSeconds, WeightVersion
from traffic_controller.core.weight_state import WeightState
from traffic_controller.store.base import StoreConfig, WeightStore

from .events import EventSink, RouteEvent


class LoopState(StrEnum):
    IDLE = "idle"
    RECONCILING = "reconciling"
    STOPPED = "stopped"


class ReconciliationLoop:
    def __init__(
        self,
        store: WeightStore,
        client: ClusterClient,
        state: WeightState,
        sink: EventSink,
        *,
        interval: DurationSeconds = 20.0,
        metrics: WeightMetrics | None = None,
    ) -> None:
        self._store = store
        self._client = client
        self._state = state
        self._sink = sink
        self.interval = interval
        self.metrics = metrics or WeightMetrics()
        self.loop_state = LoopState.STOPPED
        self._lock = asyncio.Lock()
        self._stop = asyncio.Event()
        self._tasks = TaskManager("ReconcileLoop")
        self._log = logger.bind(component="weight-loop")

    async def start(self) -> None:
        self._stop.clear()
        self._tasks = TaskManager("ReconcileLoop")
        self.loop_state = LoopState.IDLE
        self._tasks.create_task(self._run(), name="weight-reconcile-loop")
        self._log.info("Started weight reconciliation every {}s", self.interval)

    async def stop(self, timeout: float = 30.0) -> None:
        """Signal shutdown; a poll cycle already in flight is allowed to finish."""
        self._stop.set()
        await self._tasks.shutdown(timeout)
        self.loop_state = LoopState.STOPPED
        self._log.info("Stopped weight reconciliation")

    async def _run(self) -> None:
        while not self._stop.is_set():
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval)
            except TimeoutError:
                await self.tick()

    async def tick(self) -> bool:
        """Run one poll cycle, logging instead of raising."""
        try:
            return await self.reconcile_once()
        except Exception as e:
            self._log.error("Error updating route weight on store backend: {}", e)
            return False

    async def reconcile_once(self) -> bool:
        """Poll the store and fan out on change; True when a change was applied."""
        async with self._lock:
            self.loop_state = LoopState.RECONCILING
            try:
                return await self._reconcile()
            finally:
                self.loop_state = LoopState.IDLE

    async def _reconcile(self) -> bool:
        desired = await self._store.read_weight()
        snapshot = self._state.snapshot()
        if desired == snapshot.current_weight:
            return False

        self._log.info(
            "Desired weight changed from {} to {}", snapshot.current_weight, desired
        )
        published = self._state.publish(desired_weight=desired)
        count = await self.enqueue_reconcile_events(published.version)
        self._log.info("Enqueued {} routes for reconciliation", count)

        await self._store.on_weight_update(
            StoreConfig(
                desired_weight=desired,
                current_weight=desired,
                health_check_id=published.health_check_id,
            )
        )
        self.metrics.observe(self._state.publish(current_weight=desired))
        return True

    async def enqueue_reconcile_events(self, version: WeightVersion) -> int:
        routes = await self._client.list_routes()
        for route in routes:
            await self._sink.emit(
                RouteEvent(key=route.key, reason="weight-change", weight_version=version)
            )
        return len(routes)
