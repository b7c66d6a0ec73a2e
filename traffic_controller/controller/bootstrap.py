"""Wiring of the controller components and the startup weight handshake."""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from traffic_controller.cluster.client import ClusterClient
from traffic_controller.config import ControllerSettings
from traffic_controller.core.errors import TransactionConflictError, WeightStoreError
from traffic_controller.core.metrics import WeightMetrics
from traffic_controller.core.weight_state import WeightSnapshot, WeightState
from traffic_controller.store.base import StoreConfig, WeightStore

from .health import BackingHealthDetector
from .reconcile_loop import ReconciliationLoop
from .reconciler import RouteReconciler
from .route_controller import RouteController
from .synthesizer import RouteRecordSynthesizer
from .weights import RouteWeightCalculator
from .work_queue import WorkQueue


async def bootstrap_weight(
    settings: ControllerSettings, store: WeightStore, state: WeightState
) -> WeightSnapshot:
    """Seed the store if needed and adopt its desired weight.

    Must complete before the reconciliation loop starts. A failure to read the
    desired weight propagates and aborts startup.
    """
    seeded = state.seed(settings.initial_weight, settings.health_check_id)
    try:
        await store.ensure_initialized(StoreConfig.from_snapshot(seeded))
    except TransactionConflictError as e:
        logger.warning("Could not seed weight store, reading it anyway: {}", e)

    desired = await store.read_weight()

    # No gradual transitions: current jumps straight to desired.
    snapshot = state.seed(desired, settings.health_check_id)
    try:
        await store.on_weight_update(StoreConfig.from_snapshot(snapshot))
    except WeightStoreError as e:
        logger.error("Unable to persist current weight at startup: {}", e)

    logger.info("Starting with cluster weight {}", desired)
    return snapshot


@dataclass(slots=True)
class ControllerRuntime:
    settings: ControllerSettings
    state: WeightState
    store: WeightStore
    client: ClusterClient
    queue: WorkQueue
    reconciler: RouteReconciler
    controller: RouteController
    loop: ReconciliationLoop
    metrics: WeightMetrics

    async def start(self) -> None:
        self.metrics.observe(self.state.snapshot())
        await self.controller.start()
        await self.loop.start()

    async def stop(self) -> None:
        await self.loop.stop()
        await self.controller.stop()


def build_runtime(
    settings: ControllerSettings,
    client: ClusterClient,
    store: WeightStore,
    state: WeightState,
) -> ControllerRuntime:
    queue = WorkQueue(name="routes")
    metrics = WeightMetrics()
    calculator = RouteWeightCalculator(
        BackingHealthDetector(client), weight_annotation=settings.weight_annotation
    )
    synthesizer = RouteRecordSynthesizer(
        client,
        calculator,
        cluster_name=settings.cluster_name,
        binding_domain=settings.binding_domain,
        annotation_filter=settings.parsed_annotation_filter(),
        dev_mode=settings.dev_mode,
    )
    reconciler = RouteReconciler(
        client,
        synthesizer,
        state,
        deleting_requeue_delay=settings.deleting_requeue_delay,
        metrics=metrics,
    )
    return ControllerRuntime(
        settings=settings,
        state=state,
        store=store,
        client=client,
        queue=queue,
        reconciler=reconciler,
        controller=RouteController(reconciler, queue, workers=settings.workers),
        loop=ReconciliationLoop(
            store,
            client,
            state,
            queue,
            interval=settings.reconcile_interval,
            metrics=metrics,
        ),
        metrics=metrics,
    )
