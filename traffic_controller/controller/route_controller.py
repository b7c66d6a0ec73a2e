from __future__ import annotations

from loguru import logger

from traffic_controller.core.task_manager import TaskManager

from .reconciler import RouteReconciler
from .work_queue import WorkQueue


class RouteController:
    """Pool of workers draining the work queue into the route reconciler.

    Different routes reconcile concurrently; the queue guarantees a single
    route is never reconciled by two workers at once.
    """

    def __init__(
        self,
        reconciler: RouteReconciler,
        queue: WorkQueue,
        *,
        workers: int = 4,
    ) -> None:
        self._reconciler = reconciler
        self.queue = queue
        self.workers = workers
        self._tasks = TaskManager("RouteController")

    async def start(self) -> None:
        self.queue.bind_loop()
        logger.info("Starting route controller with {} workers", self.workers)
        for index in range(self.workers):
            self._tasks.create_task(self._worker(), name=f"route-worker-{index}")

    async def stop(self, timeout: float = 10.0) -> None:
        logger.info("Stopping route controller")
        self.queue.shut_down()
        await self._tasks.shutdown(timeout)

    async def _worker(self) -> None:
        while await self.process_next():
            pass

    async def process_next(self) -> bool:
        """Reconcile one key; False once the queue is shut down and drained."""
        key = await self.queue.get()
        if key is None:
            return False

        try:
            result = await self._reconciler.reconcile(key)
        except Exception as e:
            logger.bind(route=str(key)).error(
                "Could not reconcile weighted record: {}", e
            )
            self.queue.add_rate_limited(key)
        else:
            self.queue.forget(key)
            if result.requeue_after is not None:
                self.queue.add_after(key, result.requeue_after)
        finally:
            self.queue.done(key)
        return True
