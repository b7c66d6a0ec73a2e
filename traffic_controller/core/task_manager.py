"""
Background task lifecycle for the controller's long-running loops.

Tasks are given a grace period to finish on their own after their owner has
signalled shutdown; only tasks still running after that are cancelled.
"""

import asyncio
from collections.abc import Coroutine
from typing import Any

from loguru import logger


class TaskManager:
    """Tracks background tasks and shuts them down gracefully."""

    def __init__(self, name: str = "TaskManager") -> None:
        self.name = name
        self.tasks: set[asyncio.Task[Any]] = set()
        self._shutdown_requested = False

    def create_task(
        self, coro: Coroutine[Any, Any, Any], name: str | None = None
    ) -> asyncio.Task[Any]:
        if self._shutdown_requested:
            coro.close()
            raise RuntimeError("Cannot create tasks after shutdown requested")

        task = asyncio.create_task(coro, name=name)
        self.tasks.add(task)
        task.add_done_callback(self._task_completed)

        logger.debug(f"[{self.name}] Created task {task.get_name()}")
        return task

    def _task_completed(self, task: asyncio.Task[Any]) -> None:
        self.tasks.discard(task)

        if task.cancelled():
            logger.debug(f"[{self.name}] Task {task.get_name()} was cancelled")
        elif task.exception():
            logger.error(
                f"[{self.name}] Task {task.get_name()} failed: {task.exception()}"
            )
        else:
            logger.debug(f"[{self.name}] Task {task.get_name()} completed")

    async def shutdown(self, timeout: float = 5.0) -> None:
        """Wait up to ``timeout`` for tasks to finish, then cancel the rest."""
        if self._shutdown_requested:
            return
        self._shutdown_requested = True

        pending = [task for task in self.tasks if not task.done()]
        if not pending:
            logger.debug(f"[{self.name}] No tasks to shutdown")
            return

        logger.info(f"[{self.name}] Waiting for {len(pending)} background tasks")
        _, still_running = await asyncio.wait(pending, timeout=timeout)

        for task in still_running:
            task.cancel()
            logger.warning(f"[{self.name}] Force-cancelled task: {task.get_name()}")
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)

        self.tasks.clear()
        logger.info(f"[{self.name}] Task shutdown complete")

    def __len__(self) -> int:
        return len(self.tasks)

    def __bool__(self) -> bool:
        return bool(self.tasks)
