"""
Keyed work queue for route reconciliations.

Semantics follow the usual controller work queue contract:

- a key is queued at most once, however many times it is added;
- a key handed to a worker is not handed to another until ``done``; adds that
  arrive meanwhile are replayed when it is;
- ``add_after`` schedules a delayed add, ``add_rate_limited`` a delayed add
  with per-key exponential backoff that ``forget`` resets.

All methods except ``get`` are synchronous and must run on the event loop
thread; other threads use ``add_threadsafe``.
"""

from __future__ import annotations

import asyncio
from collections import deque

from loguru import logger

from traffic_controller.cluster.objects import NamespacedName
from traffic_controller.core.type_aliases import DurationSeconds

from .events import RouteEvent

DEFAULT_BASE_DELAY = 0.005
DEFAULT_MAX_DELAY = 1000.0


class WorkQueue:
    def __init__(
        self,
        *,
        name: str = "routes",
        base_delay: DurationSeconds = DEFAULT_BASE_DELAY,
        max_delay: DurationSeconds = DEFAULT_MAX_DELAY,
    ) -> None:
        self.name = name
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._queue: deque[NamespacedName] = deque()
        self._dirty: set[NamespacedName] = set()
        self._processing: set[NamespacedName] = set()
        self._failures: dict[NamespacedName, int] = {}
        self._timers: set[asyncio.TimerHandle] = set()
        self._ready = asyncio.Event()
        self._shutting_down = False
        self._loop: asyncio.AbstractEventLoop | None = None

    def __len__(self) -> int:
        return len(self._queue)

    @property
    def shutting_down(self) -> bool:
        return self._shutting_down

    def add(self, key: NamespacedName) -> None:
        if self._shutting_down or key in self._dirty:
            return
        self._dirty.add(key)
        if key in self._processing:
            return
        self._queue.append(key)
        self._ready.set()

    def add_threadsafe(self, key: NamespacedName) -> None:
        if self._loop is None:
            raise RuntimeError(f"work queue {self.name} has not been started")
        self._loop.call_soon_threadsafe(self.add, key)

    def bind_loop(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop or asyncio.get_running_loop()

    def add_after(self, key: NamespacedName, delay: DurationSeconds) -> None:
        if self._shutting_down:
            return
        if delay <= 0:
            self.add(key)
            return

        loop = asyncio.get_running_loop()

        def _fire() -> None:
            self._timers.discard(handle)
            self.add(key)

        handle = loop.call_later(delay, _fire)
        self._timers.add(handle)

    def add_rate_limited(self, key: NamespacedName) -> None:
        failures = self._failures.get(key, 0)
        self._failures[key] = failures + 1
        delay = min(self.base_delay * (2**failures), self.max_delay)
        logger.debug("[{}] requeue {} in {:.3f}s", self.name, key, delay)
        self.add_after(key, delay)

    def forget(self, key: NamespacedName) -> None:
        self._failures.pop(key, None)

    def num_requeues(self, key: NamespacedName) -> int:
        return self._failures.get(key, 0)

    async def get(self) -> NamespacedName | None:
        """Next key to process, or None once the queue is shut down."""
        while not self._queue:
            if self._shutting_down:
                return None
            self._ready.clear()
            await self._ready.wait()
        key = self._queue.popleft()
        self._processing.add(key)
        self._dirty.discard(key)
        return key

    def done(self, key: NamespacedName) -> None:
        self._processing.discard(key)
        if key in self._dirty:
            self._queue.append(key)
            self._ready.set()

    def shut_down(self) -> None:
        self._shutting_down = True
        for handle in self._timers:
            handle.cancel()
        self._timers.clear()
        self._ready.set()

    async def emit(self, event: RouteEvent) -> None:
        self.add(event.key)
