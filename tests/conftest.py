"""Pytest configuration and fixtures for traffic controller testing."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import pytest
from loguru import logger

from traffic_controller.cluster.client import InMemoryClusterClient
from traffic_controller.controller.events import RouteEvent
from traffic_controller.core.weight_state import WeightState


class RecordingSink:
    """Event sink that keeps every emitted event."""

    def __init__(self) -> None:
        self.events: list[RouteEvent] = []

    async def emit(self, event: RouteEvent) -> None:
        self.events.append(event)


@pytest.fixture
def cluster() -> InMemoryClusterClient:
    return InMemoryClusterClient()


@pytest.fixture
def state() -> WeightState:
    return WeightState()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def log_messages() -> Iterator[list[str]]:
    """Capture loguru output for the duration of a test."""
    messages: list[str] = []

    def _collect(message: Any) -> None:
        messages.append(str(message.record["message"]))

    handler_id = logger.add(_collect, level="DEBUG")
    try:
        yield messages
    finally:
        logger.remove(handler_id)
