from __future__ import annotations

from loguru import logger

from traffic_controller.core.type_aliases import WeightPercent
from traffic_controller.core.weight_state import WeightState

from .base import StoreConfig


class StaticWeightStore:
    """No-op store for single-cluster setups with one fixed weight.

    Reads echo the in-memory desired weight and writes are dropped.
    """

    def __init__(self, state: WeightState) -> None:
        self._state = state

    async def read_weight(self) -> WeightPercent:
        return self._state.snapshot().desired_weight

    async def on_weight_update(self, config: StoreConfig) -> None:
        logger.debug(
            "static weight store ignoring update to current weight {}",
            config.current_weight,
        )

    async def ensure_initialized(self, config: StoreConfig) -> bool:
        return False
