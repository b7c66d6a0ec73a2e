"""Cross-cluster weight stores."""

from __future__ import annotations

from typing import Any

import boto3

from traffic_controller.aws.session import (
    SessionParameters,
    client_config,
    new_aws_session,
)
from traffic_controller.config import BackendType, ControllerSettings
from traffic_controller.core.errors import ConfigurationError
from traffic_controller.core.weight_state import WeightState

from .base import StoreConfig, WeightStore
from .dynamodb import DynamoDBWeightStore, WeightItem
from .static import StaticWeightStore


def new_weight_store(
    settings: ControllerSettings,
    state: WeightState,
    *,
    session: boto3.Session | None = None,
    client: Any | None = None,
) -> WeightStore:
    """Build the weight store selected by ``settings.backend_type``."""
    match settings.backend_type:
        case BackendType.FAKE:
            return StaticWeightStore(state)
        case BackendType.DYNAMODB:
            if client is None:
                parameters = SessionParameters(region=settings.aws_region)
                session = session or new_aws_session(parameters)
                client = session.client("dynamodb", config=client_config(parameters))
            return DynamoDBWeightStore(
                client=client,
                cluster_name=settings.cluster_name,
                table_name=settings.table_name,
            )
        case _:
            raise ConfigurationError("Not implemented")


__all__ = [
    "DynamoDBWeightStore",
    "StaticWeightStore",
    "StoreConfig",
    "WeightItem",
    "WeightStore",
    "new_weight_store",
]
