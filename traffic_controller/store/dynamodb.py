"""
DynamoDB-backed weight store.

One item per cluster, keyed by ``ClusterName``, holding ``DesiredWeight`` and
``CurrentWeight``. Operators change ``DesiredWeight`` out of band; the
controller only ever writes ``CurrentWeight`` after it has acted on a change,
plus both fields once when seeding a missing row.

Every write is a single-item ``TransactWriteItems`` call, so a concurrent
replica writing the same key surfaces as a cancelled transaction rather than a
lost update.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from boto3.dynamodb.types import TypeDeserializer
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from traffic_controller.core.errors import (
    TransactionConflictError,
    WeightNotFoundError,
    WeightStoreError,
)
from traffic_controller.core.type_aliases import ClusterName, WeightPercent

from .base import StoreConfig

KEY_ATTRIBUTE = "ClusterName"
CONFLICT_ERROR_CODES = frozenset(
    {"TransactionConflictException", "TransactionInProgressException"}
)
CANCELLED_ERROR_CODE = "TransactionCanceledException"
CONDITION_FAILED_REASON = "ConditionalCheckFailed"

_deserializer = TypeDeserializer()


@dataclass(frozen=True, slots=True)
class WeightItem:
    cluster_name: ClusterName
    desired_weight: WeightPercent
    current_weight: WeightPercent

    @classmethod
    def from_attributes(cls, attributes: dict[str, Any]) -> WeightItem:
        # Unknown attributes are ignored.
        values = {
            name: _deserializer.deserialize(attributes[name])
            for name in (KEY_ATTRIBUTE, "DesiredWeight", "CurrentWeight")
            if name in attributes
        }
        try:
            return cls(
                cluster_name=str(values.get(KEY_ATTRIBUTE, "")),
                desired_weight=int(values.get("DesiredWeight", 0)),
                current_weight=int(values.get("CurrentWeight", 0)),
            )
        except (TypeError, ValueError) as exc:
            raise WeightStoreError(f"failed to unmarshal weight item: {exc}") from exc


def _cancellation_reasons(error: ClientError) -> tuple[str, ...]:
    reasons = error.response.get("CancellationReasons") or []
    return tuple(str(reason.get("Code") or "None") for reason in reasons)


class DynamoDBWeightStore:
    def __init__(
        self,
        *,
        client: Any,
        cluster_name: ClusterName,
        table_name: str,
    ) -> None:
        self._client = client
        self.cluster_name = cluster_name
        self.table_name = table_name
        self._log = logger.bind(backend="dynamoDB", cluster=cluster_name)

    def _key(self) -> dict[str, dict[str, str]]:
        return {KEY_ATTRIBUTE: {"S": self.cluster_name}}

    async def read_item(self) -> WeightItem:
        try:
            result = await asyncio.to_thread(
                self._client.get_item,
                TableName=self.table_name,
                Key=self._key(),
                ConsistentRead=True,
            )
        except (ClientError, BotoCoreError) as exc:
            raise WeightStoreError(f"failed to read weight item: {exc}") from exc

        attributes = result.get("Item") or {}
        if not attributes:
            raise WeightNotFoundError(
                f"no weight item for cluster {self.cluster_name!r}"
            )
        return WeightItem.from_attributes(attributes)

    async def read_weight(self) -> WeightPercent:
        item = await self.read_item()
        return item.desired_weight

    async def on_weight_update(self, config: StoreConfig) -> None:
        await self._write(
            self._update(
                "SET CurrentWeight = :c",
                {":c": {"N": str(config.current_weight)}},
            )
        )

    async def ensure_initialized(self, config: StoreConfig) -> bool:
        try:
            await self.read_weight()
            return False
        except WeightNotFoundError:
            self._log.info("Couldn't find previous configuration. Creating it...")

        try:
            await self.initialize_row(config)
        except TransactionConflictError as exc:
            if exc.reasons and all(
                reason == CONDITION_FAILED_REASON for reason in exc.reasons
            ):
                self._log.info("weight row was seeded concurrently by another replica")
                return False
            raise
        return True

    async def initialize_row(self, config: StoreConfig) -> None:
        update = self._update(
            "SET DesiredWeight = :d, CurrentWeight = :c",
            {
                ":d": {"N": str(config.desired_weight)},
                ":c": {"N": str(config.current_weight)},
            },
        )
        update["ConditionExpression"] = "attribute_not_exists(DesiredWeight)"
        await self._write(update)

    def _update(
        self, expression: str, values: dict[str, dict[str, str]]
    ) -> dict[str, Any]:
        return {
            "TableName": self.table_name,
            "Key": self._key(),
            "UpdateExpression": expression,
            "ExpressionAttributeValues": values,
        }

    async def _write(self, update: dict[str, Any]) -> None:
        try:
            await asyncio.to_thread(
                self._client.transact_write_items,
                TransactItems=[{"Update": update}],
            )
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "")
            if code == CANCELLED_ERROR_CODE:
                reasons = _cancellation_reasons(exc)
                self._log.error("failed to write items: {} {}", exc, reasons)
                raise TransactionConflictError(
                    message="weight transaction cancelled", reasons=reasons
                ) from exc
            if code in CONFLICT_ERROR_CODES:
                self._log.error(
                    "There is an already ongoing transaction "
                    "(more than one controller running?): {}",
                    exc,
                )
                raise TransactionConflictError(message=str(exc)) from exc
            raise WeightStoreError(f"failed to write items: {exc}") from exc
        except BotoCoreError as exc:
            raise WeightStoreError(f"failed to write items: {exc}") from exc
