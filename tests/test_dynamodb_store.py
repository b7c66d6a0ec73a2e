"""Tests for the DynamoDB weight store against a stubbed client."""

from typing import Any

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from traffic_controller.core.errors import (
    TransactionConflictError,
    WeightNotFoundError,
    WeightStoreError,
)
from traffic_controller.store.base import StoreConfig
from traffic_controller.store.dynamodb import DynamoDBWeightStore, WeightItem


def client_error(code: str, reasons: list[str] | None = None) -> ClientError:
    response: dict[str, Any] = {"Error": {"Code": code, "Message": code}}
    if reasons is not None:
        response["CancellationReasons"] = [{"Code": reason} for reason in reasons]
    return ClientError(response, "TransactWriteItems")


class StubDynamoDB:
    """Single-table DynamoDB double covering get_item and transact_write_items."""

    def __init__(self) -> None:
        self.items: dict[str, dict[str, Any]] = {}
        self.get_calls: list[dict[str, Any]] = []
        self.transactions: list[list[dict[str, Any]]] = []
        self.get_error: Exception | None = None
        self.write_error: Exception | None = None

    def put(self, cluster: str, **attributes: Any) -> None:
        self.items[cluster] = {"ClusterName": {"S": cluster}, **attributes}

    def get_item(self, **kwargs: Any) -> dict[str, Any]:
        self.get_calls.append(kwargs)
        if self.get_error is not None:
            raise self.get_error
        item = self.items.get(kwargs["Key"]["ClusterName"]["S"])
        return {"Item": item} if item is not None else {}

    def transact_write_items(self, **kwargs: Any) -> dict[str, Any]:
        self.transactions.append(kwargs["TransactItems"])
        if self.write_error is not None:
            raise self.write_error
        for entry in kwargs["TransactItems"]:
            update = entry["Update"]
            cluster = update["Key"]["ClusterName"]["S"]
            item = self.items.setdefault(cluster, {"ClusterName": {"S": cluster}})
            if update.get(
                "ConditionExpression"
            ) == "attribute_not_exists(DesiredWeight)" and "DesiredWeight" in item:
                raise client_error(
                    "TransactionCanceledException", ["ConditionalCheckFailed"]
                )
            values = update["ExpressionAttributeValues"]
            if ":d" in values:
                item["DesiredWeight"] = values[":d"]
            if ":c" in values:
                item["CurrentWeight"] = values[":c"]
        return {}


@pytest.fixture
def dynamo() -> StubDynamoDB:
    return StubDynamoDB()


@pytest.fixture
def store(dynamo) -> DynamoDBWeightStore:
    return DynamoDBWeightStore(
        client=dynamo, cluster_name="foolanito", table_name="traffic-controller"
    )


class TestReadWeight:
    @pytest.mark.asyncio
    async def test_reads_desired_weight(self, dynamo, store) -> None:
        dynamo.put("foolanito", DesiredWeight={"N": "42"}, CurrentWeight={"N": "10"})

        assert await store.read_weight() == 42
        (call,) = dynamo.get_calls
        assert call["TableName"] == "traffic-controller"
        assert call["Key"] == {"ClusterName": {"S": "foolanito"}}
        assert call["ConsistentRead"] is True

    @pytest.mark.asyncio
    async def test_missing_row(self, store) -> None:
        with pytest.raises(WeightNotFoundError):
            await store.read_weight()

    @pytest.mark.asyncio
    async def test_unknown_attributes_are_ignored(self, dynamo, store) -> None:
        dynamo.put(
            "foolanito",
            DesiredWeight={"N": "7"},
            CurrentWeight={"N": "7"},
            Owner={"S": "platform-team"},
        )

        item = await store.read_item()

        assert item == WeightItem(
            cluster_name="foolanito", desired_weight=7, current_weight=7
        )

    @pytest.mark.asyncio
    async def test_malformed_weight(self, dynamo, store) -> None:
        dynamo.put("foolanito", DesiredWeight={"S": "lots"})
        with pytest.raises(WeightStoreError):
            await store.read_weight()

    @pytest.mark.asyncio
    async def test_transport_error(self, dynamo, store) -> None:
        dynamo.get_error = EndpointConnectionError(endpoint_url="https://dynamodb")
        with pytest.raises(WeightStoreError) as exc_info:
            await store.read_weight()
        assert not isinstance(exc_info.value, WeightNotFoundError)


class TestOnWeightUpdate:
    @pytest.mark.asyncio
    async def test_writes_only_current_weight(self, dynamo, store) -> None:
        dynamo.put("foolanito", DesiredWeight={"N": "80"}, CurrentWeight={"N": "50"})

        await store.on_weight_update(StoreConfig(desired_weight=80, current_weight=80))

        (transaction,) = dynamo.transactions
        (entry,) = transaction
        update = entry["Update"]
        assert update["TableName"] == "traffic-controller"
        assert update["Key"] == {"ClusterName": {"S": "foolanito"}}
        assert update["UpdateExpression"] == "SET CurrentWeight = :c"
        assert update["ExpressionAttributeValues"] == {":c": {"N": "80"}}
        assert "ConditionExpression" not in update
        assert dynamo.items["foolanito"]["CurrentWeight"] == {"N": "80"}

    @pytest.mark.asyncio
    async def test_cancelled_transaction(self, dynamo, store) -> None:
        dynamo.write_error = client_error(
            "TransactionCanceledException", ["None", "TransactionConflict"]
        )

        with pytest.raises(TransactionConflictError) as exc_info:
            await store.on_weight_update(StoreConfig(desired_weight=1, current_weight=1))

        assert exc_info.value.reasons == ("None", "TransactionConflict")
        assert "TransactionConflict" in str(exc_info.value)

    @pytest.mark.parametrize(
        "code", ["TransactionConflictException", "TransactionInProgressException"]
    )
    @pytest.mark.asyncio
    async def test_conflicting_transaction(self, dynamo, store, code: str) -> None:
        dynamo.write_error = client_error(code)
        with pytest.raises(TransactionConflictError):
            await store.on_weight_update(StoreConfig(desired_weight=1, current_weight=1))

    @pytest.mark.asyncio
    async def test_other_errors(self, dynamo, store) -> None:
        dynamo.write_error = client_error("ResourceNotFoundException")
        with pytest.raises(WeightStoreError) as exc_info:
            await store.on_weight_update(StoreConfig(desired_weight=1, current_weight=1))
        assert not isinstance(exc_info.value, TransactionConflictError)


class TestEnsureInitialized:
    @pytest.mark.asyncio
    async def test_seeds_missing_row(self, dynamo, store) -> None:
        seeded = await store.ensure_initialized(
            StoreConfig(desired_weight=30, current_weight=30)
        )

        assert seeded
        update = dynamo.transactions[0][0]["Update"]
        assert update["UpdateExpression"] == "SET DesiredWeight = :d, CurrentWeight = :c"
        assert update["ExpressionAttributeValues"] == {
            ":d": {"N": "30"},
            ":c": {"N": "30"},
        }
        assert update["ConditionExpression"] == "attribute_not_exists(DesiredWeight)"
        assert await store.read_weight() == 30

    @pytest.mark.asyncio
    async def test_existing_row_is_not_overwritten(self, dynamo, store) -> None:
        dynamo.put("foolanito", DesiredWeight={"N": "75"}, CurrentWeight={"N": "75"})

        seeded = await store.ensure_initialized(
            StoreConfig(desired_weight=0, current_weight=0)
        )

        assert not seeded
        assert dynamo.transactions == []
        assert await store.read_weight() == 75

    @pytest.mark.asyncio
    async def test_idempotent(self, store) -> None:
        config = StoreConfig(desired_weight=10, current_weight=10)
        assert await store.ensure_initialized(config)
        assert not await store.ensure_initialized(config)

    @pytest.mark.asyncio
    async def test_concurrent_seed_by_another_replica(self, dynamo, store) -> None:
        dynamo.write_error = client_error(
            "TransactionCanceledException", ["ConditionalCheckFailed"]
        )

        seeded = await store.ensure_initialized(
            StoreConfig(desired_weight=0, current_weight=0)
        )

        assert not seeded

    @pytest.mark.asyncio
    async def test_other_cancellation_propagates(self, dynamo, store) -> None:
        dynamo.write_error = client_error(
            "TransactionCanceledException", ["TransactionConflict"]
        )
        with pytest.raises(TransactionConflictError):
            await store.ensure_initialized(
                StoreConfig(desired_weight=0, current_weight=0)
            )
