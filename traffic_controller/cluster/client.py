from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from typing import Protocol

from loguru import logger

from traffic_controller.core.errors import OrchestrationAPIError, ResourceNotFoundError
from traffic_controller.core.type_aliases import NamespaceName

from .objects import BackendService, NamespacedName, Route, WeightedRecord


class ClusterClient(Protocol):
    """Read/list/get/update capability of the orchestration platform.

    Lookups raise ``ResourceNotFoundError`` for missing objects and
    ``OrchestrationAPIError`` for any other failure.
    """

    async def get_route(self, key: NamespacedName) -> Route: ...

    async def list_routes(self, namespace: NamespaceName | None = None) -> list[Route]: ...

    async def get_backend_service(self, key: NamespacedName) -> BackendService: ...

    async def get_record(self, key: NamespacedName) -> WeightedRecord: ...

    async def create_record(self, record: WeightedRecord) -> WeightedRecord: ...

    async def update_record(self, record: WeightedRecord) -> WeightedRecord: ...

    async def delete_record(self, key: NamespacedName) -> None: ...


def _not_found(kind: str, key: NamespacedName) -> ResourceNotFoundError:
    return ResourceNotFoundError(message=f"{kind} {key} not found")


@dataclass(slots=True)
class InMemoryClusterClient:
    """In-memory orchestration client for development and tests.

    Mirrors the platform semantics the controller relies on: updates must carry
    the stored resource version, and deleting a record that still has
    finalizers only marks it for deletion.
    """

    routes: dict[NamespacedName, Route] = field(default_factory=dict)
    services: dict[NamespacedName, BackendService] = field(default_factory=dict)
    records: dict[NamespacedName, WeightedRecord] = field(default_factory=dict)
    failures: dict[tuple[str, NamespacedName | None], OrchestrationAPIError] = field(
        default_factory=dict
    )
    created: list[NamespacedName] = field(default_factory=list)
    updated: list[NamespacedName] = field(default_factory=list)
    deleted: list[NamespacedName] = field(default_factory=list)
    _version: int = 0

    # Test helpers

    def add(self, *objects: Route | BackendService | WeightedRecord) -> None:
        for obj in objects:
            match obj:
                case Route():
                    self.routes[obj.key] = obj
                case BackendService():
                    self.services[obj.key] = obj
                case WeightedRecord():
                    self.records[obj.key] = self._stamp(obj)

    def remove_route(self, key: NamespacedName) -> None:
        self.routes.pop(key, None)

    def fail(
        self,
        operation: str,
        error: OrchestrationAPIError,
        key: NamespacedName | None = None,
    ) -> None:
        """Make ``operation`` raise ``error`` (for one key, or for all keys)."""
        self.failures[(operation, key)] = error

    def _check(self, operation: str, key: NamespacedName | None = None) -> None:
        error = self.failures.get((operation, key)) or self.failures.get(
            (operation, None)
        )
        if error is not None:
            raise error

    def _stamp(self, record: WeightedRecord) -> WeightedRecord:
        self._version += 1
        return replace(
            record,
            metadata=replace(record.metadata, resource_version=str(self._version)),
        )

    # ClusterClient

    async def get_route(self, key: NamespacedName) -> Route:
        self._check("get_route", key)
        route = self.routes.get(key)
        if route is None:
            raise _not_found("route", key)
        return route

    async def list_routes(self, namespace: NamespaceName | None = None) -> list[Route]:
        self._check("list_routes")
        return [
            route
            for key, route in sorted(self.routes.items())
            if namespace is None or key.namespace == namespace
        ]

    async def get_backend_service(self, key: NamespacedName) -> BackendService:
        self._check("get_backend_service", key)
        service = self.services.get(key)
        if service is None:
            raise _not_found("backend service", key)
        return service

    async def get_record(self, key: NamespacedName) -> WeightedRecord:
        self._check("get_record", key)
        record = self.records.get(key)
        if record is None:
            raise _not_found("weighted record", key)
        return record

    async def create_record(self, record: WeightedRecord) -> WeightedRecord:
        self._check("create_record", record.key)
        if record.key in self.records:
            raise OrchestrationAPIError(
                message=f"weighted record {record.key} already exists", status=409
            )
        stored = self._stamp(record)
        self.records[record.key] = stored
        self.created.append(record.key)
        logger.debug("created weighted record {}", record.key)
        return stored

    async def update_record(self, record: WeightedRecord) -> WeightedRecord:
        self._check("update_record", record.key)
        existing = self.records.get(record.key)
        if existing is None:
            raise _not_found("weighted record", record.key)
        if record.metadata.resource_version != existing.metadata.resource_version:
            raise OrchestrationAPIError(
                message=f"weighted record {record.key} was modified concurrently",
                status=409,
            )
        stored = self._stamp(record)
        self.records[record.key] = stored
        self.updated.append(record.key)
        logger.debug("updated weighted record {}", record.key)
        return stored

    async def delete_record(self, key: NamespacedName) -> None:
        self._check("delete_record", key)
        existing = self.records.get(key)
        if existing is None:
            raise _not_found("weighted record", key)
        self.deleted.append(key)
        if existing.metadata.finalizers:
            if not existing.metadata.being_deleted:
                self.records[key] = replace(
                    existing,
                    metadata=replace(existing.metadata, deletion_timestamp=time.time()),
                )
            return
        del self.records[key]
