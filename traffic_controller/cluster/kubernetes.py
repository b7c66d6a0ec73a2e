"""
Kubernetes implementation of the orchestration client.

Routes are ``networking.k8s.io/v1`` Ingresses, backend services are ``v1``
Endpoints and weighted records are external-dns ``DNSEndpoint`` custom objects.
The official client is synchronous; calls run in a worker thread and watch
streams run on daemon threads that hand keys back to the event loop.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import threading
from collections.abc import Callable
from typing import Any

from kubernetes import client, config, watch
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException
from loguru import logger
from urllib3.exceptions import HTTPError

from traffic_controller.controller.mapper import map_backend_to_routes
from traffic_controller.controller.work_queue import WorkQueue
from traffic_controller.core.errors import (
    ConfigurationError,
    OrchestrationAPIError,
    ResourceNotFoundError,
)
from traffic_controller.core.type_aliases import NamespaceName

from .objects import (
    RECORD_GROUP,
    RECORD_PLURAL,
    RECORD_VERSION,
    ROUTE_KIND,
    BackendService,
    NamespacedName,
    ObjectMeta,
    Route,
    WeightedRecord,
)

WATCH_TIMEOUT_SECONDS = 300
WATCH_RETRY_SECONDS = 5.0
WATCH_JOIN_SECONDS = 1.0


def load_kube_config() -> None:
    """Prefer in-cluster credentials, fall back to the local kubeconfig."""
    try:
        config.load_incluster_config()
        logger.info("Using in-cluster kubernetes configuration")
    except ConfigException:
        try:
            config.load_kube_config()
        except ConfigException as e:
            raise ConfigurationError(
                f"unable to load kubernetes configuration: {e}"
            ) from e
        logger.info("Using local kubeconfig")


class KubernetesClusterClient:
    def __init__(self, api_client: client.ApiClient | None = None) -> None:
        self.api_client = api_client or client.ApiClient()
        self.networking = client.NetworkingV1Api(self.api_client)
        self.core = client.CoreV1Api(self.api_client)
        self.custom = client.CustomObjectsApi(self.api_client)

    def to_dict(self, obj: Any) -> dict[str, Any]:
        if isinstance(obj, dict):
            return obj
        return self.api_client.sanitize_for_serialization(obj)

    async def _call(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except ApiException as e:
            if e.status == 404:
                raise ResourceNotFoundError(message=str(e.reason)) from e
            raise OrchestrationAPIError(message=str(e.reason), status=e.status) from e
        except (HTTPError, OSError) as e:
            # Transport failures carry no status.
            raise OrchestrationAPIError(message=str(e)) from e

    async def get_route(self, key: NamespacedName) -> Route:
        ingress = await self._call(
            self.networking.read_namespaced_ingress, key.name, key.namespace
        )
        return Route.from_dict(self.to_dict(ingress))

    async def list_routes(self, namespace: NamespaceName | None = None) -> list[Route]:
        if namespace is None:
            result = await self._call(self.networking.list_ingress_for_all_namespaces)
        else:
            result = await self._call(
                self.networking.list_namespaced_ingress, namespace
            )
        return [Route.from_dict(self.to_dict(item)) for item in result.items or []]

    async def get_backend_service(self, key: NamespacedName) -> BackendService:
        endpoints = await self._call(
            self.core.read_namespaced_endpoints, key.name, key.namespace
        )
        return BackendService.from_dict(self.to_dict(endpoints))

    async def get_record(self, key: NamespacedName) -> WeightedRecord:
        payload = await self._call(
            self.custom.get_namespaced_custom_object,
            RECORD_GROUP,
            RECORD_VERSION,
            key.namespace,
            RECORD_PLURAL,
            key.name,
        )
        return WeightedRecord.from_dict(payload)

    async def create_record(self, record: WeightedRecord) -> WeightedRecord:
        payload = await self._call(
            self.custom.create_namespaced_custom_object,
            RECORD_GROUP,
            RECORD_VERSION,
            record.metadata.namespace,
            RECORD_PLURAL,
            record.to_dict(),
        )
        return WeightedRecord.from_dict(payload)

    async def update_record(self, record: WeightedRecord) -> WeightedRecord:
        payload = await self._call(
            self.custom.replace_namespaced_custom_object,
            RECORD_GROUP,
            RECORD_VERSION,
            record.metadata.namespace,
            RECORD_PLURAL,
            record.metadata.name,
            record.to_dict(),
        )
        return WeightedRecord.from_dict(payload)

    async def delete_record(self, key: NamespacedName) -> None:
        await self._call(
            self.custom.delete_namespaced_custom_object,
            RECORD_GROUP,
            RECORD_VERSION,
            key.namespace,
            RECORD_PLURAL,
            key.name,
        )


class KubernetesEventSource:
    """Feeds Ingress, Endpoints and DNSEndpoint watch events into the work queue.

    - Ingress events enqueue the ingress itself.
    - Endpoints events enqueue every ingress routing to that service.
    - DNSEndpoint events enqueue their controlling ingress.
    """

    def __init__(
        self,
        cluster: KubernetesClusterClient,
        queue: WorkQueue,
        *,
        timeout_seconds: int = WATCH_TIMEOUT_SECONDS,
    ) -> None:
        self._cluster = cluster
        self._queue = queue
        self.timeout_seconds = timeout_seconds
        self._shutdown_event = threading.Event()
        self._threads: list[threading.Thread] = []
        self._loop: asyncio.AbstractEventLoop | None = None

    async def start(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._queue.bind_loop(self._loop)
        streams: list[tuple[str, Callable[..., Any], dict[str, Any], Callable[[Any], None]]] = [
            (
                "ingresses",
                self._cluster.networking.list_ingress_for_all_namespaces,
                {},
                self._on_route,
            ),
            (
                "endpoints",
                self._cluster.core.list_endpoints_for_all_namespaces,
                {},
                self._on_backend_service,
            ),
            (
                "dnsendpoints",
                self._cluster.custom.list_cluster_custom_object,
                {"group": RECORD_GROUP, "version": RECORD_VERSION, "plural": RECORD_PLURAL},
                self._on_record,
            ),
        ]
        for name, list_func, kwargs, handler in streams:
            thread = threading.Thread(
                target=self._watch,
                args=(name, list_func, kwargs, handler),
                name=f"watch-{name}",
                daemon=True,
            )
            thread.start()
            self._threads.append(thread)
        logger.info("Started {} watch streams", len(self._threads))

    async def stop(self) -> None:
        self._shutdown_event.set()
        for thread in self._threads:
            await asyncio.to_thread(thread.join, WATCH_JOIN_SECONDS)
            if thread.is_alive():
                logger.warning("{} still running after stop", thread.name)
        self._threads.clear()
        logger.info("Watch streams stopped")

    def _watch(
        self,
        name: str,
        list_func: Callable[..., Any],
        kwargs: dict[str, Any],
        handler: Callable[[Any], None],
    ) -> None:
        while not self._shutdown_event.is_set():
            try:
                w = watch.Watch()
                for event in w.stream(
                    list_func, timeout_seconds=self.timeout_seconds, **kwargs
                ):
                    if self._shutdown_event.is_set():
                        break
                    handler(event["object"])
                w.stop()
            except ApiException as e:
                if e.status == 410:
                    logger.info("{} watch resource version expired, restarting", name)
                    continue
                logger.error("{} watch error: {}", name, e)
                self._shutdown_event.wait(WATCH_RETRY_SECONDS)
            except Exception as e:
                logger.error("Unexpected {} watch error: {}", name, e)
                self._shutdown_event.wait(WATCH_RETRY_SECONDS)
        logger.info("{} watch stopped", name)

    def _meta(self, obj: Any) -> ObjectMeta:
        return ObjectMeta.from_dict(self._cluster.to_dict(obj).get("metadata"))

    def _on_route(self, obj: Any) -> None:
        self._queue.add_threadsafe(self._meta(obj).key)

    def _on_backend_service(self, obj: Any) -> None:
        if self._loop is None:
            return
        service = BackendService.from_dict(self._cluster.to_dict(obj))
        future = asyncio.run_coroutine_threadsafe(
            self._enqueue_backend(service), self._loop
        )
        future.add_done_callback(self._log_enqueue_failure)

    def _log_enqueue_failure(self, future: concurrent.futures.Future[None]) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error("failed to map endpoints to routes: {}", error)

    async def _enqueue_backend(self, service: BackendService) -> None:
        for key in await map_backend_to_routes(self._cluster, service):
            self._queue.add(key)

    def _on_record(self, obj: Any) -> None:
        meta = self._meta(obj)
        owner = meta.controller_owner()
        if owner is None or owner.kind != ROUTE_KIND:
            return
        self._queue.add_threadsafe(
            NamespacedName(namespace=meta.namespace, name=owner.name)
        )
