from __future__ import annotations

from loguru import logger

from traffic_controller.cluster.client import ClusterClient
from traffic_controller.cluster.objects import BackendService, NamespacedName
from traffic_controller.core.errors import OrchestrationAPIError


async def map_backend_to_routes(
    client: ClusterClient, service: BackendService
) -> list[NamespacedName]:
    """Route keys to re-reconcile when ``service``'s members change.

    One entry per path referencing the service; the work queue collapses
    duplicates.
    """
    try:
        routes = await client.list_routes(service.metadata.namespace)
    except OrchestrationAPIError as exc:
        logger.info("failed to list routes, won't trigger endpoint updates: {}", exc)
        return []

    requests: list[NamespacedName] = []
    for route in routes:
        requests.extend(
            [route.key] * route.references_backend(service.metadata.name)
        )
    return requests
