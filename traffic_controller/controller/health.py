"""
Backing capacity checks for route rules.

A rule is healthy only when every distinct backend service it routes to has
ready members. Lookup failures are asymmetric: a missing service counts as
unhealthy, while any other read error counts as healthy so that a transient API
hiccup does not flap a host's weight to zero.
"""

from __future__ import annotations

from loguru import logger

from traffic_controller.cluster.client import ClusterClient
from traffic_controller.cluster.objects import NamespacedName, Rule
from traffic_controller.core.errors import OrchestrationAPIError, ResourceNotFoundError
from traffic_controller.core.type_aliases import NamespaceName


class BackingHealthDetector:
    def __init__(self, client: ClusterClient) -> None:
        self._client = client

    async def rule_has_capacity(self, namespace: NamespaceName, rule: Rule) -> bool:
        # A rule without a path section has nothing to route to.
        if rule.paths is None:
            return False

        for service_name in rule.backend_services():
            key = NamespacedName(namespace=namespace, name=service_name)
            if not await self._service_has_capacity(key):
                # One starved service zeroes the whole host.
                return False
        return True

    async def _service_has_capacity(self, key: NamespacedName) -> bool:
        try:
            service = await self._client.get_backend_service(key)
        except ResourceNotFoundError as exc:
            logger.bind(service=str(key)).warning(
                "Unable to fetch endpoints: {}", exc
            )
            return False
        except OrchestrationAPIError as exc:
            logger.bind(service=str(key)).error(
                "Unable to fetch endpoints, assuming healthy: {}", exc
            )
            return True

        if service.metadata.being_deleted:
            return False

        return service.has_ready_members()
