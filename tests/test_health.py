"""Tests for backing capacity detection."""

import pytest

from traffic_controller.cluster.objects import RoutePath, Rule
from traffic_controller.controller.health import BackingHealthDetector
from traffic_controller.core.errors import OrchestrationAPIError

from tests.builders import (
    NAMESPACE,
    key,
    make_rule,
    make_service,
    without_addresses,
    without_subsets,
)


@pytest.fixture
def detector(cluster) -> BackingHealthDetector:
    return BackingHealthDetector(cluster)


class TestRuleHasCapacity:
    @pytest.mark.asyncio
    async def test_all_services_ready(self, cluster, detector) -> None:
        cluster.add(make_service("test-app"), make_service("test-app-a"))
        rule = make_rule("test-app.domain.tld", "test-app", "test-app-a")
        assert await detector.rule_has_capacity(NAMESPACE, rule)

    @pytest.mark.asyncio
    async def test_one_service_without_addresses_zeroes_the_rule(
        self, cluster, detector
    ) -> None:
        cluster.add(make_service("test-app"), without_addresses("test-app-a"))
        rule = make_rule("test-app.domain.tld", "test-app", "test-app-a")
        assert not await detector.rule_has_capacity(NAMESPACE, rule)

    @pytest.mark.asyncio
    async def test_service_without_subsets(self, cluster, detector) -> None:
        cluster.add(without_subsets("test-app"))
        rule = make_rule("test-app.domain.tld", "test-app")
        assert not await detector.rule_has_capacity(NAMESPACE, rule)

    @pytest.mark.asyncio
    async def test_missing_service(self, detector) -> None:
        rule = make_rule("test-app.domain.tld", "test-app")
        assert not await detector.rule_has_capacity(NAMESPACE, rule)

    @pytest.mark.asyncio
    async def test_service_being_deleted(self, cluster, detector) -> None:
        cluster.add(make_service("test-app", deletion_timestamp=1.0))
        rule = make_rule("test-app.domain.tld", "test-app")
        assert not await detector.rule_has_capacity(NAMESPACE, rule)

    @pytest.mark.asyncio
    async def test_rule_without_paths(self, detector) -> None:
        rule = make_rule("test-app.domain.tld", paths=False)
        assert not await detector.rule_has_capacity(NAMESPACE, rule)

    @pytest.mark.asyncio
    async def test_rule_with_empty_paths_has_capacity(self, detector) -> None:
        # Nothing to check, so nothing can be starved.
        assert await detector.rule_has_capacity(
            NAMESPACE, Rule(host="test-app.domain.tld", paths=())
        )

    @pytest.mark.asyncio
    async def test_api_error_is_treated_as_healthy(
        self, cluster, detector, log_messages
    ) -> None:
        # Transient read errors must not drop a host to weight 0.
        cluster.fail(
            "get_backend_service",
            OrchestrationAPIError(message="etcd timeout", status=500),
        )
        rule = make_rule("test-app.domain.tld", "test-app")
        assert await detector.rule_has_capacity(NAMESPACE, rule)
        assert any("assuming healthy" in message for message in log_messages)

    @pytest.mark.asyncio
    async def test_services_are_checked_once(self, cluster) -> None:
        lookups: list[str] = []
        original = cluster.get_backend_service

        async def counting(service_key):
            lookups.append(service_key.name)
            return await original(service_key)

        cluster.add(make_service("test-app"))
        rule = Rule(
            host="test-app.domain.tld",
            paths=(
                RoutePath(path="/", backend_service="test-app"),
                RoutePath(path="/a", backend_service="test-app"),
            ),
        )
        detector = BackingHealthDetector(_CountingClient(counting))
        assert await detector.rule_has_capacity(NAMESPACE, rule)
        assert lookups == ["test-app"]

    @pytest.mark.asyncio
    async def test_error_for_one_key_only(self, cluster, detector) -> None:
        cluster.add(make_service("test-app"))
        cluster.fail(
            "get_backend_service",
            OrchestrationAPIError(message="boom", status=503),
            key=key("test-app-a"),
        )
        rule = make_rule("test-app.domain.tld", "test-app", "test-app-a")
        assert await detector.rule_has_capacity(NAMESPACE, rule)


class _CountingClient:
    def __init__(self, get_backend_service) -> None:
        self.get_backend_service = get_backend_service
