"""Tests for the Prometheus weight gauges."""

import pytest
from prometheus_client import CollectorRegistry

from traffic_controller.controller.reconcile_loop import ReconciliationLoop
from traffic_controller.core.errors import ConfigurationError, WeightStoreError
from traffic_controller.core.metrics import WeightMetrics, parse_bind_address
from traffic_controller.core.weight_state import WeightSnapshot

from tests.builders import key, make_route, make_service
from tests.test_reconcile_loop import ScriptedStore
from tests.test_reconciler import build_reconciler


class TestWeightMetrics:
    def test_observe_sets_both_gauges(self) -> None:
        registry = CollectorRegistry()
        metrics = WeightMetrics(registry)

        metrics.observe(WeightSnapshot(desired_weight=60, current_weight=40))

        assert metrics.value("ingress_weight_desired") == 60
        assert metrics.value("ingress_weight_current") == 40
        assert (
            registry.get_sample_value("cluster_traffic_controller_ingress_weight_desired")
            == 60
        )

    def test_instances_do_not_share_a_registry(self) -> None:
        first, second = WeightMetrics(), WeightMetrics()
        first.observe(WeightSnapshot(desired_weight=10, current_weight=10))

        assert second.value("ingress_weight_desired") == 0

    def test_disabled_address_does_not_serve(self) -> None:
        assert not WeightMetrics().serve("0")
        assert not WeightMetrics().serve("")


class TestParseBindAddress:
    @pytest.mark.parametrize(
        ("address", "expected"),
        [
            (":8080", ("0.0.0.0", 8080)),
            ("127.0.0.1:9102", ("127.0.0.1", 9102)),
            ("0", None),
            ("", None),
        ],
    )
    def test_valid_addresses(self, address, expected) -> None:
        assert parse_bind_address(address) == expected

    @pytest.mark.parametrize("address", ["host:abc", "host", ":0", ":65536"])
    def test_invalid_addresses(self, address) -> None:
        with pytest.raises(ConfigurationError):
            parse_bind_address(address)


class TestReconcilerMetrics:
    @pytest.mark.asyncio
    async def test_reconcile_reports_snapshot(self, cluster, state) -> None:
        cluster.add(make_route(), make_service("test-app"), make_service("test-app-a"))
        state.seed(40)
        reconciler = build_reconciler(cluster, state)

        await reconciler.reconcile(key())

        assert reconciler.metrics.value("ingress_weight_desired") == 40
        assert reconciler.metrics.value("ingress_weight_current") == 40


class TestReconcileLoopMetrics:
    @pytest.mark.asyncio
    async def test_commit_reports_new_weights(self, cluster, state, sink) -> None:
        cluster.add(make_route())
        state.seed(50)
        loop = ReconciliationLoop(ScriptedStore(80), cluster, state, sink)

        assert await loop.reconcile_once()

        assert loop.metrics.value("ingress_weight_desired") == 80
        assert loop.metrics.value("ingress_weight_current") == 80

    @pytest.mark.asyncio
    async def test_failed_persist_leaves_gauges_untouched(
        self, cluster, state, sink
    ) -> None:
        cluster.add(make_route())
        state.seed(50)
        store = ScriptedStore(80)
        store.write_error = WeightStoreError("boom")
        loop = ReconciliationLoop(store, cluster, state, sink)

        assert not await loop.tick()

        assert loop.metrics.value("ingress_weight_current") == 0
