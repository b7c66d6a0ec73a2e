"""
Prometheus gauges for the cluster traffic weight.

Exposed as ``cluster_traffic_controller_ingress_weight_desired`` and
``cluster_traffic_controller_ingress_weight_current``. Each ``WeightMetrics``
owns its registry so that several runtimes (or tests) never collide.
"""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Gauge, start_http_server

from .errors import ConfigurationError
from .weight_state import WeightSnapshot

METRICS_NAMESPACE = "cluster"
METRICS_SUBSYSTEM = "traffic_controller"
DEFAULT_METRICS_ADDR = ":8080"


def parse_bind_address(address: str) -> tuple[str, int] | None:
    """Split ``host:port``; an empty address or ``0`` disables serving."""
    if address in ("", "0"):
        return None
    host, _, port = address.rpartition(":")
    try:
        port_number = int(port)
    except ValueError as exc:
        raise ConfigurationError(f"invalid metrics address {address!r}") from exc
    if not 0 < port_number < 65536:
        raise ConfigurationError(f"invalid metrics port in {address!r}")
    return host or "0.0.0.0", port_number


class WeightMetrics:
    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()
        self.desired_weight = Gauge(
            "ingress_weight_desired",
            "The desired weight of the ingress",
            namespace=METRICS_NAMESPACE,
            subsystem=METRICS_SUBSYSTEM,
            registry=self.registry,
        )
        self.current_weight = Gauge(
            "ingress_weight_current",
            "The current weight of the cluster",
            namespace=METRICS_NAMESPACE,
            subsystem=METRICS_SUBSYSTEM,
            registry=self.registry,
        )

    def observe(self, snapshot: WeightSnapshot) -> None:
        self.desired_weight.set(snapshot.desired_weight)
        self.current_weight.set(snapshot.current_weight)

    def value(self, name: str) -> float | None:
        """Current sample of one gauge, by its short name."""
        return self.registry.get_sample_value(
            f"{METRICS_NAMESPACE}_{METRICS_SUBSYSTEM}_{name}"
        )

    def serve(self, address: str) -> bool:
        """Serve the registry over HTTP; False when ``address`` disables it."""
        bind = parse_bind_address(address)
        if bind is None:
            return False
        host, port = bind
        try:
            start_http_server(port, addr=host, registry=self.registry)
        except OSError as exc:
            raise ConfigurationError(
                f"cannot serve metrics on {address!r}: {exc}"
            ) from exc
        return True
