from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from traffic_controller.core.errors import ConfigurationError
from traffic_controller.core.metrics import DEFAULT_METRICS_ADDR, parse_bind_address
from traffic_controller.core.type_aliases import (
    AnnotationKey,
    AnnotationValue,
    ClusterName,
    DnsSuffix,
    DurationSeconds,
    HealthCheckId,
    WeightPercent,
)

DEFAULT_ANNOTATION_PREFIX = "dns.traffic-controller.io"
TRAFFIC_WEIGHT_ANNOTATION = "traffic-weight"


class BackendType(StrEnum):
    """Supported weight store backends."""

    FAKE = "fake"
    DYNAMODB = "dynamoDB"


@dataclass(frozen=True, slots=True)
class AnnotationFilter:
    """Single ``key=value`` annotation match; the empty filter matches all."""

    key: AnnotationKey = ""
    value: AnnotationValue = ""

    @classmethod
    def parse(cls, raw: str | None) -> AnnotationFilter:
        parts = (raw or "").split("=")
        if len(parts) == 2:
            return cls(key=parts[0], value=parts[1])
        return cls()

    @property
    def match_all(self) -> bool:
        return self == AnnotationFilter()

    def matches(self, annotations: dict[str, str]) -> bool:
        if self.match_all:
            return True
        return self.key in annotations and annotations[self.key] == self.value


@dataclass(slots=True)
class ControllerSettings:
    """Traffic controller configuration settings."""

    cluster_name: ClusterName = ""
    aws_region: str = "eu-west-1"
    binding_domain: DnsSuffix = ""
    backend_type: str = BackendType.FAKE
    annotation_filter: str = ""
    table_name: str = "traffic-controller"
    health_check_id: HealthCheckId = ""
    annotation_prefix: str = DEFAULT_ANNOTATION_PREFIX
    initial_weight: WeightPercent = 0
    dev_mode: bool = False
    metrics_addr: str = DEFAULT_METRICS_ADDR

    # Loop and queue tuning
    reconcile_interval: DurationSeconds = 20.0
    deleting_requeue_delay: DurationSeconds = 5.0
    workers: int = 4

    log_level: str = "INFO"
    debug_scopes: tuple[str, ...] = field(default_factory=tuple)

    def validate(self) -> None:
        """Raise ``ConfigurationError`` for settings that cannot start a controller."""
        if not self.cluster_name:
            raise ConfigurationError("cluster name is required")
        if self.backend_type not in {backend.value for backend in BackendType}:
            raise ConfigurationError(
                f"unknown backend type {self.backend_type!r}"
            )
        if self.backend_type == BackendType.DYNAMODB and not self.aws_region:
            raise ConfigurationError("Missing aws region (required).")
        if self.initial_weight < 0:
            raise ConfigurationError("initial weight cannot be negative")
        if self.reconcile_interval <= 0:
            raise ConfigurationError("reconcile interval must be positive")
        if self.workers < 1:
            raise ConfigurationError("at least one worker is required")
        parse_bind_address(self.metrics_addr)

    def parsed_annotation_filter(self) -> AnnotationFilter:
        return AnnotationFilter.parse(self.annotation_filter)

    def annotation_key(self, key: str) -> str:
        return f"{self.annotation_prefix}/{key}"

    @property
    def weight_annotation(self) -> str:
        return self.annotation_key(TRAFFIC_WEIGHT_ANNOTATION)
