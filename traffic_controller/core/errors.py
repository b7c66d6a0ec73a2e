"""Exception hierarchy for the traffic controller.

Recoverable conditions (a missing weight row, a conflicting transaction) and
per-route failures (bad annotations, negative weights) are distinct types so
callers can decide whether to retry, skip a single route, or abort startup.
"""

from __future__ import annotations

from dataclasses import dataclass, field


class TrafficControllerError(Exception):
    """Base exception for all traffic controller errors."""

    pass


class ConfigurationError(TrafficControllerError):
    """Raised when required configuration is missing or invalid at startup."""

    pass


# Weight store errors


class WeightStoreError(TrafficControllerError):
    """Raised when the shared weight store cannot be read or written."""

    pass


class WeightNotFoundError(WeightStoreError):
    """Raised when no weight row exists yet for this cluster."""

    pass


@dataclass
class TransactionConflictError(WeightStoreError):
    """Raised when a transactional write was cancelled by a concurrent writer."""

    message: str = "transaction cancelled"
    reasons: tuple[str, ...] = field(default_factory=tuple)

    def __str__(self) -> str:
        if self.reasons:
            return f"{self.message} (reasons: {', '.join(self.reasons)})"
        return self.message


# Weight calculation errors


class WeightCalculationError(TrafficControllerError):
    """Raised when a route weight cannot be derived from its inputs."""

    pass


class NegativeWeightError(WeightCalculationError):
    """Raised when a cluster or route weight is negative."""

    pass


class AnnotationParseError(WeightCalculationError):
    """Raised when the traffic weight annotation is not a number."""

    pass


# Orchestration API errors


@dataclass
class OrchestrationAPIError(TrafficControllerError):
    """Raised when a call to the orchestration platform fails."""

    message: str = "orchestration API call failed"
    status: int | None = None

    def __str__(self) -> str:
        if self.status is not None:
            return f"{self.message} (status {self.status})"
        return self.message


@dataclass
class ResourceNotFoundError(OrchestrationAPIError):
    """Raised when the requested object does not exist."""

    message: str = "resource not found"
    status: int | None = 404


def is_not_found(error: BaseException | None) -> bool:
    """Return True when ``error`` reports a missing object."""
    return isinstance(error, ResourceNotFoundError)
