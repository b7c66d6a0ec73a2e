"""
Core building blocks shared by every controller component: errors, logging,
the process weight state and background task management.
"""

from .errors import (
    AnnotationParseError,
    ConfigurationError,
    NegativeWeightError,
    OrchestrationAPIError,
    ResourceNotFoundError,
    TrafficControllerError,
    TransactionConflictError,
    WeightCalculationError,
    WeightNotFoundError,
    WeightStoreError,
)
from .logging import configure_logging
from .metrics import WeightMetrics
from .task_manager import TaskManager
from .weight_state import WeightSnapshot, WeightState

__all__ = [
    # Errors
    "AnnotationParseError",
    "ConfigurationError",
    "NegativeWeightError",
    "OrchestrationAPIError",
    "ResourceNotFoundError",
    "TrafficControllerError",
    "TransactionConflictError",
    "WeightCalculationError",
    "WeightNotFoundError",
    "WeightStoreError",
    # Runtime
    "TaskManager",
    "WeightMetrics",
    "WeightSnapshot",
    "WeightState",
    "configure_logging",
]
