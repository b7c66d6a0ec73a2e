"""Route weight reconciliation: health, weights, records and the loops driving them."""

from .bootstrap import ControllerRuntime, bootstrap_weight, build_runtime
from .events import EventSink, RouteEvent
from .health import BackingHealthDetector
from .mapper import map_backend_to_routes
from .reconcile_loop import LoopState, ReconciliationLoop
from .reconciler import ReconcileResult, RouteReconciler
from .route_controller import RouteController
from .synthesizer import RouteRecordSynthesizer, SynthesisOutcome
from .weights import RouteWeightCalculator, calculate_weight, parse_weight_override
from .work_queue import WorkQueue

__all__ = [
    "BackingHealthDetector",
    "ControllerRuntime",
    "EventSink",
    "LoopState",
    "ReconcileResult",
    "ReconciliationLoop",
    "RouteController",
    "RouteEvent",
    "RouteReconciler",
    "RouteRecordSynthesizer",
    "RouteWeightCalculator",
    "SynthesisOutcome",
    "WorkQueue",
    "bootstrap_weight",
    "build_runtime",
    "calculate_weight",
    "map_backend_to_routes",
    "parse_weight_override",
]
