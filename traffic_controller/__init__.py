"""
traffic-controller - cross-cluster DNS traffic shifting

Each cluster serving the same application runs one controller. The controller
turns its routes into weighted CNAME records whose weight comes from:

- a cluster-wide desired weight shared through an external store
  (``store``), polled by the reconciliation loop;
- an optional per-route ``<prefix>/traffic-weight`` annotation;
- the health of each route's backend services, which forces a host to 0 when
  it has no ready members.

## Layout

- **core**: errors, logging, the process weight state
- **store**: the shared weight stores (DynamoDB, static)
- **cluster**: orchestration objects and clients (in-memory, Kubernetes)
- **controller**: health, weights, record synthesis, work queue and loops
"""

from .cluster import InMemoryClusterClient, NamespacedName, Route, WeightedRecord
from .config import AnnotationFilter, BackendType, ControllerSettings
from .controller import (
    ReconciliationLoop,
    RouteReconciler,
    RouteRecordSynthesizer,
    RouteWeightCalculator,
    bootstrap_weight,
    build_runtime,
    calculate_weight,
)
from .core import WeightSnapshot, WeightState
from .store import StoreConfig, WeightStore, new_weight_store

__version__ = "1.0.0"

__all__ = [
    "AnnotationFilter",
    "BackendType",
    "ControllerSettings",
    "InMemoryClusterClient",
    "NamespacedName",
    "ReconciliationLoop",
    "Route",
    "RouteReconciler",
    "RouteRecordSynthesizer",
    "RouteWeightCalculator",
    "StoreConfig",
    "WeightSnapshot",
    "WeightState",
    "WeightStore",
    "WeightedRecord",
    "bootstrap_weight",
    "build_runtime",
    "calculate_weight",
    "new_weight_store",
]
