"""Orchestration platform objects and clients."""

from .client import ClusterClient, InMemoryClusterClient
from .objects import (
    BackendService,
    EndpointSubset,
    LoadBalancerIngress,
    NamespacedName,
    ObjectMeta,
    OwnerReference,
    ProviderSpecificProperty,
    RecordEntry,
    Route,
    RoutePath,
    Rule,
    WeightedRecord,
)

__all__ = [
    "BackendService",
    "ClusterClient",
    "EndpointSubset",
    "InMemoryClusterClient",
    "LoadBalancerIngress",
    "NamespacedName",
    "ObjectMeta",
    "OwnerReference",
    "ProviderSpecificProperty",
    "RecordEntry",
    "Route",
    "RoutePath",
    "Rule",
    "WeightedRecord",
]
