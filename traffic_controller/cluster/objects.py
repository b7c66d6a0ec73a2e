"""
Orchestration platform objects consumed and produced by the controller.

Routes and backend services are read-only inputs; weighted records are the only
objects the controller writes. ``from_dict``/``to_dict`` use the platform's JSON
shape (camelCase keys) so the same types work for the in-memory client and for
the Kubernetes adapter.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from traffic_controller.core.type_aliases import (
    HostName,
    NamespaceName,
    ObjectName,
    ObjectUID,
    ResourceVersion,
    Timestamp,
)

ROUTE_API_VERSION = "networking.k8s.io/v1"
ROUTE_KIND = "Ingress"
RECORD_GROUP = "externaldns.k8s.io"
RECORD_VERSION = "v1alpha1"
RECORD_API_VERSION = f"{RECORD_GROUP}/{RECORD_VERSION}"
RECORD_KIND = "DNSEndpoint"
RECORD_PLURAL = "dnsendpoints"

CNAME_RECORD_TYPE = "CNAME"
WEIGHT_PROPERTY = "aws/weight"
HEALTH_CHECK_PROPERTY = "aws/health-check-id"


def _mapping(value: object) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _sequence(value: object) -> list[Any]:
    return list(value) if isinstance(value, (list, tuple)) else []


def _str_dict(value: object) -> dict[str, str]:
    return {str(key): str(item) for key, item in _mapping(value).items()}


@dataclass(frozen=True, slots=True, order=True)
class NamespacedName:
    namespace: NamespaceName
    name: ObjectName

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True, slots=True)
class OwnerReference:
    api_version: str
    kind: str
    name: ObjectName
    uid: ObjectUID
    controller: bool | None = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> OwnerReference:
        controller = payload.get("controller")
        return cls(
            api_version=str(payload.get("apiVersion", "")),
            kind=str(payload.get("kind", "")),
            name=str(payload.get("name", "")),
            uid=str(payload.get("uid", "")),
            controller=bool(controller) if controller is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "name": self.name,
            "uid": self.uid,
        }
        if self.controller is not None:
            payload["controller"] = self.controller
        return payload


@dataclass(frozen=True, slots=True)
class ObjectMeta:
    name: ObjectName
    namespace: NamespaceName
    uid: ObjectUID = ""
    resource_version: ResourceVersion = ""
    annotations: dict[str, str] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)
    owner_references: tuple[OwnerReference, ...] = ()
    finalizers: tuple[str, ...] = ()
    deletion_timestamp: Timestamp | str | None = None

    @property
    def key(self) -> NamespacedName:
        return NamespacedName(namespace=self.namespace, name=self.name)

    @property
    def being_deleted(self) -> bool:
        return self.deletion_timestamp is not None

    def controller_owner(self) -> OwnerReference | None:
        for reference in self.owner_references:
            if reference.controller:
                return reference
        return None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any] | None) -> ObjectMeta:
        data = payload or {}
        return cls(
            name=str(data.get("name", "")),
            namespace=str(data.get("namespace", "")),
            uid=str(data.get("uid") or ""),
            resource_version=str(data.get("resourceVersion") or ""),
            annotations=_str_dict(data.get("annotations")),
            labels=_str_dict(data.get("labels")),
            owner_references=tuple(
                OwnerReference.from_dict(_mapping(item))
                for item in _sequence(data.get("ownerReferences"))
            ),
            finalizers=tuple(str(item) for item in _sequence(data.get("finalizers"))),
            deletion_timestamp=data.get("deletionTimestamp"),
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"name": self.name, "namespace": self.namespace}
        if self.uid:
            payload["uid"] = self.uid
        if self.resource_version:
            payload["resourceVersion"] = self.resource_version
        if self.annotations:
            payload["annotations"] = dict(self.annotations)
        if self.labels:
            payload["labels"] = dict(self.labels)
        if self.owner_references:
            payload["ownerReferences"] = [
                reference.to_dict() for reference in self.owner_references
            ]
        if self.finalizers:
            payload["finalizers"] = list(self.finalizers)
        if self.deletion_timestamp is not None:
            payload["deletionTimestamp"] = self.deletion_timestamp
        return payload


# Routes


@dataclass(frozen=True, slots=True)
class RoutePath:
    path: str = ""
    backend_service: ObjectName = ""

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> RoutePath:
        service = _mapping(_mapping(payload.get("backend")).get("service"))
        return cls(
            path=str(payload.get("path") or ""),
            backend_service=str(service.get("name") or ""),
        )


@dataclass(frozen=True, slots=True)
class Rule:
    """A host and, optionally, the paths it routes to backend services.

    ``paths is None`` means the rule has no path section at all, which is
    different from an empty one.
    """

    host: HostName = ""
    paths: tuple[RoutePath, ...] | None = None

    def backend_services(self) -> tuple[ObjectName, ...]:
        """Distinct backend service names in path order."""
        if self.paths is None:
            return ()
        return tuple(dict.fromkeys(path.backend_service for path in self.paths))

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> Rule:
        http = payload.get("http")
        paths = (
            tuple(
                RoutePath.from_dict(_mapping(item))
                for item in _sequence(_mapping(http).get("paths"))
            )
            if http is not None
            else None
        )
        return cls(host=str(payload.get("host") or ""), paths=paths)


@dataclass(frozen=True, slots=True)
class LoadBalancerIngress:
    hostname: HostName = ""
    ip: str = ""


@dataclass(frozen=True, slots=True)
class Route:
    metadata: ObjectMeta
    rules: tuple[Rule, ...] = ()
    load_balancer: tuple[LoadBalancerIngress, ...] = ()
    api_version: str = ROUTE_API_VERSION
    kind: str = ROUTE_KIND

    @property
    def key(self) -> NamespacedName:
        return self.metadata.key

    @property
    def annotations(self) -> dict[str, str]:
        return self.metadata.annotations

    def owner_reference(self) -> OwnerReference:
        return OwnerReference(
            api_version=self.api_version,
            kind=self.kind,
            name=self.metadata.name,
            uid=self.metadata.uid,
            controller=True,
        )

    def references_backend(self, service_name: ObjectName) -> int:
        """Count the paths of this route that point at ``service_name``."""
        return sum(
            1
            for rule in self.rules
            if rule.paths is not None
            for path in rule.paths
            if path.backend_service == service_name
        )

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> Route:
        spec = _mapping(payload.get("spec"))
        status = _mapping(_mapping(payload.get("status")).get("loadBalancer"))
        return cls(
            metadata=ObjectMeta.from_dict(_mapping(payload.get("metadata"))),
            rules=tuple(
                Rule.from_dict(_mapping(item)) for item in _sequence(spec.get("rules"))
            ),
            load_balancer=tuple(
                LoadBalancerIngress(
                    hostname=str(_mapping(item).get("hostname") or ""),
                    ip=str(_mapping(item).get("ip") or ""),
                )
                for item in _sequence(status.get("ingress"))
            ),
            api_version=str(payload.get("apiVersion") or ROUTE_API_VERSION),
            kind=str(payload.get("kind") or ROUTE_KIND),
        )


# Backend services


@dataclass(frozen=True, slots=True)
class EndpointSubset:
    addresses: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class BackendService:
    metadata: ObjectMeta
    subsets: tuple[EndpointSubset, ...] = ()

    @property
    def key(self) -> NamespacedName:
        return self.metadata.key

    def has_ready_members(self) -> bool:
        """At least one subset, and every subset has at least one address."""
        if not self.subsets:
            return False
        return all(subset.addresses for subset in self.subsets)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> BackendService:
        return cls(
            metadata=ObjectMeta.from_dict(_mapping(payload.get("metadata"))),
            subsets=tuple(
                EndpointSubset(
                    addresses=tuple(
                        str(_mapping(address).get("ip") or "")
                        for address in _sequence(_mapping(subset).get("addresses"))
                    )
                )
                for subset in _sequence(payload.get("subsets"))
            ),
        )


# Weighted records


@dataclass(frozen=True, slots=True)
class ProviderSpecificProperty:
    name: str
    value: str


@dataclass(frozen=True, slots=True)
class RecordEntry:
    dns_name: HostName
    targets: tuple[str, ...]
    set_identifier: str
    record_type: str = CNAME_RECORD_TYPE
    provider_specific: tuple[ProviderSpecificProperty, ...] = ()

    def property_value(self, name: str) -> str | None:
        for prop in self.provider_specific:
            if prop.name == name:
                return prop.value
        return None

    @property
    def weight(self) -> int | None:
        value = self.property_value(WEIGHT_PROPERTY)
        return int(value) if value is not None else None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> RecordEntry:
        return cls(
            dns_name=str(payload.get("dnsName") or ""),
            targets=tuple(str(item) for item in _sequence(payload.get("targets"))),
            set_identifier=str(payload.get("setIdentifier") or ""),
            record_type=str(payload.get("recordType") or CNAME_RECORD_TYPE),
            provider_specific=tuple(
                ProviderSpecificProperty(
                    name=str(_mapping(item).get("name", "")),
                    value=str(_mapping(item).get("value", "")),
                )
                for item in _sequence(payload.get("providerSpecific"))
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "dnsName": self.dns_name,
            "targets": list(self.targets),
            "recordType": self.record_type,
            "setIdentifier": self.set_identifier,
        }
        if self.provider_specific:
            payload["providerSpecific"] = [
                {"name": prop.name, "value": prop.value}
                for prop in self.provider_specific
            ]
        return payload


@dataclass(frozen=True, slots=True)
class WeightedRecord:
    metadata: ObjectMeta
    endpoints: tuple[RecordEntry, ...] = ()
    api_version: str = RECORD_API_VERSION
    kind: str = RECORD_KIND

    @property
    def key(self) -> NamespacedName:
        return self.metadata.key

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> WeightedRecord:
        spec = _mapping(payload.get("spec"))
        return cls(
            metadata=ObjectMeta.from_dict(_mapping(payload.get("metadata"))),
            endpoints=tuple(
                RecordEntry.from_dict(_mapping(item))
                for item in _sequence(spec.get("endpoints"))
            ),
            api_version=str(payload.get("apiVersion") or RECORD_API_VERSION),
            kind=str(payload.get("kind") or RECORD_KIND),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "metadata": self.metadata.to_dict(),
            "spec": {"endpoints": [entry.to_dict() for entry in self.endpoints]},
        }
