"""
Weighted record synthesis for a single route.

A route produces at most one ``WeightedRecord``, named after the route itself
and owned by it. The route reconciler and the deletion path both rely on that
1:1 naming; changing it means changing both.
"""

from __future__ import annotations

from dataclasses import replace
from enum import StrEnum

from loguru import logger

from traffic_controller.cluster.client import ClusterClient
from traffic_controller.cluster.objects import (
    CNAME_RECORD_TYPE,
    HEALTH_CHECK_PROPERTY,
    WEIGHT_PROPERTY,
    NamespacedName,
    ObjectMeta,
    ProviderSpecificProperty,
    RecordEntry,
    Route,
    Rule,
    WeightedRecord,
)
from traffic_controller.config import AnnotationFilter
from traffic_controller.core.errors import ResourceNotFoundError, WeightCalculationError
from traffic_controller.core.type_aliases import ClusterName, DnsSuffix
from traffic_controller.core.weight_state import WeightSnapshot

from .weights import RouteWeightCalculator

DEV_MODE_TARGET = "devmode"


class SynthesisOutcome(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"


class RouteRecordSynthesizer:
    def __init__(
        self,
        client: ClusterClient,
        calculator: RouteWeightCalculator,
        *,
        cluster_name: ClusterName,
        binding_domain: DnsSuffix,
        annotation_filter: AnnotationFilter | None = None,
        dev_mode: bool = False,
    ) -> None:
        self._client = client
        self._calculator = calculator
        self.cluster_name = cluster_name
        self.binding_domain = binding_domain
        self.annotation_filter = annotation_filter or AnnotationFilter()
        self.dev_mode = dev_mode

    def matches_filter(self, route: Route) -> bool:
        return self.annotation_filter.matches(route.annotations)

    def bound_rules(self, rules: tuple[Rule, ...]) -> list[Rule]:
        return [
            rule
            for rule in rules
            if rule.host and rule.host.endswith(self.binding_domain)
        ]

    def target_for(self, route: Route) -> str | None:
        if self.dev_mode:
            return DEV_MODE_TARGET
        if not route.load_balancer:
            return None
        return route.load_balancer[0].hostname or None

    async def desired_entries(
        self, snapshot: WeightSnapshot, route: Route, target: str
    ) -> tuple[RecordEntry, ...]:
        """Record entries for every bound rule of ``route``.

        Raises ``WeightCalculationError`` subclasses for invalid weights.
        """
        health_check = (
            ProviderSpecificProperty(
                name=HEALTH_CHECK_PROPERTY, value=snapshot.health_check_id
            )
            if snapshot.health_check_id
            else None
        )
        entries: list[RecordEntry] = []
        for rule in self.bound_rules(route.rules):
            weight = await self._calculator.rule_weight(snapshot, route, rule)
            properties = [ProviderSpecificProperty(name=WEIGHT_PROPERTY, value=str(weight))]
            if health_check is not None:
                properties.append(health_check)
            entries.append(
                RecordEntry(
                    dns_name=rule.host,
                    targets=(target,),
                    set_identifier=self.cluster_name,
                    record_type=CNAME_RECORD_TYPE,
                    provider_specific=tuple(properties),
                )
            )
        return tuple(entries)

    def desired_record(
        self,
        route: Route,
        entries: tuple[RecordEntry, ...],
        existing: WeightedRecord | None = None,
    ) -> WeightedRecord:
        """Apply the fields this synthesizer owns onto ``existing`` (or a new record)."""
        base = existing or WeightedRecord(
            metadata=ObjectMeta(
                name=route.metadata.name, namespace=route.metadata.namespace
            )
        )
        return replace(
            base,
            metadata=replace(
                base.metadata, owner_references=(route.owner_reference(),)
            ),
            endpoints=entries,
        )

    async def reconcile(
        self, snapshot: WeightSnapshot, route: Route
    ) -> SynthesisOutcome:
        log = logger.bind(route=str(route.key))

        if not self.matches_filter(route):
            log.info("Route doesn't match annotation filter. Skipping")
            return SynthesisOutcome.SKIPPED

        target = self.target_for(route)
        if target is None:
            log.info("Route doesn't have target assigned. Skipping")
            return SynthesisOutcome.SKIPPED

        try:
            entries = await self.desired_entries(snapshot, route, target)
        except WeightCalculationError as exc:
            log.error("something went wrong calculating the weight, doing nothing: {}", exc)
            return SynthesisOutcome.SKIPPED

        return await self._apply(route, entries)

    async def _apply(
        self, route: Route, entries: tuple[RecordEntry, ...]
    ) -> SynthesisOutcome:
        try:
            existing = await self._client.get_record(route.key)
        except ResourceNotFoundError:
            await self._client.create_record(self.desired_record(route, entries))
            logger.bind(route=str(route.key)).info("weighted record created")
            return SynthesisOutcome.CREATED

        desired = self.desired_record(route, entries, existing)
        if desired == existing:
            return SynthesisOutcome.UNCHANGED
        await self._client.update_record(desired)
        logger.bind(route=str(route.key)).info("weighted record updated")
        return SynthesisOutcome.UPDATED

    async def delete(self, key: NamespacedName) -> bool:
        """Delete the record for a route that no longer exists."""
        try:
            await self._client.delete_record(key)
        except ResourceNotFoundError:
            return False
        logger.bind(route=str(key)).info("weighted record deleted")
        return True
