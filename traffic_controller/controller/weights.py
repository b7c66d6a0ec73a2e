"""
Per-route weight calculation.

The cluster's desired weight is a percentage shared by every route. A route may
scale it with the ``<prefix>/traffic-weight`` annotation, in which case the
effective weight is ``ceil(cluster% * override)``; without the annotation the
route inherits the raw desired weight. Either way, a rule whose backends have no
ready members gets weight 0.

Arithmetic is exact (``Fraction``) so that, e.g., 7% of 100 is 7 and not 8.
"""

from __future__ import annotations

import math
import re
from fractions import Fraction
from typing import TypeAlias

from traffic_controller.cluster.objects import Route, Rule
from traffic_controller.core.errors import AnnotationParseError, NegativeWeightError
from traffic_controller.core.type_aliases import WeightPercent
from traffic_controller.core.weight_state import WeightSnapshot

from .health import BackingHealthDetector

MAX_WEIGHT = 100

DECIMAL_PATTERN = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d{1,3})?")

WeightOverride: TypeAlias = Fraction | int


def cluster_fraction(desired_weight: WeightPercent) -> Fraction:
    """Desired weight clamped to [0, 100] and scaled to [0, 1]."""
    if desired_weight < 0:
        raise NegativeWeightError("Cannot handle negative backend weights")
    return Fraction(min(desired_weight, MAX_WEIGHT), MAX_WEIGHT)


def parse_weight_override(annotation_key: str, raw: str) -> Fraction:
    text = raw.strip()
    if DECIMAL_PATTERN.fullmatch(text) is None:
        raise AnnotationParseError(
            f"Cannot parse annotation {annotation_key} with value {raw!r}"
        )
    value = Fraction(text)
    if value < 0:
        raise NegativeWeightError("Cannot handle negative traffic weights")
    return min(value, Fraction(MAX_WEIGHT))


def calculate_weight(desired_weight: WeightPercent, override: WeightOverride) -> int:
    """Combine the cluster weight with a route override, rounding up."""
    fraction = cluster_fraction(desired_weight)
    if override < 0:
        raise NegativeWeightError("Cannot handle negative traffic weights")
    return math.ceil(fraction * min(Fraction(override), Fraction(MAX_WEIGHT)))


class RouteWeightCalculator:
    def __init__(
        self, health: BackingHealthDetector, *, weight_annotation: str
    ) -> None:
        self._health = health
        self.weight_annotation = weight_annotation

    def is_weighted(self, route: Route) -> bool:
        return self.weight_annotation in route.annotations

    def route_weight(self, snapshot: WeightSnapshot, route: Route) -> int:
        """Weight for every rule of ``route`` before health is considered.

        Raises ``NegativeWeightError`` or ``AnnotationParseError``.
        """
        if not self.is_weighted(route):
            # Inherited as is: above 100 is passed through, negative is not.
            if snapshot.desired_weight < 0:
                raise NegativeWeightError("Cannot handle negative backend weights")
            return snapshot.desired_weight

        override = parse_weight_override(
            self.weight_annotation, route.annotations[self.weight_annotation]
        )
        return calculate_weight(snapshot.desired_weight, override)

    async def rule_weight(
        self, snapshot: WeightSnapshot, route: Route, rule: Rule
    ) -> int:
        weight = self.route_weight(snapshot, route)
        if not await self._health.rule_has_capacity(route.metadata.namespace, rule):
            return 0
        return weight
