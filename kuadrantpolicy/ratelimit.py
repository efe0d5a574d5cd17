"""The RateLimitPolicy resource."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar

from .routing import GATEWAY_API_GROUP, ObjectKey, PolicyTargetReference, RouteSelector
from .status import V1BETA2_API_VERSION, PolicyStatus


class PolicyValidationError(ValueError):
    """A policy refers to something it may not."""


class WhenConditionOperator(str, Enum):
    EQUAL = "eq"
    NOT_EQUAL = "neq"
    STARTS_WITH = "startswith"
    ENDS_WITH = "endswith"
    INCLUDE = "incl"
    EXCLUDE = "excl"
    MATCHES = "matches"


class TimeUnit(str, Enum):
    SECOND = "second"
    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"


@dataclass
class Rate:
    limit: int
    duration: int
    unit: TimeUnit


@dataclass
class WhenCondition:
    selector: str
    operator: WhenConditionOperator
    value: str


@dataclass
class Limit:
    route_selectors: list[RouteSelector] = field(default_factory=list)
    when: list[WhenCondition] = field(default_factory=list)
    counters: list[str] = field(default_factory=list)
    rates: list[Rate] = field(default_factory=list)

    def counters_as_string_list(self) -> list[str] | None:
        if not self.counters:
            return None
        return [str(counter) for counter in self.counters]


@dataclass
class RateLimitPolicySpec:
    target_ref: PolicyTargetReference = field(default_factory=PolicyTargetReference)
    limits: dict[str, Limit] = field(default_factory=dict)


@dataclass
class RateLimitPolicy:
    KIND: ClassVar[str] = "RateLimitPolicy"
    API_VERSION: ClassVar[str] = V1BETA2_API_VERSION

    name: str = ""
    namespace: str = ""
    spec: RateLimitPolicySpec = field(default_factory=RateLimitPolicySpec)
    status: PolicyStatus = field(default_factory=PolicyStatus)

    @property
    def key(self) -> ObjectKey:
        return ObjectKey(self.namespace, self.name)

    @property
    def target_ref(self) -> PolicyTargetReference:
        return self.spec.target_ref

    def validate(self) -> None:
        """Raise PolicyValidationError when the target reference is not supported."""
        ref = self.spec.target_ref
        if ref.group != GATEWAY_API_GROUP:
            raise PolicyValidationError(
                f"invalid targetRef.Group {ref.group}. "
                f"The only supported group is {GATEWAY_API_GROUP}"
            )
        if ref.kind not in ("HTTPRoute", "Gateway"):
            raise PolicyValidationError(
                f"invalid targetRef.Kind {ref.kind}. "
                "The only supported kind types are HTTPRoute and Gateway"
            )
        if ref.namespace is not None and ref.namespace != self.namespace:
            raise PolicyValidationError(
                f"invalid targetRef.Namespace {ref.namespace}. "
                "Currently only supporting references to the same namespace"
            )
        if ref.kind == "Gateway" and any(
            limit.route_selectors for limit in self.spec.limits.values()
        ):
            raise PolicyValidationError("route selectors not supported when targeting a Gateway")

    def target_key(self) -> ObjectKey:
        ref = self.spec.target_ref
        namespace = ref.namespace if ref.namespace is not None else self.namespace
        return ObjectKey(namespace, ref.name)

    def get_rules_hostnames(self) -> list[str]:
        """All hostnames named in the route selectors of the limits."""
        return [
            str(hostname)
            for limit in self.spec.limits.values()
            for selector in limit.route_selectors
            for hostname in selector.hostnames
        ]


@dataclass
class RateLimitPolicyList:
    items: list[RateLimitPolicy] = field(default_factory=list)

    def get_items(self) -> list[RateLimitPolicy]:
        return list(self.items)