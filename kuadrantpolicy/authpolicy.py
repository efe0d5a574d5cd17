"""The AuthPolicy resource and the computation of its status."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, ClassVar, Iterator

from .ratelimit import PolicyValidationError
from .routing import GATEWAY_API_GROUP, ObjectKey, PolicyTargetReference, RouteSelector
from .status import (
    V1BETA2_API_VERSION,
    Condition,
    ConditionStatus,
    PolicyStatus,
    set_status_condition,
)

AVAILABLE_CONDITION_TYPE = "Available"
SUPPORTED_TARGET_KINDS = ("HTTPRoute", "Gateway")


@dataclass
class PatternExpression:
    """A single comparison of a value fetched by a selector."""

    selector: str
    operator: str
    value: str

    def to_dict(self) -> dict[str, str]:
        return {"selector": self.selector, "operator": self.operator, "value": self.value}


@dataclass
class PatternExpressionOrRef:
    """A pattern expression, a reference to a named pattern, or a group of them."""

    pattern_expression: PatternExpression | None = None
    pattern_ref: str | None = None
    all_of: list[PatternExpressionOrRef] = field(default_factory=list)
    any_of: list[PatternExpressionOrRef] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.pattern_expression is not None:
            data.update(self.pattern_expression.to_dict())
        if self.pattern_ref is not None:
            data["patternRef"] = self.pattern_ref
        if self.all_of:
            data["all"] = [item.to_dict() for item in self.all_of]
        if self.any_of:
            data["any"] = [item.to_dict() for item in self.any_of]
        return data


@dataclass
class AuthRuleSpec:
    """One auth rule: its authorization-service configuration plus optional route selectors."""

    config: dict[str, Any] = field(default_factory=dict)
    conditions: list[PatternExpressionOrRef] = field(default_factory=list)
    route_selectors: list[RouteSelector] = field(default_factory=list)

    def get_route_selectors(self) -> list[RouteSelector]:
        return self.route_selectors


@dataclass
class WrappedSuccessResponseSpec:
    headers: dict[str, AuthRuleSpec] = field(default_factory=dict)
    dynamic_metadata: dict[str, AuthRuleSpec] = field(default_factory=dict)


@dataclass
class ResponseSpec:
    unauthenticated: dict[str, Any] | None = None
    unauthorized: dict[str, Any] | None = None
    success: WrappedSuccessResponseSpec = field(default_factory=WrappedSuccessResponseSpec)


@dataclass
class AuthSchemeSpec:
    authentication: dict[str, AuthRuleSpec] = field(default_factory=dict)
    metadata: dict[str, AuthRuleSpec] = field(default_factory=dict)
    authorization: dict[str, AuthRuleSpec] = field(default_factory=dict)
    response: ResponseSpec | None = None
    callbacks: dict[str, AuthRuleSpec] = field(default_factory=dict)

    def rule_specs(self) -> Iterator[AuthRuleSpec]:
        """Every auth rule of the scheme, section by section."""
        yield from self.authentication.values()
        yield from self.metadata.values()
        yield from self.authorization.values()
        if self.response is not None:
            yield from self.response.success.headers.values()
            yield from self.response.success.dynamic_metadata.values()
        yield from self.callbacks.values()


@dataclass
class AuthPolicySpec:
    target_ref: PolicyTargetReference = field(default_factory=PolicyTargetReference)
    route_selectors: list[RouteSelector] = field(default_factory=list)
    named_patterns: dict[str, list[PatternExpression]] = field(default_factory=dict)
    conditions: list[PatternExpressionOrRef] = field(default_factory=list)
    auth_scheme: AuthSchemeSpec = field(default_factory=AuthSchemeSpec)

    def get_route_selectors(self) -> list[RouteSelector]:
        return self.route_selectors


@dataclass
class AuthPolicy:
    KIND: ClassVar[str] = "AuthPolicy"
    API_VERSION: ClassVar[str] = V1BETA2_API_VERSION

    name: str = ""
    namespace: str = ""
    generation: int = 0
    annotations: dict[str, str] = field(default_factory=dict)
    spec: AuthPolicySpec = field(default_factory=AuthPolicySpec)
    status: PolicyStatus = field(default_factory=PolicyStatus)

    @property
    def key(self) -> ObjectKey:
        return ObjectKey(self.namespace, self.name)

    @property
    def target_ref(self) -> PolicyTargetReference:
        return self.spec.target_ref

    def target_key(self) -> ObjectKey:
        ref = self.spec.target_ref
        namespace = ref.namespace if ref.namespace is not None else self.namespace
        return ObjectKey(namespace, ref.name)

    def validate(self) -> None:
        """Raise PolicyValidationError when the policy cannot be enforced as written."""
        ref = self.spec.target_ref
        if ref.group != GATEWAY_API_GROUP:
            raise PolicyValidationError(
                f"invalid targetRef.Group {ref.group}. "
                f"The only supported group is {GATEWAY_API_GROUP}"
            )
        if ref.kind not in SUPPORTED_TARGET_KINDS:
            raise PolicyValidationError(
                f"invalid targetRef.Kind {ref.kind}. "
                "The only supported kinds are HTTPRoute and Gateway"
            )
        if ref.namespace is not None and ref.namespace != self.namespace:
            raise PolicyValidationError(
                f"invalid targetRef.Namespace {ref.namespace}. "
                "Currently only supporting references to the same namespace"
            )
        if ref.kind == "Gateway" and any(
            getter.get_route_selectors() for getter in self._route_selector_getters()
        ):
            raise PolicyValidationError("route selectors not supported when targeting a Gateway")

    def get_rules_hostnames(self) -> list[str]:
        """All hostnames named in the route selectors of the policy, top level first."""
        return [
            str(hostname)
            for getter in self._route_selector_getters()
            for selector in getter.get_route_selectors()
            for hostname in selector.hostnames
        ]

    def _route_selector_getters(self) -> Iterator[AuthPolicySpec | AuthRuleSpec]:
        yield self.spec
        yield from self.spec.auth_scheme.rule_specs()


@dataclass
class AuthPolicyList:
    items: list[AuthPolicy] = field(default_factory=list)

    def get_items(self) -> list[AuthPolicy]:
        return list(self.items)


def available_condition(
    target_kind: str, spec_error: BaseException | str | None, auth_config_ready: bool
) -> Condition:
    """The Available condition for a policy targeting an object of ``target_kind``."""
    if spec_error is not None:
        return Condition(
            type=AVAILABLE_CONDITION_TYPE,
            status=ConditionStatus.FALSE,
            reason="ReconciliationError",
            message=str(spec_error),
        )
    if not auth_config_ready:
        return Condition(
            type=AVAILABLE_CONDITION_TYPE,
            status=ConditionStatus.FALSE,
            reason="AuthSchemeNotReady",
            message="AuthScheme is not ready yet",
        )
    return Condition(
        type=AVAILABLE_CONDITION_TYPE,
        status=ConditionStatus.TRUE,
        reason=f"{target_kind}Protected",
        message=f"{target_kind} is protected",
    )


def calculate_status(
    policy: AuthPolicy, spec_error: BaseException | str | None, auth_config_ready: bool
) -> PolicyStatus:
    """A new status for ``policy``; the policy's own status is left untouched."""
    status = PolicyStatus(
        observed_generation=policy.status.observed_generation,
        conditions=[replace(condition) for condition in policy.status.conditions],
    )
    condition = available_condition(policy.spec.target_ref.kind, spec_error, auth_config_ready)
    set_status_condition(status.conditions, condition)
    return status