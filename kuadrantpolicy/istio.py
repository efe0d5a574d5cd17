"""Istio AuthorizationPolicy rules that send matching requests to external authorization."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from .authpolicy import AuthPolicy
from .ratelimit import PolicyValidationError
from .routing import (
    CATCH_ALL_HOSTNAME,
    HeaderMatchType,
    HTTPPathMatch,
    HTTPRoute,
    HTTPRouteMatch,
    HTTPRouteRule,
    ObjectKey,
    PathMatchType,
    PolicyTargetReference,
    RouteSelector,
)

EXT_AUTH_PROVIDER_NAME = os.environ.get("AUTH_PROVIDER", "kuadrant-authorization")

NO_RULES_MATCHED = "cannot match any route rules, check for invalid route selectors in the policy"


@dataclass
class Operation:
    """The request attributes an Istio rule matches on."""

    hosts: list[str] = field(default_factory=list)
    methods: list[str] = field(default_factory=list)
    paths: list[str] = field(default_factory=list)


@dataclass
class RuleTo:
    operation: Operation = field(default_factory=Operation)


@dataclass
class IstioCondition:
    key: str
    values: list[str] = field(default_factory=list)


@dataclass
class IstioRule:
    to: list[RuleTo] = field(default_factory=list)
    when: list[IstioCondition] = field(default_factory=list)


def _istio_path(path: HTTPPathMatch) -> str | None:
    """The Istio path pattern for a path match, or None when Istio cannot express it."""
    match_type, value = path.effective()
    if match_type is PathMatchType.REGULAR_EXPRESSION:
        # left to the authorization service, which checks it anyway
        return None
    suffix = "" if match_type is PathMatchType.EXACT else "*"
    return f"{value}{suffix}"


def _rule_from_match(match: HTTPRouteMatch, hosts: list[str]) -> IstioRule:
    rule = IstioRule()
    if hosts or match.method is not None or match.path is not None:
        operation = Operation(hosts=list(hosts))
        if match.method is not None:
            operation.methods = [match.method]
        if match.path is not None:
            path = _istio_path(match.path)
            if path is not None:
                operation.paths = [path]
        rule.to = [RuleTo(operation)]
    rule.when = [
        IstioCondition(key=f"request.headers[{header.name}]", values=[header.value])
        for header in match.headers
        if header.type is not HeaderMatchType.REGULAR_EXPRESSION
    ]
    # query params cannot be expressed in Istio; the auth config covers them
    return rule


def rules_from_http_route_rule(rule: HTTPRouteRule, hostnames: list[str]) -> list[IstioRule]:
    """One Istio rule per route match; a rule without matches yields at most a hosts-only rule."""
    hosts = [hostname for hostname in hostnames if hostname != CATCH_ALL_HOSTNAME]
    if not rule.matches:
        if not hosts:
            return []
        return [IstioRule(to=[RuleTo(Operation(hosts=list(hosts)))])]
    return [_rule_from_match(match, hosts) for match in rule.matches]


def rules_from_http_route(route: HTTPRoute) -> list[IstioRule]:
    """Istio rules for every rule of the route, without route selectors."""
    hostnames = RouteSelector().hostnames_for_conditions(route)
    return [
        istio_rule
        for rule in route.rules
        for istio_rule in rules_from_http_route_rule(rule, hostnames)
    ]


def rules_from_route_selectors(
    route: HTTPRoute, route_selectors: list[RouteSelector]
) -> list[IstioRule]:
    """Istio rules for the route rules picked by the selectors.

    Raises PolicyValidationError when selectors are given but pick nothing.
    """
    if not route_selectors:
        return []
    istio_rules = [
        istio_rule
        for selector in route_selectors
        for rule in selector.select_rules(route)
        for istio_rule in rules_from_http_route_rule(
            rule, selector.hostnames_for_conditions(route)
        )
    ]
    if not istio_rules:
        raise PolicyValidationError(NO_RULES_MATCHED)
    return istio_rules


def authorization_policy_rules(policy: AuthPolicy, route: HTTPRoute) -> list[IstioRule]:
    """Rules that trigger external authorization; empty means every request."""
    if policy.spec.route_selectors:
        return rules_from_route_selectors(route, policy.spec.route_selectors)
    return rules_from_http_route(route)


def authorization_policy_name(gateway_name: str, target_ref: PolicyTargetReference) -> str:
    """Name of the AuthorizationPolicy created on a gateway for a target."""
    if target_ref.kind == "Gateway":
        return f"on-{gateway_name}"
    if target_ref.kind == "HTTPRoute":
        return f"on-{gateway_name}-using-{target_ref.name}"
    return ""


def authorization_policy_labels(
    gateway_key: ObjectKey, policy_key: ObjectKey, back_ref_annotation: str
) -> dict[str, str]:
    """Labels that tie an AuthorizationPolicy to its gateway and policy."""
    return {
        back_ref_annotation: policy_key.name,
        f"{back_ref_annotation}-namespace": policy_key.namespace,
        "gateway-namespace": gateway_key.namespace,
        "gateway": gateway_key.name,
    }