"""The authorization-service AuthConfig that an AuthPolicy is translated into."""

from __future__ import annotations

from dataclasses import dataclass, field

from .authpolicy import (
    AuthPolicy,
    AuthRuleSpec,
    PatternExpression,
    PatternExpressionOrRef,
    ResponseSpec,
    WrappedSuccessResponseSpec,
)
from .istio import NO_RULES_MATCHED
from .ratelimit import PolicyValidationError
from .routing import (
    CATCH_ALL_HOSTNAME,
    HeaderMatchType,
    HTTPHeaderMatch,
    HTTPPathMatch,
    HTTPQueryParamMatch,
    HTTPRoute,
    HTTPRouteMatch,
    HTTPRouteRule,
    ObjectKey,
    PathMatchType,
    QueryParamMatchType,
    RouteSelector,
)

_PATH_OPERATORS = {
    PathMatchType.EXACT: "eq",
    PathMatchType.PATH_PREFIX: "matches",
    PathMatchType.REGULAR_EXPRESSION: "matches",
}


@dataclass
class AuthConfigSpec:
    """Desired content of the AuthConfig generated for an AuthPolicy."""

    hosts: list[str] = field(default_factory=list)
    named_patterns: dict[str, list[PatternExpression]] = field(default_factory=dict)
    conditions: list[PatternExpressionOrRef] = field(default_factory=list)
    authentication: dict[str, AuthRuleSpec] = field(default_factory=dict)
    metadata: dict[str, AuthRuleSpec] = field(default_factory=dict)
    authorization: dict[str, AuthRuleSpec] = field(default_factory=dict)
    response: ResponseSpec | None = None
    callbacks: dict[str, AuthRuleSpec] = field(default_factory=dict)


def auth_config_name(policy_key: ObjectKey) -> str:
    """Name of the AuthConfig generated for the policy with ``policy_key``."""
    return f"ap-{policy_key.namespace}-{policy_key.name}"


def hostnames_to_regex(hostnames: list[str]) -> str:
    """A regular expression matching any of the hostnames, wildcards included."""
    return "|".join(
        hostname.replace(".", r"\.").replace("*", ".*") for hostname in hostnames
    )


def _expression(selector: str, operator: str, value: str) -> PatternExpressionOrRef:
    return PatternExpressionOrRef(pattern_expression=PatternExpression(selector, operator, value))


def _hostname_condition(hostnames: list[str]) -> PatternExpressionOrRef:
    return _expression("request.host", "matches", hostnames_to_regex(hostnames))


def http_method_condition(method: str) -> PatternExpressionOrRef:
    return _expression("request.method", "eq", str(method))


def http_path_condition(path: HTTPPathMatch) -> PatternExpressionOrRef:
    """Condition on the URL path; prefixes become a ``matches`` with a trailing ``.*``."""
    match_type, value = path.effective()
    if match_type is PathMatchType.PATH_PREFIX:
        value += ".*"
    return _expression("request.url_path", _PATH_OPERATORS[match_type], value)


def http_header_condition(header: HTTPHeaderMatch) -> PatternExpressionOrRef:
    operator = "matches" if header.type is HeaderMatchType.REGULAR_EXPRESSION else "eq"
    return _expression(f"request.headers.{header.name.lower()}", operator, header.value)


def http_query_param_condition(query_param: HTTPQueryParamMatch) -> PatternExpressionOrRef:
    """Condition on a query parameter, whether it comes first in the query or not."""
    operator = "matches" if query_param.type is QueryParamMatchType.REGULAR_EXPRESSION else "eq"
    name = query_param.name
    return PatternExpressionOrRef(
        any_of=[
            _expression(
                f'request.path.@extract:{{"sep":"?{name}=","pos":1}}|@extract:{{"sep":"&"}}',
                operator,
                query_param.value,
            ),
            _expression(
                f'request.path.@extract:{{"sep":"&{name}=","pos":1}}|@extract:{{"sep":"&"}}',
                operator,
                query_param.value,
            ),
        ]
    )


def _one_of(conditions: list[PatternExpressionOrRef]) -> list[PatternExpressionOrRef]:
    return [PatternExpressionOrRef(any_of=list(conditions))]


def _match_conditions(match: HTTPRouteMatch, hosts: list[str]) -> list[PatternExpressionOrRef]:
    all_of: list[PatternExpressionOrRef] = []
    if hosts:
        all_of.append(_hostname_condition(hosts))
    if match.method is not None:
        all_of.append(http_method_condition(match.method))
    if match.path is not None:
        all_of.append(http_path_condition(match.path))
    all_of.extend(http_header_condition(header) for header in match.headers)
    all_of.extend(http_query_param_condition(param) for param in match.query_params)
    return all_of


def conditions_from_http_route_rule(
    rule: HTTPRouteRule, hostnames: list[str]
) -> list[PatternExpressionOrRef]:
    """Conditions for one route rule: any of its matches, each with all of its statements.

    A rule without matches catches every request, so it yields at most a
    hostname condition; the catch-all hostname yields none.
    """
    hosts = [hostname for hostname in hostnames if hostname != CATCH_ALL_HOSTNAME]
    if not rule.matches:
        if not hosts:
            return []
        return [_hostname_condition(hosts)]
    one_of = [
        PatternExpressionOrRef(all_of=all_of)
        for all_of in (_match_conditions(match, hosts) for match in rule.matches)
        if all_of
    ]
    return _one_of(one_of)


def conditions_from_http_route(route: HTTPRoute) -> list[PatternExpressionOrRef]:
    """Conditions covering every rule of the route, without route selectors."""
    hostnames = RouteSelector().hostnames_for_conditions(route)
    conditions = [
        condition
        for rule in route.rules
        for condition in conditions_from_http_route_rule(rule, hostnames)
    ]
    return _one_of(conditions)


def conditions_from_route_selectors(
    route: HTTPRoute, route_selectors: list[RouteSelector]
) -> list[PatternExpressionOrRef]:
    """Conditions for the route rules picked by the selectors.

    Returns an empty list when there are no selectors and raises
    PolicyValidationError when the selectors pick nothing.
    """
    if not route_selectors:
        return []
    conditions = [
        condition
        for selector in route_selectors
        for rule in selector.select_rules(route)
        for condition in conditions_from_http_route_rule(
            rule, selector.hostnames_for_conditions(route)
        )
    ]
    if not conditions:
        raise PolicyValidationError(NO_RULES_MATCHED)
    return _one_of(conditions)


def _auth_rules(rules: dict[str, AuthRuleSpec], route: HTTPRoute) -> dict[str, AuthRuleSpec]:
    return {
        name: AuthRuleSpec(
            config=dict(rule.config),
            conditions=[
                *rule.conditions,
                *conditions_from_route_selectors(route, rule.route_selectors),
            ],
        )
        for name, rule in rules.items()
    }


def desired_auth_config_spec(
    policy: AuthPolicy, route: HTTPRoute, hosts: list[str]
) -> AuthConfigSpec:
    """The AuthConfig spec for ``policy`` protecting ``hosts`` of ``route``.

    For a policy targeting a gateway, ``route`` is a route that gathers the
    rules of all the routes the gateway accepts. The policy is not modified.
    """
    spec = AuthConfigSpec(hosts=list(hosts), named_patterns=dict(policy.spec.named_patterns))

    top_level = conditions_from_route_selectors(route, policy.spec.route_selectors)
    if not top_level:
        top_level = conditions_from_http_route(route)
    if top_level or policy.spec.conditions:
        spec.conditions = [*policy.spec.conditions, *top_level]

    scheme = policy.spec.auth_scheme
    spec.authentication = _auth_rules(scheme.authentication, route)
    spec.metadata = _auth_rules(scheme.metadata, route)
    spec.authorization = _auth_rules(scheme.authorization, route)
    if scheme.response is not None:
        response = scheme.response
        spec.response = ResponseSpec(
            unauthenticated=response.unauthenticated,
            unauthorized=response.unauthorized,
            success=WrappedSuccessResponseSpec(
                headers=_auth_rules(response.success.headers, route),
                dynamic_metadata=_auth_rules(response.success.dynamic_metadata, route),
            ),
        )
    spec.callbacks = _auth_rules(scheme.callbacks, route)
    return spec