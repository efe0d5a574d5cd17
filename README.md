# kuadrantpolicy

Pure-Python models and translation logic for Gateway API auth and rate-limit
policies. It has no runtime dependencies.

## Modules

- `kuadrantpolicy.routing`: HTTP route objects (`HTTPRoute`, `HTTPRouteRule`,
  `HTTPRouteMatch`, `HTTPPathMatch`, `HTTPHeaderMatch`, `HTTPQueryParamMatch`,
  `ParentReference`, `PolicyTargetReference`, `ObjectKey`) and `RouteSelector`,
  which picks the rules and hostnames of a route that a policy applies to.
  Helpers: `match_selects`, `intersection`, `same_elements`.
- `kuadrantpolicy.status`: `Condition`, `ConditionStatus`, `PolicyStatus`,
  `set_status_condition` and `conditions_to_json`.
- `kuadrantpolicy.ratelimit`: `RateLimitPolicy` with its `Limit`, `Rate`,
  `WhenCondition`, and `PolicyValidationError`, the error every `validate()`
  in the package raises.
- `kuadrantpolicy.authpolicy`: `AuthPolicy`, its spec classes, and
  `available_condition` / `calculate_status`, which compute the `Available`
  status condition.
- `kuadrantpolicy.istio`: Istio AuthorizationPolicy rules (`IstioRule`,
  `RuleTo`, `Operation`, `IstioCondition`) built from routes, plus the name
  and labels of such a policy.
- `kuadrantpolicy.authconfig`: AuthConfig conditions built from routes and
  `desired_auth_config_spec`, which turns an `AuthPolicy` into an
  `AuthConfigSpec`.
- `kuadrantpolicy.eventmappers`: maps an `HTTPRoute` to the keys of the
  policies that must be reconciled, either through a back-reference
  annotation or through its parent gateways.

## Installation

```
pip install .
```

## Selecting route rules

```python
from kuadrantpolicy.routing import (
    HTTPRoute, HTTPRouteRule, HTTPRouteMatch, HTTPPathMatch, PathMatchType, RouteSelector,
)

route = HTTPRoute(
    hostnames=["api.toystore.com"],
    rules=[
        HTTPRouteRule(matches=[HTTPRouteMatch(
            path=HTTPPathMatch(type=PathMatchType.PATH_PREFIX, value="/toy"),
            method="GET",
        )]),
        HTTPRouteRule(matches=[HTTPRouteMatch(
            path=HTTPPathMatch(type=PathMatchType.PATH_PREFIX, value="/assets"),
        )]),
    ],
)

selector = RouteSelector(matches=[HTTPRouteMatch(
    path=HTTPPathMatch(type=PathMatchType.PATH_PREFIX, value="/assets"),
)])
selector.select_rules(route)               # [route.rules[1]]
selector.hostnames_for_conditions(route)   # ["*"]
```

A selector with hostnames that share none with the route selects nothing; a
selector without matches selects every rule.

## Building Istio rules

```python
from kuadrantpolicy.istio import rules_from_http_route_rule

rules = rules_from_http_route_rule(route.rules[0], ["toystore.example.com"])
# one IstioRule whose operation has hosts ["toystore.example.com"],
# methods ["GET"] and paths ["/toy*"]
```

Regular-expression path and header matches are left out of Istio rules; the
AuthConfig conditions cover them, as they do query parameters.

## Building AuthConfig conditions

```python
from kuadrantpolicy.authconfig import conditions_from_http_route, auth_config_name
from kuadrantpolicy.routing import ObjectKey

conditions_from_http_route(route)                   # one "any of" condition over the rules
auth_config_name(ObjectKey("default", "toystore"))  # "ap-default-toystore"
```

Route selectors that pick no rule raise `PolicyValidationError`.

## Validating a policy

```python
from kuadrantpolicy.ratelimit import RateLimitPolicy, RateLimitPolicySpec, PolicyValidationError
from kuadrantpolicy.routing import PolicyTargetReference

policy = RateLimitPolicy(
    name="toystore",
    namespace="default",
    spec=RateLimitPolicySpec(target_ref=PolicyTargetReference(
        group="gateway.networking.k8s.io", kind="HTTPRoute", name="toystore",
    )),
)
policy.validate()      # raises PolicyValidationError when the target is invalid
policy.target_key()    # ObjectKey("default", "toystore")
```

## What it does not do

The package computes what should exist; it does not talk to a cluster. It
has no controller loop, no client for reading or writing resources, and no
command to run. Callers fetch routes and policies themselves and apply the
resulting rules, specs and status conditions. `map_route_parent_refs_to_policy_requests`
takes a function that lists the policies of a namespace for this reason.

## Running the tests

```
pip install .[test]
pytest
```