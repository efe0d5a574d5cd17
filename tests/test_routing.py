import pytest

from kuadrantpolicy.routing import (
    HTTPHeaderMatch,
    HTTPPathMatch,
    HTTPRoute,
    HTTPRouteMatch,
    HTTPRouteRule,
    ObjectKey,
    ParentReference,
    PathMatchType,
    RouteSelector,
    intersection,
    match_selects,
    same_elements,
)


def build_route() -> HTTPRoute:
    return HTTPRoute(
        parent_refs=[ParentReference(name="my-gateway")],
        hostnames=["api.toystore.com"],
        rules=[
            HTTPRouteRule(
                matches=[
                    HTTPRouteMatch(
                        path=HTTPPathMatch(PathMatchType.PATH_PREFIX, "/toy"), method="GET"
                    ),
                    HTTPRouteMatch(
                        path=HTTPPathMatch(PathMatchType.PATH_PREFIX, "/toy"), method="POST"
                    ),
                ]
            ),
            HTTPRouteRule(
                matches=[HTTPRouteMatch(path=HTTPPathMatch(PathMatchType.PATH_PREFIX, "/assets"))]
            ),
        ],
    )


ROUTE = build_route()


@pytest.mark.parametrize(
    "selector, expected",
    [
        (RouteSelector(), ROUTE.rules),
        (
            RouteSelector(
                matches=[HTTPRouteMatch(path=HTTPPathMatch(PathMatchType.PATH_PREFIX, "/assets"))]
            ),
            [ROUTE.rules[1]],
        ),
        (
            RouteSelector(
                matches=[
                    HTTPRouteMatch(
                        path=HTTPPathMatch(PathMatchType.PATH_PREFIX, "/toy"), method="POST"
                    )
                ]
            ),
            [ROUTE.rules[0]],
        ),
        (
            RouteSelector(
                matches=[HTTPRouteMatch(path=HTTPPathMatch(PathMatchType.PATH_PREFIX, "/toy"))]
            ),
            [ROUTE.rules[0]],
        ),
        (
            RouteSelector(matches=[HTTPRouteMatch(path=HTTPPathMatch(PathMatchType.EXACT, "/toy"))]),
            [],
        ),
        (RouteSelector(hostnames=["api.toystore.com"]), ROUTE.rules),
        (
            RouteSelector(
                hostnames=["api.toystore.com"],
                matches=[HTTPRouteMatch(path=HTTPPathMatch(PathMatchType.PATH_PREFIX, "/toy"))],
            ),
            [ROUTE.rules[0]],
        ),
        (RouteSelector(hostnames=["www.toystore.com"]), []),
        (
            RouteSelector(
                hostnames=["www.toystore.com"],
                matches=[HTTPRouteMatch(path=HTTPPathMatch(PathMatchType.PATH_PREFIX, "/toy"))],
            ),
            [],
        ),
    ],
    ids=[
        "empty selector selects all",
        "perfect match",
        "at least one match",
        "missing part still selects",
        "no criterion matches",
        "hostnames match",
        "hostnames and other criteria",
        "hostnames do not match",
        "hostnames do not match even when others do",
    ],
)
def test_select_rules(selector, expected):
    assert selector.select_rules(build_route()) == expected


def test_hostnames_for_conditions():
    route = build_route()
    route.hostnames.append("www.toystore.com")

    selector = RouteSelector(hostnames=["api.toystore.com", "www.toystore.com"])
    assert selector.hostnames_for_conditions(route) == ["*"]

    selector = RouteSelector(hostnames=["api.toystore.com", "other.io"])
    assert selector.hostnames_for_conditions(route) == ["api.toystore.com"]

    selector = RouteSelector(hostnames=["other.io"])
    assert selector.hostnames_for_conditions(route) == []

    assert RouteSelector().hostnames_for_conditions(route) == ["*"]

    route.hostnames = []
    result = RouteSelector(hostnames=["api.toystore.com"]).hostnames_for_conditions(route)
    assert len(result) == 1

    assert RouteSelector().hostnames_for_conditions(route) == ["*"]


def test_match_selects_rule_without_matches():
    selector_match = HTTPRouteMatch(method="GET")
    assert match_selects(selector_match, HTTPRouteRule()) is True


def test_match_selects_headers_must_be_present():
    rule = HTTPRouteRule(
        matches=[HTTPRouteMatch(headers=[HTTPHeaderMatch(name="X-Foo", value="a-value")])]
    )
    assert match_selects(
        HTTPRouteMatch(headers=[HTTPHeaderMatch(name="x-foo", value="a-value")]), rule
    )
    assert not match_selects(
        HTTPRouteMatch(headers=[HTTPHeaderMatch(name="x-bar", value="a-value")]), rule
    )


def test_path_without_type_defaults_to_prefix():
    rule = HTTPRouteRule(
        matches=[HTTPRouteMatch(path=HTTPPathMatch(PathMatchType.PATH_PREFIX, "/toy"))]
    )
    assert match_selects(HTTPRouteMatch(path=HTTPPathMatch(value="/toy")), rule)


def test_select_rules_does_not_duplicate():
    selector = RouteSelector(
        matches=[
            HTTPRouteMatch(method="GET"),
            HTTPRouteMatch(method="POST"),
        ]
    )
    assert selector.select_rules(build_route()) == [ROUTE.rules[0]]


def test_intersection_keeps_order_of_first():
    assert intersection(["b", "a", "c"], ["c", "b"]) == ["b", "c"]


def test_same_elements():
    assert same_elements(["a", "b"], ["b", "a"])
    assert not same_elements(["a"], ["a", "b"])
    assert same_elements([], [])


def test_object_key_string():
    assert str(ObjectKey("my-namespace", "my-route")) == "my-namespace/my-route"