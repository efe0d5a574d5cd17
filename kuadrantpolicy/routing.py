"""Gateway API routing objects and the route selectors that pick rules out of them."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Hashable, Iterable, Sequence

GATEWAY_API_GROUP = "gateway.networking.k8s.io"
CATCH_ALL_HOSTNAME = "*"


class PathMatchType(str, Enum):
    EXACT = "Exact"
    PATH_PREFIX = "PathPrefix"
    REGULAR_EXPRESSION = "RegularExpression"


class HeaderMatchType(str, Enum):
    EXACT = "Exact"
    REGULAR_EXPRESSION = "RegularExpression"


class QueryParamMatchType(str, Enum):
    EXACT = "Exact"
    REGULAR_EXPRESSION = "RegularExpression"


@dataclass
class HTTPPathMatch:
    """Path part of an HTTP route match; an unset type means a path prefix."""

    type: PathMatchType | None = None
    value: str | None = None

    def effective(self) -> tuple[PathMatchType, str]:
        """The match type and value with the Gateway API defaults applied."""
        match_type = self.type if self.type is not None else PathMatchType.PATH_PREFIX
        value = self.value if self.value is not None else "/"
        return match_type, value


@dataclass
class HTTPHeaderMatch:
    name: str
    value: str
    type: HeaderMatchType | None = None

    def effective(self) -> tuple[str, str, HeaderMatchType]:
        match_type = self.type if self.type is not None else HeaderMatchType.EXACT
        return self.name.lower(), self.value, match_type


@dataclass
class HTTPQueryParamMatch:
    name: str
    value: str
    type: QueryParamMatchType | None = None

    def effective(self) -> tuple[str, str, QueryParamMatchType]:
        match_type = self.type if self.type is not None else QueryParamMatchType.EXACT
        return self.name, self.value, match_type


@dataclass
class HTTPRouteMatch:
    path: HTTPPathMatch | None = None
    headers: list[HTTPHeaderMatch] = field(default_factory=list)
    query_params: list[HTTPQueryParamMatch] = field(default_factory=list)
    method: str | None = None


@dataclass
class HTTPRouteRule:
    matches: list[HTTPRouteMatch] = field(default_factory=list)


@dataclass
class ParentReference:
    name: str
    namespace: str | None = None
    group: str | None = None
    kind: str | None = None


@dataclass(frozen=True)
class ObjectKey:
    """Namespace and name that identify an object."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass
class HTTPRoute:
    name: str = ""
    namespace: str = ""
    hostnames: list[str] = field(default_factory=list)
    rules: list[HTTPRouteRule] = field(default_factory=list)
    parent_refs: list[ParentReference] = field(default_factory=list)
    annotations: dict[str, str] = field(default_factory=dict)

    @property
    def key(self) -> ObjectKey:
        return ObjectKey(self.namespace, self.name)


@dataclass
class PolicyTargetReference:
    group: str = ""
    kind: str = ""
    name: str = ""
    namespace: str | None = None


def intersection(first: Iterable[Hashable], second: Iterable[Hashable]) -> list:
    """Elements of ``first`` that also appear in ``second``, in the order of ``first``."""
    others = set(second)
    return [item for item in first if item in others]


def same_elements(first: Sequence[Hashable], second: Sequence[Hashable]) -> bool:
    """Whether both sequences hold the same elements, regardless of order."""
    return Counter(first) == Counter(second)


def _match_includes(rule_match: HTTPRouteMatch, selector_match: HTTPRouteMatch) -> bool:
    if selector_match.path is not None:
        if rule_match.path is None:
            return False
        if rule_match.path.effective() != selector_match.path.effective():
            return False
    if selector_match.method is not None and rule_match.method != selector_match.method:
        return False
    rule_headers = {header.effective() for header in rule_match.headers}
    if any(header.effective() not in rule_headers for header in selector_match.headers):
        return False
    rule_params = {param.effective() for param in rule_match.query_params}
    return all(param.effective() in rule_params for param in selector_match.query_params)


def match_selects(selector_match: HTTPRouteMatch, rule: HTTPRouteRule) -> bool:
    """Whether a selector match picks a rule.

    A rule with no matches is always picked; otherwise at least one of its
    matches must state everything the selector match states.
    """
    if not rule.matches:
        return True
    return any(_match_includes(rule_match, selector_match) for rule_match in rule.matches)


@dataclass
class RouteSelector:
    """Selects HTTPRoute rules by hostnames and matches."""

    hostnames: list[str] = field(default_factory=list)
    matches: list[HTTPRouteMatch] = field(default_factory=list)

    def select_rules(self, route: HTTPRoute) -> list[HTTPRouteRule]:
        """The rules of ``route`` chosen by this selector, in order of first selection."""
        if self.hostnames and not set(self.hostnames) & set(route.hostnames):
            return []
        if not self.matches:
            return list(route.rules)
        selected: dict[int, HTTPRouteRule] = {}
        for selector_match in self.matches:
            for index, rule in enumerate(route.rules):
                if match_selects(selector_match, rule):
                    selected.setdefault(index, rule)
        return list(selected.values())

    def hostnames_for_conditions(self, route: HTTPRoute) -> list[str]:
        """Hostnames worth a condition; ``["*"]`` when they cover the whole route."""
        hostnames = list(route.hostnames)
        if self.hostnames:
            hostnames = intersection(self.hostnames, hostnames)
        if same_elements(hostnames, route.hostnames):
            return [CATCH_ALL_HOSTNAME]
        return hostnames