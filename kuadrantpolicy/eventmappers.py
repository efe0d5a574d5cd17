"""Map HTTPRoute events to the policies that must be reconciled because of them."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Protocol

from .routing import GATEWAY_API_GROUP, HTTPRoute, ObjectKey, PolicyTargetReference

_log = logging.getLogger(__name__)


class _Policy(Protocol):
    namespace: str

    @property
    def key(self) -> ObjectKey: ...

    @property
    def target_ref(self) -> PolicyTargetReference: ...


def parse_namespaced_name(value: str, default_namespace: str) -> ObjectKey:
    """Parse ``namespace/name``; a bare name falls into ``default_namespace``."""
    namespace, separator, name = value.partition("/")
    if not separator:
        return ObjectKey(default_namespace, value)
    return ObjectKey(namespace, name)


def map_route_to_policy_requests(route: HTTPRoute, back_ref_annotation: str) -> list[ObjectKey]:
    """The policy the route's back-reference annotation points at, if any."""
    policy_ref = route.annotations.get(back_ref_annotation)
    if policy_ref is None:
        return []
    policy_key = parse_namespaced_name(policy_ref, route.namespace)
    _log.debug("Processing object %s: policy %s", route.key, policy_key)
    return [policy_key]


def _targets_gateway(ref: PolicyTargetReference) -> bool:
    return ref.group == GATEWAY_API_GROUP and ref.kind == "Gateway"


def map_route_parent_refs_to_policy_requests(
    route: HTTPRoute, list_policies: Callable[[str], Iterable[_Policy]]
) -> list[ObjectKey]:
    """Keys of the policies that target one of the route's parent gateways.

    ``list_policies`` returns the policies of one namespace; a listing that
    fails is logged and treated as empty.
    """
    requests: list[ObjectKey] = []
    for parent in route.parent_refs:
        if (parent.group is not None and parent.group != GATEWAY_API_GROUP) or (
            parent.kind is not None and parent.kind != "Gateway"
        ):
            continue
        parent_namespace = parent.namespace if parent.namespace is not None else route.namespace
        try:
            policies = list(list_policies(parent_namespace))
        except Exception:
            _log.exception("failed to list policies in namespace %s", parent_namespace)
            continue
        for policy in policies:
            ref = policy.target_ref
            if not _targets_gateway(ref):
                continue
            target_namespace = ref.namespace if ref.namespace is not None else policy.namespace
            if parent_namespace == target_namespace and parent.name == ref.name:
                requests.append(policy.key)
    return requests