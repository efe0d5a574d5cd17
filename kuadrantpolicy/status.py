"""Status conditions shared by the Kuadrant policy kinds."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum

KUADRANT_GROUP = "kuadrant.io"
V1BETA1_API_VERSION = f"{KUADRANT_GROUP}/v1beta1"
V1BETA2_API_VERSION = f"{KUADRANT_GROUP}/v1beta2"

_log = logging.getLogger(__name__)


class ConditionStatus(str, Enum):
    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


@dataclass
class Condition:
    type: str
    status: ConditionStatus
    reason: str = ""
    message: str = ""
    observed_generation: int = 0
    last_transition_time: datetime | None = None

    def to_dict(self) -> dict:
        data: dict = {"type": self.type, "status": ConditionStatus(self.status).value}
        if self.observed_generation:
            data["observedGeneration"] = self.observed_generation
        data["lastTransitionTime"] = (
            None
            if self.last_transition_time is None
            else self.last_transition_time.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        )
        data["reason"] = self.reason
        data["message"] = self.message
        return data


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def set_status_condition(conditions: list[Condition], condition: Condition) -> bool:
    """Add or update the condition of the same type in place; return whether anything changed.

    The transition time moves only when the status changes.
    """
    existing = next((c for c in conditions if c.type == condition.type), None)
    if existing is None:
        conditions.append(
            replace(condition, last_transition_time=condition.last_transition_time or _now())
        )
        return True

    changed = False
    if existing.status != condition.status:
        existing.status = condition.status
        existing.last_transition_time = condition.last_transition_time or _now()
        changed = True
    for attribute in ("reason", "message", "observed_generation"):
        value = getattr(condition, attribute)
        if getattr(existing, attribute) != value:
            setattr(existing, attribute, value)
            changed = True
    return changed


def conditions_to_json(conditions: list[Condition]) -> str:
    """Serialise conditions to JSON, sorted by condition type."""
    ordered = sorted(conditions, key=lambda c: c.type)
    return json.dumps([c.to_dict() for c in ordered], separators=(",", ":"))


@dataclass
class PolicyStatus:
    observed_generation: int = 0
    conditions: list[Condition] = field(default_factory=list)

    def equals(self, other: PolicyStatus) -> bool:
        if self.observed_generation != other.observed_generation:
            _log.debug(
                "ObservedGeneration not equal: %s != %s",
                self.observed_generation,
                other.observed_generation,
            )
            return False
        current = conditions_to_json(self.conditions)
        others = conditions_to_json(other.conditions)
        if current != others:
            _log.debug("Conditions not equal: %s != %s", current, others)
            return False
        return True