"""
Status conditions reported on the owning machine pool.

Conditions follow the Kubernetes convention: one entry per condition type,
with a status of True/False/Unknown, a machine-readable reason, a human
message and a severity that is only meaningful while the status is not True.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

# Condition types
LIFECYCLE_HOOK_EXISTS_CONDITION = "HookExists"

# Reasons
LIFECYCLE_HOOK_CREATION_FAILED_REASON = "CreationFailed"
LIFECYCLE_HOOK_UPDATE_FAILED_REASON = "UpdateFailed"
LIFECYCLE_HOOK_DELETION_FAILED_REASON = "DeletionFailed"
LIFECYCLE_HOOK_DESCRIBE_FAILED_REASON = "DescribeFailed"


class ConditionStatus(Enum):
    """Status of a condition."""

    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


class ConditionSeverity(Enum):
    """Severity of a non-True condition."""

    ERROR = "Error"
    WARNING = "Warning"
    INFO = "Info"
    NONE = ""


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Condition:
    """A single status condition."""

    type: str
    status: ConditionStatus
    severity: ConditionSeverity = ConditionSeverity.NONE
    reason: str = ""
    message: str = ""
    last_transition_time: Optional[datetime] = None

    def same_state(self, other: "Condition") -> bool:
        """True when both conditions carry the same observable state."""
        return (
            self.type == other.type
            and self.status == other.status
            and self.severity == other.severity
            and self.reason == other.reason
            and self.message == other.message
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "status": self.status.value,
            "severity": self.severity.value,
            "reason": self.reason,
            "message": self.message,
            "lastTransitionTime": (
                self.last_transition_time.isoformat()
                if self.last_transition_time
                else None
            ),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Condition":
        last_transition_time = data.get("lastTransitionTime")
        return cls(
            type=data["type"],
            status=ConditionStatus(data["status"]),
            severity=ConditionSeverity(data.get("severity") or ""),
            reason=data.get("reason") or "",
            message=data.get("message") or "",
            last_transition_time=(
                datetime.fromisoformat(last_transition_time)
                if last_transition_time
                else None
            ),
        )


def get_condition(
    conditions: List[Condition], condition_type: str
) -> Optional[Condition]:
    """Return the condition of the given type, or None."""
    for condition in conditions:
        if condition.type == condition_type:
            return condition
    return None


def set_condition(conditions: List[Condition], condition: Condition) -> List[Condition]:
    """
    Set a condition, replacing any existing entry of the same type.

    The last transition time is carried over from the existing entry when
    the status did not change, and stamped with the current time otherwise.

    Returns:
        A new list; the input list is not modified.
    """
    existing = get_condition(conditions, condition.type)
    if existing is not None and existing.status == condition.status:
        condition = replace(
            condition, last_transition_time=existing.last_transition_time
        )
    elif condition.last_transition_time is None:
        condition = replace(condition, last_transition_time=_now())

    updated = [c for c in conditions if c.type != condition.type]
    updated.append(condition)
    return sorted(updated, key=lambda c: c.type)


def mark_true(conditions: List[Condition], condition_type: str) -> List[Condition]:
    """Set the condition to True."""
    return set_condition(
        conditions, Condition(type=condition_type, status=ConditionStatus.TRUE)
    )


def mark_false(
    conditions: List[Condition],
    condition_type: str,
    reason: str,
    severity: ConditionSeverity,
    message: str = "",
) -> List[Condition]:
    """Set the condition to False with a reason and severity."""
    return set_condition(
        conditions,
        Condition(
            type=condition_type,
            status=ConditionStatus.FALSE,
            severity=severity,
            reason=reason,
            message=message,
        ),
    )


def mark_unknown(
    conditions: List[Condition],
    condition_type: str,
    reason: str,
    message: str = "",
) -> List[Condition]:
    """Set the condition to Unknown with a reason."""
    return set_condition(
        conditions,
        Condition(
            type=condition_type,
            status=ConditionStatus.UNKNOWN,
            reason=reason,
            message=message,
        ),
    )


class ConditionReporter:
    """
    Writes condition changes for one machine pool to the store.

    Each mark is applied to the in-memory machine pool first; the store is
    only written when the condition actually changed, so re-marking the
    same state is a no-op. Writes are scoped to a single condition type and
    guarded by the pool's resource version.
    """

    def __init__(self, db: Any, machine_pool: Any):
        self.db = db
        self.machine_pool = machine_pool

    async def mark_true(self, condition_type: str) -> None:
        await self._apply(
            mark_true(self.machine_pool.conditions, condition_type), condition_type
        )

    async def mark_false(
        self,
        condition_type: str,
        reason: str,
        severity: ConditionSeverity,
        message: str = "",
    ) -> None:
        await self._apply(
            mark_false(
                self.machine_pool.conditions, condition_type, reason, severity, message
            ),
            condition_type,
        )

    async def mark_unknown(
        self, condition_type: str, reason: str, message: str = ""
    ) -> None:
        await self._apply(
            mark_unknown(self.machine_pool.conditions, condition_type, reason, message),
            condition_type,
        )

    async def _apply(self, conditions: List[Condition], condition_type: str) -> None:
        previous = get_condition(self.machine_pool.conditions, condition_type)
        current = get_condition(conditions, condition_type)
        if previous is not None and previous.same_state(current):
            return

        resource_version = await self.db.set_condition(
            self.machine_pool.id,
            current,
            expected_version=self.machine_pool.resource_version,
        )
        self.machine_pool.conditions = conditions
        self.machine_pool.resource_version = resource_version
        logger.debug(
            f"Set condition {condition_type}={current.status.value} "
            f"on machine pool {self.machine_pool.name}"
        )
