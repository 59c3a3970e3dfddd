"""
Lifecycle hook domain model.

A lifecycle hook pauses an instance's launch or termination until an
external actor (or the heartbeat timeout) releases it. Hooks are keyed by
name within a scaling group; two hooks with the same name are the same
logical hook in different states.
"""

import re
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any, Dict, Optional, Union


class LifecycleTransition(Enum):
    """Instance state transition a hook is attached to."""

    INSTANCE_LAUNCHING = "autoscaling:EC2_INSTANCE_LAUNCHING"
    INSTANCE_TERMINATING = "autoscaling:EC2_INSTANCE_TERMINATING"


class DefaultResult(Enum):
    """Action taken when the heartbeat timeout elapses."""

    CONTINUE = "CONTINUE"
    ABANDON = "ABANDON"


# Remote-side defaults applied when the API omits a field on read.
DEFAULT_RESULT = DefaultResult.CONTINUE
DEFAULT_HEARTBEAT_TIMEOUT = timedelta(seconds=3600)

MIN_HEARTBEAT_TIMEOUT = timedelta(seconds=30)
MAX_HEARTBEAT_TIMEOUT = timedelta(hours=48)
MAX_NOTIFICATION_METADATA_LENGTH = 1023

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|us|µs|ns|h|m|s)")
_UNIT_SECONDS = {
    "h": 3600.0,
    "m": 60.0,
    "s": 1.0,
    "ms": 1e-3,
    "us": 1e-6,
    "µs": 1e-6,
    "ns": 1e-9,
}


class HookOutcome(Enum):
    """Per-hook outcome of a convergence pass."""

    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    DELETED = "deleted"
    CREATE_FAILED = "create-failed"
    UPDATE_FAILED = "update-failed"
    DELETE_FAILED = "delete-failed"
    DESCRIBE_FAILED = "describe-failed"

    @property
    def failed(self) -> bool:
        return self.value.endswith("-failed")


@dataclass(frozen=True)
class LifecycleHook:
    """A desired or observed lifecycle hook."""

    name: str
    lifecycle_transition: LifecycleTransition
    default_result: Optional[DefaultResult] = None
    heartbeat_timeout: Optional[timedelta] = None
    notification_target_arn: Optional[str] = None
    role_arn: Optional[str] = None
    notification_metadata: Optional[str] = None

    @classmethod
    def from_spec(cls, spec: Dict[str, Any]) -> "LifecycleHook":
        """
        Build a hook from its control-object representation.

        Keys are camelCase as authored on the machine pool, e.g.
        ``{"name": "drain", "heartbeatTimeout": "5m",
        "lifecycleTransition": "autoscaling:EC2_INSTANCE_TERMINATING"}``.

        Raises:
            ValueError: If an enum value or duration cannot be parsed.
        """
        default_result = spec.get("defaultResult")
        heartbeat_timeout = spec.get("heartbeatTimeout")
        return cls(
            name=spec["name"],
            lifecycle_transition=LifecycleTransition(spec["lifecycleTransition"]),
            default_result=(
                DefaultResult(default_result) if default_result is not None else None
            ),
            heartbeat_timeout=(
                parse_duration(heartbeat_timeout)
                if heartbeat_timeout is not None
                else None
            ),
            notification_target_arn=spec.get("notificationTargetARN"),
            role_arn=spec.get("roleARN"),
            notification_metadata=spec.get("notificationMetadata"),
        )

    def to_spec(self) -> Dict[str, Any]:
        """Render the hook in its control-object representation."""
        spec: Dict[str, Any] = {
            "name": self.name,
            "lifecycleTransition": self.lifecycle_transition.value,
        }
        if self.default_result is not None:
            spec["defaultResult"] = self.default_result.value
        if self.heartbeat_timeout is not None:
            spec["heartbeatTimeout"] = format_duration(self.heartbeat_timeout)
        if self.notification_target_arn is not None:
            spec["notificationTargetARN"] = self.notification_target_arn
        if self.role_arn is not None:
            spec["roleARN"] = self.role_arn
        if self.notification_metadata is not None:
            spec["notificationMetadata"] = self.notification_metadata
        return spec

    @property
    def effective_default_result(self) -> DefaultResult:
        return self.default_result or DEFAULT_RESULT

    @property
    def effective_heartbeat_timeout(self) -> timedelta:
        if self.heartbeat_timeout is None:
            return DEFAULT_HEARTBEAT_TIMEOUT
        return self.heartbeat_timeout


def parse_duration(value: Union[int, str, timedelta]) -> timedelta:
    """
    Parse a heartbeat timeout into a whole-second timedelta.

    Accepts an integer number of seconds, a numeric string, or a Go-style
    duration string such as ``"300s"``, ``"5m"`` or ``"1h30m0s"``.

    Raises:
        ValueError: If the value is malformed, negative or has sub-second
            precision.
    """
    if isinstance(value, timedelta):
        duration = value
    elif isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    elif isinstance(value, int):
        duration = timedelta(seconds=value)
    elif isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            duration = timedelta(seconds=int(text))
        else:
            duration = _parse_duration_string(text)
    else:
        raise ValueError(f"Invalid duration: {value!r}")

    if duration < timedelta(0):
        raise ValueError(f"Duration must not be negative: {value!r}")
    if duration.microseconds:
        raise ValueError(f"Sub-second durations are not supported: {value!r}")
    return duration


def _parse_duration_string(text: str) -> timedelta:
    if not text:
        raise ValueError("Invalid duration: empty string")
    position = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            break
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        position = match.end()
    if position != len(text):
        raise ValueError(f"Invalid duration: {text!r}")
    # Round to microseconds so "1.5s" stays 1.5s and is rejected upstream.
    return timedelta(microseconds=round(total * 1_000_000))


def format_duration(duration: timedelta) -> str:
    """Render a duration the way the control object stores it (e.g. "1h30m0s")."""
    seconds = duration_to_seconds(duration)
    hours, remainder = divmod(seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    if hours:
        return f"{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{minutes}m{seconds}s"
    return f"{seconds}s"


def duration_to_seconds(duration: timedelta) -> int:
    """Whole seconds of a duration, truncating any fractional part."""
    return int(duration.total_seconds())
