"""
Schema Validation - lifecycle hook declaration validation.

Validates the lifecycleHooks list authored on a machine pool before it is
turned into LifecycleHook values.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from jsonschema import Draft7Validator, ValidationError

from hooks import (
    MAX_HEARTBEAT_TIMEOUT,
    MAX_NOTIFICATION_METADATA_LENGTH,
    MIN_HEARTBEAT_TIMEOUT,
    DefaultResult,
    LifecycleTransition,
    parse_duration,
)

logger = logging.getLogger(__name__)

LIFECYCLE_HOOK_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["name", "lifecycleTransition"],
    "additionalProperties": False,
    "properties": {
        "name": {
            "type": "string",
            "minLength": 1,
            "maxLength": 255,
            "pattern": r"^[A-Za-z0-9\-_/]+$",
        },
        "lifecycleTransition": {
            "type": "string",
            "enum": [t.value for t in LifecycleTransition],
        },
        "defaultResult": {
            "type": "string",
            "enum": [r.value for r in DefaultResult],
        },
        "heartbeatTimeout": {"type": ["integer", "string"]},
        "notificationTargetARN": {"type": "string", "minLength": 1},
        "roleARN": {"type": "string", "minLength": 1},
        "notificationMetadata": {
            "type": "string",
            "maxLength": MAX_NOTIFICATION_METADATA_LENGTH,
        },
    },
    "dependencies": {"notificationTargetARN": ["roleARN"]},
}

LIFECYCLE_HOOKS_SCHEMA: Dict[str, Any] = {
    "type": "array",
    "items": LIFECYCLE_HOOK_SCHEMA,
}


def validate_lifecycle_hooks(
    lifecycle_hooks: List[Dict[str, Any]],
) -> Tuple[bool, Optional[str]]:
    """
    Validate a machine pool's lifecycleHooks list.

    Checks the JSON schema, then the constraints a schema cannot express:
    heartbeat timeout bounds (whole seconds only) and unique names.

    Args:
        lifecycle_hooks: The raw hook list from the machine pool spec

    Returns:
        Tuple of (is_valid, error_message)
    """
    try:
        validator = Draft7Validator(LIFECYCLE_HOOKS_SCHEMA)
        errors = list(validator.iter_errors(lifecycle_hooks))

        if errors:
            error_messages = []
            for error in errors:
                path = ".".join(str(p) for p in error.absolute_path) or "(root)"
                error_messages.append(f"{path}: {error.message}")
            return False, "; ".join(error_messages)

    except ValidationError as e:
        return False, f"Validation error: {str(e)}"

    seen = set()
    for index, hook in enumerate(lifecycle_hooks):
        name = hook["name"]
        if name in seen:
            return False, f"{index}.name: duplicate lifecycle hook name '{name}'"
        seen.add(name)

        if "heartbeatTimeout" not in hook:
            continue
        try:
            timeout = parse_duration(hook["heartbeatTimeout"])
        except ValueError as e:
            return False, f"{index}.heartbeatTimeout: {e}"
        if not MIN_HEARTBEAT_TIMEOUT <= timeout <= MAX_HEARTBEAT_TIMEOUT:
            return False, (
                f"{index}.heartbeatTimeout: must be between "
                f"{int(MIN_HEARTBEAT_TIMEOUT.total_seconds())}s and "
                f"{int(MAX_HEARTBEAT_TIMEOUT.total_seconds())}s"
            )

    return True, None
