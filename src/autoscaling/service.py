"""
Lifecycle Hook Service - lifecycle hook operations on one scaling group.

Translates between LifecycleHook values and WireHooks and maps wire API
failures onto RemoteQueryError (reads) and RemoteMutationError (writes).
"""

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from autoscaling.base import (
    DEFAULT_RESULT,
    HEARTBEAT_TIMEOUT,
    HOOK_NAME,
    LIFECYCLE_TRANSITION,
    NOTIFICATION_METADATA,
    NOTIFICATION_TARGET_ARN,
    ROLE_ARN,
    AutoScalingAPI,
    AutoScalingAPIError,
)
from errors import RemoteMutationError, RemoteQueryError
from hooks import (
    DEFAULT_HEARTBEAT_TIMEOUT,
    DefaultResult,
    LifecycleHook,
    LifecycleTransition,
    duration_to_seconds,
)

logger = logging.getLogger(__name__)


def hook_to_wire(hook: LifecycleHook) -> Dict[str, Any]:
    """Convert a LifecycleHook into its WireHook representation."""
    wire: Dict[str, Any] = {
        HOOK_NAME: hook.name,
        LIFECYCLE_TRANSITION: hook.lifecycle_transition.value,
    }

    # Optional parameters
    if hook.default_result is not None:
        wire[DEFAULT_RESULT] = hook.default_result.value
    if hook.heartbeat_timeout is not None:
        wire[HEARTBEAT_TIMEOUT] = duration_to_seconds(hook.heartbeat_timeout)
    if hook.notification_target_arn is not None:
        wire[NOTIFICATION_TARGET_ARN] = hook.notification_target_arn
    if hook.role_arn is not None:
        wire[ROLE_ARN] = hook.role_arn
    if hook.notification_metadata is not None:
        wire[NOTIFICATION_METADATA] = hook.notification_metadata

    return wire


def wire_to_hook(wire: Dict[str, Any]) -> LifecycleHook:
    """
    Convert a WireHook into a LifecycleHook.

    A missing default result or heartbeat timeout means the remote side
    applied its default, so the observed hook carries that default rather
    than an empty value.
    """
    heartbeat_timeout = wire.get(HEARTBEAT_TIMEOUT)
    default_result = wire.get(DEFAULT_RESULT)
    return LifecycleHook(
        name=wire[HOOK_NAME],
        lifecycle_transition=LifecycleTransition(wire[LIFECYCLE_TRANSITION]),
        default_result=(
            DefaultResult(default_result)
            if default_result
            else DefaultResult.CONTINUE
        ),
        heartbeat_timeout=(
            timedelta(seconds=int(heartbeat_timeout))
            if heartbeat_timeout is not None
            else DEFAULT_HEARTBEAT_TIMEOUT
        ),
        notification_target_arn=wire.get(NOTIFICATION_TARGET_ARN),
        role_arn=wire.get(ROLE_ARN),
        notification_metadata=wire.get(NOTIFICATION_METADATA),
    )


class LifecycleHookService:
    """Lifecycle hook gateway for scaling groups reached through an AutoScalingAPI."""

    def __init__(self, api: AutoScalingAPI):
        self.api = api

    def lifecycle_hook_needs_update(
        self, existing: LifecycleHook, expected: LifecycleHook
    ) -> bool:
        """
        Whether an existing hook differs from the expected one.

        The role is not compared since the remote side may normalize or
        omit it; the name is the join key. Unset default result and
        heartbeat timeout compare as the remote-side defaults.
        """
        return (
            existing.effective_default_result != expected.effective_default_result
            or existing.effective_heartbeat_timeout
            != expected.effective_heartbeat_timeout
            or existing.lifecycle_transition != expected.lifecycle_transition
            or existing.notification_target_arn != expected.notification_target_arn
            or existing.notification_metadata != expected.notification_metadata
        )

    async def get_lifecycle_hooks(self, asg_name: str) -> List[LifecycleHook]:
        """
        List all lifecycle hooks registered on a scaling group.

        Raises:
            RemoteQueryError: If the hooks could not be described.
        """
        try:
            hooks = await self.api.describe_lifecycle_hooks(asg_name)
        except AutoScalingAPIError as e:
            raise RemoteQueryError(
                f"failed to describe lifecycle hooks for AutoScalingGroup: "
                f"{asg_name!r}: {e}"
            ) from e

        try:
            return [wire_to_hook(hook) for hook in hooks]
        except (KeyError, ValueError, TypeError) as e:
            raise RemoteQueryError(
                f"unreadable lifecycle hook for AutoScalingGroup: {asg_name!r}: {e!r}"
            ) from e

    async def get_lifecycle_hook(
        self, asg_name: str, name: str
    ) -> Optional[LifecycleHook]:
        """
        Describe a single lifecycle hook by name.

        Returns:
            The hook, or None if the scaling group has no hook with that name.

        Raises:
            RemoteQueryError: If the hook could not be described.
        """
        try:
            hooks = await self.api.describe_lifecycle_hooks(asg_name, names=[name])
        except AutoScalingAPIError as e:
            raise RemoteQueryError(
                f"failed to describe lifecycle hook {name!r} for AutoScalingGroup: "
                f"{asg_name!r}: {e}"
            ) from e

        for hook in hooks:
            if hook.get(HOOK_NAME) != name:
                continue
            try:
                return wire_to_hook(hook)
            except (KeyError, ValueError, TypeError) as e:
                raise RemoteQueryError(
                    f"unreadable lifecycle hook {name!r} for AutoScalingGroup: "
                    f"{asg_name!r}: {e!r}"
                ) from e
        return None

    async def create_lifecycle_hook(self, asg_name: str, hook: LifecycleHook) -> None:
        """
        Create a lifecycle hook. The caller must know the name is not taken.

        Raises:
            RemoteMutationError: If the hook could not be created.
        """
        await self._put_lifecycle_hook(asg_name, hook, "create")

    async def update_lifecycle_hook(self, asg_name: str, hook: LifecycleHook) -> None:
        """
        Replace all mutable fields of an existing lifecycle hook.

        Raises:
            RemoteMutationError: If the hook could not be updated.
        """
        await self._put_lifecycle_hook(asg_name, hook, "update")

    async def delete_lifecycle_hook(self, asg_name: str, name: str) -> None:
        """
        Delete a lifecycle hook. A hook that is already gone counts as deleted.

        Raises:
            RemoteMutationError: If the hook could not be deleted.
        """
        try:
            await self.api.delete_lifecycle_hook(asg_name, name)
        except AutoScalingAPIError as e:
            if e.is_not_found:
                logger.info(
                    f"Lifecycle hook {name!r} already absent from "
                    f"AutoScalingGroup {asg_name!r}"
                )
                return
            raise RemoteMutationError(
                f"failed to delete lifecycle hook {name!r} for AutoScalingGroup: "
                f"{asg_name!r}: {e}",
                operation="delete",
            ) from e

    async def _put_lifecycle_hook(
        self, asg_name: str, hook: LifecycleHook, operation: str
    ) -> None:
        try:
            await self.api.put_lifecycle_hook(asg_name, hook_to_wire(hook))
        except AutoScalingAPIError as e:
            raise RemoteMutationError(
                f"failed to {operation} lifecycle hook {hook.name!r} for "
                f"AutoScalingGroup: {asg_name!r}: {e}",
                operation=operation,
            ) from e
