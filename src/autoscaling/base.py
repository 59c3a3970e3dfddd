"""
Auto Scaling API Base - Abstract interface for the scaling group wire API.

The wire API works on plain dicts (WireHooks) keyed the way the remote
service names them. Translation to LifecycleHook values happens in the
LifecycleHookService, never here.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

# WireHook keys
HOOK_NAME = "LifecycleHookName"
LIFECYCLE_TRANSITION = "LifecycleTransition"
DEFAULT_RESULT = "DefaultResult"
HEARTBEAT_TIMEOUT = "HeartbeatTimeout"
NOTIFICATION_TARGET_ARN = "NotificationTargetARN"
ROLE_ARN = "RoleARN"
NOTIFICATION_METADATA = "NotificationMetadata"

NOT_FOUND_CODE = "ResourceNotFound"


class AutoScalingAPIError(Exception):
    """Error returned by the scaling group API or its transport."""

    def __init__(self, message: str, status: Optional[int] = None, code: str = ""):
        super().__init__(message)
        self.status = status
        self.code = code

    @property
    def is_not_found(self) -> bool:
        return self.status == 404 or self.code == NOT_FOUND_CODE


class AutoScalingAPI(ABC):
    """
    Abstract client for the lifecycle hook operations of a scaling group API.

    Implementations raise AutoScalingAPIError for every failure, including
    transport errors and timeouts.
    """

    @abstractmethod
    async def describe_lifecycle_hooks(
        self, asg_name: str, names: Optional[List[str]] = None
    ) -> List[Dict[str, Any]]:
        """
        Describe lifecycle hooks registered on a scaling group.

        Args:
            asg_name: The auto scaling group name
            names: Restrict the answer to these hook names (all when None)

        Returns:
            List of WireHook dicts; empty when no hook matches.
        """
        pass

    @abstractmethod
    async def put_lifecycle_hook(self, asg_name: str, hook: Dict[str, Any]) -> None:
        """
        Create or replace a lifecycle hook.

        Args:
            asg_name: The auto scaling group name
            hook: The WireHook to store
        """
        pass

    @abstractmethod
    async def delete_lifecycle_hook(self, asg_name: str, name: str) -> None:
        """
        Delete a lifecycle hook.

        Raises:
            AutoScalingAPIError: With is_not_found set when the hook is absent.
        """
        pass

    async def close(self) -> None:
        """Release any held connections."""
        return None
