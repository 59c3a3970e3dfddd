"""
Error taxonomy for lifecycle hook reconciliation.

Every error raised by the scope, the remote gateway or the store derives
from LifecycleHookError so callers can make scheduling/backoff decisions
with a single except clause.
"""

from typing import Optional


class LifecycleHookError(Exception):
    """Base class for lifecycle hook reconciliation errors."""


class InvalidScopeError(LifecycleHookError):
    """The reconciliation target is malformed or ambiguous.

    Not retryable without operator intervention. No remote calls are made
    when this is raised.
    """


class RemoteQueryError(LifecycleHookError):
    """A describe/list/get call against the scaling group API failed."""


class RemoteMutationError(LifecycleHookError):
    """A create/update/delete call against the scaling group API failed."""

    def __init__(self, message: str, operation: Optional[str] = None):
        super().__init__(message)
        self.operation = operation


class ConflictError(LifecycleHookError):
    """Optimistic concurrency check failed while writing to the store."""
