"""
Lifecycle Hook Scope - desired state for one machine pool.

A scope binds a machine pool (which owns the status conditions) to exactly
one infrastructure pool variant, either an AWSMachinePool or an
AWSManagedMachinePool. The variant supplies the scaling group name and the
desired lifecycle hooks; it is inspected once, at construction.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from conditions import Condition
from errors import InvalidScopeError
from hooks import LifecycleHook
from validation import validate_lifecycle_hooks

logger = logging.getLogger(__name__)


@dataclass
class MachinePool:
    """The owning machine pool; status conditions are reported here."""

    id: int
    name: str
    namespace: str = "default"
    conditions: List[Condition] = field(default_factory=list)
    resource_version: int = 0


@dataclass
class AWSMachinePool:
    """Self-managed pool backed by an auto scaling group."""

    name: str
    lifecycle_hooks: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class AWSManagedMachinePool:
    """Managed node group pool backed by an auto scaling group."""

    name: str
    lifecycle_hooks: List[Dict[str, Any]] = field(default_factory=list)


InfrastructurePool = Union[AWSMachinePool, AWSManagedMachinePool]

INFRASTRUCTURE_POOL_KINDS = {
    "AWSMachinePool": AWSMachinePool,
    "AWSManagedMachinePool": AWSManagedMachinePool,
}


@dataclass
class LifecycleHookScopeParams:
    """Parameters for building a LifecycleHookScope."""

    client: Any = None
    machine_pool: Optional[MachinePool] = None
    aws_machine_pool: Optional[AWSMachinePool] = None
    aws_managed_machine_pool: Optional[AWSManagedMachinePool] = None
    logger: Optional[logging.LoggerAdapter] = None


class LifecycleHookScope:
    """Desired lifecycle hook state for a single scaling group."""

    def __init__(
        self,
        client: Any,
        machine_pool: MachinePool,
        pool: InfrastructurePool,
        lifecycle_hooks: List[LifecycleHook],
        logger: logging.LoggerAdapter,
    ):
        self.client = client
        self.machine_pool = machine_pool
        self.pool = pool
        self.lifecycle_hooks = lifecycle_hooks
        self.logger = logger

    @classmethod
    def from_params(cls, params: LifecycleHookScopeParams) -> "LifecycleHookScope":
        """
        Create a scope, validating the reconciliation target.

        Raises:
            InvalidScopeError: If the client or machine pool is missing, if
                not exactly one pool variant is given, or if the pool's hook
                list is invalid.
        """
        if params.client is None:
            raise InvalidScopeError(
                "client is required when creating a LifecycleHookScope"
            )
        if params.machine_pool is None:
            raise InvalidScopeError(
                "MachinePool is required when creating a LifecycleHookScope"
            )
        if params.aws_machine_pool is None and params.aws_managed_machine_pool is None:
            raise InvalidScopeError(
                "either AWSMachinePool or AWSManagedMachinePool is required "
                "when creating a LifecycleHookScope"
            )
        if (
            params.aws_machine_pool is not None
            and params.aws_managed_machine_pool is not None
        ):
            raise InvalidScopeError(
                "AWSMachinePool and AWSManagedMachinePool cannot be set "
                "at the same time"
            )

        pool: InfrastructurePool = (
            params.aws_machine_pool or params.aws_managed_machine_pool
        )

        valid, error = validate_lifecycle_hooks(pool.lifecycle_hooks)
        if not valid:
            raise InvalidScopeError(
                f"invalid lifecycle hooks on {type(pool).__name__} {pool.name!r}: "
                f"{error}"
            )
        try:
            lifecycle_hooks = [LifecycleHook.from_spec(h) for h in pool.lifecycle_hooks]
        except (KeyError, ValueError) as e:
            raise InvalidScopeError(
                f"invalid lifecycle hooks on {type(pool).__name__} {pool.name!r}: {e}"
            ) from e

        scope_logger = params.logger or logging.LoggerAdapter(
            logger,
            {"machine_pool": params.machine_pool.name, "asg": pool.name},
        )

        return cls(
            client=params.client,
            machine_pool=params.machine_pool,
            pool=pool,
            lifecycle_hooks=lifecycle_hooks,
            logger=scope_logger,
        )

    @property
    def asg_name(self) -> str:
        """Name of the auto scaling group the hooks are attached to."""
        return self.pool.name

    def desired_hook_names(self) -> set:
        return {hook.name for hook in self.lifecycle_hooks}
