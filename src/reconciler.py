"""
Lifecycle Hook Reconciler - convergence of lifecycle hooks for one pool.

Each call is a fresh, fully re-derived pass: the desired hooks come from the
scope, the existing hooks from the scaling group API. A pass stops at the
first failure; whatever was already applied stays applied and the next pass
picks up from the remote state it finds.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, List, Optional

from autoscaling.service import LifecycleHookService
from conditions import (
    LIFECYCLE_HOOK_CREATION_FAILED_REASON,
    LIFECYCLE_HOOK_DELETION_FAILED_REASON,
    LIFECYCLE_HOOK_DESCRIBE_FAILED_REASON,
    LIFECYCLE_HOOK_EXISTS_CONDITION,
    LIFECYCLE_HOOK_UPDATE_FAILED_REASON,
    ConditionReporter,
    ConditionSeverity,
)
from errors import (
    InvalidScopeError,
    LifecycleHookError,
    RemoteMutationError,
    RemoteQueryError,
)
from hooks import HookOutcome, LifecycleHook
from scope import AWSMachinePool, LifecycleHookScope, LifecycleHookScopeParams

logger = logging.getLogger(__name__)


@dataclass
class HookResult:
    """Outcome for a single hook within a pass."""

    name: str
    outcome: HookOutcome
    error: Optional[LifecycleHookError] = None


@dataclass
class ReconcileResult:
    """Result of one lifecycle hook reconciliation pass."""

    success: bool = False
    message: str = ""
    error: Optional[Exception] = None
    hooks: List[HookResult] = field(default_factory=list)
    duration_seconds: Optional[float] = None

    def count(self, outcome: HookOutcome) -> int:
        return sum(1 for h in self.hooks if h.outcome == outcome)

    @property
    def changed(self) -> bool:
        """True when the pass created, updated or deleted anything."""
        return any(
            h.outcome in (HookOutcome.CREATED, HookOutcome.UPDATED, HookOutcome.DELETED)
            for h in self.hooks
        )


class LifecycleHookReconciler:
    """
    Keeps the lifecycle hooks of a scaling group in line with a machine pool.

    The reconciler holds no state between passes. Status is written through
    the reporter handed to each pass, and the terminal error of a pass is
    returned on the result as well, so callers can both observe the status
    and decide on backoff.
    """

    def __init__(self, service: LifecycleHookService):
        self.service = service

    async def reconcile_machine_pool(
        self, db: Any, machine_pool_id: int
    ) -> ReconcileResult:
        """
        Load a machine pool from the store and run one pass for it.

        An invalid or ambiguous target ends the pass with an
        InvalidScopeError before any remote call is made.
        """
        machine_pool, infrastructure_pools = await db.get_pool_bundle(machine_pool_id)
        params = LifecycleHookScopeParams(client=db, machine_pool=machine_pool)
        for pool in infrastructure_pools:
            if isinstance(pool, AWSMachinePool):
                if params.aws_machine_pool is not None:
                    return self._invalid_scope(
                        f"machine pool {machine_pool_id} has more than one "
                        f"AWSMachinePool"
                    )
                params.aws_machine_pool = pool
            else:
                if params.aws_managed_machine_pool is not None:
                    return self._invalid_scope(
                        f"machine pool {machine_pool_id} has more than one "
                        f"AWSManagedMachinePool"
                    )
                params.aws_managed_machine_pool = pool

        try:
            scope = LifecycleHookScope.from_params(params)
        except InvalidScopeError as e:
            return self._invalid_scope(str(e), e)

        reporter = ConditionReporter(db, scope.machine_pool)
        return await self.reconcile_lifecycle_hooks(scope, reporter)

    async def reconcile_lifecycle_hooks(
        self, scope: LifecycleHookScope, reporter: ConditionReporter
    ) -> ReconcileResult:
        """
        Run one convergence pass.

        Phases: ensure every desired hook exists and matches, then delete
        hooks registered on the scaling group that are no longer desired.
        HookExists is only marked True once both phases finished cleanly.
        """
        start_time = time.monotonic()
        result = ReconcileResult()

        # Phase 1: ensure desired hooks
        for hook in scope.lifecycle_hooks:
            hook_result = await self._reconcile_lifecycle_hook(scope, reporter, hook)
            result.hooks.append(hook_result)
            if hook_result.outcome.failed:
                return self._finish(scope, result, start_time, hook_result.error)

        # Phase 2: prune hooks that are no longer desired
        scope.logger.debug(
            f"Checking for lifecycle hooks to delete on AutoScalingGroup "
            f"{scope.asg_name!r}"
        )
        try:
            existing_hooks = await self.service.get_lifecycle_hooks(scope.asg_name)
        except RemoteQueryError as e:
            await reporter.mark_unknown(
                LIFECYCLE_HOOK_EXISTS_CONDITION,
                LIFECYCLE_HOOK_DESCRIBE_FAILED_REASON,
                str(e),
            )
            return self._finish(scope, result, start_time, e)

        desired_names = scope.desired_hook_names()
        for existing in existing_hooks:
            if existing.name in desired_names:
                continue
            scope.logger.info(
                f"Deleting lifecycle hook {existing.name!r} from AutoScalingGroup "
                f"{scope.asg_name!r}"
            )
            try:
                await self.service.delete_lifecycle_hook(scope.asg_name, existing.name)
            except RemoteMutationError as e:
                await reporter.mark_false(
                    LIFECYCLE_HOOK_EXISTS_CONDITION,
                    LIFECYCLE_HOOK_DELETION_FAILED_REASON,
                    ConditionSeverity.ERROR,
                    str(e),
                )
                result.hooks.append(
                    HookResult(existing.name, HookOutcome.DELETE_FAILED, e)
                )
                return self._finish(scope, result, start_time, e)
            result.hooks.append(HookResult(existing.name, HookOutcome.DELETED))

        await reporter.mark_true(LIFECYCLE_HOOK_EXISTS_CONDITION)
        return self._finish(scope, result, start_time, None)

    async def _reconcile_lifecycle_hook(
        self,
        scope: LifecycleHookScope,
        reporter: ConditionReporter,
        hook: LifecycleHook,
    ) -> HookResult:
        """Ensure a single desired hook exists and matches."""
        scope.logger.debug(
            f"Checking for existing lifecycle hook {hook.name!r} on "
            f"AutoScalingGroup {scope.asg_name!r}"
        )
        try:
            existing = await self.service.get_lifecycle_hook(scope.asg_name, hook.name)
        except RemoteQueryError as e:
            await reporter.mark_unknown(
                LIFECYCLE_HOOK_EXISTS_CONDITION,
                LIFECYCLE_HOOK_DESCRIBE_FAILED_REASON,
                str(e),
            )
            return HookResult(hook.name, HookOutcome.DESCRIBE_FAILED, e)

        if existing is None:
            scope.logger.info(
                f"Creating lifecycle hook {hook.name!r} on AutoScalingGroup "
                f"{scope.asg_name!r}: {hook.to_spec()}"
            )
            try:
                await self.service.create_lifecycle_hook(scope.asg_name, hook)
            except RemoteMutationError as e:
                await reporter.mark_false(
                    LIFECYCLE_HOOK_EXISTS_CONDITION,
                    LIFECYCLE_HOOK_CREATION_FAILED_REASON,
                    ConditionSeverity.ERROR,
                    str(e),
                )
                return HookResult(hook.name, HookOutcome.CREATE_FAILED, e)
            return HookResult(hook.name, HookOutcome.CREATED)

        if not self.service.lifecycle_hook_needs_update(existing, hook):
            return HookResult(hook.name, HookOutcome.UNCHANGED)

        scope.logger.info(
            f"Updating lifecycle hook {hook.name!r} on AutoScalingGroup "
            f"{scope.asg_name!r}: {hook.to_spec()}"
        )
        try:
            await self.service.update_lifecycle_hook(scope.asg_name, hook)
        except RemoteMutationError as e:
            await reporter.mark_false(
                LIFECYCLE_HOOK_EXISTS_CONDITION,
                LIFECYCLE_HOOK_UPDATE_FAILED_REASON,
                ConditionSeverity.ERROR,
                str(e),
            )
            return HookResult(hook.name, HookOutcome.UPDATE_FAILED, e)
        return HookResult(hook.name, HookOutcome.UPDATED)

    def _finish(
        self,
        scope: LifecycleHookScope,
        result: ReconcileResult,
        start_time: float,
        error: Optional[LifecycleHookError],
    ) -> ReconcileResult:
        result.duration_seconds = time.monotonic() - start_time
        result.error = error
        result.success = error is None
        if error is None:
            result.message = (
                f"Lifecycle hooks reconciled: "
                f"{result.count(HookOutcome.CREATED)} created, "
                f"{result.count(HookOutcome.UPDATED)} updated, "
                f"{result.count(HookOutcome.DELETED)} deleted"
            )
            scope.logger.info(
                f"{result.message} (MachinePool {scope.machine_pool.name!r}, "
                f"AutoScalingGroup {scope.asg_name!r})"
            )
        else:
            result.message = str(error)
            scope.logger.error(
                f"Lifecycle hook reconciliation failed for MachinePool "
                f"{scope.machine_pool.name!r}: {error}"
            )
        return result

    def _invalid_scope(
        self, message: str, error: Optional[InvalidScopeError] = None
    ) -> ReconcileResult:
        error = error or InvalidScopeError(message)
        logger.error(f"Cannot reconcile lifecycle hooks: {message}")
        return ReconcileResult(success=False, message=message, error=error)
