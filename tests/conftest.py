"""Pytest configuration and fixtures."""

import itertools
from typing import Any, Dict, List, Optional, Tuple
from unittest.mock import AsyncMock

import pytest

from autoscaling.base import HOOK_NAME, AutoScalingAPI, AutoScalingAPIError
from autoscaling.service import LifecycleHookService
from conditions import ConditionReporter
from reconciler import LifecycleHookReconciler
from scope import (
    AWSMachinePool,
    LifecycleHookScope,
    LifecycleHookScopeParams,
    MachinePool,
)

LAUNCHING = "autoscaling:EC2_INSTANCE_LAUNCHING"
TERMINATING = "autoscaling:EC2_INSTANCE_TERMINATING"


class FakeAutoScalingAPI(AutoScalingAPI):
    """In-memory scaling group API that records every call."""

    def __init__(self):
        self.groups: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.calls: List[Tuple[str, ...]] = []
        # (operation, hook name or None) -> error to raise
        self.failures: Dict[Tuple[str, Optional[str]], AutoScalingAPIError] = {}

    def add_hook(self, asg_name: str, hook: Dict[str, Any]) -> None:
        self.groups.setdefault(asg_name, {})[hook[HOOK_NAME]] = dict(hook)

    def hook_names(self, asg_name: str) -> set:
        return set(self.groups.get(asg_name, {}))

    def fail(self, operation: str, name: Optional[str] = None, **kwargs) -> None:
        self.failures[(operation, name)] = AutoScalingAPIError(
            kwargs.pop("message", f"{operation} failed"), **kwargs
        )

    def mutations(self) -> List[Tuple[str, ...]]:
        return [c for c in self.calls if c[0] in ("put", "delete")]

    def _check(self, operation: str, name: Optional[str]) -> None:
        error = self.failures.get((operation, name)) or self.failures.get(
            (operation, None)
        )
        if error is not None:
            raise error

    async def describe_lifecycle_hooks(self, asg_name, names=None):
        self.calls.append(("describe", asg_name, tuple(names or ())))
        self._check("describe", names[0] if names else None)
        hooks = self.groups.get(asg_name, {})
        if names:
            return [dict(hooks[n]) for n in names if n in hooks]
        return [dict(h) for h in hooks.values()]

    async def put_lifecycle_hook(self, asg_name, hook):
        self.calls.append(("put", asg_name, hook[HOOK_NAME]))
        self._check("put", hook[HOOK_NAME])
        self.add_hook(asg_name, hook)

    async def delete_lifecycle_hook(self, asg_name, name):
        self.calls.append(("delete", asg_name, name))
        self._check("delete", name)
        hooks = self.groups.get(asg_name, {})
        if name not in hooks:
            raise AutoScalingAPIError("hook not found", status=404)
        del hooks[name]


@pytest.fixture
def fake_api():
    """Create an empty in-memory scaling group API."""
    return FakeAutoScalingAPI()


@pytest.fixture
def service(fake_api):
    """Create a lifecycle hook service backed by the fake API."""
    return LifecycleHookService(fake_api)


@pytest.fixture
def reconciler(service):
    """Create a reconciler backed by the fake API."""
    return LifecycleHookReconciler(service)


@pytest.fixture
def mock_db():
    """Create a mock store whose condition writes bump the resource version."""
    db = AsyncMock()
    versions = itertools.count(2)
    db.set_condition = AsyncMock(side_effect=lambda *a, **kw: next(versions))
    return db


@pytest.fixture
def machine_pool():
    """Sample machine pool with no conditions."""
    return MachinePool(id=1, name="workers", namespace="default", resource_version=1)


@pytest.fixture
def make_scope(mock_db, machine_pool):
    """Build a scope for the 'workers-asg' AWSMachinePool with the given hooks."""

    def _make_scope(lifecycle_hooks):
        return LifecycleHookScope.from_params(
            LifecycleHookScopeParams(
                client=mock_db,
                machine_pool=machine_pool,
                aws_machine_pool=AWSMachinePool(
                    name="workers-asg", lifecycle_hooks=lifecycle_hooks
                ),
            )
        )

    return _make_scope


@pytest.fixture
def reporter(mock_db, machine_pool):
    """Condition reporter for the sample machine pool."""
    return ConditionReporter(mock_db, machine_pool)


@pytest.fixture
def sample_wire_hook():
    """Sample WireHook as returned by the scaling group API."""
    return {
        "LifecycleHookName": "drain",
        "LifecycleTransition": TERMINATING,
        "DefaultResult": "CONTINUE",
        "HeartbeatTimeout": 300,
        "NotificationTargetARN": "arn:aws:sqs:eu-west-1:123456789012:drain",
        "RoleARN": "arn:aws:iam::123456789012:role/hooks",
        "NotificationMetadata": '{"pool": "workers"}',
    }
