"""
Scaling group integration.

This package provides the wire API client for lifecycle hooks and the
service that translates between wire and domain representations.
"""

from autoscaling.base import AutoScalingAPI, AutoScalingAPIError
from autoscaling.client import HTTPAutoScalingAPI
from autoscaling.service import LifecycleHookService, hook_to_wire, wire_to_hook

__all__ = [
    "AutoScalingAPI",
    "AutoScalingAPIError",
    "HTTPAutoScalingAPI",
    "LifecycleHookService",
    "hook_to_wire",
    "wire_to_hook",
]
