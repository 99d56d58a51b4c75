"""
Process lifecycle for the API service: state machine, owned resources,
and the FastAPI lifespan hook.
"""

from .base import LifecycleState, ManagedResource, ResourceState
from .manager import lifespan


__all__ = [
    "lifespan",
    "LifecycleState",
    "ManagedResource",
    "ResourceState",
]
