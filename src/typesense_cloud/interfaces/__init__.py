"""Interface definitions for resource controllers and tracked state."""

from typesense_cloud.interfaces.resource_controller import ResourceController
from typesense_cloud.interfaces.state_store import StateStore

__all__ = [
    "ResourceController",
    "StateStore",
]
