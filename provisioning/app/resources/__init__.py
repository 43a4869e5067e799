"""Process-wide backend clients (Firestore, Firebase auth administration)."""

from .handle import BackendResources, Degraded, Ready, ResourceResult, ResourceState
from .inert import InertAuthAdmin, InertDatastore

__all__ = [
    "BackendResources",
    "Degraded",
    "InertAuthAdmin",
    "InertDatastore",
    "Ready",
    "ResourceResult",
    "ResourceState",
]
