"""
Persistence of discovered processes.
"""

from .model_store import (
    FollowsEdge,
    InMemoryModelStore,
    JsonFileModelStore,
    ModelStore,
    ProcessRecord,
    StepRecord,
    StoredProcess,
    StoreSession,
)

__all__ = [
    "FollowsEdge",
    "InMemoryModelStore",
    "JsonFileModelStore",
    "ModelStore",
    "ProcessRecord",
    "StepRecord",
    "StoredProcess",
    "StoreSession",
]
