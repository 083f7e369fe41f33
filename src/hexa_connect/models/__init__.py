"""
Models package - Data models for Hexa Connect.

Contains:
- IdentityEvent, SessionState, LifecycleState: session model
- StorageProvider: persistence interface, with JSON file and memory backends
"""

from .session import IdentityEvent, SessionState, LifecycleState
from .store import (
    StorageProvider,
    JsonFileStorage,
    MemoryStorage,
    SECRET_KEY,
    PRIVATE_KEY_KEY,
)

__all__ = [
    "IdentityEvent",
    "SessionState",
    "LifecycleState",
    "StorageProvider",
    "JsonFileStorage",
    "MemoryStorage",
    "SECRET_KEY",
    "PRIVATE_KEY_KEY",
]
