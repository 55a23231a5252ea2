"""Session persistence for workflow state.

This module provides:
- SessionStore: failure-tolerant access to the six workflow fields
- Storage media: in-memory and SQLAlchemy-backed key/value backends
"""

from protoflow.storage.media import InMemoryMedium, StorageMedium
from protoflow.storage.store import SessionStore, StoreField

__all__ = [
    "SessionStore",
    "StoreField",
    "StorageMedium",
    "InMemoryMedium",
]
