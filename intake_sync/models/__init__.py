"""Sync models - re-exports all models and Base.metadata."""

from .base import Base, UUIDMixin, TimestampMixin
from .sync_config import SyncConfigRecord
from .credential import ApiCredential
from .activity import SyncActivityLog

__all__ = [
    "Base",
    "UUIDMixin",
    "TimestampMixin",
    "SyncConfigRecord",
    "ApiCredential",
    "SyncActivityLog",
]
