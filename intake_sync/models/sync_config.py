"""Sync configuration model - one row per logical config record."""

from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class SyncConfigRecord(TimestampMixin, Base):
    __tablename__ = "sync_config"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    sync_direction: Mapped[str] = mapped_column(String(50), default="bidirectional")
    # Filters and mapping may hold either a native document or a JSON-encoded string.
    source_filters: Mapped[Any] = mapped_column(JSON, default=None, nullable=True)
    target_filters: Mapped[Any] = mapped_column(JSON, default=None, nullable=True)
    field_mapping: Mapped[Any] = mapped_column(JSON, default=None, nullable=True)
    is_sync_enabled: Mapped[bool] = mapped_column(Boolean, default=False)

    def __repr__(self) -> str:
        return f"<SyncConfigRecord {self.id} {self.sync_direction}>"
