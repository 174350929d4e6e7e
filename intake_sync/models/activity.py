"""Sync activity log model - append-only audit trail of sync outcomes."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, utcnow


class SyncActivityLog(UUIDMixin, Base):
    __tablename__ = "sync_activity_log"

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, index=True
    )
    type: Mapped[str] = mapped_column(String(100))  # Contact Sync, Contact Update, ...
    status: Mapped[str] = mapped_column(String(20), index=True)  # success/error/pending
    detail: Mapped[str] = mapped_column(Text)
    source: Mapped[str] = mapped_column(String(50))
    destination: Mapped[str] = mapped_column(String(50))
    error: Mapped[str | None] = mapped_column(Text, default=None)
    changes: Mapped[list | None] = mapped_column(JSON, default=None)

    def __repr__(self) -> str:
        return f"<SyncActivityLog [{self.status}] {self.type}>"
