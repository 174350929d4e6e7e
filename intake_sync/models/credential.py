"""API credential model - keyed by tenant and upstream system."""

from __future__ import annotations

from sqlalchemy import String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, TimestampMixin


class ApiCredential(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "api_credential"
    __table_args__ = (UniqueConstraint("tenant", "system"),)

    tenant: Mapped[str] = mapped_column(String(100), index=True)
    system: Mapped[str] = mapped_column(String(50))  # intakeq / ghl
    api_key: Mapped[str] = mapped_column(Text)
    location_id: Mapped[str | None] = mapped_column(String(100), default=None)

    def __repr__(self) -> str:
        return f"<ApiCredential {self.tenant}:{self.system}>"
