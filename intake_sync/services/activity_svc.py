"""Activity service - append-only sync audit trail."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import async_session_factory
from ..models.activity import SyncActivityLog
from ..schemas.activity import ActivityLogCreate


async def append_activity(db: AsyncSession, entry: ActivityLogCreate) -> SyncActivityLog:
    activity = SyncActivityLog(
        type=entry.type,
        status=entry.status,
        detail=entry.detail,
        source=entry.source,
        destination=entry.destination,
        error=entry.error,
        changes=[c.model_dump() for c in entry.changes] if entry.changes else None,
    )
    db.add(activity)
    await db.commit()
    await db.refresh(activity)
    return activity


async def list_activities(
    db: AsyncSession,
    *,
    limit: int | None = None,
    status: str | None = None,
) -> list[SyncActivityLog]:
    stmt = select(SyncActivityLog)
    if status:
        stmt = stmt.where(SyncActivityLog.status == status)
    stmt = stmt.order_by(SyncActivityLog.timestamp.desc()).limit(
        limit or settings.activity_default_limit
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


class ActivityLogStore:
    """Activity log capability backed by a session factory."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or async_session_factory

    async def append(self, entry: ActivityLogCreate) -> SyncActivityLog:
        async with self._session_factory() as db:
            return await append_activity(db, entry)

    async def list(self, limit: int | None = None) -> list[SyncActivityLog]:
        async with self._session_factory() as db:
            return await list_activities(db, limit=limit)
