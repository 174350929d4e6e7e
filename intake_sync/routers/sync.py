"""Sync routes - manual runs and the activity log."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db, get_session_factory
from ..relay.client import HttpRelay
from ..schemas.activity import ActivityLogRead, ActivityStatus
from ..schemas.sync import FieldChangeOut, NotificationOut, RecordOutcomeOut, SyncRunOut
from ..services import activity_svc
from ..sync.notifier import Notifier
from ..sync.scheduler import sync_scheduler
from ..sync.sync_engine import SyncRun

router = APIRouter(prefix="/sync", tags=["sync"])


def get_relay_factory():
    """FastAPI dependency returning a callable that opens a relay."""
    return HttpRelay


def run_to_schema(run: SyncRun, notifier: Notifier) -> SyncRunOut:
    return SyncRunOut(
        direction=run.direction.value,
        state=run.state,
        has_errors=run.has_errors,
        key_fields=run.key_fields,
        skipped_categories=run.skipped_categories,
        created=run.count("created"),
        updated=run.count("updated"),
        skipped=run.count("skipped"),
        failed=run.count("failed"),
        outcomes=[
            RecordOutcomeOut(
                category=o.category,
                leg=o.leg.value,
                key_value=o.key_value,
                action=o.action,
                error=o.error,
                changes=[FieldChangeOut(**c.model_dump()) for c in o.changes],
            )
            for o in run.outcomes
        ],
        notifications=[
            NotificationOut(level=n.level, message=n.message) for n in notifier.notifications
        ],
    )


@router.post("/run", response_model=SyncRunOut)
async def run_sync(
    direction: str | None = Query(None),
    session_factory=Depends(get_session_factory),
    relay_factory=Depends(get_relay_factory),
):
    notifier = Notifier()
    run = await sync_scheduler.run_once(
        direction,
        notifier=notifier,
        session_factory=session_factory,
        relay_factory=relay_factory,
    )
    return run_to_schema(run, notifier)


@router.get("/activity", response_model=list[ActivityLogRead])
async def list_activity(
    limit: int | None = Query(None, ge=1, le=1000),
    status: ActivityStatus | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    return await activity_svc.list_activities(db, limit=limit, status=status)
