"""Liveness and readiness of the sync service."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db
from ..models.sync_config import SyncConfigRecord
from ..services.credentials_svc import get_credentials
from ..sync.scheduler import sync_scheduler

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    await db.execute(text("SELECT 1"))
    return {"status": "healthy", "service": "intake-sync"}


@router.get("/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)):
    """Ready once a config record exists and both API keys are stored."""
    has_config = await db.get(SyncConfigRecord, settings.config_record_id) is not None
    missing = (await get_credentials(db)).missing()
    return {
        "status": "ready" if has_config and not missing else "unconfigured",
        "service": "intake-sync",
        "config": has_config,
        "missing_credentials": missing,
        "sync_running": sync_scheduler.running,
    }
