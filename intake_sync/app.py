"""FastAPI application for the IntakeQ / GoHighLevel sync service."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from .config import settings
from .sync.scheduler import sync_scheduler


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Auto-create tables for SQLite (local dev)
    if settings.is_sqlite:
        from .database import create_tables
        await create_tables()
    sync_scheduler.start()
    yield
    await sync_scheduler.stop()
    from .routers.settings import config_saver
    await config_saver.aclose()


app = FastAPI(title=settings.app_title, lifespan=lifespan)

# Import and register routers
from .routers import health, settings as settings_router, sync  # noqa: E402

app.include_router(sync.router)
app.include_router(settings_router.router)
app.include_router(health.router)
