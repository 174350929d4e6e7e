"""Auto-sync scheduler - periodic runs while sync is enabled in the stored config."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from ..config import settings
from ..database import async_session_factory
from ..relay.client import HttpRelay
from ..services.activity_svc import ActivityLogStore
from ..services.config_svc import ConfigStore
from ..services.credentials_svc import CredentialsStore
from .notifier import Notifier
from .sync_engine import SyncEngine, SyncRun

logger = logging.getLogger(__name__)


class SyncScheduler:
    """Runs the sync engine every ``interval`` seconds when ``is_sync_enabled`` is set.

    All runs, scheduled or manual, go through ``run_once`` and never overlap.
    """

    def __init__(
        self,
        session_factory=None,
        interval: float | None = None,
        relay_factory: Callable[[], HttpRelay] | None = None,
    ) -> None:
        self._session_factory = session_factory or async_session_factory
        self._interval = settings.auto_sync_interval_seconds if interval is None else interval
        self._relay_factory = relay_factory or HttpRelay
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()
        self._lock = asyncio.Lock()
        self.last_run: SyncRun | None = None

    @property
    def running(self) -> bool:
        return self._lock.locked()

    def start(self) -> None:
        if self._task is not None or not settings.auto_sync_enabled:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run_loop(), name="auto-sync-scheduler")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stop_event.set()
        # A run in progress finishes; only future runs are prevented.
        if not self._lock.locked():
            self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        finally:
            self._task = None

    async def run_once(
        self,
        direction: str | None = None,
        notifier: Notifier | None = None,
        session_factory=None,
        relay_factory: Callable[[], HttpRelay] | None = None,
    ) -> SyncRun:
        factory = session_factory or self._session_factory
        async with self._lock:
            async with (relay_factory or self._relay_factory)() as relay:
                engine = SyncEngine(
                    ConfigStore(factory),
                    CredentialsStore(factory),
                    ActivityLogStore(factory),
                    relay,
                    notifier=notifier,
                )
                run = await engine.run(direction)
        self.last_run = run
        return run

    async def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                config = await ConfigStore(self._session_factory).load()
                if config is not None and config.is_sync_enabled:
                    await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Auto-sync loop failed")

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass


sync_scheduler = SyncScheduler()
