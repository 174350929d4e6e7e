"""Sync configuration store - load/save of the single logical config record.

Filter and mapping columns may hold either native documents or JSON-encoded
strings (older dashboards saved strings). ``decode_maybe_json`` is applied here so
the rest of the code only sees native structures.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import async_session_factory
from ..mapping.key_fields import normalize_key_fields
from ..mapping.models import Direction, FieldMapping, SyncFilters, default_field_mapping
from ..models.sync_config import SyncConfigRecord
from ..sync.errors import ConfigurationError, InvalidFilters

logger = logging.getLogger(__name__)

# Accepted keys for partial saves -> column name
_SAVE_KEYS: dict[str, str] = {
    "sync_direction": "sync_direction",
    "is_sync_enabled": "is_sync_enabled",
    "field_mapping": "field_mapping",
    "source_filters": "source_filters",
    "target_filters": "target_filters",
    "intakeq_filters": "source_filters",
    "ghl_filters": "target_filters",
}


def decode_maybe_json(value: Any) -> Any:
    """Return ``value`` as a native structure, decoding JSON strings.

    Raises:
        ConfigurationError: ``value`` is a string that is not valid JSON.
    """
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return json.loads(text)
        except ValueError as e:
            raise ConfigurationError(f"Invalid JSON document: {e}") from e
    return value


@dataclass
class SyncConfig:
    id: str
    sync_direction: str = Direction.BIDIRECTIONAL.value
    is_sync_enabled: bool = False
    source_filters: SyncFilters = field(default_factory=SyncFilters)
    target_filters: SyncFilters = field(default_factory=SyncFilters)
    field_mapping: FieldMapping = field(default_factory=default_field_mapping)

    @property
    def direction(self) -> Direction:
        return Direction.parse(self.sync_direction)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "sync_direction": self.sync_direction,
            "direction": self.direction.value,
            "is_sync_enabled": self.is_sync_enabled,
            "source_filters": self.source_filters.to_dict(),
            "target_filters": self.target_filters.to_dict(),
            "field_mapping": self.field_mapping.to_dict(),
        }


def decode_field_mapping(value: Any) -> FieldMapping:
    data = decode_maybe_json(value)
    if data is None:
        return normalize_key_fields(default_field_mapping())
    try:
        mapping = FieldMapping.from_dict(data)
    except ValueError as e:
        raise ConfigurationError(f"Invalid field mapping: {e}") from e
    return normalize_key_fields(mapping)


def decode_filters(value: Any) -> SyncFilters:
    try:
        return SyncFilters.from_dict(decode_maybe_json(value))
    except ConfigurationError as e:
        raise InvalidFilters(f"Invalid filters: {e.message}") from e
    except ValueError as e:
        raise InvalidFilters(f"Invalid filters: {e}") from e


def config_from_record(record: SyncConfigRecord) -> SyncConfig:
    return SyncConfig(
        id=record.id,
        sync_direction=record.sync_direction or Direction.BIDIRECTIONAL.value,
        is_sync_enabled=bool(record.is_sync_enabled),
        source_filters=decode_filters(record.source_filters),
        target_filters=decode_filters(record.target_filters),
        field_mapping=decode_field_mapping(record.field_mapping),
    )


def _encode_for_column(column: str, value: Any) -> Any:
    if isinstance(value, (FieldMapping, SyncFilters)):
        return value.to_dict()
    if column == "field_mapping":
        return decode_field_mapping(value).to_dict()
    elif column in ("source_filters", "target_filters"):
        return decode_filters(value).to_dict()
    elif column == "is_sync_enabled":
        return bool(value)
    elif column == "sync_direction":
        return str(value)
    return value


async def load_config(db: AsyncSession, record_id: str | None = None) -> SyncConfig | None:
    record = await db.get(SyncConfigRecord, record_id or settings.config_record_id)
    if record is None:
        return None
    return config_from_record(record)


def encode_partial(partial: dict[str, Any]) -> dict[str, Any]:
    """Map a partial update onto column values, raising ConfigurationError if any is malformed."""
    updates: dict[str, Any] = {}
    for key, value in partial.items():
        column = _SAVE_KEYS.get(key)
        if column is None or value is None:
            continue
        updates[column] = _encode_for_column(column, value)
    return updates


async def save_config(
    db: AsyncSession,
    partial: dict[str, Any],
    record_id: str | None = None,
) -> SyncConfig:
    """Upsert the config record; every given column is replaced in one commit."""
    updates = encode_partial(partial)

    rid = record_id or settings.config_record_id
    record = await db.get(SyncConfigRecord, rid)
    if record is None:
        record = SyncConfigRecord(
            id=rid,
            sync_direction=Direction.BIDIRECTIONAL.value,
            is_sync_enabled=False,
            source_filters=SyncFilters().to_dict(),
            target_filters=SyncFilters().to_dict(),
            field_mapping=normalize_key_fields(default_field_mapping()).to_dict(),
        )
        db.add(record)

    for column, value in updates.items():
        setattr(record, column, value)

    await db.commit()
    await db.refresh(record)
    return config_from_record(record)


class ConfigStore:
    """Config store capability backed by a session factory."""

    def __init__(self, session_factory=None, record_id: str | None = None):
        self._session_factory = session_factory or async_session_factory
        self.record_id = record_id or settings.config_record_id

    async def load(self) -> SyncConfig | None:
        async with self._session_factory() as db:
            return await load_config(db, self.record_id)

    async def save(self, partial: dict[str, Any]) -> SyncConfig:
        async with self._session_factory() as db:
            return await save_config(db, partial, self.record_id)


class DebouncedConfigSaver:
    """Coalesce rapid config edits into one write after a quiescence window.

    Partial updates are merged (later keys win) so the write always carries the last
    value given for each key.
    """

    def __init__(self, store: ConfigStore, delay: float | None = None):
        self._store = store
        self._delay = settings.config_save_debounce_seconds if delay is None else delay
        self._pending: dict[str, Any] = {}
        self._deadline = 0.0
        self._task: asyncio.Task | None = None
        self._lock = asyncio.Lock()
        self.saves = 0

    @property
    def has_pending(self) -> bool:
        return bool(self._pending)

    def schedule(self, partial: dict[str, Any]) -> None:
        """Queue a partial update. Malformed values raise ConfigurationError here."""
        encode_partial(partial)
        loop = asyncio.get_running_loop()
        self._pending.update(partial)
        self._deadline = loop.time() + self._delay
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run(), name="config-debounced-save")

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        while self._pending:
            remaining = self._deadline - loop.time()
            if remaining > 0:
                await asyncio.sleep(remaining)
                continue
            try:
                await self.flush()
            except Exception:
                # Edits stay queued for the next schedule() or aclose().
                logger.exception("Error saving configuration")
                return

    async def flush(self) -> SyncConfig | None:
        """Write pending edits now."""
        async with self._lock:
            if not self._pending:
                return None
            pending, self._pending = self._pending, {}
            try:
                saved = await self._store.save(pending)
            except Exception:
                self._pending = {**pending, **self._pending}
                raise
            self.saves += 1
            return saved

    async def aclose(self) -> None:
        task = self._task
        if task is not None and not task.done():
            # A save in progress is awaited, never interrupted.
            if not self._lock.locked():
                task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._task = None
        await self.flush()
