"""Sync API schemas."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class FieldChangeOut(BaseModel):
    field: str
    old_value: Any = None
    new_value: Any = None


class RecordOutcomeOut(BaseModel):
    category: str
    leg: str
    key_value: str | None = None
    action: str
    error: str | None = None
    changes: list[FieldChangeOut] = []


class NotificationOut(BaseModel):
    level: str
    message: str


class SyncRunOut(BaseModel):
    direction: str
    state: str
    has_errors: bool = False
    key_fields: dict[str, str] = {}
    skipped_categories: dict[str, str] = {}
    created: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    outcomes: list[RecordOutcomeOut] = []
    notifications: list[NotificationOut] = []


class SyncConfigOut(BaseModel):
    id: str
    sync_direction: str
    direction: str
    is_sync_enabled: bool
    source_filters: dict[str, list[str]]
    target_filters: dict[str, list[str]]
    field_mapping: dict[str, Any]


class SyncConfigUpdate(BaseModel):
    """Partial config update; filter and mapping fields accept objects or JSON strings."""

    sync_direction: str | None = None
    is_sync_enabled: bool | None = None
    source_filters: dict[str, Any] | str | None = None
    target_filters: dict[str, Any] | str | None = None
    intakeq_filters: dict[str, Any] | str | None = None
    ghl_filters: dict[str, Any] | str | None = None
    field_mapping: dict[str, Any] | str | None = None


class KeyFieldUpdate(BaseModel):
    category: str
    field: str | None = None  # None clears the key


class CredentialsUpdate(BaseModel):
    ghl_api_key: str | None = None
    ghl_location_id: str | None = None
    intakeq_api_key: str | None = None


class CredentialsStatus(BaseModel):
    ghl_configured: bool
    intakeq_configured: bool
    ghl_location_id: str | None = None


class ConnectionTestOut(BaseModel):
    system: str
    success: bool
    message: str
    endpoint: str | None = None


class ConnectionTestRequest(BaseModel):
    """Stored keys are used for any field left empty."""

    system: str  # ghl / intakeq
    api_key: str | None = None
    location_id: str | None = None
