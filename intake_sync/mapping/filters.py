"""Record filtering against per-system inclusion lists."""

from __future__ import annotations

from typing import Any

from .field_mapper import ContactShape
from .models import SyncFilters

ID_ATTRIBUTES = ("id", "Id", "ClientId", "clientId", "contactId")
TAG_ATTRIBUTES = ("tags", "Tags")
STATUS_ATTRIBUTES = ("status", "Status")
FORM_ID_ATTRIBUTES = ("formId", "FormId", "id", "Id")


def _values(record: dict[str, Any], attributes: tuple[str, ...]) -> set[str]:
    found: set[str] = set()
    for attr in attributes:
        value = record.get(attr)
        if value is None or value == "":
            continue
        if isinstance(value, list):
            found.update(str(v) for v in value if v is not None)
        else:
            found.add(str(value))
    return found


def matches_id_filter(record: dict[str, Any], ids: list[str], shape: ContactShape) -> bool:
    """True when the record's id or email is in ``ids``; email compares case-insensitively."""
    if not ids:
        return True
    record_ids = _values(record, ID_ATTRIBUTES)
    email = record.get(shape.email)
    email_key = email.strip().lower() if isinstance(email, str) else None
    for wanted in ids:
        if wanted in record_ids:
            return True
        if email_key and wanted.strip().lower() == email_key:
            return True
    return False


def matches_filters(
    record: dict[str, Any],
    filters: SyncFilters,
    shape: ContactShape,
    category: str = "contact",
) -> bool:
    """Apply every configured inclusion list; an empty list never excludes."""
    if not matches_id_filter(record, filters.ids, shape):
        return False
    if filters.tags:
        tags = {t.lower() for t in _values(record, TAG_ATTRIBUTES)}
        if not tags.intersection(t.lower() for t in filters.tags):
            return False
    if filters.status:
        status = {s.lower() for s in _values(record, STATUS_ATTRIBUTES)}
        if not status.intersection(s.lower() for s in filters.status):
            return False
    if filters.form_ids and category == "form":
        if not _values(record, FORM_ID_ATTRIBUTES).intersection(filters.form_ids):
            return False
    return True


def apply_filters(
    records: list[dict[str, Any]],
    filters: SyncFilters,
    shape: ContactShape,
    category: str = "contact",
) -> list[dict[str, Any]]:
    if filters.is_empty:
        return list(records)
    return [r for r in records if matches_filters(r, filters, shape, category)]
