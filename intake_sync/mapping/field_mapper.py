"""Apply a category field mapping to one record for one sync leg.

Source side is IntakeQ, target side is GoHighLevel. On a source->target leg each
field reads ``source_field`` and writes ``target_field``; on a target->source leg
the roles swap.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .models import CategoryMapping, Direction, FieldSpec

SOURCE = "source"
TARGET = "target"

_MISSING = object()


@dataclass(frozen=True)
class ContactShape:
    """Attribute names of the base contact fields on one system."""

    system: str
    email: str
    first_name: str
    last_name: str
    phone: str
    full_name: str | None = None


INTAKEQ_CONTACT = ContactShape(
    system="IntakeQ",
    email="Email",
    first_name="FirstName",
    last_name="LastName",
    phone="Phone",
    full_name="Name",
)

GHL_CONTACT = ContactShape(
    system="GoHighLevel",
    email="email",
    first_name="firstName",
    last_name="lastName",
    phone="phone",
)

SHAPES: dict[str, ContactShape] = {
    SOURCE: INTAKEQ_CONTACT,
    TARGET: GHL_CONTACT,
}


def read_side(direction: Direction) -> str:
    """Side whose records are read on a leg."""
    return TARGET if direction is Direction.TARGET_TO_SOURCE else SOURCE


def write_side(direction: Direction) -> str:
    return SOURCE if read_side(direction) == TARGET else TARGET


def _side_field(spec: FieldSpec, side: str) -> str | None:
    return spec.source_field if side == SOURCE else spec.target_field


def read_value(record: dict[str, Any], path: str, default: Any = None) -> Any:
    """Read ``path`` from ``record``; ``parent.child`` reads one nested level."""
    value = _read(record, path)
    return default if value is _MISSING else value


def _read(record: dict[str, Any], path: str) -> Any:
    if "." in path:
        parent, child = path.split(".", 1)
        nested = record.get(parent)
        if isinstance(nested, dict) and child in nested:
            return nested[child]
        return _MISSING
    if path in record:
        return record[path]
    return _MISSING


def write_value(record: dict[str, Any], path: str, value: Any, replace: bool = True) -> None:
    """Write ``path`` into ``record`` the way read_value reads it.

    With ``replace=False`` an existing value at ``path`` is kept.
    """
    if not replace and _read(record, path) is not _MISSING:
        return
    if "." in path:
        parent, child = path.split(".", 1)
        nested = record.get(parent)
        if not isinstance(nested, dict):
            nested = record[parent] = {}
        nested[child] = value
    else:
        record[path] = value


def key_attribute(field_name: str, spec: FieldSpec | None, side: str) -> str:
    """Record attribute holding the key value for ``field_name`` on ``side``."""
    if spec is not None:
        explicit = _side_field(spec, side)
        if explicit:
            return explicit
    if field_name == "email":
        return SHAPES[side].email
    return field_name


def apply_mapping(
    category: str,
    mapping: CategoryMapping,
    direction: Direction,
    record: dict[str, Any],
) -> dict[str, Any]:
    """Build the record fragment to write on the other system."""
    src_side = read_side(direction)
    dst_side = write_side(direction)

    fragment: dict[str, Any] = {}
    for spec in mapping.fields.values():
        if not spec.sync or not spec.direction.applies_to(direction):
            continue
        read_name = _side_field(spec, src_side)
        write_name = _side_field(spec, dst_side)
        if not read_name or not write_name:
            continue
        value = _read(record, read_name)
        if value is _MISSING:
            continue
        write_value(fragment, write_name, value)

    if category == "contact":
        _backfill_contact(fragment, record, SHAPES[src_side], SHAPES[dst_side])

    return fragment


def _backfill_contact(
    fragment: dict[str, Any],
    record: dict[str, Any],
    src: ContactShape,
    dst: ContactShape,
) -> None:
    """Fill base contact fields an incomplete mapping left out."""
    full_name = record.get(src.full_name) if src.full_name else None
    if isinstance(full_name, str) and full_name.strip():
        if not fragment.get(dst.first_name) or not fragment.get(dst.last_name):
            parts = full_name.split()
            if parts and not fragment.get(dst.first_name):
                fragment[dst.first_name] = parts[0]
            if len(parts) > 1 and not fragment.get(dst.last_name):
                fragment[dst.last_name] = " ".join(parts[1:])
    else:
        for src_attr, dst_attr in ((src.first_name, dst.first_name), (src.last_name, dst.last_name)):
            if not fragment.get(dst_attr) and record.get(src_attr):
                fragment[dst_attr] = record[src_attr]

    if not fragment.get(dst.phone) and record.get(src.phone):
        fragment[dst.phone] = record[src.phone]

    # Email is the identity anchor; it travels whatever the mapping says.
    if not fragment.get(dst.email) and record.get(src.email):
        fragment[dst.email] = record[src.email]
