"""Key field resolution - which field matches records across systems."""

from __future__ import annotations

from ..sync.errors import ConfigurationError, KeyFieldUnresolved
from .models import CategoryMapping, FieldMapping

# Categories with a fixed fallback key when none is configured
DEFAULT_KEY_FIELDS: dict[str, str] = {
    "contact": "email",
}


def resolve_key_field(category: str, mapping: CategoryMapping) -> str:
    """Return the field name used to match records in ``category``.

    Raises:
        KeyFieldUnresolved: no key configured and no fallback for the category.
    """
    if mapping.key_field:
        return mapping.key_field

    flagged = mapping.flagged_fields()
    if flagged:
        return flagged[0]

    fallback = DEFAULT_KEY_FIELDS.get(category)
    if fallback:
        return fallback

    raise KeyFieldUnresolved(f"no key field for category '{category}'", category=category)


def resolve_key_fields(mapping: FieldMapping) -> tuple[dict[str, str], dict[str, str]]:
    """Resolve keys for every category.

    Returns ``(keys, unresolved)`` where ``unresolved`` maps category -> reason.
    """
    keys: dict[str, str] = {}
    unresolved: dict[str, str] = {}
    for category, cat_mapping in mapping.categories.items():
        try:
            keys[category] = resolve_key_field(category, cat_mapping)
        except KeyFieldUnresolved as e:
            unresolved[category] = e.message
    return keys, unresolved


def set_key_field(mapping: FieldMapping, category: str, field_name: str) -> FieldMapping:
    """Return a copy of ``mapping`` with ``field_name`` as the only key of ``category``."""
    if category not in mapping:
        raise ConfigurationError(f"unknown category '{category}'")
    if field_name not in mapping[category].fields:
        raise ConfigurationError(f"unknown field '{field_name}' in category '{category}'")

    updated = mapping.copy()
    cat = updated[category]
    for name, spec in cat.fields.items():
        spec.is_key_field = name == field_name
    cat.key_field = field_name
    return updated


def clear_key_field(mapping: FieldMapping, category: str) -> FieldMapping:
    """Return a copy of ``mapping`` with no key field in ``category``."""
    if category not in mapping:
        raise ConfigurationError(f"unknown category '{category}'")

    updated = mapping.copy()
    cat = updated[category]
    for spec in cat.fields.values():
        spec.is_key_field = False
    cat.key_field = None
    return updated


def normalize_key_fields(mapping: FieldMapping) -> FieldMapping:
    """Bring every category back to a single consistent key field.

    Contacts without a key default to ``email``. An explicit ``key_field`` wins over
    per-field flags; without one, the first flagged field becomes the key.
    """
    updated = mapping.copy()
    for category, cat in updated.categories.items():
        if not cat.key_field:
            flagged = cat.flagged_fields()
            if flagged:
                cat.key_field = flagged[0]
            elif category in DEFAULT_KEY_FIELDS:
                cat.key_field = DEFAULT_KEY_FIELDS[category]

        for name, spec in cat.fields.items():
            spec.is_key_field = name == cat.key_field
    return updated
