"""Field mapping data model - dataclass specs for per-category field mapping.

The persisted document is camelCase (``keyField``, ``sourceField``, ...). Older
dashboards stored ``intakeqField`` / ``ghlField`` and direction strings such as
``one_way_intakeq_to_ghl``; both vocabularies are accepted on read.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Direction(Enum):
    """Sync direction for a run, a leg of a run, or a single field."""
    BIDIRECTIONAL = "bidirectional"
    SOURCE_TO_TARGET = "source_to_target"
    TARGET_TO_SOURCE = "target_to_source"

    @classmethod
    def parse(cls, value: Any) -> "Direction":
        """Translate any stored direction string; unknown values are bidirectional."""
        if isinstance(value, Direction):
            return value
        text = str(value or "").strip().lower()
        return _DIRECTION_ALIASES.get(text, cls.BIDIRECTIONAL)

    def legs(self) -> list["Direction"]:
        """One-way legs executed for this direction, in run order."""
        if self is Direction.BIDIRECTIONAL:
            return [Direction.SOURCE_TO_TARGET, Direction.TARGET_TO_SOURCE]
        return [self]

    def applies_to(self, leg: "Direction") -> bool:
        return self is Direction.BIDIRECTIONAL or self is leg


_DIRECTION_ALIASES: dict[str, Direction] = {
    "source_to_target": Direction.SOURCE_TO_TARGET,
    "one_way_source_to_target": Direction.SOURCE_TO_TARGET,
    "intakeq_to_ghl": Direction.SOURCE_TO_TARGET,
    "one_way_intakeq_to_ghl": Direction.SOURCE_TO_TARGET,
    "target_to_source": Direction.TARGET_TO_SOURCE,
    "one_way_target_to_source": Direction.TARGET_TO_SOURCE,
    "ghl_to_intakeq": Direction.TARGET_TO_SOURCE,
    "one_way_ghl_to_intakeq": Direction.TARGET_TO_SOURCE,
}


def _optional_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


@dataclass
class FieldSpec:
    sync: bool = True
    direction: Direction = Direction.BIDIRECTIONAL
    source_field: str | None = None
    target_field: str | None = None
    is_key_field: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FieldSpec":
        if not isinstance(data, dict):
            raise ValueError(f"field spec must be an object, got {type(data).__name__}")
        return cls(
            sync=bool(data.get("sync", True)),
            direction=Direction.parse(data.get("direction")),
            source_field=_optional_str(data.get("sourceField", data.get("intakeqField"))),
            target_field=_optional_str(data.get("targetField", data.get("ghlField"))),
            is_key_field=bool(data.get("isKeyField", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "sync": self.sync,
            "direction": self.direction.value,
        }
        if self.source_field:
            d["sourceField"] = self.source_field
        if self.target_field:
            d["targetField"] = self.target_field
        d["isKeyField"] = self.is_key_field
        return d


@dataclass
class CategoryMapping:
    key_field: str | None = None
    fields: dict[str, FieldSpec] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CategoryMapping":
        if not isinstance(data, dict):
            raise ValueError(f"category mapping must be an object, got {type(data).__name__}")
        raw_fields = data.get("fields") or {}
        if not isinstance(raw_fields, dict):
            raise ValueError("category 'fields' must be an object")
        return cls(
            key_field=_optional_str(data.get("keyField")),
            fields={name: FieldSpec.from_dict(spec) for name, spec in raw_fields.items()},
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {}
        if self.key_field:
            d["keyField"] = self.key_field
        d["fields"] = {name: spec.to_dict() for name, spec in self.fields.items()}
        return d

    def flagged_fields(self) -> list[str]:
        return [name for name, spec in self.fields.items() if spec.is_key_field]


@dataclass
class FieldMapping:
    categories: dict[str, CategoryMapping] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FieldMapping":
        if not isinstance(data, dict):
            raise ValueError(f"field mapping must be an object, got {type(data).__name__}")
        return cls(
            categories={name: CategoryMapping.from_dict(cat) for name, cat in data.items()},
        )

    def to_dict(self) -> dict[str, Any]:
        return {name: cat.to_dict() for name, cat in self.categories.items()}

    def copy(self) -> "FieldMapping":
        return copy.deepcopy(self)

    def __contains__(self, category: str) -> bool:
        return category in self.categories

    def __getitem__(self, category: str) -> CategoryMapping:
        return self.categories[category]


@dataclass
class SyncFilters:
    """Inclusion lists for one system. Empty lists mean no filtering."""

    ids: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    form_ids: list[str] = field(default_factory=list)
    status: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "SyncFilters":
        if not data:
            return cls()
        if not isinstance(data, dict):
            raise ValueError(f"filters must be an object, got {type(data).__name__}")

        def _list(*keys: str) -> list[str]:
            for key in keys:
                value = data.get(key)
                if isinstance(value, list):
                    return [str(v).strip() for v in value if str(v).strip()]
            return []

        return cls(
            ids=_list("ids", "contactIds", "clientIds"),
            tags=_list("tags"),
            form_ids=_list("formIds", "form_ids"),
            status=_list("status"),
        )

    def to_dict(self) -> dict[str, list[str]]:
        return {
            "ids": list(self.ids),
            "tags": list(self.tags),
            "formIds": list(self.form_ids),
            "status": list(self.status),
        }

    @property
    def is_empty(self) -> bool:
        return not (self.ids or self.tags or self.form_ids or self.status)


def default_field_mapping() -> FieldMapping:
    """Mapping created on first configuration load."""
    return FieldMapping(categories={
        "contact": CategoryMapping(
            key_field="email",
            fields={
                "first_name": FieldSpec(source_field="FirstName", target_field="firstName"),
                "last_name": FieldSpec(source_field="LastName", target_field="lastName"),
                "email": FieldSpec(is_key_field=True),
                "phone": FieldSpec(source_field="Phone", target_field="phone"),
                "address": FieldSpec(),
            },
        ),
        "appointment": CategoryMapping(
            fields={
                "datetime": FieldSpec(source_field="StartDateIso", target_field="startTime"),
                "status": FieldSpec(),
                "notes": FieldSpec(source_field="Description", target_field="notes"),
            },
        ),
        "form": CategoryMapping(
            fields={
                "name": FieldSpec(source_field="FormTitle", target_field="formName"),
                "description": FieldSpec(),
                "status": FieldSpec(),
            },
        ),
    })
