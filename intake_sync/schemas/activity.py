"""Activity log schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel


ActivityStatus = Literal["success", "error", "pending"]


class FieldChange(BaseModel):
    field: str
    old_value: Any = None
    new_value: Any = None


class ActivityLogCreate(BaseModel):
    type: str
    status: ActivityStatus
    detail: str
    source: str
    destination: str
    error: str | None = None
    changes: list[FieldChange] | None = None


class ActivityLogRead(ActivityLogCreate):
    id: uuid.UUID
    timestamp: datetime

    model_config = {"from_attributes": True}
