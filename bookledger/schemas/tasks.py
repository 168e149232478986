from __future__ import annotations

from datetime import datetime
from typing import Literal

from bookledger.models.task import TASK_PRIORITIES, TASK_STATUSES
from pydantic import BaseModel, ConfigDict, Field, field_validator

TaskStatus = Literal[TASK_STATUSES]  # type: ignore[valid-type]
TaskPriority = Literal[TASK_PRIORITIES]  # type: ignore[valid-type]


class TaskIn(BaseModel):
    title: str = Field(max_length=200)
    description: str
    status: TaskStatus
    priority: TaskPriority
    due_date: datetime | None = None

    @field_validator("title", "description")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("due_date", mode="before")
    @classmethod
    def empty_due_date_is_none(cls, v):
        # The browser form posts "" when no date is picked.
        if v == "":
            return None
        return v


class TaskOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_id: str
    title: str
    description: str
    status: TaskStatus
    priority: TaskPriority
    due_date: datetime | None
    created_at: datetime
    updated_at: datetime
