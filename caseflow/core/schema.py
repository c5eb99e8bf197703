from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Case(BaseModel):
    model_config = ConfigDict(frozen=True)

    case_id: str
    case_number: str
    subject: str | None = None
    description: str | None = None
    office: str | None = None
    department: str | None = None
    functions: str | None = None
    created_at: str | None = None


class Activity(BaseModel):
    activity_id: str
    sequence: int = 0
    name: str | None = None
    performer: str | None = None
    state_code: Any = None
    created_at: str | None = None


class WorkflowInstance(BaseModel):
    workflow_id: str
    process_name: str | None = None
    supervisor: str | None = None
    started_at: str | None = None
    state_code: Any = None
    activities: list[Activity] = Field(default_factory=list)

    @field_validator("activities")
    @classmethod
    def _order_by_sequence(cls, value: list[Activity]) -> list[Activity]:
        return sorted(value, key=lambda activity: activity.sequence)


class CasePage(BaseModel):
    items: list[Case] = Field(default_factory=list)
    has_more: bool = False


class WorkflowPage(BaseModel):
    items: list[WorkflowInstance] = Field(default_factory=list)
    has_more: bool = False


class CommandResult(BaseModel):
    ok: bool
    message: str | None = None


class LogLine(BaseModel):
    timestamp: str | None = None
    level: str = "INFO"
    message: str


__all__ = [
    "Activity",
    "Case",
    "CasePage",
    "CommandResult",
    "LogLine",
    "WorkflowInstance",
    "WorkflowPage",
]
