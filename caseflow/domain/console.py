"""Domain entities for console session state."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import NamedTuple

from caseflow.core.schema import Case, WorkflowInstance


class ActionKind(str, Enum):
    RESTART = "restart"
    RETRY = "retry"


class ActionKey(NamedTuple):
    """Composite key guarding one remedial command against duplicates."""

    kind: ActionKind
    target_id: str


class ViewPhase(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


@dataclass(slots=True)
class SearchCursor:
    """Position in the case list; ``has_more`` comes from the backend's next-page signal."""

    page: int = 1
    page_size: int = 10
    has_more: bool = False
    term: str = ""
    count: int = 0

    @property
    def seen(self) -> int:
        """Number of cases on this page and every page before it."""

        return (self.page - 1) * self.page_size + self.count

    @property
    def total_display(self) -> str:
        return f"{self.seen}+" if self.has_more else str(self.seen)


@dataclass(slots=True)
class CaseSearchState:
    cursor: SearchCursor = field(default_factory=SearchCursor)
    items: list[Case] = field(default_factory=list)
    searched: bool = False
    loading: bool = False
    error: str | None = None


@dataclass(slots=True)
class WorkflowViewState:
    """Aggregated workflows for the case under inspection."""

    phase: ViewPhase = ViewPhase.IDLE
    case_id: str | None = None
    workflows: list[WorkflowInstance] = field(default_factory=list)
    selected_index: int = 0
    error: str | None = None

    @property
    def selected(self) -> WorkflowInstance | None:
        if 0 <= self.selected_index < len(self.workflows):
            return self.workflows[self.selected_index]
        return None

    def index_of(self, workflow_id: str) -> int | None:
        for index, workflow in enumerate(self.workflows):
            if workflow.workflow_id == workflow_id:
                return index
        return None


@dataclass(slots=True)
class Notification:
    level: str
    message: str
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
