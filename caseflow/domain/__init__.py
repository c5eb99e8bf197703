"""Domain layer definitions."""

from .console import (
    ActionKey,
    ActionKind,
    CaseSearchState,
    Notification,
    SearchCursor,
    ViewPhase,
    WorkflowViewState,
)

__all__ = [
    "ActionKey",
    "ActionKind",
    "CaseSearchState",
    "Notification",
    "SearchCursor",
    "ViewPhase",
    "WorkflowViewState",
]
