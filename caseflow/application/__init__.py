"""Application services."""

from .actions import ActionDispatcher, ActionOutcome
from .activity_log import activity_log, render_log_lines
from .cases import CaseSearchController, CaseSearchResult
from .sessions import ConsoleSession, SessionRegistry, get_session_registry, reset_session_state
from .workflows import WorkflowAggregationView

__all__ = [
    "ActionDispatcher",
    "ActionOutcome",
    "CaseSearchController",
    "CaseSearchResult",
    "ConsoleSession",
    "SessionRegistry",
    "WorkflowAggregationView",
    "activity_log",
    "get_session_registry",
    "render_log_lines",
    "reset_session_state",
]
