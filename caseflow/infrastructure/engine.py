"""Process-engine transport contract.

The console never talks to the engine directly; every component receives an
object implementing :class:`ProcessEngineClient`.  The application installs
the concrete client at start-up with ``configure_engine_client``; until then
an in-memory engine is used, which keeps local runs and tests deterministic.
"""
from __future__ import annotations

from typing import Protocol

from caseflow.core.schema import CasePage, CommandResult, WorkflowInstance, WorkflowPage


class EngineError(RuntimeError):
    """Base class for failures reported while talking to the process engine."""


class TransportFailure(EngineError):
    """Network error, timeout or non-2xx response."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ApplicationError(EngineError):
    """Well-formed error payload returned by the backend."""


class ProcessEngineClient(Protocol):
    """Contract for process-engine integrations."""

    async def search_cases(
        self,
        case_number: str | None,
        page: int,
        page_size: int,
        *,
        lookback_months: int = 3,
    ) -> CasePage:
        """Return one page of cases, newest first."""

    async def get_workflows_for_case(self, case_id: str) -> list[WorkflowInstance]:
        """Return every workflow attached to the case with its ordered activities."""

    async def restart_workflow(self, workflow_id: str) -> CommandResult: ...

    async def retry_activity(self, workflow_id: str, activity_id: str) -> CommandResult: ...

    async def list_running_workflows(self, process_id: str, page: int, page_size: int) -> WorkflowPage: ...


_client: ProcessEngineClient | None = None


def configure_engine_client(client: ProcessEngineClient | None) -> None:
    """Install the engine client used by new console sessions."""

    global _client
    _client = client


def get_engine_client() -> ProcessEngineClient:
    """Return the currently configured engine client."""

    global _client
    if _client is None:
        from .memory import InMemoryProcessEngine

        _client = InMemoryProcessEngine.with_demo_data()
    return _client
