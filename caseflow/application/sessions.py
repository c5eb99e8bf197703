"""Console sessions and the registry holding them."""
from __future__ import annotations

import logging
import time
import uuid
from collections import OrderedDict, deque
from collections.abc import Callable
from typing import Any

from caseflow.core.schema import WorkflowPage
from caseflow.core.settings import ConsoleSettings, load_settings
from caseflow.domain import Notification
from caseflow.infrastructure import ProcessEngineClient, get_engine_client

from .actions import ActionDispatcher
from .cases import CaseSearchController
from .workflows import WorkflowAggregationView

logger = logging.getLogger(__name__)

NOTIFICATION_LIMIT = 50


class ConsoleSession:
    """Everything one operator is looking at: case list, workflow view, pending commands."""

    def __init__(self, session_id: str, engine: ProcessEngineClient, settings: ConsoleSettings) -> None:
        self.session_id = session_id
        self.notifications: deque[Notification] = deque(maxlen=NOTIFICATION_LIMIT)
        self.cases = CaseSearchController(
            engine,
            page_size=settings.page_size,
            lookback_months=settings.case_lookback_months,
        )
        self.workflows = WorkflowAggregationView(engine)
        self.actions = ActionDispatcher(engine, self.workflows, notifications=self.notifications)

    def drain_notifications(self) -> list[dict[str, str]]:
        drained = [
            {"level": note.level, "message": note.message, "created_at": note.created_at}
            for note in self.notifications
        ]
        self.notifications.clear()
        return drained

    def render(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "cases": self.cases.render(),
            "workflows": self.workflows.render(self.actions.in_flight),
            "in_flight": [{"kind": key.kind.value, "target_id": key.target_id} for key in self.actions.in_flight],
        }


class SessionRegistry:
    """Creates and tracks console sessions for the process.

    Sessions are kept in least-recently-used order.  A session untouched for
    longer than ``session_ttl_seconds`` is dropped, and the oldest sessions
    are evicted once ``max_sessions`` is exceeded.
    """

    def __init__(
        self,
        settings: ConsoleSettings | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings or load_settings()
        self._clock = clock
        self._sessions: OrderedDict[str, ConsoleSession] = OrderedDict()
        self._last_seen: dict[str, float] = {}

    @property
    def settings(self) -> ConsoleSettings:
        return self._settings

    def configure(self, settings: ConsoleSettings) -> None:
        self._settings = settings

    def __len__(self) -> int:
        return len(self._sessions)

    def _touch(self, session_id: str) -> None:
        self._sessions.move_to_end(session_id)
        self._last_seen[session_id] = self._clock()

    def purge_expired(self) -> int:
        """Drop idle sessions; returns how many were removed."""

        cutoff = self._clock() - self._settings.session_ttl_seconds
        expired = [session_id for session_id, seen in self._last_seen.items() if seen < cutoff]
        for session_id in expired:
            self.drop(session_id)
        if expired:
            logger.info("Expired %s idle console sessions", len(expired))
        return len(expired)

    def create(self, engine: ProcessEngineClient | None = None) -> ConsoleSession:
        self.purge_expired()
        session_id = uuid.uuid4().hex
        session = ConsoleSession(session_id, engine or get_engine_client(), self._settings)
        self._sessions[session_id] = session
        self._touch(session_id)
        while len(self._sessions) > self._settings.max_sessions:
            oldest = next(iter(self._sessions))
            logger.info("Evicting least recently used console session %s", oldest)
            self.drop(oldest)
        logger.info("Opened console session %s", session_id)
        return session

    def get(self, session_id: str) -> ConsoleSession | None:
        self.purge_expired()
        session = self._sessions.get(session_id)
        if session is not None:
            self._touch(session_id)
        return session

    def drop(self, session_id: str) -> bool:
        self._last_seen.pop(session_id, None)
        return self._sessions.pop(session_id, None) is not None

    def list_process_templates(self) -> list[dict[str, str]]:
        return [{"title": name, "object_name": name} for name in self._settings.workflow_processes]

    async def list_running_workflows(self, process_id: str, page: int, page_size: int) -> WorkflowPage:
        return await get_engine_client().list_running_workflows(process_id, page, page_size)

    def reset(self) -> None:
        self._sessions.clear()
        self._last_seen.clear()


_registry = SessionRegistry()


def get_session_registry() -> SessionRegistry:
    """Return the singleton session registry for the process."""

    return _registry


def reset_session_state() -> None:
    """Drop every session (used in tests)."""

    _registry.reset()
