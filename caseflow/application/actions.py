"""Remedial commands against the process engine."""
from __future__ import annotations

import logging
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from caseflow.core.schema import CommandResult
from caseflow.domain import ActionKey, ActionKind, Notification
from caseflow.infrastructure import EngineError, ProcessEngineClient

from .workflows import WorkflowAggregationView

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ActionOutcome:
    kind: ActionKind
    target_id: str
    accepted: bool
    ok: bool = False
    message: str | None = None

    def as_dict(self) -> dict[str, object]:
        return {
            "kind": self.kind.value,
            "target_id": self.target_id,
            "accepted": self.accepted,
            "ok": self.ok,
            "message": self.message,
        }


class ActionDispatcher:
    """Issues restart/retry commands with one in-flight command per target.

    The in-flight set is keyed by ``(kind, target_id)``; a second command for
    a key that is still pending is rejected without reaching the engine.
    Keys are released whatever the outcome, and only a successful command
    refreshes the workflow view.
    """

    def __init__(
        self,
        engine: ProcessEngineClient,
        view: WorkflowAggregationView,
        *,
        notifications: deque[Notification] | None = None,
    ) -> None:
        self._engine = engine
        self._view = view
        self._in_flight: set[ActionKey] = set()
        self._notifications: deque[Notification] = notifications if notifications is not None else deque(maxlen=50)

    @property
    def in_flight(self) -> frozenset[ActionKey]:
        return frozenset(self._in_flight)

    def is_in_flight(self, kind: ActionKind, target_id: str) -> bool:
        return ActionKey(kind, target_id) in self._in_flight

    def _notify(self, level: str, message: str) -> None:
        self._notifications.append(Notification(level=level, message=message))

    async def _dispatch(
        self,
        key: ActionKey,
        label: str,
        command: Callable[[], Awaitable[CommandResult]],
    ) -> ActionOutcome:
        if key in self._in_flight:
            message = f"{label} is already in progress"
            logger.info("Rejected duplicate %s for %s", key.kind.value, key.target_id)
            self._notify("info", message)
            return ActionOutcome(key.kind, key.target_id, accepted=False, message=message)

        self._in_flight.add(key)
        logger.info("Dispatching %s for %s", key.kind.value, key.target_id)
        try:
            result = await command()
        except EngineError as exc:
            result = CommandResult(ok=False, message=str(exc))
        finally:
            self._in_flight.discard(key)

        if not result.ok:
            message = f"{label} failed: {result.message or 'engine rejected the command'}"
            logger.warning("%s", message)
            self._notify("error", message)
            return ActionOutcome(key.kind, key.target_id, accepted=True, ok=False, message=message)

        await self._view.reload()
        message = f"{label} succeeded"
        self._notify("success", message)
        return ActionOutcome(key.kind, key.target_id, accepted=True, ok=True, message=message)

    async def restart_workflow(self, workflow_id: str) -> ActionOutcome:
        return await self._dispatch(
            ActionKey(ActionKind.RESTART, workflow_id),
            f"Restart of workflow {workflow_id}",
            lambda: self._engine.restart_workflow(workflow_id),
        )

    async def retry_activity(self, workflow_id: str, activity_id: str) -> ActionOutcome:
        return await self._dispatch(
            ActionKey(ActionKind.RETRY, activity_id),
            f"Retry of activity {activity_id}",
            lambda: self._engine.retry_activity(workflow_id, activity_id),
        )
