"""Aggregated workflow/activity view for one case."""
from __future__ import annotations

import logging
from collections.abc import Collection
from typing import Any

from caseflow.core.schema import Activity, WorkflowInstance
from caseflow.core.status import classify_activity_state, classify_workflow_state, describe, retry_allowed
from caseflow.domain import ActionKey, ActionKind, ViewPhase, WorkflowViewState
from caseflow.infrastructure import EngineError, ProcessEngineClient

logger = logging.getLogger(__name__)


class WorkflowAggregationView:
    """Loads every workflow attached to a case and tracks the displayed one.

    Phases run ``idle -> loading -> loaded | error``.  All workflows of the
    case are fetched eagerly, so switching the displayed workflow never hits
    the engine.  A reload keeps the selection by workflow id, not by index.
    """

    def __init__(self, engine: ProcessEngineClient) -> None:
        self._engine = engine
        self._state = WorkflowViewState()
        self._generation = 0

    @property
    def state(self) -> WorkflowViewState:
        return self._state

    @property
    def phase(self) -> ViewPhase:
        return self._state.phase

    @property
    def case_id(self) -> str | None:
        return self._state.case_id

    @property
    def workflows(self) -> list[WorkflowInstance]:
        return list(self._state.workflows)

    @property
    def selected_workflow(self) -> WorkflowInstance | None:
        return self._state.selected

    @property
    def empty(self) -> bool:
        return self._state.phase is ViewPhase.LOADED and not self._state.workflows

    # ------------------------------------------------------------------
    # loading
    # ------------------------------------------------------------------
    async def select_case(self, case_id: str) -> None:
        """Start a new inspection session for ``case_id``."""

        self._generation += 1
        self._state = WorkflowViewState(phase=ViewPhase.LOADING, case_id=case_id)
        await self._load(self._generation, case_id)

    async def reload(self) -> None:
        """Re-fetch the current case, keeping the selected workflow by id."""

        if self._state.case_id is None:
            logger.debug("Reload requested with no case selected")
            return
        self._state.phase = ViewPhase.LOADING
        await self._load(self._generation, self._state.case_id)

    async def _load(self, generation: int, case_id: str) -> None:
        logger.info("Loading workflows for case %s", case_id)
        try:
            workflows = await self._engine.get_workflows_for_case(case_id)
        except EngineError as exc:
            if generation != self._generation:
                logger.debug("Discarding stale workflow load failure for case %s", case_id)
                return
            logger.warning("Workflow load for case %s failed: %s", case_id, exc)
            self._state.phase = ViewPhase.ERROR
            self._state.workflows = []
            self._state.selected_index = 0
            self._state.error = str(exc) or "Failed to load workflows"
            return

        if generation != self._generation:
            logger.debug("Discarding workflow response for superseded case %s", case_id)
            return

        previous = self._state.selected
        self._state.workflows = list(workflows)
        self._state.phase = ViewPhase.LOADED
        self._state.error = None

        index = self._state.index_of(previous.workflow_id) if previous is not None else None
        self._state.selected_index = index if index is not None else 0
        logger.info("Loaded %s workflows for case %s", len(workflows), case_id)

    # ------------------------------------------------------------------
    # selection
    # ------------------------------------------------------------------
    def select_workflow(self, index: int) -> WorkflowInstance:
        if not 0 <= index < len(self._state.workflows):
            raise IndexError(f"workflow index {index} out of range")
        self._state.selected_index = index
        return self._state.workflows[index]

    def select_workflow_id(self, workflow_id: str) -> WorkflowInstance:
        index = self._state.index_of(workflow_id)
        if index is None:
            raise KeyError(workflow_id)
        return self.select_workflow(index)

    def find_activity(self, workflow_id: str, activity_id: str) -> Activity | None:
        index = self._state.index_of(workflow_id)
        if index is None:
            return None
        for activity in self._state.workflows[index].activities:
            if activity.activity_id == activity_id:
                return activity
        return None

    # ------------------------------------------------------------------
    # rendering
    # ------------------------------------------------------------------
    @staticmethod
    def _render_activity(activity: Activity, in_flight: Collection[ActionKey]) -> dict[str, Any]:
        status = classify_activity_state(activity.state_code)
        return {
            **activity.model_dump(),
            **describe(status, activity.state_code),
            "can_retry": retry_allowed(status),
            "in_flight": ActionKey(ActionKind.RETRY, activity.activity_id) in in_flight,
        }

    def _render_workflow(self, workflow: WorkflowInstance, in_flight: Collection[ActionKey]) -> dict[str, Any]:
        status = classify_workflow_state(workflow.state_code)
        return {
            "workflow_id": workflow.workflow_id,
            "process_name": workflow.process_name,
            "supervisor": workflow.supervisor,
            "started_at": workflow.started_at,
            "state_code": workflow.state_code,
            **describe(status, workflow.state_code),
            "can_restart": True,
            "in_flight": ActionKey(ActionKind.RESTART, workflow.workflow_id) in in_flight,
            "activities": [self._render_activity(activity, in_flight) for activity in workflow.activities],
        }

    def render(self, in_flight: Collection[ActionKey] = ()) -> dict[str, Any]:
        state = self._state
        selected = state.selected
        return {
            "phase": state.phase.value,
            "case_id": state.case_id,
            "workflows": [self._render_workflow(workflow, in_flight) for workflow in state.workflows],
            "selected_index": state.selected_index if selected is not None else None,
            "selected_workflow_id": selected.workflow_id if selected is not None else None,
            "empty": self.empty,
            "error": state.error,
        }
