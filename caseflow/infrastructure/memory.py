"""In-memory process engine for local runs and tests."""
from __future__ import annotations

import logging
from datetime import date, datetime, timezone

from caseflow.core.dates import months_ago
from caseflow.core.schema import Activity, Case, CasePage, CommandResult, WorkflowInstance, WorkflowPage
from caseflow.core.status import CanonicalStatus, classify_activity_state, classify_workflow_state

from .engine import ApplicationError

logger = logging.getLogger(__name__)

RUNNING = 1


class InMemoryProcessEngine:
    """Simple engine that keeps cases and workflows in dictionaries."""

    def __init__(self, *, today: date | None = None) -> None:
        self._cases: dict[str, Case] = {}
        self._workflows: dict[str, list[WorkflowInstance]] = {}
        self._broken_cases: dict[str, str] = {}
        self._today = today
        self.calls: list[tuple[str, tuple[str, ...]]] = []

    # ------------------------------------------------------------------
    # seeding
    # ------------------------------------------------------------------
    def add_case(self, case: Case, workflows: list[WorkflowInstance] | None = None) -> None:
        self._cases[case.case_id] = case
        self._workflows[case.case_id] = list(workflows or [])

    def set_workflows(self, case_id: str, workflows: list[WorkflowInstance]) -> None:
        self._workflows[case_id] = list(workflows)

    def fail_workflow_load(self, case_id: str, message: str) -> None:
        """Make ``get_workflows_for_case`` report an application error for a case."""

        self._broken_cases[case_id] = message

    def reset(self) -> None:
        self._cases.clear()
        self._workflows.clear()
        self._broken_cases.clear()
        self.calls.clear()

    @classmethod
    def with_demo_data(cls) -> "InMemoryProcessEngine":
        engine = cls()
        stamp = datetime.now(timezone.utc).replace(microsecond=0).isoformat()
        engine.add_case(
            Case(
                case_id="0b0000018000c001",
                case_number="C-1001",
                subject="Vendor onboarding",
                description="Supplier registration review",
                office="HO",
                department="Procurement",
                created_at=stamp,
            ),
            [
                WorkflowInstance(
                    workflow_id="4d0000018000a001",
                    process_name="VendorApproval",
                    supervisor="dmadmin",
                    started_at=stamp,
                    state_code=1,
                    activities=[
                        Activity(activity_id="4a0000018000b001", sequence=0, name="Intake", performer="clerk01", state_code=2, created_at=stamp),
                        Activity(activity_id="4a0000018000b002", sequence=1, name="Review", performer="reviewer02", state_code=1, created_at=stamp),
                    ],
                ),
                WorkflowInstance(
                    workflow_id="4d0000018000a002",
                    process_name="PaymentRelease",
                    supervisor="dmadmin",
                    started_at=stamp,
                    state_code=5,
                    activities=[
                        Activity(activity_id="4a0000018000b003", sequence=0, name="Post to ledger", performer="finance01", state_code=5, created_at=stamp),
                    ],
                ),
            ],
        )
        return engine

    # ------------------------------------------------------------------
    # internal helpers
    # ------------------------------------------------------------------
    def _find_workflow(self, workflow_id: str) -> WorkflowInstance | None:
        for workflows in self._workflows.values():
            for workflow in workflows:
                if workflow.workflow_id == workflow_id:
                    return workflow
        return None

    def _within_lookback(self, case: Case, months: int) -> bool:
        if not case.created_at:
            return True
        try:
            created = datetime.fromisoformat(case.created_at).date()
        except ValueError:
            return True
        today = self._today or date.today()
        return created >= months_ago(today, months)

    # ------------------------------------------------------------------
    # engine contract
    # ------------------------------------------------------------------
    async def search_cases(
        self,
        case_number: str | None,
        page: int,
        page_size: int,
        *,
        lookback_months: int = 3,
    ) -> CasePage:
        self.calls.append(("search_cases", (case_number or "", str(page), str(page_size))))
        term = (case_number or "").strip().lower()
        if term:
            matches = [case for case in self._cases.values() if term in case.case_number.lower()]
        else:
            matches = [case for case in self._cases.values() if self._within_lookback(case, lookback_months)]
        matches.sort(key=lambda case: case.created_at or "", reverse=True)

        start = (page - 1) * page_size
        window = matches[start : start + page_size + 1]
        return CasePage(items=window[:page_size], has_more=len(window) > page_size)

    async def get_workflows_for_case(self, case_id: str) -> list[WorkflowInstance]:
        self.calls.append(("get_workflows_for_case", (case_id,)))
        if case_id in self._broken_cases:
            raise ApplicationError(self._broken_cases[case_id])
        return [workflow.model_copy(deep=True) for workflow in self._workflows.get(case_id, [])]

    async def restart_workflow(self, workflow_id: str) -> CommandResult:
        self.calls.append(("restart_workflow", (workflow_id,)))
        workflow = self._find_workflow(workflow_id)
        if workflow is None:
            return CommandResult(ok=False, message=f"workflow {workflow_id} not found")
        workflow.state_code = RUNNING
        logger.info("Restarted workflow %s", workflow_id)
        return CommandResult(ok=True)

    async def retry_activity(self, workflow_id: str, activity_id: str) -> CommandResult:
        self.calls.append(("retry_activity", (workflow_id, activity_id)))
        workflow = self._find_workflow(workflow_id)
        if workflow is None:
            return CommandResult(ok=False, message=f"workflow {workflow_id} not found")
        for activity in workflow.activities:
            if activity.activity_id == activity_id:
                activity.state_code = RUNNING
                if classify_workflow_state(workflow.state_code) in {CanonicalStatus.FAILED, CanonicalStatus.HALTED}:
                    workflow.state_code = RUNNING
                logger.info("Retried activity %s of workflow %s", activity_id, workflow_id)
                return CommandResult(ok=True)
        return CommandResult(ok=False, message=f"activity {activity_id} not found")

    async def list_running_workflows(self, process_id: str, page: int, page_size: int) -> WorkflowPage:
        self.calls.append(("list_running_workflows", (process_id, str(page), str(page_size))))
        matches = [
            workflow
            for workflows in self._workflows.values()
            for workflow in workflows
            if workflow.process_name == process_id
            and classify_workflow_state(workflow.state_code) not in {CanonicalStatus.FINISHED, CanonicalStatus.TERMINATED}
        ]
        start = (page - 1) * page_size
        window = matches[start : start + page_size + 1]
        return WorkflowPage(
            items=[workflow.model_copy(deep=True) for workflow in window[:page_size]],
            has_more=len(window) > page_size,
        )

    def activity_status(self, workflow_id: str, activity_id: str) -> CanonicalStatus:
        workflow = self._find_workflow(workflow_id)
        if workflow is None:
            return CanonicalStatus.UNKNOWN
        for activity in workflow.activities:
            if activity.activity_id == activity_id:
                return classify_activity_state(activity.state_code)
        return CanonicalStatus.UNKNOWN
