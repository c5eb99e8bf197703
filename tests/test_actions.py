import asyncio
from collections import deque
from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parents[1]))

from caseflow.application import ActionDispatcher, WorkflowAggregationView
from caseflow.core.schema import Activity, Case, CommandResult, WorkflowInstance
from caseflow.domain import ActionKey, ActionKind, ViewPhase
from caseflow.infrastructure import InMemoryProcessEngine, TransportFailure


def _seed(engine: InMemoryProcessEngine) -> None:
    engine.add_case(
        Case(case_id="case-1001", case_number="C-1001"),
        [
            WorkflowInstance(workflow_id="WF-A", process_name="Approval", state_code=1),
            WorkflowInstance(
                workflow_id="WF-B",
                process_name="Payment",
                state_code=5,
                activities=[Activity(activity_id="ACT-1", sequence=0, performer="finance01", state_code=5)],
            ),
        ],
    )


class GatedEngine(InMemoryProcessEngine):
    """Holds restart commands until the test opens the gate."""

    def __init__(self) -> None:
        super().__init__()
        self.gate = asyncio.Event()

    async def restart_workflow(self, workflow_id):
        await self.gate.wait()
        return await super().restart_workflow(workflow_id)


class BrokenCommandEngine(InMemoryProcessEngine):
    async def restart_workflow(self, workflow_id):
        self.calls.append(("restart_workflow", (workflow_id,)))
        raise TransportFailure("502 Bad Gateway", status_code=502)

    async def retry_activity(self, workflow_id, activity_id):
        self.calls.append(("retry_activity", (workflow_id, activity_id)))
        return CommandResult(ok=False, message="work item is locked")


def _count(engine: InMemoryProcessEngine, name: str) -> int:
    return sum(1 for call, _ in engine.calls if call == name)


def _loaded(engine: InMemoryProcessEngine) -> tuple[WorkflowAggregationView, ActionDispatcher]:
    _seed(engine)
    view = WorkflowAggregationView(engine)
    dispatcher = ActionDispatcher(engine, view)
    asyncio.run(view.select_case("case-1001"))
    return view, dispatcher


def test_duplicate_restart_is_rejected_while_in_flight():
    engine = GatedEngine()
    view, dispatcher = _loaded(engine)

    async def scenario():
        first = asyncio.create_task(dispatcher.restart_workflow("WF-A"))
        await asyncio.sleep(0)
        assert dispatcher.is_in_flight(ActionKind.RESTART, "WF-A")

        duplicate = await dispatcher.restart_workflow("WF-A")
        assert duplicate.accepted is False
        assert _count(engine, "restart_workflow") == 0

        engine.gate.set()
        outcome = await first
        assert outcome.ok is True
        assert not dispatcher.is_in_flight(ActionKind.RESTART, "WF-A")

        again = await dispatcher.restart_workflow("WF-A")
        assert again.accepted is True
        assert _count(engine, "restart_workflow") == 2

    asyncio.run(scenario())


def test_actions_on_different_targets_are_independent():
    engine = GatedEngine()
    view, dispatcher = _loaded(engine)

    async def scenario():
        first = asyncio.create_task(dispatcher.restart_workflow("WF-A"))
        second = asyncio.create_task(dispatcher.restart_workflow("WF-B"))
        await asyncio.sleep(0)
        assert dispatcher.in_flight == {
            ActionKey(ActionKind.RESTART, "WF-A"),
            ActionKey(ActionKind.RESTART, "WF-B"),
        }
        engine.gate.set()
        return await first, await second

    first, second = asyncio.run(scenario())
    assert first.ok and second.ok
    assert dispatcher.in_flight == frozenset()


def test_transport_failure_releases_lock_and_keeps_view_loaded():
    engine = BrokenCommandEngine()
    view, dispatcher = _loaded(engine)
    loads_before = _count(engine, "get_workflows_for_case")

    outcome = asyncio.run(dispatcher.restart_workflow("WF-A"))

    assert outcome.accepted is True
    assert outcome.ok is False
    assert "502 Bad Gateway" in outcome.message
    assert dispatcher.in_flight == frozenset()
    assert view.phase is ViewPhase.LOADED
    assert _count(engine, "get_workflows_for_case") == loads_before

    retried = asyncio.run(dispatcher.restart_workflow("WF-A"))
    assert retried.accepted is True
    assert _count(engine, "restart_workflow") == 2


def test_rejected_command_is_a_failure_notification():
    engine = BrokenCommandEngine()
    _seed(engine)
    view = WorkflowAggregationView(engine)
    notifications = deque()
    dispatcher = ActionDispatcher(engine, view, notifications=notifications)
    asyncio.run(view.select_case("case-1001"))

    outcome = asyncio.run(dispatcher.retry_activity("WF-B", "ACT-1"))

    assert outcome.ok is False
    assert "work item is locked" in outcome.message
    assert notifications[-1].level == "error"
    assert not dispatcher.is_in_flight(ActionKind.RETRY, "ACT-1")


def test_retry_success_reloads_and_keeps_selected_workflow():
    class ScriptedEngine(InMemoryProcessEngine):
        def __init__(self) -> None:
            super().__init__()
            self.lock_seen_during_call: frozenset = frozenset()
            self.dispatcher: ActionDispatcher | None = None

        async def retry_activity(self, workflow_id, activity_id):
            self.calls.append(("retry_activity", (workflow_id, activity_id)))
            self.lock_seen_during_call = self.dispatcher.in_flight
            # the engine applies the retry and reorders the case's workflows
            self.set_workflows(
                "case-1001",
                [
                    WorkflowInstance(
                        workflow_id="WF-B",
                        process_name="Payment",
                        state_code=1,
                        activities=[Activity(activity_id="ACT-1", sequence=0, performer="finance01", state_code=2)],
                    ),
                    WorkflowInstance(workflow_id="WF-A", process_name="Approval", state_code=1),
                ],
            )
            return CommandResult(ok=True)

    engine = ScriptedEngine()
    view, dispatcher = _loaded(engine)
    engine.dispatcher = dispatcher

    view.select_workflow_id("WF-B")
    assert view.state.selected_index == 1
    rendered = view.render()
    assert rendered["workflows"][1]["status"] == "failed"
    assert rendered["workflows"][1]["activities"][0]["can_retry"] is True

    outcome = asyncio.run(dispatcher.retry_activity("WF-B", "ACT-1"))

    assert outcome.ok is True
    assert engine.lock_seen_during_call == {ActionKey(ActionKind.RETRY, "ACT-1")}
    assert dispatcher.in_flight == frozenset()
    assert _count(engine, "get_workflows_for_case") == 2

    rendered = view.render()
    assert rendered["selected_workflow_id"] == "WF-B"
    assert rendered["selected_index"] == 0
    activity = rendered["workflows"][0]["activities"][0]
    assert activity["status"] == "finished"
    assert activity["can_retry"] is False
