import asyncio
from pathlib import Path
import sys

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from caseflow.application import WorkflowAggregationView
from caseflow.core.schema import Activity, Case, WorkflowInstance
from caseflow.domain import ViewPhase
from caseflow.infrastructure import InMemoryProcessEngine, TransportFailure


def _workflow(workflow_id: str, state_code=1, activities=None) -> WorkflowInstance:
    return WorkflowInstance(
        workflow_id=workflow_id,
        process_name=f"process-{workflow_id}",
        supervisor="dmadmin",
        state_code=state_code,
        activities=activities or [],
    )


class GatedEngine(InMemoryProcessEngine):
    def __init__(self) -> None:
        super().__init__()
        self.gates: dict[str, asyncio.Event] = {}

    async def get_workflows_for_case(self, case_id):
        gate = self.gates.setdefault(case_id, asyncio.Event())
        await gate.wait()
        return await super().get_workflows_for_case(case_id)


class UnreachableEngine(InMemoryProcessEngine):
    async def get_workflows_for_case(self, case_id):
        raise TransportFailure("timed out")


def test_initial_phase_is_idle():
    view = WorkflowAggregationView(InMemoryProcessEngine())
    rendered = view.render()
    assert rendered["phase"] == "idle"
    assert rendered["workflows"] == []
    assert rendered["selected_workflow_id"] is None


def test_select_case_loads_all_workflows_with_ordered_activities():
    engine = InMemoryProcessEngine()
    engine.add_case(
        Case(case_id="case-1", case_number="C-1001"),
        [
            _workflow(
                "WF-A",
                activities=[
                    Activity(activity_id="a-3", sequence=3, state_code=0),
                    Activity(activity_id="a-1", sequence=1, state_code=2),
                    Activity(activity_id="a-2", sequence=2, state_code=1),
                ],
            ),
            _workflow("WF-B", state_code=5),
        ],
    )
    view = WorkflowAggregationView(engine)

    asyncio.run(view.select_case("case-1"))

    assert view.phase is ViewPhase.LOADED
    assert [wf.workflow_id for wf in view.workflows] == ["WF-A", "WF-B"]
    assert [a.activity_id for a in view.workflows[0].activities] == ["a-1", "a-2", "a-3"]
    assert view.selected_workflow.workflow_id == "WF-A"

    rendered = view.render()
    assert rendered["workflows"][1]["status"] == "failed"
    assert rendered["workflows"][0]["activities"][0]["status"] == "finished"
    assert rendered["workflows"][0]["can_restart"] is True


def test_empty_workflow_set_is_loaded_not_error():
    engine = InMemoryProcessEngine()
    engine.add_case(Case(case_id="case-empty", case_number="C-2000"), [])
    view = WorkflowAggregationView(engine)

    asyncio.run(view.select_case("case-empty"))

    rendered = view.render()
    assert rendered["phase"] == "loaded"
    assert rendered["empty"] is True
    assert rendered["error"] is None


def test_application_error_renders_error_state():
    engine = InMemoryProcessEngine()
    engine.fail_workflow_load("case-x", "workflow load failed")
    view = WorkflowAggregationView(engine)

    asyncio.run(view.select_case("case-x"))

    rendered = view.render()
    assert rendered["phase"] == "error"
    assert rendered["error"] == "workflow load failed"
    assert rendered["empty"] is False


def test_transport_failure_renders_error_state():
    view = WorkflowAggregationView(UnreachableEngine())
    asyncio.run(view.select_case("case-1"))
    assert view.phase is ViewPhase.ERROR
    assert view.state.error == "timed out"


def test_selecting_workflow_is_local():
    engine = InMemoryProcessEngine()
    engine.add_case(Case(case_id="case-1", case_number="C-1001"), [_workflow("WF-A"), _workflow("WF-B")])
    view = WorkflowAggregationView(engine)
    asyncio.run(view.select_case("case-1"))
    loads_before = len(engine.calls)

    view.select_workflow(1)
    view.select_workflow_id("WF-A")
    view.select_workflow_id("WF-B")

    assert len(engine.calls) == loads_before
    assert view.render()["selected_index"] == 1
    with pytest.raises(IndexError):
        view.select_workflow(5)
    with pytest.raises(KeyError):
        view.select_workflow_id("WF-Z")


def test_reload_keeps_selection_by_id_after_reorder():
    engine = InMemoryProcessEngine()
    engine.add_case(Case(case_id="case-1", case_number="C-1001"), [_workflow("WF-A"), _workflow("WF-B")])
    view = WorkflowAggregationView(engine)
    asyncio.run(view.select_case("case-1"))
    view.select_workflow_id("WF-B")

    engine.set_workflows("case-1", [_workflow("WF-C"), _workflow("WF-B"), _workflow("WF-A")])
    asyncio.run(view.reload())

    assert view.selected_workflow.workflow_id == "WF-B"
    assert view.state.selected_index == 1


def test_reload_falls_back_to_first_when_selection_disappears():
    engine = InMemoryProcessEngine()
    engine.add_case(Case(case_id="case-1", case_number="C-1001"), [_workflow("WF-A"), _workflow("WF-B")])
    view = WorkflowAggregationView(engine)
    asyncio.run(view.select_case("case-1"))
    view.select_workflow(1)

    engine.set_workflows("case-1", [_workflow("WF-A"), _workflow("WF-B2")])
    asyncio.run(view.reload())

    assert view.state.selected_index == 0
    assert view.selected_workflow.workflow_id == "WF-A"


def test_reload_without_case_is_noop():
    engine = InMemoryProcessEngine()
    view = WorkflowAggregationView(engine)
    asyncio.run(view.reload())
    assert view.phase is ViewPhase.IDLE
    assert engine.calls == []


def test_response_for_previous_case_is_discarded():
    engine = GatedEngine()
    engine.add_case(Case(case_id="case-old", case_number="C-1"), [_workflow("WF-OLD")])
    engine.add_case(Case(case_id="case-new", case_number="C-2"), [_workflow("WF-NEW")])
    view = WorkflowAggregationView(engine)

    async def scenario():
        old = asyncio.create_task(view.select_case("case-old"))
        await asyncio.sleep(0)
        new = asyncio.create_task(view.select_case("case-new"))
        await asyncio.sleep(0)
        engine.gates["case-new"].set()
        await new
        engine.gates["case-old"].set()
        await old

    asyncio.run(scenario())
    assert view.case_id == "case-new"
    assert [wf.workflow_id for wf in view.workflows] == ["WF-NEW"]
    assert view.phase is ViewPhase.LOADED


class HeldReloadEngine(InMemoryProcessEngine):
    """Answers with the workflows current at call time, released in test order."""

    def __init__(self) -> None:
        super().__init__()
        self.hold = False
        self.pending: list[asyncio.Event] = []

    async def get_workflows_for_case(self, case_id):
        workflows = await super().get_workflows_for_case(case_id)
        if self.hold:
            gate = asyncio.Event()
            self.pending.append(gate)
            await gate.wait()
        return workflows


def test_overlapping_reloads_of_same_case_last_arrival_wins():
    engine = HeldReloadEngine()
    engine.add_case(Case(case_id="case-1", case_number="C-1001"), [_workflow("WF-A"), _workflow("WF-B")])
    view = WorkflowAggregationView(engine)

    async def scenario():
        await view.select_case("case-1")
        view.select_workflow_id("WF-B")
        engine.hold = True

        engine.set_workflows("case-1", [_workflow("WF-C"), _workflow("WF-B"), _workflow("WF-A")])
        first = asyncio.create_task(view.reload())
        await asyncio.sleep(0)
        engine.set_workflows("case-1", [_workflow("WF-B"), _workflow("WF-D")])
        second = asyncio.create_task(view.reload())
        await asyncio.sleep(0)
        assert len(engine.pending) == 2

        engine.pending[1].set()
        await second
        assert [wf.workflow_id for wf in view.workflows] == ["WF-B", "WF-D"]
        assert view.state.selected_index == 0

        engine.pending[0].set()
        await first

    asyncio.run(scenario())
    assert view.phase is ViewPhase.LOADED
    assert [wf.workflow_id for wf in view.workflows] == ["WF-C", "WF-B", "WF-A"]
    assert view.selected_workflow.workflow_id == "WF-B"
    assert view.state.selected_index == 1
