from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query

from caseflow.application import activity_log, get_session_registry, render_log_lines
from caseflow.core.status import classify_activity_state, retry_allowed
from caseflow.infrastructure import EngineError

from .sessions import get_session

router = APIRouter(tags=["workflows"])


@router.post("/sessions/{session_id}/workflows/case")
async def select_case(session_id: str, payload: dict) -> dict:
    case_id = str(payload.get("case_id") or "").strip()
    if not case_id:
        raise HTTPException(status_code=400, detail="case_id is required")
    session = get_session(session_id)
    await session.workflows.select_case(case_id)
    return session.workflows.render(session.actions.in_flight)


@router.post("/sessions/{session_id}/workflows/reload")
async def reload_workflows(session_id: str) -> dict:
    session = get_session(session_id)
    if session.workflows.case_id is None:
        raise HTTPException(status_code=400, detail="no case selected")
    await session.workflows.reload()
    return session.workflows.render(session.actions.in_flight)


@router.get("/sessions/{session_id}/workflows")
async def get_workflows(session_id: str) -> dict:
    session = get_session(session_id)
    return session.workflows.render(session.actions.in_flight)


@router.post("/sessions/{session_id}/workflows/select")
async def select_workflow(session_id: str, payload: dict) -> dict:
    session = get_session(session_id)
    try:
        if payload.get("workflow_id"):
            session.workflows.select_workflow_id(str(payload["workflow_id"]))
        elif "index" in payload:
            session.workflows.select_workflow(int(payload["index"]))
        else:
            raise HTTPException(status_code=400, detail="index or workflow_id is required")
    except (IndexError, ValueError, TypeError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="workflow not found") from exc
    return session.workflows.render(session.actions.in_flight)


@router.post("/sessions/{session_id}/workflows/{workflow_id}/restart")
async def restart_workflow(session_id: str, workflow_id: str) -> dict:
    session = get_session(session_id)
    if session.workflows.state.index_of(workflow_id) is None:
        raise HTTPException(status_code=404, detail="workflow not found")
    outcome = await session.actions.restart_workflow(workflow_id)
    if not outcome.accepted:
        raise HTTPException(status_code=409, detail=outcome.as_dict())
    return {"outcome": outcome.as_dict(), "view": session.workflows.render(session.actions.in_flight)}


@router.post("/sessions/{session_id}/workflows/{workflow_id}/activities/{activity_id}/retry")
async def retry_activity(session_id: str, workflow_id: str, activity_id: str) -> dict:
    session = get_session(session_id)
    activity = session.workflows.find_activity(workflow_id, activity_id)
    if activity is None:
        raise HTTPException(status_code=404, detail="activity not found")
    if not retry_allowed(classify_activity_state(activity.state_code)):
        raise HTTPException(status_code=409, detail="retry is only offered for failed or halted activities")
    outcome = await session.actions.retry_activity(workflow_id, activity_id)
    if not outcome.accepted:
        raise HTTPException(status_code=409, detail=outcome.as_dict())
    return {"outcome": outcome.as_dict(), "view": session.workflows.render(session.actions.in_flight)}


@router.get("/sessions/{session_id}/workflows/{workflow_id}/activities/{activity_id}/log")
async def get_activity_log(session_id: str, workflow_id: str, activity_id: str) -> dict:
    session = get_session(session_id)
    activity = session.workflows.find_activity(workflow_id, activity_id)
    if activity is None:
        raise HTTPException(status_code=404, detail="activity not found")
    lines = activity_log(activity)
    return {
        "activity_id": activity_id,
        "items": [line.model_dump() for line in lines],
        "text": render_log_lines(lines),
    }


@router.get("/workflows/processes")
async def list_processes() -> list[dict]:
    return get_session_registry().list_process_templates()


@router.get("/workflows/instances")
async def list_running_workflows(
    process_name: str = Query(alias="processName"),
    page: int = Query(default=1, ge=1),
    size: int = Query(default=10, ge=1),
) -> dict:
    try:
        result = await get_session_registry().list_running_workflows(process_name, page, size)
    except EngineError as exc:
        raise HTTPException(status_code=502, detail=f"Failed to fetch running workflows: {exc}") from exc
    return {
        "items": [workflow.model_dump(exclude={"activities"}) for workflow in result.items],
        "has_more": result.has_more,
        "page": page,
        "page_size": size,
    }
