from __future__ import annotations

from fastapi import APIRouter, HTTPException

from caseflow.application import ConsoleSession, get_session_registry

router = APIRouter(prefix="/sessions", tags=["sessions"])


def get_session(session_id: str) -> ConsoleSession:
    session = get_session_registry().get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="session not found")
    return session


@router.post("")
async def open_session() -> dict:
    session = get_session_registry().create()
    return session.render()


@router.get("/{session_id}")
async def get_session_state(session_id: str) -> dict:
    return get_session(session_id).render()


@router.delete("/{session_id}")
async def close_session(session_id: str) -> dict:
    if not get_session_registry().drop(session_id):
        raise HTTPException(status_code=404, detail="session not found")
    return {"session_id": session_id, "closed": True}


@router.get("/{session_id}/notifications")
async def drain_notifications(session_id: str) -> dict:
    session = get_session(session_id)
    return {"items": session.drain_notifications()}
