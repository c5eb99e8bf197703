from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query

from caseflow.application import get_session_registry
from caseflow.infrastructure import EngineError, get_engine_client

from .sessions import get_session

logger = logging.getLogger(__name__)

router = APIRouter(tags=["cases"])


def _positive(payload: dict, key: str) -> int:
    try:
        value = int(payload.get(key))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail=f"{key} must be an integer") from None
    if value < 1:
        raise HTTPException(status_code=400, detail=f"{key} must be >= 1")
    return value


@router.get("/sessions/{session_id}/cases")
async def search_cases(
    session_id: str,
    term: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
) -> dict:
    """Search by case number; a blank term lists recent cases."""
    session = get_session(session_id)
    await session.cases.search(term, page)
    return session.cases.render()


@router.post("/sessions/{session_id}/cases/page")
async def change_page(session_id: str, payload: dict) -> dict:
    page = _positive(payload, "page")
    session = get_session(session_id)
    await session.cases.change_page(page)
    return session.cases.render()


@router.post("/sessions/{session_id}/cases/page-size")
async def change_page_size(session_id: str, payload: dict) -> dict:
    page_size = _positive(payload, "page_size")
    session = get_session(session_id)
    await session.cases.change_page_size(page_size)
    return session.cases.render()


@router.delete("/sessions/{session_id}/cases")
async def clear_search(session_id: str) -> dict:
    session = get_session(session_id)
    session.cases.clear()
    return session.cases.render()


@router.get("/cases/search")
async def search_cases_once(
    case_number: str | None = Query(default=None, alias="caseNumber"),
    page: int = Query(default=1, ge=1),
    size: int = Query(default=10, ge=1),
) -> dict:
    """Stateless page lookup for clients that keep their own cursor."""
    settings = get_session_registry().settings
    try:
        result = await get_engine_client().search_cases(
            case_number,
            page,
            size,
            lookback_months=settings.case_lookback_months,
        )
    except EngineError as exc:
        logger.warning("Error in case search: %s", exc)
        return {
            "cases": [],
            "hasNext": False,
            "page": page,
            "itemsPerPage": size,
            "error": f"Failed to search cases: {exc}",
        }
    return {
        "cases": [case.model_dump() for case in result.items],
        "hasNext": result.has_more,
        "page": page,
        "itemsPerPage": size,
    }
