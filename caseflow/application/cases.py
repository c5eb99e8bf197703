"""Case search with server-side pagination."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from caseflow.core.schema import Case
from caseflow.domain import CaseSearchState, SearchCursor
from caseflow.infrastructure import EngineError, ProcessEngineClient

logger = logging.getLogger(__name__)

EMPTY_MESSAGE = "No cases found"


@dataclass(slots=True)
class CaseSearchResult:
    items: list[Case]
    has_more: bool


class CaseSearchController:
    """Queries cases page by page and tracks the cursor.

    The backend never reports a total; it only says whether a further page
    exists.  The displayed total is therefore exact on the last page and a
    lower bound (``"n+"``) everywhere else.  Every page change is a round trip
    and only the most recently issued request may update the state.
    """

    def __init__(self, engine: ProcessEngineClient, *, page_size: int = 10, lookback_months: int = 3) -> None:
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self._engine = engine
        self._lookback_months = lookback_months
        self._state = CaseSearchState(cursor=SearchCursor(page_size=page_size))
        self._issued = 0
        self._term = ""
        self._page_size = page_size

    @property
    def state(self) -> CaseSearchState:
        return self._state

    @property
    def cursor(self) -> SearchCursor:
        return self._state.cursor

    @property
    def items(self) -> list[Case]:
        return list(self._state.items)

    @property
    def total_display(self) -> str | None:
        if not self._state.searched:
            return None
        if self._state.error:
            return "0"
        return self._state.cursor.total_display

    # ------------------------------------------------------------------
    # operations
    # ------------------------------------------------------------------
    async def search(self, term: str | None, page: int = 1) -> CaseSearchResult | None:
        """Fetch ``page`` for ``term``; a blank term loads recent cases.

        Returns the applied result, or ``None`` when a newer request was
        issued while this one was pending and the response was discarded.
        """

        if page < 1:
            raise ValueError("page must be >= 1")

        term = (term or "").strip()
        self._term = term
        page_size = self._page_size
        self._issued += 1
        ticket = self._issued
        self._state.loading = True

        try:
            result = await self._engine.search_cases(
                term or None,
                page,
                page_size,
                lookback_months=self._lookback_months,
            )
        except EngineError as exc:
            if ticket != self._issued:
                logger.debug("Discarding stale case search failure (ticket %s)", ticket)
                return None
            logger.warning("Case search for %r page %s failed: %s", term, page, exc)
            self._state.cursor = SearchCursor(page=page, page_size=page_size, term=term)
            self._state.items = []
            self._state.searched = True
            self._state.loading = False
            self._state.error = f"Failed to search cases: {exc}"
            return None

        if ticket != self._issued:
            logger.debug("Discarding stale case search response (ticket %s)", ticket)
            return None

        items = list(result.items)
        self._state.cursor = SearchCursor(
            page=page,
            page_size=page_size,
            has_more=result.has_more,
            term=term,
            count=len(items),
        )
        self._state.items = items
        self._state.searched = True
        self._state.loading = False
        self._state.error = None
        logger.info("Case search %r page %s: %s items, has_more=%s", term, page, len(items), result.has_more)
        return CaseSearchResult(items=items, has_more=result.has_more)

    async def change_page(self, page: int) -> CaseSearchResult | None:
        return await self.search(self._term, page)

    async def change_page_size(self, page_size: int) -> CaseSearchResult | None:
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self._page_size = page_size
        return await self.search(self._term, 1)

    def clear(self) -> None:
        """Forget the active search; any pending response is discarded."""

        self._issued += 1
        self._term = ""
        page_size = self._page_size
        self._state = CaseSearchState(cursor=SearchCursor(page_size=page_size))

    # ------------------------------------------------------------------
    # rendering
    # ------------------------------------------------------------------
    def render(self) -> dict[str, Any]:
        state = self._state
        cursor = state.cursor
        count = len(state.items)
        range_start = (cursor.page - 1) * cursor.page_size + 1 if count else 0
        range_end = (cursor.page - 1) * cursor.page_size + count if count else 0
        return {
            "term": cursor.term,
            "items": [case.model_dump() for case in state.items],
            "page": cursor.page,
            "page_size": cursor.page_size,
            "has_more": cursor.has_more,
            "total_display": self.total_display,
            "range_start": range_start,
            "range_end": range_end,
            "searched": state.searched,
            "loading": state.loading,
            "error": state.error,
            "empty_message": EMPTY_MESSAGE if state.searched and not state.loading and not state.error and count == 0 else None,
        }
