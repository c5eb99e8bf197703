"""Integration with the Documentum REST services."""
from __future__ import annotations

import logging
from datetime import date
from typing import Any
from urllib.parse import urlparse

import httpx

from caseflow.core.dates import months_ago
from caseflow.core.schema import Activity, Case, CasePage, CommandResult, WorkflowInstance, WorkflowPage

from .engine import ApplicationError, EngineError, TransportFailure

logger = logging.getLogger(__name__)

DOCUMENTUM_JSON = "application/vnd.emc.documentum+json"

CASE_COLUMNS = "r_object_id, object_name, subject, ho_ro, description, department_name, functions, r_creation_date"


class DocumentumEngineClient:
    """Async client reading cases and workflows from a Documentum repository."""

    def __init__(
        self,
        base_url: str,
        repository: str,
        username: str,
        password: str,
        *,
        timeout: float = 30.0,
        restart_path: str = "/workflows/{workflow_id}/restart",
        retry_path: str = "/workflows/{workflow_id}/work-items/{activity_id}/retry",
        package_page_size: int = 100,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        parsed = urlparse(base_url)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("base_url must include scheme and host")

        self._repository_url = f"{base_url.rstrip('/')}/repositories/{repository}"
        self._restart_path = restart_path
        self._retry_path = retry_path
        self._package_page_size = package_page_size
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None
        self._auth = httpx.BasicAuth(username, password)
        self._headers = {"Accept": DOCUMENTUM_JSON}

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _quote(value: str) -> str:
        """Escape a value for use inside a single-quoted DQL literal."""

        return value.strip().replace("'", "''")

    @staticmethod
    def _properties(entry: Any) -> dict[str, Any] | None:
        if not isinstance(entry, dict):
            return None
        content = entry.get("content")
        if not isinstance(content, dict):
            return None
        props = content.get("properties")
        return props if isinstance(props, dict) else None

    @classmethod
    def _entry_properties(cls, payload: dict[str, Any]) -> list[dict[str, Any]]:
        entries = payload.get("entries") or []
        rows: list[dict[str, Any]] = []
        for entry in entries:
            props = cls._properties(entry)
            if props is not None:
                rows.append(props)
        return rows

    @staticmethod
    def _has_next(payload: dict[str, Any]) -> bool:
        links = payload.get("links") or []
        return any(isinstance(link, dict) and link.get("rel") == "next" for link in links)

    @staticmethod
    def _text(value: Any) -> str | None:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    async def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self._client.request(method, url, auth=self._auth, headers=self._headers, **kwargs)
        except httpx.HTTPError as exc:
            raise TransportFailure(f"{method} {url} failed: {exc}") from exc

        if response.is_error:
            detail = response.reason_phrase
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict) and body.get("message"):
                detail = str(body["message"])
            raise TransportFailure(f"{response.status_code} {detail}", status_code=response.status_code)

        if not response.content:
            return {}
        try:
            payload = response.json()
        except ValueError as exc:
            raise TransportFailure(f"{method} {url} returned a non-JSON body") from exc
        if not isinstance(payload, dict):
            raise TransportFailure(f"{method} {url} returned an unexpected body")
        if payload.get("error"):
            raise ApplicationError(str(payload["error"]))
        return payload

    async def _dql(self, dql: str, *, page: int = 1, page_size: int = 100) -> dict[str, Any]:
        logger.debug("Executing DQL: %s", dql)
        params = {"dql": dql, "items-per-page": page_size, "page": page, "inline": "true"}
        return await self._request("GET", self._repository_url, params=params)

    def _case_from_properties(self, props: dict[str, Any]) -> Case | None:
        case_id = self._text(props.get("r_object_id"))
        if not case_id:
            return None
        return Case(
            case_id=case_id,
            case_number=self._text(props.get("object_name")) or case_id,
            subject=self._text(props.get("subject")),
            description=self._text(props.get("description")),
            office=self._text(props.get("ho_ro")),
            department=self._text(props.get("department_name")),
            functions=self._text(props.get("functions")),
            created_at=self._text(props.get("r_creation_date")),
        )

    def _activity_from_properties(self, props: dict[str, Any]) -> Activity | None:
        activity_id = self._text(props.get("r_object_id"))
        if not activity_id:
            return None
        try:
            sequence = int(props.get("r_act_seqno") or 0)
        except (TypeError, ValueError):
            sequence = 0
        return Activity(
            activity_id=activity_id,
            sequence=sequence,
            name=self._text(props.get("r_act_name") or props.get("object_name")),
            performer=self._text(props.get("r_performer_name")),
            state_code=props.get("r_runtime_state"),
            created_at=self._text(props.get("r_creation_date")),
        )

    def _workflow_from_properties(self, props: dict[str, Any], activities: list[Activity]) -> WorkflowInstance:
        return WorkflowInstance(
            workflow_id=str(props.get("r_object_id")),
            process_name=self._text(props.get("object_name")),
            supervisor=self._text(props.get("supervisor_name")),
            started_at=self._text(props.get("r_start_date")),
            state_code=props.get("r_runtime_state"),
            activities=activities,
        )

    async def _workflow_ids_for_case(self, case_id: str) -> list[str]:
        dql = f"SELECT DISTINCT r_workflow_id FROM dmi_package WHERE r_component_id = '{self._quote(case_id)}'"
        payload = await self._dql(dql, page_size=self._package_page_size)
        workflow_ids: list[str] = []
        for props in self._entry_properties(payload):
            workflow_id = self._text(props.get("r_workflow_id"))
            if workflow_id and workflow_id not in workflow_ids:
                workflow_ids.append(workflow_id)
        return workflow_ids

    async def _activities_for_workflow(self, workflow_id: str) -> list[Activity]:
        dql = (
            "SELECT r_object_id, r_act_seqno, r_act_name, r_performer_name, r_runtime_state, r_creation_date "
            f"FROM dmi_workitem WHERE r_workflow_id = '{self._quote(workflow_id)}' "
            "ORDER BY r_act_seqno"
        )
        payload = await self._dql(dql)
        activities: list[Activity] = []
        for props in self._entry_properties(payload):
            activity = self._activity_from_properties(props)
            if activity is not None:
                activities.append(activity)
        return activities

    async def _command(self, path: str) -> CommandResult:
        payload = await self._request("POST", f"{self._repository_url}{path}", json={})
        ok = payload.get("ok", True)
        message = self._text(payload.get("message"))
        return CommandResult(ok=bool(ok), message=message)

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    def build_case_query(
        self,
        case_number: str | None,
        page: int,
        page_size: int,
        *,
        lookback_months: int = 3,
        today: date | None = None,
    ) -> str:
        """Return the DQL selecting one page of cases, newest first.

        ``RETURN_TOP`` caps the scan one row past the requested page so the
        REST layer still sees a further row and reports a ``next`` link.
        """

        top = page * page_size + 1
        if case_number and case_number.strip():
            where = f"object_name LIKE '%{self._quote(case_number)}%'"
        else:
            start = months_ago(today or date.today(), lookback_months)
            where = f"r_creation_date >= DATE('{start.isoformat()}', 'yyyy-mm-dd')"
        return (
            f"SELECT {CASE_COLUMNS} FROM cms_case_folder WHERE {where} "
            f"ORDER BY r_creation_date DESC ENABLE(RETURN_TOP {top})"
        )

    async def search_cases(
        self,
        case_number: str | None,
        page: int,
        page_size: int,
        *,
        lookback_months: int = 3,
    ) -> CasePage:
        dql = self.build_case_query(case_number, page, page_size, lookback_months=lookback_months)
        if case_number and case_number.strip():
            logger.info("Searching cases for: %s", case_number.strip())
        else:
            logger.info("Loading recent cases (last %s months)", lookback_months)

        payload = await self._dql(dql, page=page, page_size=page_size)
        cases = [case for props in self._entry_properties(payload) if (case := self._case_from_properties(props))]
        has_more = self._has_next(payload)
        logger.info("Fetched %s cases for page %s, has_more: %s", len(cases), page, has_more)
        return CasePage(items=cases, has_more=has_more)

    async def get_workflows_for_case(self, case_id: str) -> list[WorkflowInstance]:
        workflow_ids = await self._workflow_ids_for_case(case_id)
        logger.info("Found %s unique workflow ids for case %s", len(workflow_ids), case_id)

        workflows: list[WorkflowInstance] = []
        for workflow_id in workflow_ids:
            try:
                payload = await self._request("GET", f"{self._repository_url}/objects/{workflow_id}")
            except EngineError as exc:
                logger.warning("Error fetching workflow details for %s: %s", workflow_id, exc)
                continue
            props = payload.get("properties")
            if not isinstance(props, dict):
                continue
            props.setdefault("r_object_id", workflow_id)
            activities = await self._activities_for_workflow(workflow_id)
            workflows.append(self._workflow_from_properties(props, activities))

        logger.info("Fetched %s workflow details for case %s", len(workflows), case_id)
        return workflows

    async def restart_workflow(self, workflow_id: str) -> CommandResult:
        return await self._command(self._restart_path.format(workflow_id=workflow_id))

    async def retry_activity(self, workflow_id: str, activity_id: str) -> CommandResult:
        return await self._command(self._retry_path.format(workflow_id=workflow_id, activity_id=activity_id))

    async def list_running_workflows(self, process_id: str, page: int, page_size: int) -> WorkflowPage:
        # the filter expression must reach the server with its quotes and '=' intact
        url = (
            f"{self._repository_url}/workflows?filter=process_id='{self._quote(process_id)}'"
            f"&items-per-page={page_size}&page={page}&inline=true"
        )
        payload = await self._request("GET", url)
        workflows = [
            self._workflow_from_properties(props, [])
            for props in self._entry_properties(payload)
            if props.get("r_object_id")
        ]
        return WorkflowPage(items=workflows, has_more=self._has_next(payload))

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()


__all__ = ["DocumentumEngineClient"]
