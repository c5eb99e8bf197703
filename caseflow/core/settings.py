from __future__ import annotations

import os
from dataclasses import dataclass, field


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _list_env(name: str) -> list[str]:
    raw = os.getenv(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass(slots=True)
class DocumentumSettings:
    url: str
    repository: str
    username: str
    password: str
    timeout: float = 30.0


@dataclass(slots=True)
class ConsoleSettings:
    """Runtime configuration collected from the environment."""

    case_lookback_months: int = 3
    page_size: int = 10
    workflow_processes: list[str] = field(default_factory=list)
    cors_origins: list[str] = field(default_factory=list)
    log_level: str = "INFO"
    session_ttl_seconds: float = 1800.0
    max_sessions: int = 200
    documentum: DocumentumSettings | None = None


def load_settings() -> ConsoleSettings:
    """Read console settings from environment variables."""

    documentum: DocumentumSettings | None = None
    url = os.getenv("DCTM_REST_URL")
    repository = os.getenv("DCTM_REPOSITORY")
    if url and repository:
        documentum = DocumentumSettings(
            url=url.rstrip("/"),
            repository=repository,
            username=os.getenv("DCTM_USERNAME", ""),
            password=os.getenv("DCTM_PASSWORD", ""),
            timeout=_float_env("DCTM_TIMEOUT", 30.0),
        )

    origins = _list_env("API_CORS_ORIGINS")
    if not origins:
        origins = ["http://localhost:5173", "http://localhost:5174"]

    return ConsoleSettings(
        case_lookback_months=max(1, _int_env("CASEFLOW_CASE_LOOKBACK_MONTHS", 3)),
        page_size=max(1, _int_env("CASEFLOW_PAGE_SIZE", 10)),
        workflow_processes=_list_env("CASEFLOW_WORKFLOW_PROCESSES"),
        cors_origins=origins,
        log_level=(os.getenv("CASEFLOW_LOG_LEVEL") or "INFO").upper(),
        session_ttl_seconds=max(1.0, _float_env("CASEFLOW_SESSION_TTL_SECONDS", 1800.0)),
        max_sessions=max(1, _int_env("CASEFLOW_MAX_SESSIONS", 200)),
        documentum=documentum,
    )
