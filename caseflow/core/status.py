"""Normalisation of engine runtime-state codes into canonical statuses."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class CanonicalStatus(str, Enum):
    """Closed set of statuses the console displays."""

    DORMANT = "dormant"
    RUNNING = "running"
    FINISHED = "finished"
    TERMINATED = "terminated"
    HALTED = "halted"
    FAILED = "failed"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class Numeric:
    value: int


@dataclass(frozen=True, slots=True)
class Textual:
    value: str


@dataclass(frozen=True, slots=True)
class Absent:
    pass


RawState = Numeric | Textual | Absent


NUMERIC_STATES: dict[int, CanonicalStatus] = {
    0: CanonicalStatus.DORMANT,
    1: CanonicalStatus.RUNNING,
    2: CanonicalStatus.FINISHED,
    3: CanonicalStatus.TERMINATED,
    4: CanonicalStatus.HALTED,
    5: CanonicalStatus.FAILED,
}

TEXTUAL_STATES: dict[str, CanonicalStatus] = {
    "running": CanonicalStatus.RUNNING,
    "active": CanonicalStatus.RUNNING,
    "halted": CanonicalStatus.HALTED,
    "paused": CanonicalStatus.HALTED,
    "failed": CanonicalStatus.FAILED,
    "finished": CanonicalStatus.FINISHED,
    "completed": CanonicalStatus.FINISHED,
    "terminated": CanonicalStatus.TERMINATED,
}

STATUS_LABELS: dict[CanonicalStatus, str] = {
    CanonicalStatus.DORMANT: "Dormant",
    CanonicalStatus.RUNNING: "Running",
    CanonicalStatus.FINISHED: "Finished",
    CanonicalStatus.TERMINATED: "Terminated",
    CanonicalStatus.HALTED: "Halted",
    CanonicalStatus.FAILED: "Failed",
    CanonicalStatus.UNKNOWN: "Unknown",
}

RETRYABLE_STATUSES = frozenset({CanonicalStatus.FAILED, CanonicalStatus.HALTED})


def parse_raw_state(value: Any) -> RawState:
    """Wrap an engine-reported value in its :data:`RawState` variant."""

    # bool is an int subclass; a True/False state code is not a code at all
    if isinstance(value, bool):
        return Absent()
    if isinstance(value, int):
        return Numeric(value)
    if isinstance(value, str):
        return Textual(value)
    return Absent()


def classify_raw(state: RawState) -> CanonicalStatus:
    match state:
        case Numeric(value=code):
            return NUMERIC_STATES.get(code, CanonicalStatus.UNKNOWN)
        case Textual(value=text):
            return TEXTUAL_STATES.get(text.strip().lower(), CanonicalStatus.UNKNOWN)
        case _:
            return CanonicalStatus.UNKNOWN


def classify(code: Any = None) -> CanonicalStatus:
    """Map a raw runtime-state code onto a :class:`CanonicalStatus`.

    Total over every input: integers outside ``0..5``, unrecognised strings,
    ``None`` and values of any other type all classify as ``unknown``.
    """

    return classify_raw(parse_raw_state(code))


def classify_workflow_state(code: Any = None) -> CanonicalStatus:
    return classify(code)


def classify_activity_state(code: Any = None) -> CanonicalStatus:
    # Work items share the workflow code table until the engine documents its own.
    return classify(code)


def status_label(status: CanonicalStatus) -> str:
    return STATUS_LABELS[status]


def describe(status: CanonicalStatus, raw: Any = None) -> dict[str, Any]:
    """Render a status the way the console tables display it."""

    return {"status": status.value, "label": status_label(status), "raw": raw}


def retry_allowed(status: CanonicalStatus) -> bool:
    return status in RETRYABLE_STATUSES


__all__ = [
    "Absent",
    "CanonicalStatus",
    "Numeric",
    "RawState",
    "Textual",
    "classify",
    "classify_activity_state",
    "classify_raw",
    "classify_workflow_state",
    "describe",
    "parse_raw_state",
    "retry_allowed",
    "status_label",
]
