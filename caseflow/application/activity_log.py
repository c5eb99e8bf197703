"""Event trail for a single activity.

The engine exposes no log store to the console, so the trail is projected
from the activity record itself.  Swap ``activity_log`` for a real retrieval
call once the engine offers one; callers only depend on ``LogLine``.
"""
from __future__ import annotations

from caseflow.core.schema import Activity, LogLine
from caseflow.core.status import CanonicalStatus, classify_activity_state, status_label


def activity_log(activity: Activity) -> list[LogLine]:
    status = classify_activity_state(activity.state_code)
    title = f"Work item {activity.activity_id}"
    if activity.name:
        title = f"{title} ({activity.name})"

    lines = [
        LogLine(timestamp=activity.created_at, level="INFO", message=f"{title} created at sequence {activity.sequence}"),
        LogLine(
            timestamp=activity.created_at,
            level="INFO",
            message=f"Assigned to {activity.performer}" if activity.performer else "No performer assigned",
        ),
        LogLine(level="INFO", message=f"Current state: {status_label(status)} (code {activity.state_code!r})"),
    ]
    if status is CanonicalStatus.FAILED:
        lines.append(LogLine(level="ERROR", message=f"{title} failed; operator retry required"))
    return lines


def render_log_lines(lines: list[LogLine]) -> list[str]:
    rendered: list[str] = []
    for line in lines:
        stamp = line.timestamp or "-"
        rendered.append(f"[{stamp}] {line.level} {line.message}")
    return rendered
