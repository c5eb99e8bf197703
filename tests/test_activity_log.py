from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parents[1]))

from caseflow.application import activity_log, render_log_lines
from caseflow.core.schema import Activity


def test_failed_activity_ends_with_error_line():
    activity = Activity(
        activity_id="ACT-1",
        sequence=2,
        name="Post to ledger",
        performer="finance01",
        state_code=5,
        created_at="2025-03-01T10:00:00",
    )

    lines = activity_log(activity)

    assert [line.level for line in lines] == ["INFO", "INFO", "INFO", "ERROR"]
    assert lines[0].timestamp == "2025-03-01T10:00:00"
    assert "Post to ledger" in lines[0].message
    assert lines[1].message == "Assigned to finance01"
    assert "Failed" in lines[2].message
    assert "failed" in lines[-1].message


def test_running_activity_has_no_failure_annotation():
    activity = Activity(activity_id="ACT-2", sequence=0, state_code="active")

    lines = activity_log(activity)

    assert all(line.level == "INFO" for line in lines)
    assert lines[1].message == "No performer assigned"
    assert "Running" in lines[2].message


def test_render_log_lines_formats_missing_timestamps():
    lines = activity_log(Activity(activity_id="ACT-3", sequence=1, state_code=None))
    rendered = render_log_lines(lines)
    assert rendered[0].startswith("[-] INFO Work item ACT-3")
    assert "Unknown" in rendered[2]
