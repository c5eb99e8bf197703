#!/usr/bin/env python
from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from dotenv import load_dotenv

sys.path.append(str(Path(__file__).resolve().parents[1]))

from caseflow.application import CaseSearchController, WorkflowAggregationView, activity_log, render_log_lines  # noqa: E402
from caseflow.core.settings import load_settings  # noqa: E402
from caseflow.infrastructure import DocumentumEngineClient, configure_engine_client, get_engine_client  # noqa: E402


async def _inspect(case_number: str, show_logs: bool) -> int:
    settings = load_settings()
    if settings.documentum is None:
        return await _print_case(case_number, show_logs, settings.case_lookback_months)

    dctm = settings.documentum
    client = DocumentumEngineClient(dctm.url, dctm.repository, dctm.username, dctm.password, timeout=dctm.timeout)
    configure_engine_client(client)
    try:
        return await _print_case(case_number, show_logs, settings.case_lookback_months)
    finally:
        await client.close()


async def _print_case(case_number: str, show_logs: bool, lookback_months: int) -> int:
    engine = get_engine_client()

    cases = CaseSearchController(engine, page_size=1, lookback_months=lookback_months)
    await cases.search(case_number)
    if cases.state.error:
        print(cases.state.error)
        return 1
    if not cases.items:
        print(f"No case matches {case_number}")
        return 1

    case = cases.items[0]
    view = WorkflowAggregationView(engine)
    await view.select_case(case.case_id)
    rendered = view.render()
    if rendered["error"]:
        print(rendered["error"])
        return 1

    print(f"{case.case_number} ({case.case_id}): {len(rendered['workflows'])} workflow(s)")
    for workflow, source in zip(rendered["workflows"], view.workflows):
        print(f"  {workflow['workflow_id']} {workflow['process_name'] or '-'} [{workflow['label']}]")
        for activity in workflow["activities"]:
            marker = " retry" if activity["can_retry"] else ""
            print(f"    #{activity['sequence']} {activity['activity_id']} {activity['performer'] or '-'} [{activity['label']}]{marker}")
        if show_logs:
            for activity in source.activities:
                for line in render_log_lines(activity_log(activity)):
                    print(f"      {line}")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Print the workflows attached to a case")
    parser.add_argument("case_number", help="case number, e.g. C-1001")
    parser.add_argument("--logs", action="store_true", help="include each activity's event trail")
    args = parser.parse_args()

    load_dotenv()
    raise SystemExit(asyncio.run(_inspect(args.case_number, args.logs)))


if __name__ == "__main__":
    main()
