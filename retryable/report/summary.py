import json
import os
from typing import Any, Dict, Optional

from retryable import config
from retryable.report.store import RetryReportStore


def summarize_report(report_path: Optional[str] = None, out_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Reads a retry report and computes:
      - retried_tests: number of distinct test functions that were retried
      - fixable / not_fixable: split of retried_tests by policy
      - total_attempted_retries: sum of attemptedRetries
      - exhausted: entries whose attempts reached maxRetriesAllowed
      - names: retried test names, sorted
    Defaults to the report of the current result bundle. Optionally persists
    the summary to out_path. Returns the summary dict.
    """
    if report_path is None:
        report_path = config.report_path()
    report = RetryReportStore(report_path).load()

    entries = report.retries
    summary = {
        "report_path": report_path,
        "retried_tests": len(entries),
        "fixable": sum(1 for e in entries if e.fixable),
        "not_fixable": sum(1 for e in entries if not e.fixable),
        "total_attempted_retries": sum(e.attempted_retries for e in entries),
        "exhausted": sorted(e.name for e in entries if e.attempted_retries >= e.max_retries_allowed),
        "names": sorted(e.name for e in entries),
    }

    if out_path:
        os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
        with open(out_path, "w", encoding="utf-8") as f:
            json.dump(summary, f, indent=2)

    return summary


def format_summary(summary: Dict[str, Any]) -> str:
    count = summary["retried_tests"]
    if not count:
        return "No tests were retried."
    tests = "test" if count == 1 else "tests"
    lines = [f"Retried {count} {tests} ({summary['fixable']} fixable, {summary['not_fixable']} not fixable)"]
    for name in summary["names"]:
        marker = " (retry budget used up)" if name in summary["exhausted"] else ""
        lines.append(f"  - {name}{marker}")
    return "\n".join(lines)
