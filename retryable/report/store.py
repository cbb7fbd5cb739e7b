"""
Retry report persisted in the result bundle.

    { "retries": [ { "name", "fixable", "reason",
                     "attemptedRetries", "maxRetriesAllowed" }, ... ] }

One file per result bundle. Every write re-reads the file, replaces entries that
share a name with the new ones, keeps everything else and writes the whole list
back sorted by name. Reporting is best-effort: nothing in here raises into the
test run.
"""

import json
import os
import tempfile
from typing import Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from retryable import config
from retryable.core.diagnostics import log_step
from retryable.core.identity import PendingTest


class RetryReportEntry(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    fixable: bool
    reason: str
    attempted_retries: int = Field(alias="attemptedRetries")
    max_retries_allowed: int = Field(alias="maxRetriesAllowed")

    @classmethod
    def for_pending(cls, pending: PendingTest) -> "RetryReportEntry":
        return cls(
            name=pending.identity.qualified_name,
            fixable=pending.policy.is_fixable,
            reason=pending.policy.reason,
            attempted_retries=pending.retry_count + 1,
            max_retries_allowed=pending.policy.max_retry_count,
        )


class RetryReport(BaseModel):
    retries: List[RetryReportEntry] = Field(default_factory=list)

    def merged_with(self, entries: Iterable[RetryReportEntry]) -> "RetryReport":
        by_name = {entry.name: entry for entry in self.retries}
        for entry in entries:
            by_name[entry.name] = entry
        return RetryReport(retries=sorted(by_name.values(), key=lambda e: e.name))


class RetryReportStore:
    def __init__(self, path: Optional[str]):
        self.path = path

    @classmethod
    def from_environment(cls) -> "RetryReportStore":
        return cls(config.report_path())

    def load(self) -> RetryReport:
        """Absent, unreadable or malformed reports all load as an empty report."""
        if self.path is None or not os.path.exists(self.path):
            return RetryReport()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return RetryReport.model_validate(json.load(f))
        except (OSError, ValueError, ValidationError):
            return RetryReport()

    def merge(self, entries: Iterable[RetryReportEntry]) -> Optional[RetryReport]:
        """Merge `entries` into the stored report. Returns the written report, or None if nothing was written."""
        if self.path is None:
            return None
        report = self.load().merged_with(entries)
        try:
            self._write(report)
        except OSError as e:
            log_step("retry_report", f"Could not write retry report to {self.path}: {e}")
            return None
        log_step("retry_report", f"Wrote {len(report.retries)} retry entries to {self.path}")
        return report

    def _write(self, report: RetryReport):
        directory = os.path.dirname(self.path) or "."
        os.makedirs(directory, exist_ok=True)
        payload = report.model_dump(by_alias=True)
        # temp file in the same directory so os.replace stays atomic
        fd, tmp_path = tempfile.mkstemp(prefix=".retries-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
