"""
Retry Coordinator

Collects the tests whose flaky failures were suppressed during a suite run and,
once the suite finishes, writes the retry report, builds a suite holding only
those test functions and runs it straight away.

A coordinator lives for one top-level run. It is handed to every test instance
it coordinates (see retryable.harness.suite) instead of being a global.

Termination: every retried instance starts with a retry count one higher than
the instance it replaces, and the interceptor stops suppressing once that count
reaches the policy's ceiling. Each round therefore shrinks the budget of every
test it contains.
"""

from typing import Dict, List, Optional

from retryable.core.diagnostics import log_step
from retryable.core.errors import HarnessInvariantError
from retryable.core.identity import PendingTest, TestIdentity
from retryable.core.suite_builder import RetrySuiteBuilder
from retryable.report.store import RetryReportEntry, RetryReportStore


class RetryCoordinator:
    def __init__(self, builder: Optional[RetrySuiteBuilder] = None,
                 report_store: Optional[RetryReportStore] = None):
        self.builder = builder
        self.report_store = report_store if report_store is not None else RetryReportStore.from_environment()
        self.pending: Dict[TestIdentity, PendingTest] = {}
        self.rounds = 0
        # coordinated suites currently running; retries start when it drops to 0
        self.depth = 0

    def enqueue(self, test: PendingTest):
        # Keyed by identity: a second failure of the same test function in one
        # run replaces the earlier snapshot.
        self.pending[test.identity] = test

    def pending_tests(self) -> List[PendingTest]:
        return sorted(self.pending.values(), key=lambda p: p.identity)

    def on_suite_finished(self, suite, result):
        """
        Called once per finished top-level suite. Returns the retry suite that was
        run, or None when nothing was pending.
        """
        if not self.pending:
            return None
        if self.builder is None:
            raise HarnessInvariantError(f"{len(self.pending)} test(s) are queued for retry "
                                        f"but the coordinator has no suite builder")

        ordered = self.pending_tests()
        self.report_store.merge(RetryReportEntry.for_pending(p) for p in ordered)
        retry_suite = self.builder.build(ordered)
        self.pending.clear()

        self.rounds += 1
        names = ", ".join(p.identity.qualified_name for p in ordered)
        log_step("retry_round", f"Round {self.rounds}: retrying {len(ordered)} test(s) "
                                f"after {getattr(suite, 'name', suite.__class__.__name__)}: {names}")
        retry_suite.run(result)
        return retry_suite
