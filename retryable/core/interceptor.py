"""
Failure Interceptor

Sits on a single test instance's failure path. When the test signals a failure
the interceptor decides, from the current reliability and retry count, whether
the failure is:

- HARD: raised outside any flaky section. Reported normally, never retried.
- SUPPRESSED: raised inside a flaky section with retry budget left. A diagnostic
  is attached, the test is queued with the coordinator and the harness is told
  not to tally this failure. The failure still aborts the test function.
- EXHAUSTED: raised inside a flaky section with no budget left. Reported like a
  hard failure and not queued again.

Forwarding the failure (aborting the test function) stays the harness's job;
the interceptor only arms the tally gate.
"""

from enum import Enum
from typing import List, Optional, Protocol

from retryable.core.diagnostics import Attachment, flake_attachment, log_step
from retryable.core.identity import PendingTest, TestIdentity
from retryable.core.reliability import RELIABLE


class FailureVerdict(str, Enum):
    HARD = "hard"
    SUPPRESSED = "suppressed"
    EXHAUSTED = "exhausted"


class TallyGate(Protocol):
    """Per-test hook into the harness's failure tally."""

    def set_tally_suppressed(self, error: Optional[BaseException]) -> None:
        """Skip tallying `error` when it reaches the harness. None re-opens the gate."""


class FailureInterceptor:
    def __init__(self, identity: TestIdentity, test_type: Optional[type] = None):
        self.identity = identity
        self.test_type = test_type
        self.reliability = RELIABLE
        self.retry_count = 0
        self.attachments: List[Attachment] = []
        # Wired by the harness adapter; None means "not running under a coordinator"
        self.coordinator = None
        self.gate: Optional[TallyGate] = None

    def classify(self) -> FailureVerdict:
        if not self.reliability.is_flaky:
            return FailureVerdict.HARD
        if self.retry_count < self.reliability.policy.max_retry_count:
            return FailureVerdict.SUPPRESSED
        return FailureVerdict.EXHAUSTED

    def snapshot(self) -> PendingTest:
        return PendingTest(
            identity=self.identity,
            retry_count=self.retry_count,
            policy=self.reliability.policy,
            test_type=self.test_type,
        )

    def on_failure_raised(self, description: str, location: str, expected: bool,
                          error: Optional[BaseException] = None) -> FailureVerdict:
        verdict = self.classify()

        if verdict is FailureVerdict.EXHAUSTED:
            policy = self.reliability.policy
            log_step("flaky_exhausted", f"{self.identity} failed after {self.retry_count} of "
                                        f"{policy.max_retry_count} retries: {description}")
            return verdict

        if verdict is FailureVerdict.SUPPRESSED:
            if self.coordinator is None or self.gate is None:
                log_step("flaky_unbound", f"{self.identity} failed inside a flaky section but is "
                                          f"not running under a retry coordinator, reporting as a hard failure")
                return FailureVerdict.HARD
            self._suppress(description, location, expected, error)

        return verdict

    def _suppress(self, description, location, expected, error):
        policy = self.reliability.policy
        attachment = flake_attachment(policy, self.retry_count, description, location, expected)
        self.attachments.append(attachment)
        log_step("flaky_suppressed", f"{self.identity} queued for retry "
                                     f"({self.retry_count + 1}/{policy.max_retry_count}): {description}")
        self.coordinator.enqueue(self.snapshot())
        self.gate.set_tally_suppressed(error)
