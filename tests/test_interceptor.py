import pytest

from retryable.core.identity import TestIdentity
from retryable.core.interceptor import FailureInterceptor, FailureVerdict
from retryable.core.reliability import RELIABLE, Fixable, Flaky, NotFixable


class RecordingCoordinator:
    def __init__(self):
        self.enqueued = []

    def enqueue(self, test):
        self.enqueued.append(test)


class RecordingGate:
    def __init__(self):
        self.suppressed = []

    def set_tally_suppressed(self, error):
        self.suppressed.append(error)


def make_interceptor(policy=None, retry_count=0, bound=True):
    interceptor = FailureInterceptor(TestIdentity("ui.CartTests", "test_checkout"))
    if policy is not None:
        interceptor.reliability = Flaky(policy=policy)
    interceptor.retry_count = retry_count
    if bound:
        interceptor.coordinator = RecordingCoordinator()
        interceptor.gate = RecordingGate()
    return interceptor


def raise_failure(interceptor, error=None):
    return interceptor.on_failure_raised("AssertionError: basket empty", "test_cart.py:12", True, error)


def test_reliable_failures_are_hard():
    interceptor = make_interceptor()
    assert interceptor.reliability is RELIABLE
    assert raise_failure(interceptor) is FailureVerdict.HARD
    assert interceptor.coordinator.enqueued == []
    assert interceptor.gate.suppressed == []


@pytest.mark.parametrize("max_retry_count", [0, 1, 2, 5])
def test_not_fixable_suppresses_until_budget_is_spent(max_retry_count):
    policy = NotFixable(reason="payment sandbox", max_retry_count=max_retry_count)
    for attempt in range(max_retry_count + 2):
        verdict = raise_failure(make_interceptor(policy, retry_count=attempt))
        if attempt < max_retry_count:
            assert verdict is FailureVerdict.SUPPRESSED
        else:
            assert verdict is FailureVerdict.EXHAUSTED


def test_fixable_suppresses_first_attempt_only():
    policy = Fixable(reason="race")
    assert raise_failure(make_interceptor(policy, retry_count=0)) is FailureVerdict.SUPPRESSED
    assert raise_failure(make_interceptor(policy, retry_count=1)) is FailureVerdict.EXHAUSTED


def test_suppression_queues_snapshot_and_arms_gate():
    policy = NotFixable(reason="payment sandbox", max_retry_count=3)
    interceptor = make_interceptor(policy, retry_count=1)
    error = AssertionError("basket empty")

    assert raise_failure(interceptor, error) is FailureVerdict.SUPPRESSED

    (pending,) = interceptor.coordinator.enqueued
    assert pending.identity == interceptor.identity
    assert pending.retry_count == 1
    assert pending.policy == policy
    assert interceptor.gate.suppressed == [error]


def test_suppression_attaches_diagnostic():
    interceptor = make_interceptor(Fixable(reason="race"))
    raise_failure(interceptor)

    (attachment,) = interceptor.attachments
    assert "Flakiness: fixable(reason: 'race')" in attachment.text
    assert "Retry count: 0" in attachment.text
    assert "Location: test_cart.py:12" in attachment.text
    assert "Description: AssertionError: basket empty" in attachment.text


def test_exhausted_failures_are_not_queued(step_logs):
    interceptor = make_interceptor(Fixable(reason="race"), retry_count=1)
    raise_failure(interceptor)
    assert interceptor.coordinator.enqueued == []
    assert interceptor.gate.suppressed == []
    assert step_logs()[-1]["step"] == "flaky_exhausted"


def test_unbound_flaky_failure_is_hard(step_logs):
    interceptor = make_interceptor(Fixable(reason="race"), bound=False)
    assert raise_failure(interceptor) is FailureVerdict.HARD
    assert interceptor.attachments == []
    assert step_logs()[-1]["step"] == "flaky_unbound"
