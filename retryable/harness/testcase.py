"""
unittest binding for flaky sections.

    class CheckoutTests(RetryableTestCase):
        def test_checkout(self):
            self.open_basket()
            with self.flaky(NotFixable(reason="payment sandbox times out", max_retry_count=2)):
                self.pay()
            self.assert_receipt()

Each test method gets its own instance (that's how unittest works), so only the
test functions that failed are re-run, never the whole case.
"""

import contextlib
import unittest

from retryable.core.identity import TestIdentity
from retryable.core.interceptor import FailureInterceptor
from retryable.core.reliability import RELIABLE, Flaky


def _failure_location(error):
    """file:line of the innermost frame outside unittest's own modules."""
    location = "<unknown>"
    tb = error.__traceback__
    while tb is not None:
        # unittest marks its modules with a __unittest global
        if "__unittest" not in tb.tb_frame.f_globals:
            location = f"{tb.tb_frame.f_code.co_filename}:{tb.tb_lineno}"
        tb = tb.tb_next
    return location


class RetryableTestCaseRun:
    """
    Wraps the result for the duration of one test run and implements the tally
    gate: a suppressed failure still aborts the test method (unittest records it
    through addFailure/addError) but never reaches the real result's failures.
    """

    def __init__(self, result):
        self.result = result
        # several can be pending at once: before 3.11, subTest failures only
        # reach the result after the test method returns
        self._suppressed = []

    def set_tally_suppressed(self, error):
        self._suppressed.append(error)

    def _should_record(self, test, err):
        if err is None:
            return True
        for i, error in enumerate(self._suppressed):
            if error is err[1]:
                break
        else:
            return True
        del self._suppressed[i]
        add_flaky_retry = getattr(self.result, "addFlakyRetry", None)
        if add_flaky_retry is not None:
            add_flaky_retry(test, err)
        return False

    def addFailure(self, test, err):
        if self._should_record(test, err):
            self.result.addFailure(test, err)

    def addError(self, test, err):
        if self._should_record(test, err):
            self.result.addError(test, err)

    def addSubTest(self, test, subtest, err):
        if err is None or self._should_record(subtest, err):
            self.result.addSubTest(test, subtest, err)

    def __getattr__(self, name):
        return getattr(self.result, name)


class RetryableTestCase(unittest.TestCase):
    """
    TestCase that can mark portions of a test function as flaky.
    Flaky failures are retried only when the test runs under a RetryCoordinator
    (see retryable.harness.runner); otherwise they fail like any other failure.
    """

    def __init__(self, methodName="runTest"):
        super().__init__(methodName)
        self.interceptor = FailureInterceptor(TestIdentity.for_test(self), type(self))

    @property
    def reliability(self):
        return self.interceptor.reliability

    @reliability.setter
    def reliability(self, value):
        self.interceptor.reliability = value

    @property
    def retry_count(self):
        return self.interceptor.retry_count

    @retry_count.setter
    def retry_count(self, value):
        self.interceptor.retry_count = value

    @property
    def attachments(self):
        return self.interceptor.attachments

    @property
    def identity(self):
        return self.interceptor.identity

    def run(self, result=None):
        if result is None:
            result = self.defaultTestResult()
        test_run = RetryableTestCaseRun(result)
        self.interceptor.gate = test_run
        try:
            super().run(test_run)
        finally:
            self.interceptor.gate = None
        return result

    @contextlib.contextmanager
    def flaky(self, policy):
        """
        Mark the body of the `with` block as flaky under `policy`.
        Reliability goes back to RELIABLE when the block exits, however it exits.
        Nesting is last-write-wins: an inner block's exit does not restore the
        outer block's policy.
        """
        self.reliability = Flaky(policy=policy)
        try:
            yield
        except unittest.SkipTest:
            raise
        except Exception as error:
            if not self._expecting_failure():
                self._on_failure_raised(error)
            raise
        finally:
            self.reliability = RELIABLE

    def run_flaky(self, policy, block):
        """Callable form of `flaky`: runs `block()` as a flaky section and returns its result."""
        with self.flaky(policy):
            return block()

    def _expecting_failure(self):
        # @expectedFailure: unittest records the failure as expected, nothing to retry
        outcome = getattr(self, "_outcome", None)
        return bool(getattr(outcome, "expecting_failure", False))

    def _on_failure_raised(self, error):
        location = _failure_location(error)
        description = f"{type(error).__name__}: {error}"
        expected = isinstance(error, self.failureException)
        return self.interceptor.on_failure_raised(description, location, expected, error)
