import unittest
from typing import Optional

from retryable.core.coordinator import RetryCoordinator
from retryable.core.errors import HarnessInvariantError
from retryable.core.suite_builder import RetrySuiteBuilder
from retryable.report.store import RetryReportStore


def iter_tests(suite):
    """Flatten nested suites into the individual test cases."""
    for test in suite:
        if isinstance(test, unittest.TestSuite):
            yield from iter_tests(test)
        elif test is not None:
            yield test


class CoordinatedTestSuite(unittest.TestSuite):
    """
    Binds every test it contains to `coordinator` and tells the coordinator when
    the outermost coordinated suite finishes. Coordinated suites nested in one
    another don't notify, so a coordinator sees exactly one callback per run.
    Plain unittest suites around it don't count: nesting is tracked on the
    coordinator, not on the result.
    """

    def __init__(self, coordinator: RetryCoordinator, tests=(), name: Optional[str] = None):
        super().__init__(tests)
        self.coordinator = coordinator
        self.name = name or self.__class__.__name__

    def bind(self):
        for test in iter_tests(self):
            interceptor = getattr(test, "interceptor", None)
            if interceptor is not None:
                interceptor.coordinator = self.coordinator

    def run(self, result, debug=False):
        self.bind()
        self.coordinator.depth += 1
        try:
            super().run(result, debug)
        finally:
            self.coordinator.depth -= 1
        if self.coordinator.depth == 0:
            self.coordinator.on_suite_finished(self, result)
        return result


class RetryTestSuite(CoordinatedTestSuite):
    """A suite holding only the test functions that failed in a flaky section."""

    def run(self, result, debug=False):
        # Inside a plain outer suite the last class and module haven't been torn
        # down yet; a top-level run already did it.
        if getattr(result, "_testRunEntered", False):
            self._tearDownPreviousClass(None, result)
            self._handleModuleTearDown(result)
        # Forget the last class so setUpClass/setUpModule run again for the retried tests.
        result._previousTestClass = None
        return super().run(result, debug)


class UnittestTestFactory:
    """Re-creates a unittest test for a pending entry: by type when known, by name otherwise."""

    def __init__(self, loader: Optional[unittest.TestLoader] = None):
        self.loader = loader or unittest.TestLoader()

    def create(self, pending):
        identity = pending.identity
        if not identity.function_name:
            raise HarnessInvariantError(f"Tests for {identity} should have a test function name")

        if pending.test_type is not None:
            try:
                return pending.test_type(identity.function_name)
            except (ValueError, TypeError) as e:
                raise HarnessInvariantError(f"Tests for {identity} can't be re-created from "
                                            f"{pending.test_type!r}: {e}") from e

        try:
            loaded = list(iter_tests(self.loader.loadTestsFromName(identity.qualified_name)))
        except (ImportError, AttributeError) as e:
            raise HarnessInvariantError(f"Tests for {identity} should be loadable by name: {e}") from e
        if len(loaded) != 1 or not hasattr(loaded[0], "interceptor"):
            raise HarnessInvariantError(f"Tests for {identity} should load as exactly one retryable test, "
                                        f"got {loaded!r}")
        return loaded[0]


def create_coordinator(report_path: Optional[str] = None,
                       loader: Optional[unittest.TestLoader] = None) -> RetryCoordinator:
    """
    Coordinator wired for unittest. `report_path` overrides the result bundle
    resolved from the environment.
    """
    store = RetryReportStore(report_path) if report_path else RetryReportStore.from_environment()
    coordinator = RetryCoordinator(report_store=store)
    coordinator.builder = RetrySuiteBuilder(
        UnittestTestFactory(loader),
        lambda name: RetryTestSuite(coordinator, name=name),
    )
    return coordinator
