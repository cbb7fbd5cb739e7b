from typing import Callable, Iterable, List, Protocol

from retryable.core.identity import PendingTest


class TestFactory(Protocol):
    """Builds a fresh, runnable test for the test function a pending entry points at."""

    def create(self, pending: PendingTest):
        """Raise HarnessInvariantError when the test function can't be re-targeted."""


def retry_suite_name(pending: Iterable[PendingTest]) -> str:
    """Distinct case type names in identity order, e.g. 'Retrying CaseA, CaseB'."""
    names: List[str] = []
    for test in sorted(pending, key=lambda p: p.identity):
        name = test.identity.case_type_name
        if name not in names:
            names.append(name)
    return "Retrying " + ", ".join(names)


class RetrySuiteBuilder:
    def __init__(self, factory: TestFactory, make_suite: Callable[[str], object]):
        self.factory = factory
        self.make_suite = make_suite

    def build(self, pending: Iterable[PendingTest]):
        """
        One fresh test per pending entry, sorted by identity, each primed with the
        previous instance's retry count + 1.
        """
        ordered = sorted(pending, key=lambda p: p.identity)
        suite = self.make_suite(retry_suite_name(ordered))
        for failure in ordered:
            test = self.factory.create(failure)
            test.retry_count = failure.retry_count + 1
            suite.addTest(test)
        return suite
