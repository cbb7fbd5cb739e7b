"""
Text runner that retries flaky failures.

    python -m retryable.harness.runner discover -s tests

behaves like `python -m unittest` except that failures raised inside flaky
sections are re-run once the whole suite has finished.
"""

import unittest

from retryable.harness.suite import CoordinatedTestSuite, create_coordinator


class RetryableTextTestResult(unittest.TextTestResult):
    """TextTestResult that shows suppressed flaky failures instead of silently dropping them."""

    def __init__(self, stream, descriptions, verbosity, **kwargs):
        super().__init__(stream, descriptions, verbosity, **kwargs)
        self.flaky_retries = []

    def addFlakyRetry(self, test, err):
        self.flaky_retries.append((test, self._exc_info_to_string(err, test)))
        if self.showAll:
            self.stream.writeln("flaky, queued for retry")
            self.stream.flush()
            self._newline = True
        elif self.dots:
            self.stream.write("R")
            self.stream.flush()


class RetryableTestRunner(unittest.TextTestRunner):
    resultclass = RetryableTextTestResult

    def __init__(self, *args, coordinator=None, report_path=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.coordinator = coordinator
        self.report_path = report_path

    def run(self, test):
        coordinator = self.coordinator or create_coordinator(report_path=self.report_path)
        result = super().run(CoordinatedTestSuite(coordinator, [test]))
        retried = len(getattr(result, "flaky_retries", []))
        if retried:
            rounds = "round" if coordinator.rounds == 1 else "rounds"
            self.stream.writeln(f"Retried {retried} flaky failure(s) in {coordinator.rounds} {rounds}")
        return result


def main(module="__main__", argv=None, exit=True):
    """unittest.main() with the retrying runner."""
    return unittest.main(module=module, argv=argv, exit=exit, testRunner=RetryableTestRunner)


def run_cli():
    return main(module=None)


if __name__ == "__main__":
    run_cli()
