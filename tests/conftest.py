import json
import unittest

import pytest

import flaky_cases
from retryable import config
from retryable.harness.suite import CoordinatedTestSuite, create_coordinator


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    # keep step logs out of the working tree and reporting off unless a test opts in
    monkeypatch.setenv(config.LOG_FILE_ENV, str(tmp_path / "logs" / "step_logs.json"))
    monkeypatch.delenv(config.RESULT_BUNDLE_ENV, raising=False)
    monkeypatch.delenv(config.CONFIGURATION_PATH_ENV, raising=False)
    monkeypatch.delenv(config.BUNDLE_SUFFIX_ENV, raising=False)
    flaky_cases.reset()
    yield


@pytest.fixture
def step_logs():
    def read():
        with open(config.log_file(), "r", encoding="utf-8") as f:
            return json.load(f)
    return read


@pytest.fixture
def run_suite():
    """Run tests under a fresh coordinator; returns (result, coordinator)."""
    def run(*tests, report_path=None):
        coordinator = create_coordinator(report_path=report_path)
        loader = unittest.TestLoader()
        members = [loader.loadTestsFromTestCase(t) if isinstance(t, type) else t for t in tests]
        result = unittest.TestResult()
        CoordinatedTestSuite(coordinator, members).run(result)
        return result, coordinator
    return run
