import unittest
from types import SimpleNamespace

import pytest

import flaky_cases
from retryable.core.errors import HarnessInvariantError
from retryable.core.identity import PendingTest, TestIdentity
from retryable.core.reliability import Fixable, NotFixable
from retryable.core.suite_builder import RetrySuiteBuilder, retry_suite_name
from retryable.harness.suite import RetryTestSuite, UnittestTestFactory, create_coordinator


class NamedSuite:
    def __init__(self, name):
        self.name = name
        self.tests = []

    def addTest(self, test):
        self.tests.append(test)


class RecordingFactory:
    def create(self, pending):
        return SimpleNamespace(identity=pending.identity, retry_count=None)


def pending(case_name, function_name, retry_count=0, policy=None, test_type=None):
    return PendingTest(TestIdentity(case_name, function_name), retry_count,
                       policy or Fixable(reason="race"), test_type)


def test_build_sorts_and_bumps_retry_counts():
    builder = RetrySuiteBuilder(RecordingFactory(), NamedSuite)
    suite = builder.build([
        pending("ui.CartTests", "test_pay", retry_count=1),
        pending("ui.AccountTests", "test_login", retry_count=0),
        pending("ui.CartTests", "test_add", retry_count=2),
    ])

    assert [t.identity.qualified_name for t in suite.tests] == [
        "ui.AccountTests.test_login", "ui.CartTests.test_add", "ui.CartTests.test_pay",
    ]
    assert [t.retry_count for t in suite.tests] == [1, 3, 2]
    assert suite.name == "Retrying AccountTests, CartTests"


def test_retry_suite_name_single_type():
    assert retry_suite_name([pending("ui.CartTests", "test_pay")]) == "Retrying CartTests"


def test_factory_recreates_from_test_type():
    test = UnittestTestFactory().create(pending(
        "flaky_cases.FlakyCheckoutCase", "test_reliable", test_type=flaky_cases.FlakyCheckoutCase))
    assert isinstance(test, flaky_cases.FlakyCheckoutCase)
    assert test.id() == "flaky_cases.FlakyCheckoutCase.test_reliable"
    assert test.retry_count == 0


def test_factory_recreates_from_qualified_name():
    test = UnittestTestFactory().create(pending("flaky_cases.RaceConditionCase", "test_always_races"))
    assert isinstance(test, flaky_cases.RaceConditionCase)
    assert test.identity == TestIdentity("flaky_cases.RaceConditionCase", "test_always_races")


def test_factory_fails_fatally_for_unknown_method():
    with pytest.raises(HarnessInvariantError):
        UnittestTestFactory().create(pending(
            "flaky_cases.FlakyCheckoutCase", "test_gone", test_type=flaky_cases.FlakyCheckoutCase))


def test_factory_fails_fatally_for_unloadable_name():
    with pytest.raises(HarnessInvariantError):
        UnittestTestFactory().create(pending("no_such_module.Case", "test_x"))


def test_factory_fails_fatally_without_function_name():
    with pytest.raises(HarnessInvariantError):
        UnittestTestFactory().create(pending("flaky_cases.FlakyCheckoutCase", "",
                                             test_type=flaky_cases.FlakyCheckoutCase))


def test_unittest_builder_makes_bound_retry_suite():
    coordinator = create_coordinator()
    suite = coordinator.builder.build([
        pending("flaky_cases.RaceConditionCase", "test_always_races",
                policy=NotFixable(reason="sandbox", max_retry_count=3), retry_count=1,
                test_type=flaky_cases.RaceConditionCase),
    ])
    assert isinstance(suite, RetryTestSuite)
    assert suite.coordinator is coordinator
    assert suite.name == "Retrying RaceConditionCase"
    (test,) = list(suite)
    assert test.retry_count == 2
    assert isinstance(suite, unittest.TestSuite)
