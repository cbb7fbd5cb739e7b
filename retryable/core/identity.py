from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Optional

from retryable.core.reliability import FlakinessPolicy


@functools.total_ordering
@dataclass(frozen=True)
class TestIdentity:
    """One test function of one test case type. Ordered by qualified name."""
    __test__ = False  # keep pytest from collecting this as a test class

    case_name: str       # "<module>.<Class>"
    function_name: str

    @property
    def qualified_name(self) -> str:
        return f"{self.case_name}.{self.function_name}"

    @property
    def case_type_name(self) -> str:
        return self.case_name.rsplit(".", 1)[-1]

    @classmethod
    def for_test(cls, test) -> "TestIdentity":
        test_type = type(test)
        return cls(
            case_name=f"{test_type.__module__}.{test_type.__qualname__}",
            function_name=getattr(test, "_testMethodName", ""),
        )

    def __lt__(self, other: "TestIdentity") -> bool:
        if not isinstance(other, TestIdentity):
            return NotImplemented
        return self.qualified_name < other.qualified_name

    def __str__(self) -> str:
        return self.qualified_name


@dataclass(frozen=True)
class PendingTest:
    """
    What the coordinator keeps of a suppressed test instance: enough to spawn
    the next generation and to write its report entry. Never the instance itself.
    """
    identity: TestIdentity
    retry_count: int
    policy: FlakinessPolicy
    test_type: Optional[type] = None
