"""
Reliability model

A test function is either reliable (the default) or, for the span of a flaky
section, flaky under a declared policy:

- Fixable(reason): the flake can and should be fixed. Always retried once.
- NotFixable(reason, max_retry_count): the flake comes from something outside
  our control (simulator, third-party service, ...). The caller picks the
  retry ceiling; 0 behaves like an unmarked section.

Every policy carries a human readable reason so the flaky section documents
itself at the call site.
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from retryable.config import FIXABLE_MAX_RETRY_COUNT


class Fixable(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["fixable"] = "fixable"
    reason: str

    @property
    def max_retry_count(self) -> int:
        return FIXABLE_MAX_RETRY_COUNT

    @property
    def is_fixable(self) -> bool:
        return True

    def describe(self) -> str:
        return f"fixable(reason: {self.reason!r})"


class NotFixable(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["not_fixable"] = "not_fixable"
    reason: str
    max_retry_count: int = Field(ge=0)

    @property
    def is_fixable(self) -> bool:
        return False

    def describe(self) -> str:
        return f"notFixable(reason: {self.reason!r}, maxRetryCount: {self.max_retry_count})"


FlakinessPolicy = Annotated[Union[Fixable, NotFixable], Field(discriminator="kind")]


class Reliable(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["reliable"] = "reliable"

    @property
    def is_flaky(self) -> bool:
        return False

    @property
    def policy(self) -> Optional[FlakinessPolicy]:
        return None


class Flaky(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["flaky"] = "flaky"
    policy: FlakinessPolicy

    @property
    def is_flaky(self) -> bool:
        return True


Reliability = Annotated[Union[Reliable, Flaky], Field(discriminator="kind")]

RELIABLE = Reliable()
