"""Models for test outcomes emitted by a test runner."""

from typing import Literal

from pydantic import BaseModel, Field


class TestOutcome(BaseModel):
    """Outcome of a single executed test."""

    __test__ = False

    title: str = Field(..., description="Test title, may embed [PREFIX-NUMBER] ids")
    state: Literal["passed", "failed"] = Field(..., description="Completion state")
    duration: float = Field(default=0.0, description="Execution time in milliseconds")
    error: str | None = Field(
        default=None, description="Failure trace text when the test failed"
    )

    @property
    def passed(self) -> bool:
        return self.state == "passed"


class SuiteOutcome(BaseModel):
    """A finished suite and the outcomes of its tests, in execution order."""

    title: str = Field(..., description="Suite title, may embed case ids")
    tests: list[TestOutcome] = Field(
        default_factory=list, description="Constituent test outcomes"
    )
