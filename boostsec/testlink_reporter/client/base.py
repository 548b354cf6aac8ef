"""Abstract base class for test management reporting clients."""

from abc import ABC, abstractmethod

from boostsec.testlink_reporter.models.case_result import CaseResult, TestProject


class ReportingClient(ABC):
    """Abstract base for clients of a test management service."""

    @abstractmethod
    async def check_dev_key(self) -> bool:
        """Check that the configured API key is accepted."""

    @abstractmethod
    async def create_test_plan(self, name: str, prefix: str) -> int:
        """Create a test plan in the project identified by prefix.

        Args:
            name: Name of the new test plan
            prefix: Prefix of the project owning the plan

        Returns:
            Id of the created plan

        """

    @abstractmethod
    async def create_build(
        self,
        testplanid: int,
        name: str,
        notes: str = "",
        active: bool = True,
        open: bool = True,  # noqa: A002
    ) -> int:
        """Create a build under a test plan and return its id."""

    @abstractmethod
    async def get_projects(self) -> list[TestProject]:
        """List the projects visible to the API key."""

    @abstractmethod
    async def add_test_case_to_test_plan(
        self,
        testprojectid: int,
        testplanid: int,
        testcaseexternalid: str,
        version: int = 1,
    ) -> None:
        """Register a case in a test plan."""

    @abstractmethod
    async def report_tc_result(self, result: CaseResult) -> None:
        """Record the execution result of a case."""
