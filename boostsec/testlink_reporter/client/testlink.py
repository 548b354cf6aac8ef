"""TestLink XML-RPC client."""

import logging
import xmlrpc.client
from xml.parsers.expat import ExpatError

import aiohttp

from boostsec.testlink_reporter.client.base import ReportingClient
from boostsec.testlink_reporter.models.case_result import CaseResult, TestProject

logger = logging.getLogger(__name__)


class TestLinkError(RuntimeError):
    """Raised when a TestLink call fails or returns an error."""

    __test__ = False


class TestLinkClient(ReportingClient):
    """Client for the TestLink XML-RPC API."""

    __test__ = False

    def __init__(self, endpoint: str, api_key: str, timeout: float = 60) -> None:
        """Initialize client with the XML-RPC endpoint and API key."""
        self.endpoint = endpoint
        self.api_key = api_key
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def check_dev_key(self) -> bool:
        """Check that the configured API key is accepted."""
        result = await self._call("checkDevKey")
        return bool(result)

    async def create_test_plan(self, name: str, prefix: str) -> int:
        """Create a test plan and return its id."""
        response = await self._call(
            "createTestPlan",
            testplanname=name,
            prefix=prefix,
            notes="",
            active=1,
            public=1,
        )
        return self._extract_id(response, "createTestPlan")

    async def create_build(
        self,
        testplanid: int,
        name: str,
        notes: str = "",
        active: bool = True,
        open: bool = True,  # noqa: A002
    ) -> int:
        """Create a build under a test plan and return its id."""
        response = await self._call(
            "createBuild",
            testplanid=testplanid,
            buildname=name,
            buildnotes=notes,
            active=int(active),
            open=int(open),
        )
        return self._extract_id(response, "createBuild")

    async def get_projects(self) -> list[TestProject]:
        """List the projects visible to the API key."""
        response = await self._call("getProjects")
        if not isinstance(response, list):
            raise TestLinkError(f"Unexpected getProjects response: {response!r}")
        return [TestProject.model_validate(project) for project in response]

    async def add_test_case_to_test_plan(
        self,
        testprojectid: int,
        testplanid: int,
        testcaseexternalid: str,
        version: int = 1,
    ) -> None:
        """Register a case in a test plan."""
        await self._call(
            "addTestCaseToTestPlan",
            testprojectid=testprojectid,
            testplanid=testplanid,
            testcaseexternalid=testcaseexternalid,
            version=version,
        )

    async def report_tc_result(self, result: CaseResult) -> None:
        """Record the execution result of a case."""
        await self._call(
            "reportTCResult", **result.model_dump(mode="json", exclude_none=True)
        )

    async def _call(self, method: str, **params: object) -> object:
        """Invoke a TestLink API method with a single struct argument."""
        params["devKey"] = self.api_key
        body = xmlrpc.client.dumps((params,), methodname=f"tl.{method}")
        logger.debug(f"Calling tl.{method} on {self.endpoint}")

        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            headers = {"Content-Type": "text/xml"}
            async with session.post(
                self.endpoint, data=body.encode(), headers=headers
            ) as response:
                text = await response.text()
                if response.status != 200:
                    raise TestLinkError(
                        f"tl.{method} failed: {response.status} {text}"
                    )

        try:
            (result,), _ = xmlrpc.client.loads(text)
        except xmlrpc.client.Fault as e:
            raise TestLinkError(
                f"tl.{method} fault {e.faultCode}: {e.faultString}"
            ) from e
        except (ExpatError, xmlrpc.client.ResponseError) as e:
            raise TestLinkError(f"tl.{method} returned invalid XML: {e}") from e

        self._raise_for_error(method, result)
        return result

    def _raise_for_error(self, method: str, result: object) -> None:
        """Raise if TestLink answered with its [{code, message}] error form."""
        if not isinstance(result, list) or not result:
            return
        first = result[0]
        if isinstance(first, dict) and "code" in first and "message" in first:
            raise TestLinkError(
                f"tl.{method} error {first['code']}: {first['message']}"
            )

    def _extract_id(self, response: object, method: str) -> int:
        """Extract the id of a created entity."""
        entry = response[0] if isinstance(response, list) and response else response
        if not isinstance(entry, dict) or "id" not in entry:
            raise TestLinkError(f"{method} id not found in response")
        return int(entry["id"])
