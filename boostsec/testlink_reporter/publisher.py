"""Publish test run results to TestLink as they become available."""

import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timezone

from boostsec.testlink_reporter.case_ids import title_to_case_ids
from boostsec.testlink_reporter.client.base import ReportingClient
from boostsec.testlink_reporter.client.testlink import TestLinkClient, TestLinkError
from boostsec.testlink_reporter.events import EventEmitter, RunnerEvent
from boostsec.testlink_reporter.models.case_result import CaseResult, RunContext
from boostsec.testlink_reporter.models.execution import SuiteOutcome, TestOutcome
from boostsec.testlink_reporter.models.reporter_config import ReporterConfig
from boostsec.testlink_reporter.results import suite_result, tc_result
from boostsec.testlink_reporter.task_queue import OrderedTaskQueue, Step

logger = logging.getLogger(__name__)

CASE_VERSION = 1


class ResultPublisher:
    """Report the outcome of tests and suites to TestLink.

    Results are pushed through an ordered queue in the order their events
    occur, so a crash or an aborted run keeps everything reported so far.
    """

    def __init__(
        self,
        runner: EventEmitter,
        options: Mapping[str, object],
        client: ReportingClient | None = None,
    ) -> None:
        """Validate options, connect to TestLink and subscribe to the runner.

        Raises:
            ConfigurationError: If the options are missing or contradictory

        """
        self.config = ReporterConfig.from_options(options)
        self.client = client or TestLinkClient(
            self.config.endpoint, self.config.api_key
        )
        transport = "https" if self.config.secure else "http"
        logger.info(
            f"Reporting to TestLink at {self.config.host}:{self.config.port} "
            f"over {transport}"
        )
        self.context = RunContext()
        self.queue = OrderedTaskQueue()
        self.queue.enqueue(self._check_dev_key)

        runner.once(RunnerEvent.RUN_BEGIN, self.on_run_begin)
        runner.on(RunnerEvent.SUITE_END, self.on_suite_end)
        runner.on(RunnerEvent.TEST_PASS, self.on_test_pass)
        runner.on(RunnerEvent.TEST_FAIL, self.on_test_fail)

    def on_run_begin(self) -> None:
        self.context = RunContext()
        if not self.config.auto_provision:
            self.context.testplanid = self.config.testplanid
            self.context.buildid = self.config.buildid
            logger.info(
                f"Reporting into test plan {self.context.testplanid}, "
                f"build {self.context.buildid}"
            )
            return
        self.queue.enqueue(self._provision)

    def on_suite_end(self, suite: SuiteOutcome) -> None:
        self.publish_test_results(
            suite.title, lambda case_id: suite_result(case_id, suite)
        )

    def on_test_pass(self, test: TestOutcome) -> None:
        self.publish_test_results(
            test.title, lambda case_id: tc_result(case_id, test.duration)
        )

    def on_test_fail(self, test: TestOutcome, error: str) -> None:
        self.publish_test_results(
            test.title, lambda case_id: tc_result(case_id, test.duration, error)
        )

    def publish_test_results(
        self, title: str, result_gen: Callable[[str], CaseResult]
    ) -> None:
        """Queue the update of every case id mentioned in the title.

        Args:
            title: Title of the test or suite to extract case ids from
            result_gen: Builds the case result for a case id

        """
        for case_id in title_to_case_ids(title):
            result = result_gen(case_id)
            if self.config.auto_provision:
                self.queue.enqueue(self._add_case_step(case_id))
            self.queue.enqueue(self._report_step(result))

    def close(self, timeout: float | None = None) -> None:
        """Wait for queued reports to be sent and stop the queue worker.

        Reports still queued after the drain timeout are dropped and logged.

        Args:
            timeout: Seconds to wait, defaults to the configured drain timeout

        """
        if timeout is None:
            timeout = self.config.drain_timeout
        try:
            self.queue.join(timeout)
        except TimeoutError:
            logger.error(
                f"TestLink did not answer within {timeout} seconds, "
                f"dropping {self.queue.pending} queued calls"
            )
        finally:
            self.queue.stop()

    async def _check_dev_key(self) -> None:
        if not await self.client.check_dev_key():
            raise TestLinkError("TestLink rejected the API key")

    async def _provision(self) -> None:
        """Create a test plan and build, then resolve the project."""
        prefix = self.config.prefix or ""
        timestamp = datetime.now(timezone.utc).isoformat(timespec="seconds")

        try:
            testplanid = await self.client.create_test_plan(
                f"{prefix} automated run {timestamp}", prefix
            )
            logger.info(f"Created test plan {testplanid}")
            buildid = await self.client.create_build(
                testplanid,
                f"Build {timestamp}",
                notes="Created by boostsec-testlink-reporter",
                active=True,
                open=True,
            )
            logger.info(f"Created build {buildid} in test plan {testplanid}")
            projects = await self.client.get_projects()
        except Exception:
            logger.exception("TestLink provisioning failed, results will be dropped")
            return

        project = next((p for p in projects if p.prefix == prefix), None)
        if project is None:
            logger.error(f"No TestLink project with prefix {prefix!r}")
        self.context.testplanid = testplanid
        self.context.buildid = buildid
        self.context.project = project

    def _add_case_step(self, case_id: str) -> Step:
        async def step() -> None:
            project = self.context.project
            if project is None or self.context.testplanid is None:
                logger.warning(f"No provisioned plan to add {case_id} to, skipping")
                return
            await self.client.add_test_case_to_test_plan(
                project.id, self.context.testplanid, case_id, CASE_VERSION
            )

        return step

    def _report_step(self, result: CaseResult) -> Step:
        async def step() -> None:
            bound = result.bind(self.context)
            if bound.testplanid is None or bound.buildid is None:
                logger.warning(
                    f"No active test plan, dropping result of "
                    f"{result.testcaseexternalid}"
                )
                return
            await self.client.report_tc_result(bound)
            logger.info(
                f"Reported {bound.testcaseexternalid}: {bound.status.value}"
            )

        return step
