"""Replay JUnit XML reports as test run notifications."""

import logging
import xml.etree.ElementTree as ET
from pathlib import Path

from boostsec.testlink_reporter.events import EventEmitter, RunnerEvent
from boostsec.testlink_reporter.models.execution import SuiteOutcome, TestOutcome

logger = logging.getLogger(__name__)


def parse_junit_report(path: Path) -> list[SuiteOutcome]:
    """Parse the suites of a JUnit XML report.

    Skipped test cases are left out of their suite.

    Raises:
        FileNotFoundError: If the report doesn't exist
        ValueError: If the report is not valid XML

    """
    if not path.exists():
        raise FileNotFoundError(f"Report not found: {path}")

    try:
        root = ET.parse(path).getroot()  # noqa: S314
    except ET.ParseError as e:
        raise ValueError(f"Invalid JUnit report {path}: {e}") from e

    return [_parse_suite(element) for element in root.iter("testsuite")]


def replay_junit_report(path: Path, runner: EventEmitter) -> list[SuiteOutcome]:
    """Emit the notifications of a finished run recorded in a JUnit report."""
    suites = parse_junit_report(path)
    logger.info(f"Replaying {len(suites)} suites from {path}")

    runner.emit(RunnerEvent.RUN_BEGIN)
    for suite in suites:
        for test in suite.tests:
            if test.passed:
                runner.emit(RunnerEvent.TEST_PASS, test)
            else:
                runner.emit(RunnerEvent.TEST_FAIL, test, test.error or "")
        runner.emit(RunnerEvent.SUITE_END, suite)

    return suites


def _parse_suite(element: ET.Element) -> SuiteOutcome:
    tests = []
    for case in element.findall("testcase"):
        if case.find("skipped") is not None:
            continue
        tests.append(_parse_case(case))
    return SuiteOutcome(title=element.get("name", ""), tests=tests)


def _parse_case(case: ET.Element) -> TestOutcome:
    problem = case.find("failure")
    if problem is None:
        problem = case.find("error")

    duration = float(case.get("time") or 0) * 1000
    if problem is None:
        return TestOutcome(
            title=case.get("name", ""), state="passed", duration=duration
        )

    message = problem.get("message", "")
    error = (problem.text or "").strip() or message
    return TestOutcome(
        title=case.get("name", ""), state="failed", duration=duration, error=error
    )
