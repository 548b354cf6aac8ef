"""Build TestLink case results from test and suite outcomes."""

from boostsec.testlink_reporter.models.case_result import (
    CaseResult,
    ExecutionStatus,
    StepResult,
)
from boostsec.testlink_reporter.models.execution import SuiteOutcome

MS_PER_MINUTE = 60000


def minutes(duration: float) -> float:
    """Convert a duration in milliseconds to minutes."""
    return duration / MS_PER_MINUTE


def _status(passed: bool) -> ExecutionStatus:
    return ExecutionStatus.PASSED if passed else ExecutionStatus.FAILED


def suite_result(testcaseexternalid: str, suite: SuiteOutcome) -> CaseResult:
    """Build the result of a case whose steps are the tests of a suite.

    The suite fails if any of its tests did not pass, its duration is the sum
    of the test durations and every test becomes a step, numbered from 1.

    Args:
        testcaseexternalid: Case id, e.g. "XPJ-112"
        suite: Finished suite mapped to the case

    Returns:
        Case result without plan and build

    """
    steps = [
        StepResult(
            step_number=idx,
            result=_status(test.passed),
            notes=test.error or "",
        )
        for idx, test in enumerate(suite.tests, start=1)
    ]
    return CaseResult(
        testcaseexternalid=testcaseexternalid,
        status=_status(all(test.passed for test in suite.tests)),
        execduration=minutes(sum(test.duration for test in suite.tests)),
        steps=steps,
    )


def tc_result(
    testcaseexternalid: str, duration: float, error: str | None = None
) -> CaseResult:
    """Build the result of a case mapped to a single test.

    Args:
        testcaseexternalid: Case id, e.g. "XPJ-112"
        duration: Test duration in milliseconds
        error: Failure trace text, None when the test passed

    Returns:
        Case result without plan and build

    """
    return CaseResult(
        testcaseexternalid=testcaseexternalid,
        status=_status(error is None),
        execduration=minutes(duration),
        notes=error or "",
        steps=[],
    )

