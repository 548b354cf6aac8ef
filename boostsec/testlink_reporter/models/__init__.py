"""Data models for reporter configuration, test outcomes and case results."""

from boostsec.testlink_reporter.models.case_result import (
    CaseResult,
    ExecutionStatus,
    RunContext,
    StepResult,
    TestProject,
)
from boostsec.testlink_reporter.models.execution import SuiteOutcome, TestOutcome
from boostsec.testlink_reporter.models.reporter_config import (
    ConfigurationError,
    ConnectionConfig,
    ReporterConfig,
)

__all__ = [
    "CaseResult",
    "ConfigurationError",
    "ConnectionConfig",
    "ExecutionStatus",
    "ReporterConfig",
    "RunContext",
    "StepResult",
    "SuiteOutcome",
    "TestOutcome",
    "TestProject",
]
