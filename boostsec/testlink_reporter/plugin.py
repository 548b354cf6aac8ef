"""pytest plugin reporting test results to TestLink while the session runs."""

import logging
import os
from pathlib import Path

import pytest

from boostsec.testlink_reporter.client.base import ReportingClient
from boostsec.testlink_reporter.config_loader import load_options_file
from boostsec.testlink_reporter.events import EventEmitter, RunnerEvent
from boostsec.testlink_reporter.models.execution import SuiteOutcome, TestOutcome
from boostsec.testlink_reporter.models.reporter_config import ConfigurationError
from boostsec.testlink_reporter.publisher import ResultPublisher

logger = logging.getLogger(__name__)

MARKER = "testlink"

# (reporter option, command line flag, environment variable, help)
OPTIONS = (
    ("URL", "--testlink-url", "TESTLINK_URL", "TestLink server URL"),
    ("apiKey", "--testlink-api-key", "TESTLINK_API_KEY", "TestLink API key"),
    ("testplanid", "--testlink-plan-id", "TESTLINK_PLAN_ID", "Existing test plan id"),
    ("buildid", "--testlink-build-id", "TESTLINK_BUILD_ID", "Existing build id"),
    (
        "prefix",
        "--testlink-prefix",
        "TESTLINK_PREFIX",
        "Project prefix used to create a test plan and build",
    ),
    (
        "drainTimeout",
        "--testlink-drain-timeout",
        "TESTLINK_DRAIN_TIMEOUT",
        "Seconds to wait for queued reports at session end",
    ),
)


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("testlink", "TestLink result reporting")
    for name, flag, env, help_text in OPTIONS:
        group.addoption(
            flag, dest=f"testlink_{name}", default=None, help=f"{help_text} [{env}]"
        )
    group.addoption(
        "--testlink-config",
        dest="testlink_config",
        default=None,
        help="YAML file with TestLink reporter options [TESTLINK_CONFIG]",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers", f"{MARKER}(*case_ids): TestLink case ids reported by the test"
    )
    options = collect_options(config)
    if not options.get("URL"):
        return

    try:
        reporter = TestLinkPlugin(options)
    except (ConfigurationError, FileNotFoundError, ValueError) as e:
        raise pytest.UsageError(str(e)) from e
    config.pluginmanager.register(reporter, "testlink-reporter")


def collect_options(config: pytest.Config) -> dict[str, object]:
    """Merge options from the config file, environment and command line."""
    options: dict[str, object] = {}
    config_file = config.getoption("testlink_config") or os.environ.get(
        "TESTLINK_CONFIG"
    )
    if config_file:
        options.update(load_options_file(Path(config_file)))

    for name, _, env, _ in OPTIONS:
        value = config.getoption(f"testlink_{name}") or os.environ.get(env)
        if value:
            options[name] = value
    return options


def item_title(item: pytest.Item) -> str:
    """Title of a test: name, first docstring line and marker case ids."""
    return _title(item.name, getattr(item, "obj", None), item)


def suite_title(node: pytest.Collector) -> str:
    """Title of the class or module owning a test."""
    return _title(node.name, getattr(node, "obj", None), node)


def _title(name: str, obj: object, node: pytest.Item | pytest.Collector) -> str:
    parts = [name]
    doc = (getattr(obj, "__doc__", None) or "").strip()
    if doc:
        parts.append(doc.splitlines()[0])
    for marker in node.own_markers:
        if marker.name == MARKER:
            parts.extend(f"[{case_id}]" for case_id in marker.args)
    return " ".join(parts)


class TestLinkPlugin:
    """Translate pytest hooks into test run notifications.

    A test is published once its teardown report is in, so a failing
    teardown turns it into a failure. A suite is published after the
    teardown of its last collected item, whatever order its items run in.
    """

    __test__ = False

    def __init__(
        self, options: dict[str, object], client: ReportingClient | None = None
    ) -> None:
        self.runner = EventEmitter()
        self.publisher = ResultPublisher(self.runner, options, client=client)
        self._items: dict[str, tuple[str, str, str]] = {}
        self._last_items: dict[str, str] = {}
        self._suites: dict[str, SuiteOutcome] = {}
        self._pending: dict[str, TestOutcome] = {}

    def pytest_sessionstart(self, session: pytest.Session) -> None:
        self.runner.emit(RunnerEvent.RUN_BEGIN)

    def pytest_collection_finish(self, session: pytest.Session) -> None:
        for item in session.items:
            parent = item.parent
            suite_id = parent.nodeid if parent is not None else ""
            suite = suite_title(parent) if parent is not None else ""
            self._items[item.nodeid] = (item_title(item), suite_id, suite)
            self._last_items[suite_id] = item.nodeid

    def pytest_runtest_logreport(self, report: pytest.TestReport) -> None:
        if report.when == "teardown":
            self._finish_test(report)
        elif report.failed or (report.when == "call" and not report.skipped):
            self._pending[report.nodeid] = self._outcome(report)

    def pytest_sessionfinish(self, session: pytest.Session) -> None:
        for suite in self._suites.values():
            self.runner.emit(RunnerEvent.SUITE_END, suite)
        self._suites.clear()
        logger.info("Waiting for TestLink reports to be sent")
        self.publisher.close()

    def _outcome(self, report: pytest.TestReport) -> TestOutcome:
        title, _, _ = self._items.get(report.nodeid, (report.nodeid, "", ""))
        return TestOutcome(
            title=title,
            state="passed" if report.passed else "failed",
            duration=report.duration * 1000,
            error=None if report.passed else report.longreprtext,
        )

    def _finish_test(self, teardown: pytest.TestReport) -> None:
        outcome = self._pending.pop(teardown.nodeid, None)
        if teardown.failed:
            failure = self._outcome(teardown)
            if outcome is not None:
                error = failure.error if outcome.passed else outcome.error
                failure = outcome.model_copy(
                    update={"state": "failed", "error": error}
                )
            outcome = failure

        _, suite_id, title = self._items.get(teardown.nodeid, (teardown.nodeid, "", ""))
        if outcome is not None:
            suite = self._suites.setdefault(suite_id, SuiteOutcome(title=title))
            suite.tests.append(outcome)
            if outcome.passed:
                self.runner.emit(RunnerEvent.TEST_PASS, outcome)
            else:
                self.runner.emit(RunnerEvent.TEST_FAIL, outcome, outcome.error or "")

        last_item = self._last_items.get(suite_id) == teardown.nodeid
        if last_item and suite_id in self._suites:
            self.runner.emit(RunnerEvent.SUITE_END, self._suites.pop(suite_id))
