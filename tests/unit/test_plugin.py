"""Tests for the pytest plugin."""

import asyncio
from collections.abc import Generator
from unittest.mock import AsyncMock, Mock

import pytest

from boostsec.testlink_reporter.client.base import ReportingClient
from boostsec.testlink_reporter.models.case_result import CaseResult, ExecutionStatus
from boostsec.testlink_reporter.plugin import item_title, suite_title

PLUGIN_ARGS = ("-p", "no:testlink", "-p", "boostsec.testlink_reporter.plugin")

SAMPLE = '''
"""Sample tests."""

import pytest


@pytest.mark.testlink("XPJ-10")
class TestHeader:
    @pytest.mark.testlink("XPJ-11")
    def test_title(self):
        pass

    def test_logo(self):
        """Renders logo [XPJ-12]"""
        assert 1 == 2

    @pytest.mark.skip(reason="not yet")
    def test_menu(self):
        """Renders menu [XPJ-14]"""


@pytest.mark.parametrize("case", ["XPJ-13"])
def test_footer(case):
    pass
'''


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop TestLink settings from the environment."""
    for name in (
        "TESTLINK_URL",
        "TESTLINK_API_KEY",
        "TESTLINK_PLAN_ID",
        "TESTLINK_BUILD_ID",
        "TESTLINK_PREFIX",
        "TESTLINK_CONFIG",
        "TESTLINK_DRAIN_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def mock_client() -> AsyncMock:
    """Create reporting client mock."""
    client = AsyncMock(spec=ReportingClient)
    client.check_dev_key.return_value = True
    return client


@pytest.fixture
def client_cls(
    monkeypatch: pytest.MonkeyPatch, mock_client: AsyncMock
) -> Generator[Mock, None, None]:
    """Replace the TestLink client built by the publisher."""
    cls = Mock(return_value=mock_client)
    monkeypatch.setattr("boostsec.testlink_reporter.publisher.TestLinkClient", cls)
    yield cls


def reported(mock_client: AsyncMock) -> list[CaseResult]:
    return [c.args[0] for c in mock_client.report_tc_result.await_args_list]


def test_item_and_suite_titles(pytester: pytest.Pytester) -> None:
    """Titles combine node name, docstring and testlink markers."""
    items = pytester.getitems(SAMPLE)
    titles = {item.name: item_title(item) for item in items}

    assert titles == {
        "test_title": "test_title [XPJ-11]",
        "test_logo": "test_logo Renders logo [XPJ-12]",
        "test_menu": "test_menu Renders menu [XPJ-14]",
        "test_footer[XPJ-13]": "test_footer[XPJ-13]",
    }
    assert suite_title(items[0].parent) == "TestHeader [XPJ-10]"
    assert suite_title(items[-1].parent).endswith(".py Sample tests.")


def test_plugin_reports_session(
    pytester: pytest.Pytester, client_cls: Mock, mock_client: AsyncMock
) -> None:
    """Test and suite outcomes are reported in execution order."""
    pytester.makepyfile(test_sample=SAMPLE)

    result = pytester.runpytest(
        *PLUGIN_ARGS,
        "--testlink-url",
        "http://testlink.local",
        "--testlink-api-key",
        "key",
        "--testlink-plan-id",
        "14",
        "--testlink-build-id",
        "2",
    )

    result.assert_outcomes(passed=2, failed=1, skipped=1)
    client_cls.assert_called_once_with(
        "http://testlink.local/lib/api/xmlrpc/v1/xmlrpc.php", "key"
    )
    results = reported(mock_client)
    assert [(r.testcaseexternalid, r.status) for r in results] == [
        ("XPJ-11", ExecutionStatus.PASSED),
        ("XPJ-12", ExecutionStatus.FAILED),
        ("XPJ-10", ExecutionStatus.FAILED),
        ("XPJ-13", ExecutionStatus.PASSED),
    ]
    assert all(r.testplanid == 14 and r.buildid == 2 for r in results)
    assert "assert 1 == 2" in results[1].notes
    assert [step.result for step in results[2].steps] == [
        ExecutionStatus.PASSED,
        ExecutionStatus.FAILED,
    ]
    mock_client.add_test_case_to_test_plan.assert_not_awaited()


def test_plugin_auto_provisions_from_environment(
    pytester: pytest.Pytester,
    monkeypatch: pytest.MonkeyPatch,
    client_cls: Mock,
    mock_client: AsyncMock,
) -> None:
    """A prefix from the environment provisions a plan and registers cases."""
    mock_client.create_test_plan.return_value = 7
    mock_client.create_build.return_value = 3
    mock_client.get_projects.return_value = []
    monkeypatch.setenv("TESTLINK_URL", "http://testlink.local")
    monkeypatch.setenv("TESTLINK_API_KEY", "key")
    monkeypatch.setenv("TESTLINK_PREFIX", "XPJ")
    pytester.makepyfile(
        """
        import pytest

        @pytest.mark.testlink("XPJ-5")
        def test_x():
            pass
        """
    )

    result = pytester.runpytest(*PLUGIN_ARGS)

    result.assert_outcomes(passed=1)
    mock_client.create_test_plan.assert_awaited_once()
    assert mock_client.create_test_plan.await_args.args[1] == "XPJ"
    mock_client.create_build.assert_awaited_once()
    (result_sent,) = reported(mock_client)
    assert result_sent.testplanid == 7
    assert result_sent.buildid == 3


def test_plugin_config_file(
    pytester: pytest.Pytester, client_cls: Mock, mock_client: AsyncMock
) -> None:
    """Options can be read from a YAML file."""
    config = pytester.makefile(
        ".yaml",
        testlink="URL: http://testlink.local\napiKey: key\ntestplanid: 1\nbuildid: 1\n",
    )
    pytester.makepyfile("def test_x():\n    '''x [XPJ-1]'''\n")

    result = pytester.runpytest(*PLUGIN_ARGS, "--testlink-config", str(config))

    result.assert_outcomes(passed=1)
    assert [r.testcaseexternalid for r in reported(mock_client)] == ["XPJ-1"]


def test_plugin_reporting_failure_keeps_outcome(
    pytester: pytest.Pytester, client_cls: Mock, mock_client: AsyncMock
) -> None:
    """TestLink errors never change the outcome of the session."""
    mock_client.report_tc_result.side_effect = RuntimeError("API Error")
    pytester.makepyfile("def test_x():\n    '''x [XPJ-1]'''\n")

    result = pytester.runpytest(
        *PLUGIN_ARGS,
        "--testlink-url",
        "http://testlink.local",
        "--testlink-api-key",
        "key",
        "--testlink-plan-id",
        "1",
        "--testlink-build-id",
        "1",
    )

    result.assert_outcomes(passed=1)
    assert result.ret == pytest.ExitCode.OK
    mock_client.report_tc_result.assert_awaited_once()


def test_plugin_inactive_without_url(
    pytester: pytest.Pytester, client_cls: Mock
) -> None:
    """Nothing is reported when no URL is configured."""
    pytester.makepyfile("def test_x():\n    '''x [XPJ-1]'''\n")

    result = pytester.runpytest(*PLUGIN_ARGS)

    result.assert_outcomes(passed=1)
    client_cls.assert_not_called()


def test_plugin_invalid_options(pytester: pytest.Pytester, client_cls: Mock) -> None:
    """Incomplete options abort the session with a usage error."""
    pytester.makepyfile("def test_x():\n    pass\n")

    result = pytester.runpytest(*PLUGIN_ARGS, "--testlink-url", "http://testlink.local")

    assert result.ret == pytest.ExitCode.USAGE_ERROR
    result.stderr.fnmatch_lines(["*apiKey*"])
    client_cls.assert_not_called()


PLAN_ARGS = (
    "--testlink-url",
    "http://testlink.local",
    "--testlink-api-key",
    "key",
    "--testlink-plan-id",
    "14",
    "--testlink-build-id",
    "2",
)


def test_plugin_reports_module_suite_once(
    pytester: pytest.Pytester, client_cls: Mock, mock_client: AsyncMock
) -> None:
    """Module tests split by a class are reported as one suite."""
    pytester.makepyfile(
        test_mixed='''
        """Module [XPJ-1]"""


        def test_a():
            pass


        class TestC:
            def test_b(self):
                pass


        def test_d():
            assert False
        '''
    )

    result = pytester.runpytest(*PLUGIN_ARGS, *PLAN_ARGS)

    result.assert_outcomes(passed=2, failed=1)
    (suite,) = reported(mock_client)
    assert suite.testcaseexternalid == "XPJ-1"
    assert suite.status == ExecutionStatus.FAILED
    assert [step.result for step in suite.steps] == [
        ExecutionStatus.PASSED,
        ExecutionStatus.FAILED,
    ]


def test_plugin_reports_teardown_error_as_failure(
    pytester: pytest.Pytester, client_cls: Mock, mock_client: AsyncMock
) -> None:
    """A test whose fixture teardown fails is reported as failed."""
    pytester.makepyfile(
        """
        import pytest


        @pytest.fixture
        def resource():
            yield
            raise RuntimeError("cleanup failed")


        def test_x(resource):
            '''x [XPJ-2]'''
        """
    )

    result = pytester.runpytest(*PLUGIN_ARGS, *PLAN_ARGS)

    result.assert_outcomes(passed=1, errors=1)
    (result_sent,) = reported(mock_client)
    assert result_sent.testcaseexternalid == "XPJ-2"
    assert result_sent.status == ExecutionStatus.FAILED
    assert "cleanup failed" in result_sent.notes


def test_plugin_reports_setup_error_as_failure(
    pytester: pytest.Pytester, client_cls: Mock, mock_client: AsyncMock
) -> None:
    """A test whose fixture setup fails is reported once as failed."""
    pytester.makepyfile(
        """
        import pytest


        @pytest.fixture
        def resource():
            raise RuntimeError("setup failed")


        def test_x(resource):
            '''x [XPJ-3]'''
        """
    )

    result = pytester.runpytest(*PLUGIN_ARGS, *PLAN_ARGS)

    result.assert_outcomes(errors=1)
    (result_sent,) = reported(mock_client)
    assert result_sent.status == ExecutionStatus.FAILED
    assert "setup failed" in result_sent.notes


def test_plugin_drain_timeout_ends_session(
    pytester: pytest.Pytester, client_cls: Mock, mock_client: AsyncMock
) -> None:
    """A TestLink server that never answers does not hold the session."""

    async def hang(*args: object) -> None:
        await asyncio.Event().wait()

    mock_client.report_tc_result.side_effect = hang
    pytester.makepyfile("def test_x():\n    '''x [XPJ-1]'''\n")

    result = pytester.runpytest(
        *PLUGIN_ARGS, *PLAN_ARGS, "--testlink-drain-timeout", "0.1"
    )

    result.assert_outcomes(passed=1)
    assert result.ret == pytest.ExitCode.OK
    mock_client.report_tc_result.assert_awaited_once()
