"""CLI entry point for the TestLink reporter."""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import typer

from boostsec.testlink_reporter.client.testlink import TestLinkClient
from boostsec.testlink_reporter.config_loader import load_options_file
from boostsec.testlink_reporter.events import EventEmitter
from boostsec.testlink_reporter.junit import replay_junit_report
from boostsec.testlink_reporter.models.reporter_config import (
    ConfigurationError,
    ConnectionConfig,
)
from boostsec.testlink_reporter.publisher import ResultPublisher

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
    force=True,
)
logger = logging.getLogger(__name__)

app = typer.Typer()


def _build_options(
    config_file: Path | None,
    url: str | None,
    api_key: str | None,
    plan_id: int | None = None,
    build_id: int | None = None,
    prefix: str | None = None,
    drain_timeout: float | None = None,
) -> dict[str, object]:
    """Merge the options file with the options given on the command line."""
    options: dict[str, object] = {}
    if config_file is not None:
        options.update(load_options_file(config_file))

    overrides = {
        "URL": url,
        "apiKey": api_key,
        "testplanid": plan_id,
        "buildid": build_id,
        "prefix": prefix,
        "drainTimeout": drain_timeout,
    }
    options.update(
        {key: value for key, value in overrides.items() if value is not None}
    )
    return options


@app.command()
def publish(
    report: Path = typer.Argument(..., help="JUnit XML report to publish"),  # noqa: B008
    url: Optional[str] = typer.Option(None, help="TestLink server URL"),
    api_key: Optional[str] = typer.Option(None, help="TestLink API key"),
    plan_id: Optional[int] = typer.Option(None, help="Existing test plan id"),
    build_id: Optional[int] = typer.Option(None, help="Existing build id"),
    prefix: Optional[str] = typer.Option(
        None, help="Project prefix used to create a test plan and build"
    ),
    drain_timeout: Optional[float] = typer.Option(
        None, help="Seconds to wait for queued reports before giving up"
    ),
    config: Optional[Path] = typer.Option(  # noqa: B008
        None, help="YAML file with reporter options"
    ),
) -> None:
    """Publish the results of a JUnit report to TestLink."""
    try:
        options = _build_options(
            config, url, api_key, plan_id, build_id, prefix, drain_timeout
        )
        runner = EventEmitter()
        publisher = ResultPublisher(runner, options)
    except (ConfigurationError, FileNotFoundError, ValueError) as e:
        logger.error(f"Invalid configuration: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    try:
        suites = replay_junit_report(report, runner)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Failed to read report: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
    finally:
        publisher.close()

    tests = [test for suite in suites for test in suite.tests]
    output = {
        "suites": len(suites),
        "tests": len(tests),
        "passed": sum(1 for t in tests if t.passed),
        "failed": sum(1 for t in tests if not t.passed),
    }
    typer.echo(json.dumps(output, indent=2))


@app.command()
def check(
    url: Optional[str] = typer.Option(None, help="TestLink server URL"),
    api_key: Optional[str] = typer.Option(None, help="TestLink API key"),
    config: Optional[Path] = typer.Option(  # noqa: B008
        None, help="YAML file with reporter options"
    ),
) -> None:
    """Check the API key and list the projects it can report to."""
    try:
        options = _build_options(config, url, api_key)
        connection = ConnectionConfig.from_options(options)
    except (ConfigurationError, FileNotFoundError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    client = TestLinkClient(connection.endpoint, connection.api_key)

    async def _check() -> list[dict[str, object]]:
        await client.check_dev_key()
        projects = await client.get_projects()
        return [project.model_dump() for project in projects]

    try:
        projects = asyncio.run(_check())
    except Exception as e:
        logger.exception("TestLink check failed")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    output = {"endpoint": connection.endpoint, "projects": projects}
    typer.echo(json.dumps(output, indent=2))


if __name__ == "__main__":  # pragma: no cover
    app()
