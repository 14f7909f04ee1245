"""Hudson CLI entry point."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, NoReturn

import click

from hudson import HUDSON_VERSION, __version__
from hudson.jobs import TEMPLATES

if TYPE_CHECKING:
    from collections.abc import Callable

    from hudson.api import JobSummary, ServerEndpoint
    from hudson.config import Settings


def _setup_logging(*, verbose: bool, quiet: bool) -> None:
    from rich.console import Console
    from rich.logging import RichHandler

    level = logging.DEBUG if verbose else logging.ERROR if quiet else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _fail(message: str) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _endpoint_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Add the ``--host``/``--port`` options shared by server-facing commands."""
    func = click.option(
        "--port",
        type=click.IntRange(1, 65535),
        envvar="HUDSON_PORT",
        default=None,
        help="Connect to the Hudson server on this port [env: HUDSON_PORT; default: 3001].",
    )(func)
    return click.option(
        "--host",
        envvar="HUDSON_HOST",
        default=None,
        help="Connect to the Hudson server on this host [env: HUDSON_HOST; default: localhost].",
    )(func)


def _resolve(project: Path | None, host: str | None, port: int | None) -> tuple[ServerEndpoint, Settings]:
    from hudson.config import load_settings, resolve_endpoint

    try:
        settings = load_settings(project)
        return resolve_endpoint(host, port, settings), settings
    except ValueError as exc:
        _fail(str(exc))


@click.group()
@click.version_option(
    version=__version__,
    prog_name="hudson",
    message=f"%(prog)s %(version)s (Hudson Server {HUDSON_VERSION})",
)
@click.option("--verbose", "-v", is_flag=True, help="Verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output (errors only).")
@click.pass_context
def main(ctx: click.Context, *, verbose: bool, quiet: bool) -> None:
    """Hudson - continuous integration made as simple as possible."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    _setup_logging(verbose=verbose, quiet=quiet)


@main.command()
@click.argument(
    "project_path",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
)
@click.option("--name", default=None, metavar="NAME", help="Name of the build (default: directory name).")
@click.option(
    "--type",
    "project_type",
    type=click.Choice([*TEMPLATES, "auto"]),
    default="generic",
    show_default=True,
    help="Job template; 'auto' guesses from the project's manifest files.",
)
@_endpoint_options
def create(
    *,
    project_path: Path,
    name: str | None,
    project_type: str,
    host: str | None,
    port: int | None,
) -> None:
    """Create a continuous build for your project."""
    from hudson.errors import OnboardingError
    from hudson.onboarding import create_project

    endpoint, settings = _resolve(project_path, host, port)
    try:
        created = create_project(
            project_path,
            endpoint,
            name=name,
            project_type=project_type,
            timeout=settings.http_timeout,
        )
    except OnboardingError as exc:
        _fail(str(exc))

    click.echo(f"Added project '{created.name}' to Hudson.")
    click.echo(f"Trigger builds via: {created.build_url}")


_COLOR_STYLES = {
    "blue": "green",  # Hudson's blue means success
    "red": "red",
    "yellow": "yellow",
    "aborted": "magenta",
}


def _render_jobs(jobs: list[JobSummary]) -> None:
    from rich.console import Console
    from rich.table import Table
    from rich.text import Text

    table = Table(box=None, padding=(0, 2), highlight=False)
    table.add_column("Name", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("URL", no_wrap=True, overflow="ignore")
    for job in jobs:
        style = _COLOR_STYLES.get(job.color.value, "")
        status = job.color.value + (" (building)" if job.building else "")
        table.add_row(Text(job.name, style=style), Text(status, style=style), job.url)
    Console(highlight=False).print(table)


@main.command("list")
@click.argument(
    "project_path",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
)
@_endpoint_options
def list_cmd(*, project_path: Path, host: str | None, port: int | None) -> None:
    """List builds on a Hudson server."""
    from hudson.errors import OnboardingError
    from hudson.onboarding import list_jobs

    endpoint, settings = _resolve(project_path, host, port)
    try:
        jobs = list_jobs(endpoint, timeout=settings.http_timeout)
    except OnboardingError as exc:
        _fail(str(exc))

    if not jobs:
        click.echo(f"No jobs found on {endpoint}")
        return
    _render_jobs(jobs)


@main.command()
@_endpoint_options
def status(*, host: str | None, port: int | None) -> None:
    """Check that a Hudson server is up and show its version."""
    from hudson.errors import OnboardingError
    from hudson.onboarding import server_status

    endpoint, settings = _resolve(None, host, port)
    try:
        info = server_status(endpoint, timeout=settings.http_timeout)
    except OnboardingError as exc:
        _fail(str(exc))

    version = info.version or "unknown version"
    click.echo(f"Hudson {version} at {endpoint}: {info.node_description} ({info.job_count} jobs)")


@main.command()
@click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
@_endpoint_options
def reset(*, yes: bool, host: str | None, port: int | None) -> None:
    """Delete every job on a Hudson server."""
    from hudson.errors import OnboardingError
    from hudson.onboarding import reset_jobs

    endpoint, settings = _resolve(None, host, port)
    if not yes:
        click.confirm(f"Delete all jobs on {endpoint}?", abort=True)
    try:
        count = reset_jobs(endpoint, timeout=settings.http_timeout)
    except OnboardingError as exc:
        _fail(str(exc))
    click.echo(f"Deleted {count} job(s) from {endpoint}")


@main.command()
@click.option(
    "--home",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    metavar="PATH",
    help="Directory for server data (default: ~/.hudson/server).",
)
@click.option(
    "--war",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="HUDSON_WAR",
    default=None,
    metavar="PATH",
    help="Hudson web archive to run (default: ~/.hudson/hudson.war).",
)
@click.option("--port", type=click.IntRange(1, 65535), default=3001, show_default=True, help="HTTP port.")
@click.option(
    "--control",
    type=click.IntRange(1, 65535),
    default=3002,
    show_default=True,
    help="Shutdown/control port.",
)
@click.option("--daemon", is_flag=True, help="Fork into the background and run as a daemon.")
@click.option("--kill", is_flag=True, help="Send the shutdown signal to the control port.")
@click.option(
    "--logfile",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    metavar="PATH",
    help="Redirect server log messages to this file.",
)
def server(
    *,
    home: Path | None,
    war: Path | None,
    port: int,
    control: int,
    daemon: bool,
    kill: bool,
    logfile: Path | None,
) -> None:
    """Run a Hudson server (or stop one with --kill)."""
    from hudson import server as hudson_server
    from hudson.errors import ServerUnreachableError

    if kill:
        try:
            hudson_server.send_shutdown("localhost", control)
        except ServerUnreachableError as exc:
            _fail(f"No server listening on control port {control} ({exc.detail})")
        click.echo(f"Sent shutdown signal to control port {control}")
        return

    options = hudson_server.ServerOptions(
        home=home or hudson_server.DEFAULT_HOME,
        war=war or hudson_server.DEFAULT_WAR,
        port=port,
        control_port=control,
        daemon=daemon,
        logfile=logfile,
    )
    click.echo(" ".join(hudson_server.build_server_command(options)))
    try:
        hudson_server.exec_server(options)
    except OSError as exc:
        _fail(str(exc))


@main.command()
def version() -> None:
    """Show version information."""
    click.echo(f"{__version__} (Hudson Server {HUDSON_VERSION})")
