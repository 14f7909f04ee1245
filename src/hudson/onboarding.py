"""Project onboarding: detect the SCM, synthesize the job, register it.

Each operation turns every failure into a single :class:`OnboardingError`
whose message names the path or server endpoint involved.  SCM detection
happens before any client is created, so a project without a usable SCM
never causes network traffic.
"""

from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from hudson.api import ApiClient, JobCreation
from hudson.errors import (
    InvalidJobNameError,
    NoRemoteConfiguredError,
    NoScmDetectedError,
    OnboardingError,
    ServerUnreachableError,
    TransportError,
)
from hudson.jobs import (
    JobSettings,
    build_job_config,
    detect_project_type,
    validate_job_name,
)
from hudson.scm import discover

if TYPE_CHECKING:
    from collections.abc import Iterator

    import httpx

    from hudson.api import JobSummary, ServerEndpoint, ServerInfo
    from hudson.jobs import JobConfig
    from hudson.scm import ScmHandle

logger = logging.getLogger(__name__)

AUTO_PROJECT_TYPE = "auto"


@dataclass(frozen=True)
class CreatedProject:
    """A job successfully registered on the server."""

    name: str
    build_url: str
    scm: ScmHandle
    config: JobConfig


@contextlib.contextmanager
def _api(
    endpoint: ServerEndpoint,
    client: ApiClient | None,
    timeout: httpx.Timeout | float | None,
) -> Iterator[ApiClient]:
    if client is not None:
        yield client
        return
    with ApiClient(endpoint, timeout=timeout) as api:
        yield api


def create_project(
    path: Path | str,
    endpoint: ServerEndpoint,
    *,
    name: str | None = None,
    project_type: str = "generic",
    client: ApiClient | None = None,
    timeout: httpx.Timeout | float | None = None,
) -> CreatedProject:
    """Create a continuous build for the project at *path*.

    The job is named after the project directory unless *name* is given.
    ``project_type="auto"`` picks a template from the project's manifests.
    """
    project_root = Path(path).resolve()
    try:
        scm = discover(project_root)
    except NoScmDetectedError as exc:
        msg = f"Cannot determine project SCM. Currently supported: {', '.join(exc.supported)}"
        raise OnboardingError(msg) from exc
    except NoRemoteConfiguredError as exc:
        msg = f"Cannot determine project SCM remote: {exc}"
        raise OnboardingError(msg) from exc

    job_name = name or project_root.name
    if project_type == AUTO_PROJECT_TYPE:
        project_type = detect_project_type(project_root)
        logger.debug("Detected project type %s for %s", project_type, project_root)
    try:
        validate_job_name(job_name)
        config = build_job_config(project_type, JobSettings(scm=scm, name=job_name))
    except InvalidJobNameError as exc:
        raise OnboardingError(f"Cannot create project '{job_name}': {exc}") from exc
    except ValueError as exc:
        raise OnboardingError(str(exc)) from exc

    with _api(endpoint, client, timeout) as api:
        try:
            result = api.create_job(job_name, config)
        except TransportError as exc:
            raise OnboardingError(f"Failed connection to {endpoint}") from exc

    if result is JobCreation.ALREADY_EXISTS:
        msg = f"Project '{job_name}' already exists on {endpoint}"
        raise OnboardingError(msg)
    if not result:
        msg = f"Failed to create project '{job_name}' on {endpoint}"
        raise OnboardingError(msg)

    return CreatedProject(
        name=job_name,
        build_url=endpoint.build_url(job_name),
        scm=scm,
        config=config,
    )


def list_jobs(
    endpoint: ServerEndpoint,
    *,
    client: ApiClient | None = None,
    timeout: httpx.Timeout | float | None = None,
) -> list[JobSummary]:
    """Return every job on the server (possibly none)."""
    with _api(endpoint, client, timeout) as api:
        try:
            return api.summary()
        except TransportError as exc:
            raise OnboardingError(f"Failed connection to {endpoint}") from exc


def reset_jobs(
    endpoint: ServerEndpoint,
    *,
    client: ApiClient | None = None,
    timeout: httpx.Timeout | float | None = None,
) -> int:
    """Delete every job on the server and return how many were removed."""
    with _api(endpoint, client, timeout) as api:
        try:
            jobs = api.summary()
            for job in jobs:
                api.delete_job(job.url or endpoint.job_url(job.name))
        except ServerUnreachableError as exc:
            raise OnboardingError(f"Failed connection to {endpoint}") from exc
        except TransportError as exc:
            raise OnboardingError(f"Failed to reset jobs on {endpoint}: {exc.detail}") from exc
    return len(jobs)


def server_status(
    endpoint: ServerEndpoint,
    *,
    client: ApiClient | None = None,
    timeout: httpx.Timeout | float | None = None,
) -> ServerInfo:
    """Probe the server for liveness and version."""
    with _api(endpoint, client, timeout) as api:
        try:
            return api.probe()
        except TransportError as exc:
            raise OnboardingError(f"Failed connection to {endpoint}") from exc
