"""Synchronous HTTP client for the Hudson job API.

One request per call and no retries: callers decide whether to try again.
Connection-level failures raise :class:`ServerUnreachableError`; failures after
the connection was made raise :class:`TransportError`.  A duplicate job name
is an expected outcome and is reported as :attr:`JobCreation.ALREADY_EXISTS`.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx

from hudson.errors import ServerUnreachableError, TransportError
from hudson.jobs import validate_job_name

if TYPE_CHECKING:
    from types import TracebackType

    from hudson.api.endpoint import ServerEndpoint
    from hudson.jobs import JobConfig

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 5.0
DEFAULT_READ_TIMEOUT = 30.0


class JobCreation(enum.Enum):
    """Outcome of a job creation request.

    Only ``CREATED`` is truthy, so the result can be used as a plain success flag.
    """

    CREATED = "created"
    ALREADY_EXISTS = "already_exists"
    REJECTED = "rejected"

    def __bool__(self) -> bool:
        return self is JobCreation.CREATED


class JobColor(enum.Enum):
    """Status ball color reported by Hudson for a job."""

    BLUE = "blue"  # last build succeeded
    RED = "red"  # last build failed
    YELLOW = "yellow"  # last build unstable
    GREY = "grey"  # pending
    DISABLED = "disabled"
    ABORTED = "aborted"
    NOTBUILT = "notbuilt"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: str) -> tuple[JobColor, bool]:
        """Split a raw color such as ``blue_anime`` into ``(color, building)``."""
        building = raw.endswith("_anime")
        base = raw[: -len("_anime")] if building else raw
        try:
            return cls(base), building
        except ValueError:
            return cls.UNKNOWN, building


@dataclass(frozen=True)
class JobSummary:
    """One entry of the server's job listing."""

    name: str
    url: str
    color: JobColor = JobColor.UNKNOWN
    building: bool = False


@dataclass(frozen=True)
class ServerInfo:
    """Result of a liveness probe."""

    node_description: str
    version: str
    job_count: int


def _parse_jobs(data: dict[str, Any]) -> list[JobSummary]:
    jobs: list[JobSummary] = []
    for raw in data.get("jobs") or []:
        if not isinstance(raw, dict) or not raw.get("name"):
            logger.debug("Ignoring malformed job entry: %r", raw)
            continue
        color, building = JobColor.parse(str(raw.get("color") or ""))
        jobs.append(
            JobSummary(
                name=str(raw["name"]),
                url=str(raw.get("url") or ""),
                color=color,
                building=building,
            )
        )
    return jobs


class ApiClient:
    """Client for one Hudson server.

    Parameters
    ----------
    endpoint:
        Server to talk to.
    timeout:
        Request timeout; defaults to a 5 s connect / 30 s read timeout.
    transport:
        Optional ``httpx`` transport (tests pass an ``httpx.MockTransport``).
    """

    def __init__(
        self,
        endpoint: ServerEndpoint,
        *,
        timeout: httpx.Timeout | float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.endpoint = endpoint
        if timeout is None:
            timeout = httpx.Timeout(DEFAULT_READ_TIMEOUT, connect=DEFAULT_CONNECT_TIMEOUT)
        self._client = httpx.Client(
            base_url=endpoint.base_url,
            timeout=timeout,
            transport=transport,
            follow_redirects=False,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> ApiClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        logger.debug("%s %s", method, url)
        try:
            response = self._client.request(method, url, **kwargs)
        except (httpx.ConnectError, httpx.ConnectTimeout) as exc:
            raise ServerUnreachableError(self.endpoint, f"cannot connect: {exc}") from exc
        except httpx.TransportError as exc:
            raise TransportError(self.endpoint, str(exc) or type(exc).__name__) from exc
        logger.debug("%s %s -> %d", method, url, response.status_code)
        return response

    def _listing(self) -> tuple[httpx.Response, dict[str, Any]]:
        response = self._request("GET", "/api/json")
        if response.status_code != 200:
            raise TransportError(self.endpoint, f"GET /api/json returned HTTP {response.status_code}")
        try:
            data = response.json()
        except ValueError as exc:
            raise TransportError(self.endpoint, "GET /api/json returned invalid JSON") from exc
        if not isinstance(data, dict):
            raise TransportError(self.endpoint, "GET /api/json returned unexpected JSON")
        return response, data

    def probe(self) -> ServerInfo:
        """Check that the server is up and report its description and version."""
        response, data = self._listing()
        version = response.headers.get("X-Hudson") or response.headers.get("X-Jenkins", "")
        return ServerInfo(
            node_description=str(data.get("nodeDescription") or ""),
            version=version,
            job_count=len(data.get("jobs") or []),
        )

    def summary(self) -> list[JobSummary]:
        """Fetch all jobs.  An empty server yields an empty list."""
        _, data = self._listing()
        return _parse_jobs(data)

    def create_job(self, name: str, config: JobConfig) -> JobCreation:
        """Register *config* on the server as job *name*.

        Raises
        ------
        InvalidJobNameError
            If *name* is not a valid job name.
        ServerUnreachableError, TransportError
            On network failures.
        """
        validate_job_name(name)
        response = self._request(
            "POST",
            "/createItem/api/xml",
            params={"name": name},
            content=config.to_xml(),
            headers={"Content-Type": "application/xml"},
        )
        if response.is_success or response.is_redirect:
            logger.info("Created job %r on %s", name, self.endpoint)
            return JobCreation.CREATED
        reason = response.headers.get("X-Error", "") + " " + response.text
        if response.status_code == 400 and "already exists" in reason.lower():
            logger.info("Job %r already exists on %s", name, self.endpoint)
            return JobCreation.ALREADY_EXISTS
        logger.info(
            "Server %s rejected job %r: HTTP %d", self.endpoint, name, response.status_code
        )
        return JobCreation.REJECTED

    def delete_job(self, url: str) -> None:
        """Delete the job whose absolute URL (as listed by :meth:`summary`) is *url*."""
        if not url.endswith("/"):
            url += "/"
        response = self._request("POST", f"{url}doDelete/api/json")
        if not (response.is_success or response.is_redirect):
            raise TransportError(
                self.endpoint, f"deleting {url} returned HTTP {response.status_code}"
            )
        logger.info("Deleted job %s", url)
