"""Server endpoint value passed explicitly to every API call."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import quote

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 3001


@dataclass(frozen=True)
class ServerEndpoint:
    """Host and HTTP port of a Hudson server."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    def __post_init__(self) -> None:
        if not self.host or any(ch.isspace() for ch in self.host):
            msg = f"Invalid server host: {self.host!r}"
            raise ValueError(msg)
        if not 0 < self.port < 65536:
            msg = f"Invalid server port: {self.port}"
            raise ValueError(msg)

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def job_url(self, name: str) -> str:
        """Absolute URL of job *name*, with a trailing slash as Hudson reports it."""
        return f"{self.base_url}/job/{quote(name, safe='')}/"

    def build_url(self, name: str) -> str:
        """URL that triggers a build of job *name* when requested."""
        return f"{self.base_url}/job/{quote(name, safe='')}/build"
