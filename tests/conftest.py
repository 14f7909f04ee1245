"""Shared test fixtures for hudson."""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import unquote

import httpx
import pytest

from hudson.api import ApiClient, ServerEndpoint

if TYPE_CHECKING:
    from pathlib import Path

GIT_CONFIG = """\
[core]
\trepositoryformatversion = 0
\tbare = false
[remote "origin"]
\turl = git@host:repo.git
\tfetch = +refs/heads/*:refs/remotes/origin/*
[branch "master"]
\tremote = origin
\tmerge = refs/heads/master
"""


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the user's config file and HUDSON_* variables out of tests."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for var in ("HUDSON_HOST", "HUDSON_PORT", "HUDSON_CONFIG", "HUDSON_WAR"):
        monkeypatch.delenv(var, raising=False)


def make_git_project(root: Path, config: str = GIT_CONFIG) -> Path:
    """Create a directory that looks like a git work tree."""
    git_dir = root / ".git"
    git_dir.mkdir(parents=True)
    (git_dir / "config").write_text(config)
    (git_dir / "HEAD").write_text("ref: refs/heads/master\n")
    return root


@pytest.fixture()
def git_project(tmp_path: Path) -> Path:
    """A git project named ``proj`` whose origin is ``git@host:repo.git``."""
    return make_git_project(tmp_path / "proj")


class FakeHudson:
    """In-memory stand-in for the Hudson job API, served over httpx.MockTransport."""

    def __init__(self, endpoint: ServerEndpoint | None = None) -> None:
        self.endpoint = endpoint or ServerEndpoint("localhost", 3001)
        self.jobs: dict[str, bytes] = {}
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self.handle)

    def client(self) -> ApiClient:
        return ApiClient(self.endpoint, transport=self.transport)

    def listing(self) -> dict[str, object]:
        return {
            "nodeDescription": "the master Hudson node",
            "jobs": [
                {"name": name, "url": self.endpoint.job_url(name), "color": "notbuilt"}
                for name in self.jobs
            ],
        }

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if request.method == "GET" and path == "/api/json":
            return httpx.Response(200, headers={"X-Hudson": "1.371"}, json=self.listing())
        if request.method == "POST" and path == "/createItem/api/xml":
            name = request.url.params["name"]
            if name in self.jobs:
                return httpx.Response(
                    400,
                    headers={"X-Error": f"A job already exists with the name '{name}'"},
                    text="Error",
                )
            self.jobs[name] = request.content
            return httpx.Response(200)
        if request.method == "POST" and path.endswith("/doDelete/api/json"):
            name = unquote(path[len("/job/") : -len("/doDelete/api/json")])
            if name not in self.jobs:
                return httpx.Response(404)
            del self.jobs[name]
            return httpx.Response(302, headers={"Location": self.endpoint.base_url + "/"})
        return httpx.Response(404)


@pytest.fixture()
def fake_hudson() -> FakeHudson:
    return FakeHudson()
