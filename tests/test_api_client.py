"""Tests for hudson.api — endpoint helpers and the HTTP client."""

from __future__ import annotations

import httpx
import pytest

from conftest import FakeHudson
from hudson.api import ApiClient, JobColor, JobCreation, JobSummary, ServerEndpoint
from hudson.errors import InvalidJobNameError, ServerUnreachableError, TransportError
from hudson.jobs import JobSettings, build_job_config
from hudson.scm import ScmHandle, ScmKind

ENDPOINT = ServerEndpoint("ci.example.com", 8080)
CONFIG = build_job_config(
    "generic", JobSettings(scm=ScmHandle(ScmKind.GIT, "git@host:repo.git"), name="proj")
)


def _client(handler: httpx.MockTransport) -> ApiClient:
    return ApiClient(ENDPOINT, transport=handler)


def _raising(exc: Exception) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        raise exc

    return httpx.MockTransport(handler)


class TestServerEndpoint:
    def test_urls(self) -> None:
        assert str(ENDPOINT) == "ci.example.com:8080"
        assert ENDPOINT.base_url == "http://ci.example.com:8080"
        assert ENDPOINT.job_url("proj") == "http://ci.example.com:8080/job/proj/"
        assert ENDPOINT.build_url("proj") == "http://ci.example.com:8080/job/proj/build"

    def test_whitespace_percent_encoded(self) -> None:
        assert ENDPOINT.build_url("my project").endswith("/job/my%20project/build")

    def test_defaults(self) -> None:
        assert str(ServerEndpoint()) == "localhost:3001"

    @pytest.mark.parametrize(("host", "port"), [("", 80), ("a b", 80), ("h", 0), ("h", 70000)])
    def test_invalid(self, host: str, port: int) -> None:
        with pytest.raises(ValueError, match="Invalid server"):
            ServerEndpoint(host, port)


class TestJobColor:
    @pytest.mark.parametrize(
        ("raw", "color", "building"),
        [
            ("blue", JobColor.BLUE, False),
            ("red_anime", JobColor.RED, True),
            ("notbuilt", JobColor.NOTBUILT, False),
            ("purple", JobColor.UNKNOWN, False),
            ("", JobColor.UNKNOWN, False),
        ],
    )
    def test_parse(self, raw: str, color: JobColor, building: bool) -> None:
        assert JobColor.parse(raw) == (color, building)


class TestJobCreation:
    def test_only_created_is_truthy(self) -> None:
        assert JobCreation.CREATED
        assert not JobCreation.ALREADY_EXISTS
        assert not JobCreation.REJECTED


class TestCreateJob:
    def test_created_and_listed(self, fake_hudson: FakeHudson) -> None:
        with fake_hudson.client() as client:
            assert client.create_job("proj", CONFIG) is JobCreation.CREATED
            names = [job.name for job in client.summary()]
        assert names == ["proj"]

    def test_request_shape(self, fake_hudson: FakeHudson) -> None:
        with fake_hudson.client() as client:
            client.create_job("my project", CONFIG)
        request = fake_hudson.requests[-1]
        assert request.method == "POST"
        assert request.url.path == "/createItem/api/xml"
        assert request.url.params["name"] == "my project"
        assert request.headers["Content-Type"] == "application/xml"
        assert request.content == CONFIG.to_xml()

    def test_duplicate_name(self, fake_hudson: FakeHudson) -> None:
        with fake_hudson.client() as client:
            assert client.create_job("proj", CONFIG)
            result = client.create_job("proj", CONFIG)
        assert result is JobCreation.ALREADY_EXISTS
        assert not result

    def test_duplicate_reported_in_body(self) -> None:
        transport = httpx.MockTransport(
            lambda request: httpx.Response(400, text="A job already exists with the name 'proj'")
        )
        with _client(transport) as client:
            assert client.create_job("proj", CONFIG) is JobCreation.ALREADY_EXISTS

    def test_other_rejection(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(403, text="Forbidden"))
        with _client(transport) as client:
            assert client.create_job("proj", CONFIG) is JobCreation.REJECTED

    def test_redirect_counts_as_created(self) -> None:
        transport = httpx.MockTransport(
            lambda request: httpx.Response(302, headers={"Location": "/job/proj/"})
        )
        with _client(transport) as client:
            assert client.create_job("proj", CONFIG) is JobCreation.CREATED

    def test_empty_name(self, fake_hudson: FakeHudson) -> None:
        with fake_hudson.client() as client, pytest.raises(InvalidJobNameError):
            client.create_job("", CONFIG)
        assert fake_hudson.requests == []

    def test_connect_error(self) -> None:
        transport = _raising(httpx.ConnectError("Connection refused"))
        with _client(transport) as client, pytest.raises(ServerUnreachableError) as excinfo:
            client.create_job("proj", CONFIG)
        assert excinfo.value.endpoint == ENDPOINT

    def test_read_timeout(self) -> None:
        transport = _raising(httpx.ReadTimeout("timed out"))
        with _client(transport) as client, pytest.raises(TransportError) as excinfo:
            client.create_job("proj", CONFIG)
        assert not isinstance(excinfo.value, ServerUnreachableError)


class TestSummary:
    def test_empty_server(self, fake_hudson: FakeHudson) -> None:
        with fake_hudson.client() as client:
            assert client.summary() == []

    def test_missing_jobs_key(self) -> None:
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json={"nodeDescription": "x"})
        )
        with _client(transport) as client:
            assert client.summary() == []

    def test_parses_jobs(self) -> None:
        payload = {
            "jobs": [
                {"name": "a", "url": "http://ci/job/a/", "color": "blue"},
                {"name": "b", "url": "http://ci/job/b/", "color": "red_anime"},
                {"url": "http://ci/job/nameless/"},
            ]
        }
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=payload))
        with _client(transport) as client:
            jobs = client.summary()
        assert jobs == [
            JobSummary("a", "http://ci/job/a/", JobColor.BLUE),
            JobSummary("b", "http://ci/job/b/", JobColor.RED, building=True),
        ]

    def test_invalid_json(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>"))
        with _client(transport) as client, pytest.raises(TransportError, match="invalid JSON"):
            client.summary()

    def test_http_error(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(500))
        with _client(transport) as client, pytest.raises(TransportError, match="HTTP 500"):
            client.summary()

    def test_unreachable(self) -> None:
        transport = _raising(httpx.ConnectTimeout("timed out"))
        with _client(transport) as client, pytest.raises(ServerUnreachableError):
            client.summary()


class TestProbe:
    def test_probe(self, fake_hudson: FakeHudson) -> None:
        with fake_hudson.client() as client:
            client.create_job("proj", CONFIG)
            info = client.probe()
        assert info.node_description == "the master Hudson node"
        assert info.version == "1.371"
        assert info.job_count == 1

    def test_unreachable(self) -> None:
        transport = _raising(httpx.ConnectError("Name or service not known"))
        with _client(transport) as client, pytest.raises(ServerUnreachableError, match="cannot connect"):
            client.probe()


class TestDeleteJob:
    def test_delete(self, fake_hudson: FakeHudson) -> None:
        with fake_hudson.client() as client:
            client.create_job("proj", CONFIG)
            (job,) = client.summary()
            client.delete_job(job.url)
            assert client.summary() == []
        request = fake_hudson.requests[-2]
        assert request.method == "POST"
        assert str(request.url) == "http://localhost:3001/job/proj/doDelete/api/json"

    def test_adds_trailing_slash(self, fake_hudson: FakeHudson) -> None:
        with fake_hudson.client() as client:
            client.create_job("proj", CONFIG)
            client.delete_job("http://localhost:3001/job/proj")
        assert fake_hudson.jobs == {}

    def test_missing_job(self, fake_hudson: FakeHudson) -> None:
        with fake_hudson.client() as client, pytest.raises(TransportError, match="HTTP 404"):
            client.delete_job("http://localhost:3001/job/ghost/")
