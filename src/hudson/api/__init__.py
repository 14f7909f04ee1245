"""API domain: server endpoint and HTTP client for Hudson's job API."""

from hudson.api.client import (
    ApiClient,
    JobColor,
    JobCreation,
    JobSummary,
    ServerInfo,
)
from hudson.api.endpoint import DEFAULT_HOST, DEFAULT_PORT, ServerEndpoint

__all__ = [
    "DEFAULT_HOST",
    "DEFAULT_PORT",
    "ApiClient",
    "JobColor",
    "JobCreation",
    "JobSummary",
    "ServerEndpoint",
    "ServerInfo",
]
