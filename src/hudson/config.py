"""User configuration: defaults for the server endpoint and HTTP timeouts.

Settings come from a YAML file, looked up in this order:

1. ``$HUDSON_CONFIG`` if set;
2. ``<project>/.hudson/config.yml``;
3. ``~/.hudson/config.yml``.

Command-line flags and ``HUDSON_HOST``/``HUDSON_PORT`` override the file.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx
import yaml

from hudson.api import DEFAULT_HOST, DEFAULT_PORT, ServerEndpoint
from hudson.api.client import DEFAULT_CONNECT_TIMEOUT, DEFAULT_READ_TIMEOUT

logger = logging.getLogger(__name__)

CONFIG_ENV = "HUDSON_CONFIG"
CONFIG_RELPATH = Path(".hudson") / "config.yml"


@dataclass(frozen=True)
class Settings:
    """Values read from the configuration file."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    timeout: float = DEFAULT_READ_TIMEOUT
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT

    @property
    def http_timeout(self) -> httpx.Timeout:
        return httpx.Timeout(self.timeout, connect=self.connect_timeout)


def find_config(project_root: Path | None = None) -> Path | None:
    """Return the configuration file that applies, or None if there is none."""
    explicit = os.environ.get(CONFIG_ENV)
    if explicit:
        return Path(explicit).expanduser()
    candidates = []
    if project_root is not None:
        candidates.append(project_root / CONFIG_RELPATH)
    candidates.append(Path.home() / CONFIG_RELPATH)
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


def _positive_number(raw: dict[str, Any], key: str, default: float) -> float:
    value = raw.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        msg = f"Config key {key!r} must be a positive number, got {value!r}."
        raise ValueError(msg)
    return float(value)


def parse_settings(raw: dict[str, Any]) -> Settings:
    """Validate a parsed configuration mapping.

    Raises
    ------
    ValueError
        If a value has the wrong type or is out of range.
    """
    host = raw.get("host", DEFAULT_HOST)
    if not isinstance(host, str) or not host:
        msg = f"Config key 'host' must be a non-empty string, got {host!r}."
        raise ValueError(msg)
    try:
        port = int(raw.get("port", DEFAULT_PORT))
    except (TypeError, ValueError):
        msg = f"Config key 'port' must be an integer, got {raw.get('port')!r}."
        raise ValueError(msg) from None
    ServerEndpoint(host, port)  # range check
    return Settings(
        host=host,
        port=port,
        timeout=_positive_number(raw, "timeout", DEFAULT_READ_TIMEOUT),
        connect_timeout=_positive_number(raw, "connect_timeout", DEFAULT_CONNECT_TIMEOUT),
    )


def load_settings(project_root: Path | None = None) -> Settings:
    """Load settings from the applicable configuration file (defaults if none).

    Raises
    ------
    ValueError
        If the file is not valid YAML or holds invalid values.
    """
    path = find_config(project_root)
    if path is None:
        return Settings()
    if not path.is_file():
        msg = f"Config file not found: {path}"
        raise ValueError(msg)
    logger.debug("Reading settings from %s", path)
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        msg = f"Invalid YAML in {path}: {exc}"
        raise ValueError(msg) from exc
    if raw is None:
        return Settings()
    if not isinstance(raw, dict):
        msg = f"Config file {path} must contain a mapping."
        raise ValueError(msg)
    return parse_settings(raw)


def resolve_endpoint(
    host: str | None,
    port: int | None,
    settings: Settings,
) -> ServerEndpoint:
    """Combine explicit host/port (flags or environment) with file settings."""
    return ServerEndpoint(host or settings.host, port or settings.port)
