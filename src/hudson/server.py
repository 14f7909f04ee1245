"""Launching and stopping the bundled Hudson server.

The server itself is a Java web archive.  This module prepares its home
directory, builds the ``java`` command line and sends the shutdown signal
to its control port.
"""

from __future__ import annotations

import logging
import os
import shutil
import socket
from dataclasses import dataclass
from pathlib import Path

from hudson.api import ServerEndpoint
from hudson.errors import ServerUnreachableError

logger = logging.getLogger(__name__)

DEFAULT_HOME = Path.home() / ".hudson" / "server"
DEFAULT_WAR = Path.home() / ".hudson" / "hudson.war"
DEFAULT_PLUGINS = Path.home() / ".hudson" / "plugins"
DEFAULT_CONTROL_PORT = 3002
SHUTDOWN_COMMAND = b"0"


@dataclass(frozen=True)
class ServerOptions:
    """How to run the server process."""

    home: Path = DEFAULT_HOME
    war: Path = DEFAULT_WAR
    port: int = 3001
    control_port: int = DEFAULT_CONTROL_PORT
    daemon: bool = False
    logfile: Path | None = None

    @property
    def javatmp(self) -> Path:
        return self.home / "javatmp"


def prepare_server_home(options: ServerOptions, plugins_dir: Path | None = None) -> None:
    """Create the server home and temp dirs and install bundled plugins."""
    options.home.mkdir(parents=True, exist_ok=True)
    options.javatmp.mkdir(parents=True, exist_ok=True)
    if plugins_dir is not None and plugins_dir.is_dir():
        target = options.home / "plugins"
        logger.debug("Copying plugins from %s to %s", plugins_dir, target)
        shutil.copytree(plugins_dir, target, dirs_exist_ok=True)


def build_server_command(options: ServerOptions) -> list[str]:
    """Return the ``java`` command line that runs the server."""
    cmd = ["java", f"-Djava.io.tmpdir={options.javatmp}", "-jar", str(options.war)]
    if options.daemon:
        cmd.append("--daemon")
    if options.logfile is not None:
        cmd.append(f"--logfile={options.logfile.expanduser().resolve()}")
    cmd.append(f"--httpPort={options.port}")
    cmd.append(f"--controlPort={options.control_port}")
    return cmd


def server_environment(options: ServerOptions, base: dict[str, str] | None = None) -> dict[str, str]:
    env = dict(os.environ if base is None else base)
    env["HUDSON_HOME"] = str(options.home)
    return env


def send_shutdown(host: str, control_port: int, timeout: float = 5.0) -> None:
    """Ask the server listening on *control_port* to shut down.

    Raises
    ------
    ServerUnreachableError
        If nothing accepts connections on the control port.
    """
    endpoint = ServerEndpoint(host, control_port)
    try:
        with socket.create_connection((host, control_port), timeout=timeout) as sock:
            sock.sendall(SHUTDOWN_COMMAND)
    except OSError as exc:
        raise ServerUnreachableError(endpoint, f"control port: {exc}") from exc
    logger.info("Sent shutdown to %s", endpoint)


def exec_server(options: ServerOptions, plugins_dir: Path | None = DEFAULT_PLUGINS) -> None:
    """Replace the current process with the server.  Does not return."""
    if not options.war.is_file():
        msg = f"Hudson war not found: {options.war}"
        raise FileNotFoundError(msg)
    prepare_server_home(options, plugins_dir)
    cmd = build_server_command(options)
    logger.info("Starting server: %s", " ".join(cmd))
    os.execvpe(cmd[0], cmd, server_environment(options))  # noqa: S606
