"""Exception hierarchy shared by every hudson module."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from hudson.api.endpoint import ServerEndpoint


class HudsonError(Exception):
    """Base class for all errors raised by hudson."""


class NoScmDetectedError(HudsonError):
    """Raised when no supported version-control system manages a directory."""

    def __init__(self, path: Path | None, supported: tuple[str, ...]) -> None:
        self.path = path
        self.supported = supported
        where = f" at {path}" if path is not None else ""
        super().__init__(f"No supported SCM found{where} (supported: {', '.join(supported)})")


class NoRemoteConfiguredError(HudsonError):
    """Raised when a VCS is present but has no usable fetch remote."""

    def __init__(self, kind: str, root: Path, detail: str = "") -> None:
        self.kind = kind
        self.root = root
        msg = f"{kind} repository at {root} has no remote configured"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class InvalidJobNameError(HudsonError, ValueError):
    """Raised when a job name (or URL) cannot be represented in a job definition."""


class TransportError(HudsonError):
    """A request to the server failed after the connection was established."""

    def __init__(self, endpoint: ServerEndpoint, detail: str) -> None:
        self.endpoint = endpoint
        self.detail = detail
        super().__init__(f"{endpoint}: {detail}")


class ServerUnreachableError(TransportError):
    """The server could not be reached (connect, DNS or connect timeout)."""


class OnboardingError(HudsonError):
    """A user-facing failure of a ``create``/``list``/``reset`` operation.

    The message is the single diagnostic shown to the user.
    """
