"""Source-control detection: find the VCS managing a project and its fetch URL.

Each supported system has one detection strategy.  The project directory and
then each of its ancestors is checked in turn; the nearest directory holding a
VCS marker wins, and within one directory the strategies are tried in a fixed
priority order (distributed systems before centralized ones).  Only VCS
metadata files are read; no VCS binaries are invoked.
"""

from __future__ import annotations

import configparser
import enum
import logging
import os
import re
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from hudson.errors import NoRemoteConfiguredError, NoScmDetectedError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

logger = logging.getLogger(__name__)


class ScmKind(enum.Enum):
    """Version-control systems hudson knows how to detect."""

    GIT = "git"
    HG = "hg"
    BZR = "bzr"
    SVN = "svn"
    NONE = "none"


_URL_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://\S+$")
# scp-like syntax understood by git and friends: [user@]host:path
_SCP_RE = re.compile(r"^(?:[^@/\s]+@)?[^@:/\s]+:\S*$")


def is_fetch_url(url: str) -> bool:
    """Return True if *url* is something a VCS client can fetch from.

    Accepts ``scheme://...`` URLs, scp-like ``user@host:path`` remotes and
    absolute local paths.
    """
    if not url or url != url.strip():
        return False
    return bool(_URL_RE.match(url) or _SCP_RE.match(url) or os.path.isabs(url))


@dataclass(frozen=True)
class ScmHandle:
    """A detected version-control system and its canonical fetch URL."""

    kind: ScmKind
    remote_url: str
    root: Path | None = None

    def __post_init__(self) -> None:
        if self.kind is ScmKind.NONE:
            if self.remote_url:
                msg = "An SCM handle of kind 'none' cannot carry a remote URL."
                raise ValueError(msg)
        elif not is_fetch_url(self.remote_url):
            msg = f"Invalid {self.kind.value} remote URL: {self.remote_url!r}"
            raise ValueError(msg)

    @property
    def url(self) -> str:
        return self.remote_url


NO_SCM = ScmHandle(ScmKind.NONE, "")


# ---------------------------------------------------------------------------
# git
# ---------------------------------------------------------------------------

_GIT_SECTION_RE = re.compile(r'^\s*\[\s*([A-Za-z0-9.-]+)(?:\s+"((?:[^"\\]|\\.)*)")?\s*\]')
_GIT_KEY_RE = re.compile(r"^\s*([A-Za-z][A-Za-z0-9-]*)\s*=\s*(.*?)\s*$")


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def _read_metadata(kind: str, root: Path, path: Path) -> str:
    """Read a VCS metadata file, reporting unreadable files as a missing remote."""
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise NoRemoteConfiguredError(kind, root, f"cannot read {path}: {exc}") from exc


def parse_git_remotes(text: str) -> dict[str, str]:
    """Extract ``{remote_name: url}`` from the contents of a git config file.

    Only the first ``url`` of each remote is kept; remotes appear in file order.
    """
    remotes: dict[str, str] = {}
    current: str | None = None
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped[0] in "#;":
            continue
        section = _GIT_SECTION_RE.match(line)
        if section:
            name, sub = section.group(1).lower(), section.group(2)
            current = sub if name == "remote" and sub is not None else None
            continue
        if current is None:
            continue
        key = _GIT_KEY_RE.match(line)
        if key and key.group(1).lower() == "url" and current not in remotes:
            remotes[current] = _unquote(key.group(2))
    return remotes


def _git_dir(root: Path) -> Path:
    """Resolve the metadata directory of the work tree at *root*.

    Handles ``.git`` files (submodules, worktrees) pointing elsewhere via
    ``gitdir:`` and worktrees sharing a ``commondir``.
    """
    dot_git = root / ".git"
    if dot_git.is_file():
        content = _read_metadata("git", root, dot_git).strip()
        if not content.startswith("gitdir:"):
            raise NoRemoteConfiguredError("git", root, "malformed .git file")
        dot_git = (root / content[len("gitdir:"):].strip()).resolve()
    commondir = dot_git / "commondir"
    if commondir.is_file():
        common = _read_metadata("git", root, commondir).strip()
        dot_git = (dot_git / common).resolve()
    return dot_git


def _git_remote(root: Path, start: Path) -> str:
    config = _git_dir(root) / "config"
    remotes = parse_git_remotes(_read_metadata("git", root, config))
    if not remotes:
        raise NoRemoteConfiguredError("git", root)
    return remotes.get("origin") or next(iter(remotes.values()))


# ---------------------------------------------------------------------------
# Mercurial
# ---------------------------------------------------------------------------


def _hg_remote(root: Path, start: Path) -> str:
    parser = configparser.ConfigParser(interpolation=None, strict=False)
    try:
        parser.read(root / ".hg" / "hgrc", encoding="utf-8")
    except (configparser.Error, UnicodeDecodeError) as exc:
        raise NoRemoteConfiguredError("hg", root, str(exc)) from exc
    for key in ("default", "default-push"):
        value = parser.get("paths", key, fallback="")
        if value:
            return value
    raise NoRemoteConfiguredError("hg", root)


# ---------------------------------------------------------------------------
# Bazaar
# ---------------------------------------------------------------------------

_BZR_KEY_RE = re.compile(r"^\s*([a-z_]+)\s*=\s*(.*?)\s*$")


def _bzr_remote(root: Path, start: Path) -> str:
    conf = root / ".bzr" / "branch" / "branch.conf"
    values: dict[str, str] = {}
    if conf.is_file():
        for line in _read_metadata("bzr", root, conf).splitlines():
            match = _BZR_KEY_RE.match(line)
            if match:
                values[match.group(1)] = _unquote(match.group(2))
    for key in ("parent_location", "bound_location", "push_location"):
        if values.get(key):
            return values[key]
    raise NoRemoteConfiguredError("bzr", root)


# ---------------------------------------------------------------------------
# Subversion
# ---------------------------------------------------------------------------

_SVN_URL_ATTR_RE = re.compile(r'\burl="([^"]+)"')

_WC_DB_QUERY = (
    "SELECT repository.root, nodes.repos_path FROM nodes "
    "JOIN repository ON nodes.repos_id = repository.id "
    "WHERE nodes.local_relpath = ? AND nodes.op_depth = 0"
)


def _svn_wc_db_url(root: Path, start: Path) -> str:
    relpath = start.relative_to(root).as_posix()
    if relpath == ".":
        relpath = ""
    uri = (root / ".svn" / "wc.db").as_uri() + "?mode=ro"
    try:
        conn = sqlite3.connect(uri, uri=True)
        try:
            row = conn.execute(_WC_DB_QUERY, (relpath,)).fetchone()
            if row is None and relpath:
                row = conn.execute(_WC_DB_QUERY, ("",)).fetchone()
        finally:
            conn.close()
    except sqlite3.Error as exc:
        raise NoRemoteConfiguredError("svn", root, str(exc)) from exc
    if row is None or not row[0]:
        raise NoRemoteConfiguredError("svn", root)
    repo_root, repos_path = str(row[0]).rstrip("/"), str(row[1] or "")
    return f"{repo_root}/{repos_path}" if repos_path else repo_root


def _svn_entries_url(root: Path, entries: Path) -> str:
    """Read the URL from a pre-1.7 ``.svn/entries`` file (plain or XML format)."""
    text = _read_metadata("svn", root, entries)
    if text.lstrip().startswith("<"):
        match = _SVN_URL_ATTR_RE.search(text)
        return match.group(1) if match else ""
    lines = text.splitlines()
    return lines[4].strip() if len(lines) > 4 else ""


def _svn_remote(root: Path, start: Path) -> str:
    if (root / ".svn" / "wc.db").is_file():
        return _svn_wc_db_url(root, start)
    entries = root / ".svn" / "entries"
    url = _svn_entries_url(root, entries) if entries.is_file() else ""
    if not url:
        raise NoRemoteConfiguredError("svn", root)
    return url


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _Strategy:
    kind: ScmKind
    marker: str
    read_remote: Callable[[Path, Path], str]


_STRATEGIES: tuple[_Strategy, ...] = (
    _Strategy(ScmKind.GIT, ".git", _git_remote),
    _Strategy(ScmKind.HG, ".hg", _hg_remote),
    _Strategy(ScmKind.BZR, ".bzr", _bzr_remote),
    _Strategy(ScmKind.SVN, ".svn", _svn_remote),
)


def supported() -> tuple[str, ...]:
    """Names of the detectable systems, in detection priority order."""
    return tuple(s.kind.value for s in _STRATEGIES)


def _markers(start: Path) -> Iterator[tuple[Path, _Strategy]]:
    """Yield (directory, strategy) for each VCS marker, nearest directory first."""
    for directory in (start, *start.parents):
        for strategy in _STRATEGIES:
            if (directory / strategy.marker).exists():
                yield directory, strategy


def _normalize_remote(kind: ScmKind, raw: str, root: Path) -> str:
    url = _unquote(raw)
    if not url:
        raise NoRemoteConfiguredError(kind.value, root)
    if ":" not in url and not os.path.isabs(url):
        # Relative local remotes are relative to the work tree root.
        url = str((root / url).resolve())
    if not is_fetch_url(url):
        raise NoRemoteConfiguredError(kind.value, root, f"{raw!r} is not a fetch URL")
    return url


def discover(path: Path | str) -> ScmHandle:
    """Identify the version-control system managing *path*.

    Raises
    ------
    NoScmDetectedError
        If no supported system manages the directory.
    NoRemoteConfiguredError
        If a system is found but has no usable remote.
    """
    start = Path(path).resolve()
    if start.is_dir():
        for root, strategy in _markers(start):
            logger.debug("Found %s marker at %s", strategy.kind.value, root)
            raw = strategy.read_remote(root, start)
            url = _normalize_remote(strategy.kind, raw, root)
            logger.debug("Using %s remote %s", strategy.kind.value, url)
            return ScmHandle(strategy.kind, url, root)
    raise NoScmDetectedError(start, supported())
