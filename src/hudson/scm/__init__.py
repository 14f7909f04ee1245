"""SCM domain: version-control detection for project directories."""

from hudson.scm.detector import (
    NO_SCM,
    ScmHandle,
    ScmKind,
    discover,
    is_fetch_url,
    parse_git_remotes,
    supported,
)

__all__ = [
    "NO_SCM",
    "ScmHandle",
    "ScmKind",
    "discover",
    "is_fetch_url",
    "parse_git_remotes",
    "supported",
]
