"""Project-type templates for job synthesis.

A template supplies the default build steps and triggers for a kind of
project.  ``generic`` is used when nothing more specific is known.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

TRIGGER_KINDS = ("scm", "timer")
STEP_KINDS = ("shell", "batch")


@dataclass(frozen=True, order=True)
class TriggerSpec:
    """When the server should start a build: SCM polling or a timer (cron syntax)."""

    kind: str
    schedule: str

    def __post_init__(self) -> None:
        if self.kind not in TRIGGER_KINDS:
            msg = f"Unknown trigger kind: {self.kind!r}. Use one of {', '.join(TRIGGER_KINDS)}."
            raise ValueError(msg)
        if not self.schedule.strip():
            msg = "Trigger schedule must not be empty."
            raise ValueError(msg)


@dataclass(frozen=True)
class StepSpec:
    """A single build step."""

    command: str
    kind: str = "shell"

    def __post_init__(self) -> None:
        if self.kind not in STEP_KINDS:
            msg = f"Unknown step kind: {self.kind!r}. Use one of {', '.join(STEP_KINDS)}."
            raise ValueError(msg)


@dataclass(frozen=True)
class ProjectTemplate:
    """Defaults applied to every job of one project type."""

    name: str
    description: str
    steps: tuple[StepSpec, ...] = ()
    triggers: tuple[TriggerSpec, ...] = ()
    markers: tuple[str, ...] = ()  # glob patterns identifying the project type

    def matches(self, project_root: Path) -> bool:
        return any(next(project_root.glob(pattern), None) is not None for pattern in self.markers)


_POLL = TriggerSpec("scm", "*/5 * * * *")

GENERIC = ProjectTemplate(
    name="generic",
    description="Any project: checkout plus a placeholder step to replace on the server.",
    steps=(StepSpec("echo 'No build steps configured yet; edit this job on the server.'"),),
    triggers=(_POLL,),
)

RUBYGEM = ProjectTemplate(
    name="rubygem",
    description="Ruby gem built with Bundler and Rake.",
    steps=(StepSpec("bundle install"), StepSpec("bundle exec rake")),
    triggers=(_POLL,),
    markers=("*.gemspec", "Gemfile"),
)

PYTHON = ProjectTemplate(
    name="python",
    description="Python package tested with pytest.",
    steps=(StepSpec("pip install -e ."), StepSpec("pytest")),
    triggers=(_POLL,),
    markers=("pyproject.toml", "setup.py", "setup.cfg"),
)

NODE = ProjectTemplate(
    name="node",
    description="Node.js package tested with npm.",
    steps=(StepSpec("npm ci"), StepSpec("npm test")),
    triggers=(_POLL,),
    markers=("package.json",),
)

TEMPLATES: dict[str, ProjectTemplate] = {
    t.name: t for t in (GENERIC, RUBYGEM, PYTHON, NODE)
}


def get_template(project_type: str) -> ProjectTemplate:
    """Look up a template by name.

    Raises
    ------
    ValueError
        If *project_type* is not a known template.
    """
    try:
        return TEMPLATES[project_type]
    except KeyError:
        msg = f"Unknown project type: {project_type!r}. Use one of {', '.join(TEMPLATES)}."
        raise ValueError(msg) from None


def detect_project_type(project_root: Path) -> str:
    """Guess the project type from manifest files, defaulting to ``generic``."""
    for template in (RUBYGEM, PYTHON, NODE):
        if template.matches(project_root):
            return template.name
    return GENERIC.name
