"""Job configuration synthesis: template + settings -> Hudson ``config.xml``.

Synthesis is pure.  The same template and settings always produce an equal
``JobConfig`` and byte-identical XML, so re-creating a job is idempotent.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import TYPE_CHECKING

from hudson.errors import InvalidJobNameError, NoScmDetectedError
from hudson.jobs.templates import StepSpec, TriggerSpec, get_template
from hudson.scm import ScmHandle, ScmKind, supported

if TYPE_CHECKING:
    from collections.abc import Callable

# Characters Hudson refuses in job names.
_UNSAFE_NAME_CHARS = frozenset("?*/\\%!@#$^&|<>[]:;")
# Anything outside the XML 1.0 Char production.
_XML_ILLEGAL_RE = re.compile("[^\t\n\r\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")

_TRIGGER_CLASSES = {
    "scm": "hudson.triggers.SCMTrigger",
    "timer": "hudson.triggers.TimerTrigger",
}
_STEP_CLASSES = {
    "shell": "hudson.tasks.Shell",
    "batch": "hudson.tasks.BatchFile",
}


def validate_job_name(name: str) -> str:
    """Return *name* if Hudson can store it as a job name.

    Raises
    ------
    InvalidJobNameError
        If the name is blank, is ``.``/``..``, or contains characters Hudson
        or XML cannot represent.
    """
    if not name or not name.strip():
        msg = "Job name must not be empty."
        raise InvalidJobNameError(msg)
    if name != name.strip():
        msg = f"Job name {name!r} must not start or end with whitespace."
        raise InvalidJobNameError(msg)
    if name in (".", ".."):
        msg = f"Job name {name!r} is reserved."
        raise InvalidJobNameError(msg)
    bad = sorted({ch for ch in name if ch in _UNSAFE_NAME_CHARS})
    if bad:
        msg = f"Job name {name!r} contains unsupported characters: {' '.join(bad)}"
        raise InvalidJobNameError(msg)
    if _XML_ILLEGAL_RE.search(name):
        msg = f"Job name {name!r} contains control characters."
        raise InvalidJobNameError(msg)
    return name


@dataclass(frozen=True)
class JobSettings:
    """Per-job choices layered on top of a project template.

    ``steps=None`` keeps the template's build steps; an explicit tuple
    (possibly empty) replaces them.  ``triggers`` replace template triggers
    of the same kind.
    """

    scm: ScmHandle
    name: str = ""
    description: str = ""
    triggers: tuple[TriggerSpec, ...] = ()
    steps: tuple[StepSpec, ...] | None = None
    disabled: bool = False


@dataclass(frozen=True)
class JobConfig:
    """A complete, immutable job definition ready to be sent to the server."""

    project_type: str
    scm: ScmHandle
    name: str = ""
    description: str = ""
    build_triggers: tuple[TriggerSpec, ...] = ()
    build_steps: tuple[StepSpec, ...] = ()
    disabled: bool = False

    def to_xml(self) -> bytes:
        """Serialize to Hudson's freestyle-project ``config.xml`` (UTF-8)."""
        return _render(self)


def build_job_config(project_type: str, settings: JobSettings) -> JobConfig:
    """Synthesize the job definition for *settings* from the *project_type* template.

    Raises
    ------
    ValueError
        If *project_type* is unknown.
    NoScmDetectedError
        If the settings carry no SCM.
    InvalidJobNameError
        If the name or remote URL cannot be represented.
    """
    template = get_template(project_type)
    if settings.scm.kind is ScmKind.NONE:
        raise NoScmDetectedError(settings.scm.root, supported())
    if settings.name:
        validate_job_name(settings.name)
    if _XML_ILLEGAL_RE.search(settings.scm.remote_url):
        msg = f"Remote URL {settings.scm.remote_url!r} contains control characters."
        raise InvalidJobNameError(msg)

    triggers = {t.kind: t for t in template.triggers}
    triggers.update({t.kind: t for t in settings.triggers})
    steps = template.steps if settings.steps is None else settings.steps
    description = settings.description
    if not description and settings.name:
        description = f"Continuous build of {settings.name}."

    return JobConfig(
        project_type=template.name,
        scm=settings.scm,
        name=settings.name,
        description=_XML_ILLEGAL_RE.sub("", description),
        build_triggers=tuple(sorted(triggers.values())),
        build_steps=tuple(steps),
        disabled=settings.disabled,
    )


# ---------------------------------------------------------------------------
# XML rendering
# ---------------------------------------------------------------------------


def _text(parent: ET.Element, tag: str, value: str = "") -> ET.Element:
    element = ET.SubElement(parent, tag)
    element.text = value
    return element


def _flag(value: bool) -> str:
    return "true" if value else "false"


def _git_scm(url: str) -> ET.Element:
    scm = ET.Element("scm", {"class": "hudson.plugins.git.GitSCM"})
    _text(scm, "configVersion", "1")
    remotes = ET.SubElement(scm, "remoteRepositories")
    remote = ET.SubElement(remotes, "org.spearce.jgit.transport.RemoteConfig")
    _text(remote, "string", "origin")
    _text(remote, "int", "5")
    for key, value in (
        ("fetch", "+refs/heads/*:refs/remotes/origin/*"),
        ("receivepack", "git-upload-pack"),
        ("uploadpack", "git-upload-pack"),
        ("url", url),
        ("tagopt", ""),
    ):
        _text(remote, "string", key)
        _text(remote, "string", value)
    branches = ET.SubElement(scm, "branches")
    _text(ET.SubElement(branches, "hudson.plugins.git.BranchSpec"), "name", "master")
    ET.SubElement(scm, "mergeOptions")
    _text(scm, "doGenerateSubmoduleConfigurations", "false")
    _text(scm, "clean", "false")
    _text(scm, "choosingStrategy", "Default")
    ET.SubElement(scm, "submoduleCfg", {"class": "list"})
    return scm


def _hg_scm(url: str) -> ET.Element:
    scm = ET.Element("scm", {"class": "hudson.plugins.mercurial.MercurialSCM"})
    _text(scm, "source", url)
    ET.SubElement(scm, "modules")
    _text(scm, "branch", "default")
    _text(scm, "clean", "false")
    _text(scm, "forest", "false")
    return scm


def _bzr_scm(url: str) -> ET.Element:
    scm = ET.Element("scm", {"class": "hudson.plugins.bazaar.BazaarSCM"})
    _text(scm, "source", url)
    _text(scm, "clean", "false")
    return scm


def _svn_scm(url: str) -> ET.Element:
    scm = ET.Element("scm", {"class": "hudson.scm.SubversionSCM"})
    locations = ET.SubElement(scm, "locations")
    location = ET.SubElement(locations, "hudson.scm.SubversionSCM_-ModuleLocation")
    _text(location, "remote", url)
    _text(location, "local", ".")
    _text(scm, "useUpdate", "true")
    _text(scm, "doRevert", "false")
    for tag in ("excludedRegions", "includedRegions", "excludedUsers", "excludedRevprop"):
        ET.SubElement(scm, tag)
    return scm


_SCM_RENDERERS: dict[ScmKind, Callable[[str], ET.Element]] = {
    ScmKind.GIT: _git_scm,
    ScmKind.HG: _hg_scm,
    ScmKind.BZR: _bzr_scm,
    ScmKind.SVN: _svn_scm,
}


def _render(config: JobConfig) -> bytes:
    root = ET.Element("project")
    ET.SubElement(root, "actions")
    _text(root, "description", config.description)
    _text(root, "keepDependencies", "false")
    ET.SubElement(root, "properties")
    root.append(_SCM_RENDERERS[config.scm.kind](config.scm.remote_url))
    _text(root, "canRoam", "true")
    _text(root, "disabled", _flag(config.disabled))
    _text(root, "blockBuildWhenUpstreamBuilding", "false")
    triggers = ET.SubElement(root, "triggers", {"class": "vector"})
    for trigger in config.build_triggers:
        _text(ET.SubElement(triggers, _TRIGGER_CLASSES[trigger.kind]), "spec", trigger.schedule)
    _text(root, "concurrentBuild", "false")
    builders = ET.SubElement(root, "builders")
    for step in config.build_steps:
        _text(ET.SubElement(builders, _STEP_CLASSES[step.kind]), "command", step.command)
    ET.SubElement(root, "publishers")
    ET.SubElement(root, "buildWrappers")
    ET.indent(root, space="  ")
    return ET.tostring(root, encoding="utf-8", xml_declaration=True) + b"\n"
