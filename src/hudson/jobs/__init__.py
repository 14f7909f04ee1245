"""Jobs domain: project templates and job configuration synthesis."""

from hudson.jobs.config_builder import (
    JobConfig,
    JobSettings,
    build_job_config,
    validate_job_name,
)
from hudson.jobs.templates import (
    GENERIC,
    NODE,
    PYTHON,
    RUBYGEM,
    TEMPLATES,
    ProjectTemplate,
    StepSpec,
    TriggerSpec,
    detect_project_type,
    get_template,
)

__all__ = [
    "GENERIC",
    "NODE",
    "PYTHON",
    "RUBYGEM",
    "TEMPLATES",
    "JobConfig",
    "JobSettings",
    "ProjectTemplate",
    "StepSpec",
    "TriggerSpec",
    "build_job_config",
    "detect_project_type",
    "get_template",
    "validate_job_name",
]
