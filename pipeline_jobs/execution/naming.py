"""
Job naming rules.

Job names become part of pod and volume claim names, so they must fit the
Kubernetes DNS label grammar once a build id suffix is appended.
"""

import re
import uuid

from pipeline_jobs.core.exceptions import JobValidationError

# 36 + "-" + 26 character ULID build id == 63, the DNS label ceiling
MAX_JOB_NAME_LENGTH = 36
MAX_POD_NAME_LENGTH = 63
BUILD_ID_LENGTH = 26

_NAME_PATTERN = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")


def _name_error(name: str):
    if not isinstance(name, str):
        return f"job name must be a string, got {type(name).__name__}"
    if not name:
        return "job name must not be empty"
    if len(name) > MAX_JOB_NAME_LENGTH:
        return (
            f"job name {name!r} is {len(name)} characters long, "
            f"the maximum is {MAX_JOB_NAME_LENGTH}"
        )
    if not name.isascii() or not _NAME_PATTERN.match(name):
        return (
            f"job name {name!r} must contain only lowercase letters, digits and "
            "hyphens, and must start and end with a letter or digit"
        )
    return None


def is_valid_name(name: str) -> bool:
    """Check whether a job name can be used to address an execution."""
    return _name_error(name) is None


def validate_name(name: str) -> None:
    """
    Raise if a job name is invalid.

    Raises:
        JobValidationError: naming the rule the name breaks
    """
    error = _name_error(name)
    if error is not None:
        raise JobValidationError(error)


def validate(job) -> None:
    """Validate a job ahead of execution."""
    validate_name(job.name)


def new_build_id() -> str:
    """Generate a build id for runners started outside a configured build."""
    return uuid.uuid4().hex[:BUILD_ID_LENGTH]


def _dns_label(value: str) -> str:
    return re.sub(r"[^-a-z0-9]", "-", value.lower())


def clean_build_id(build_id: str) -> str:
    """Map a build id from the environment (e.g. ``Build_42``) onto label characters."""
    return _dns_label(build_id).strip("-")


def generate_pod_name(name: str, build_id: str) -> str:
    """Derive the execution instance name from the job name and build id."""
    pod_name = f"{name}-{clean_build_id(build_id)}"[:MAX_POD_NAME_LENGTH]
    return pod_name.rstrip("-")


def cache_claim_name(project_id: str, name: str) -> str:
    """
    Name of the persistent cache claim for a job.

    Depends only on the project and job name so that repeated executions of
    the same job share one cache.
    """
    claim = _dns_label(f"{project_id}-{name}-cache")
    return claim[:MAX_POD_NAME_LENGTH].strip("-")
