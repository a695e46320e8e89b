"""
Job model, naming rules and runners.
"""

from pipeline_jobs.execution.container_job import ContainerJob
from pipeline_jobs.execution.job import (
    ConfigMapKeyRef,
    Job,
    JobCache,
    JobDockerMount,
    JobHost,
    JobStorage,
    LiteralValue,
    ResourceQuantities,
    SecretKeyRef,
)
from pipeline_jobs.execution.naming import (
    MAX_JOB_NAME_LENGTH,
    is_valid_name,
    validate,
    validate_name,
)
from pipeline_jobs.execution.request import ExecutionRequest, MountPaths
from pipeline_jobs.execution.result import JobResult
from pipeline_jobs.execution.runner import BackendJobRunner, JobRunner, PollingConfig

__all__ = [
    "BackendJobRunner",
    "ConfigMapKeyRef",
    "ContainerJob",
    "ExecutionRequest",
    "Job",
    "JobCache",
    "JobDockerMount",
    "JobHost",
    "JobResult",
    "JobRunner",
    "JobStorage",
    "LiteralValue",
    "MAX_JOB_NAME_LENGTH",
    "MountPaths",
    "PollingConfig",
    "ResourceQuantities",
    "SecretKeyRef",
    "is_valid_name",
    "validate",
    "validate_name",
]
