"""
Executors for Docker and Kubernetes job execution.
"""

from typing import Optional

from pipeline_jobs.core.config import Settings, settings as default_settings
from pipeline_jobs.core.constants import ExecutionMode
from pipeline_jobs.execution.executors.base import JobExecutor
from pipeline_jobs.execution.executors.docker import DockerExecutor
from pipeline_jobs.execution.executors.k8s import K8sExecutor


def get_executor(settings: Optional[Settings] = None) -> JobExecutor:
    """
    Get appropriate executor based on execution mode.

    Returns:
        DockerExecutor or K8sExecutor based on settings
    """
    settings = settings or default_settings
    if settings.execution_mode == ExecutionMode.DOCKER:
        return DockerExecutor(settings)
    else:
        return K8sExecutor(settings)


__all__ = ["JobExecutor", "DockerExecutor", "K8sExecutor", "get_executor"]
