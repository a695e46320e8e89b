"""
Translate a Job into an ExecutionRequest.
"""

import math
from typing import List, Optional

from pipeline_jobs.core.config import Settings
from pipeline_jobs.core.constants import ExecutionMode
from pipeline_jobs.core.telemetry import get_logger
from pipeline_jobs.execution.job import (
    ConfigMapKeyRef,
    Job,
    LiteralValue,
    ResourceQuantities,
    SecretKeyRef,
)
from pipeline_jobs.execution.naming import cache_claim_name
from pipeline_jobs.execution.request import (
    DEFAULT_MOUNTS,
    EnvEntry,
    ExecutionRequest,
    MountPaths,
    VolumeSpec,
)

logger = get_logger(__name__)

OS_NODE_LABEL = "kubernetes.io/os"
SOURCE_VOLUME_NAME = "vcs-src"
CACHE_VOLUME_NAME = "build-cache"
STORAGE_VOLUME_NAME = "build-storage"


def build_command(job: Job) -> Optional[List[str]]:
    """Run tasks as one shell script that stops at the first failure."""
    if not job.tasks:
        return None
    return [job.shell, "-e", "-c", "\n".join(job.tasks)]


def build_env(job: Job) -> List[EnvEntry]:
    entries = []
    for name, value in job.env.items():
        if isinstance(value, LiteralValue):
            entries.append(EnvEntry(name=name, value=value.value))
        elif isinstance(value, SecretKeyRef):
            entries.append(
                EnvEntry(
                    name=name,
                    value_from={
                        "secretKeyRef": {
                            "name": value.name,
                            "key": value.key,
                            "optional": value.optional,
                        }
                    },
                )
            )
        elif isinstance(value, ConfigMapKeyRef):
            entries.append(
                EnvEntry(
                    name=name,
                    value_from={
                        "configMapKeyRef": {
                            "name": value.name,
                            "key": value.key,
                            "optional": value.optional,
                        }
                    },
                )
            )
    return entries


def _quantities(resources: ResourceQuantities) -> dict:
    # Quantity strings are passed through unparsed
    return resources.model_dump(exclude_none=True)


def build_volumes(job: Job, settings: Settings, mounts: MountPaths) -> List[VolumeSpec]:
    volumes = []

    if job.use_source:
        if settings.execution_mode == ExecutionMode.DOCKER and settings.docker_source_dir:
            # Local checkout bind-mounted into the container
            volumes.append(
                VolumeSpec(
                    name=SOURCE_VOLUME_NAME,
                    mount_path=job.mount_path,
                    host_path=settings.docker_source_dir,
                )
            )
        elif settings.source_claim_name:
            volumes.append(
                VolumeSpec(
                    name=SOURCE_VOLUME_NAME,
                    mount_path=job.mount_path,
                    claim_name=settings.source_claim_name,
                )
            )
        else:
            logger.debug(f"No source claim configured, skipping source for {job.name}")

    if job.cache.enabled:
        volumes.append(
            VolumeSpec(
                name=CACHE_VOLUME_NAME,
                mount_path=mounts.cache_path,
                claim_name=cache_claim_name(settings.project_id, job.name),
                claim_size=job.cache.size,
                storage_class=settings.cache_storage_class,
            )
        )

    if job.storage.enabled:
        claim = settings.storage_claim
        if claim:
            volumes.append(
                VolumeSpec(
                    name=STORAGE_VOLUME_NAME,
                    mount_path=mounts.storage_path,
                    claim_name=claim,
                )
            )
        else:
            # Without a build there is nothing to share; give the job scratch space
            volumes.append(
                VolumeSpec(
                    name=STORAGE_VOLUME_NAME,
                    mount_path=mounts.storage_path,
                    empty_dir=True,
                )
            )

    if job.docker.enabled:
        volumes.append(
            VolumeSpec(
                name=mounts.docker_socket_mount_name,
                mount_path=mounts.docker_socket_path,
                host_path=mounts.docker_socket_path,
            )
        )

    return volumes


def build_execution_request(
    job: Job,
    pod_name: str,
    settings: Settings,
    mounts: MountPaths = DEFAULT_MOUNTS,
    build_id: Optional[str] = None,
) -> ExecutionRequest:
    """
    Translate a job into a backend request.

    Args:
        job: Job to translate; its name must already be validated
        pod_name: Generated execution instance name
        settings: Build and cluster settings
        mounts: Well-known mount locations
        build_id: Build the execution belongs to

    Returns:
        ExecutionRequest for the configured executor
    """
    if job.security_sensitive:
        logger.warning(
            f"Job {job.name} is privileged and mounts the host docker socket; "
            "it has full control of the host"
        )

    node_selector = dict(job.host.node_selector)
    if job.host.os:
        node_selector[OS_NODE_LABEL] = job.host.os

    labels = {
        "app.kubernetes.io/managed-by": "pipeline-jobs",
        "pipeline-jobs/project": settings.project_id,
        "pipeline-jobs/job": job.name,
    }
    if build_id:
        labels["pipeline-jobs/build"] = build_id

    return ExecutionRequest(
        pod_name=pod_name,
        job_name=job.name,
        namespace=settings.namespace,
        labels=labels,
        annotations=dict(job.annotations),
        image=job.image,
        image_pull_policy="Always" if job.image_force_pull else "IfNotPresent",
        image_pull_secrets=list(job.image_pull_secrets),
        command=build_command(job),
        args=list(job.args),
        env=build_env(job),
        working_dir=job.mount_path if job.use_source else None,
        resource_requests=_quantities(job.resource_requests),
        resource_limits=_quantities(job.resource_limits),
        node_selector=node_selector,
        node_name=job.host.name,
        volumes=build_volumes(job, settings, mounts),
        privileged=job.privileged,
        service_account=job.service_account or settings.default_service_account,
        active_deadline_seconds=max(1, math.ceil(job.timeout / 1000)),
    )
