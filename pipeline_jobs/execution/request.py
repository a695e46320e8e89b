"""
Backend-neutral execution request.

Defines what to run in a container/pod regardless of execution backend.
Built from a Job by the translation step and consumed by executors.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from pipeline_jobs.core.constants import (
    CACHE_PATH,
    DOCKER_SOCKET_MOUNT_NAME,
    DOCKER_SOCKET_PATH,
    STORAGE_PATH,
)


@dataclass(frozen=True)
class MountPaths:
    """Well-known mount locations agreed on by every job in a build."""

    cache_path: str = CACHE_PATH
    storage_path: str = STORAGE_PATH
    docker_socket_path: str = DOCKER_SOCKET_PATH
    docker_socket_mount_name: str = DOCKER_SOCKET_MOUNT_NAME


DEFAULT_MOUNTS = MountPaths()


class EnvEntry(BaseModel):
    """Environment variable as the backend sees it."""

    name: str
    value: Optional[str] = None
    value_from: Optional[Dict[str, Any]] = Field(
        default=None, description="Kubernetes valueFrom source for references"
    )


class VolumeSpec(BaseModel):
    """Volume attached to the execution and where it is mounted."""

    name: str
    mount_path: str
    read_only: bool = False

    # Exactly one source is set
    claim_name: Optional[str] = None
    host_path: Optional[str] = None
    empty_dir: bool = False

    # Cache claims are created on demand with this size
    claim_size: Optional[str] = None
    storage_class: Optional[str] = None


class ExecutionRequest(BaseModel):
    """Translated job, ready to submit to an executor."""

    # Identity
    pod_name: str = Field(..., description="Name of the execution instance")
    job_name: str
    namespace: str
    labels: Dict[str, str] = Field(default_factory=dict)
    annotations: Dict[str, str] = Field(default_factory=dict)

    # Image
    image: str
    image_pull_policy: str = "IfNotPresent"
    image_pull_secrets: List[str] = Field(default_factory=list)

    # Command (None keeps the image entrypoint)
    command: Optional[List[str]] = None
    args: List[str] = Field(default_factory=list)
    env: List[EnvEntry] = Field(default_factory=list)
    working_dir: Optional[str] = None

    # Resources and placement
    resource_requests: Dict[str, str] = Field(default_factory=dict)
    resource_limits: Dict[str, str] = Field(default_factory=dict)
    node_selector: Dict[str, str] = Field(default_factory=dict)
    node_name: Optional[str] = None

    volumes: List[VolumeSpec] = Field(default_factory=list)

    # Security
    privileged: bool = False
    service_account: Optional[str] = None

    active_deadline_seconds: int = Field(
        ..., gt=0, description="Backend-enforced runtime bound"
    )
