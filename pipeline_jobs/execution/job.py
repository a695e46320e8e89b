"""
Declarative job model.

A Job describes one unit of a build: the container image to run, the tasks
to run inside it, and the environment it needs. Concrete job kinds implement
run() and logs() on top of a JobRunner.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, PrivateAttr, field_validator
from typing_extensions import Annotated

from pipeline_jobs.core.config import settings
from pipeline_jobs.core.constants import CACHE_PATH, STORAGE_PATH
from pipeline_jobs.core.exceptions import RunnerStateError
from pipeline_jobs.execution.result import JobResult


class LiteralValue(BaseModel):
    """Inline environment variable value."""

    kind: Literal["literal"] = "literal"
    value: str


class SecretKeyRef(BaseModel):
    """Reference to a key of a secret, resolved by the backend."""

    kind: Literal["secret"] = "secret"
    name: str
    key: str
    optional: bool = False


class ConfigMapKeyRef(BaseModel):
    """Reference to a key of a config map, resolved by the backend."""

    kind: Literal["config_map"] = "config_map"
    name: str
    key: str
    optional: bool = False


EnvValue = Annotated[
    Union[LiteralValue, SecretKeyRef, ConfigMapKeyRef], Field(discriminator="kind")
]


class ResourceQuantities(BaseModel):
    """CPU and memory quantities in the backend's native syntax, e.g. "500m"."""

    cpu: Optional[str] = None
    memory: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.cpu is None and self.memory is None


class JobHost(BaseModel):
    """Advisory expectations about the host a job runs on."""

    os: Optional[str] = Field(
        default=None, description="Required host OS, e.g. 'linux' or 'windows'"
    )
    name: Optional[str] = Field(
        default=None, description="Named node; leave unset to let the scheduler pick"
    )
    node_selector: Dict[str, str] = Field(default_factory=dict)


class JobCache(BaseModel):
    """
    Per-job cache.

    Shared between executions of the same job. It is a plain filesystem with
    no consistency guarantees and should be treated as volatile.
    """

    enabled: bool = False
    size: str = "5Mi"
    path: str = Field(default=CACHE_PATH, frozen=True)


class JobStorage(BaseModel):
    """Access to build-wide storage. Enabling it only affects this job."""

    enabled: bool = False
    path: str = Field(default=STORAGE_PATH, frozen=True)


class JobDockerMount(BaseModel):
    """Mount the host's docker socket into the job container."""

    enabled: bool = False


class Job(BaseModel, ABC):
    """
    A single job, composed of closely related sequential tasks.

    The name is fixed at construction and is only validated when the job is
    started; use naming.validate() to check it earlier.
    """

    model_config = {"extra": "forbid"}

    name: str = Field(..., frozen=True)

    # Image
    image: str = ""
    image_force_pull: bool = False
    image_pull_secrets: List[str] = Field(
        default_factory=list, description="Names of secrets holding pull credentials"
    )

    # Command
    shell: str = Field(default_factory=lambda: settings.default_shell)
    tasks: List[str] = Field(default_factory=list)
    args: List[str] = Field(default_factory=list)
    env: Dict[str, EnvValue] = Field(default_factory=dict)

    # Source
    mount_path: str = "/src"
    use_source: bool = True

    timeout: int = Field(
        default_factory=lambda: settings.default_timeout_ms,
        gt=0,
        description="Max milliseconds the job may run",
    )

    # Security
    privileged: bool = False
    service_account: Optional[str] = None

    # Placement and resources
    resource_requests: ResourceQuantities = Field(default_factory=ResourceQuantities)
    resource_limits: ResourceQuantities = Field(default_factory=ResourceQuantities)
    host: JobHost = Field(default_factory=JobHost)

    # Volumes
    cache: JobCache = Field(default_factory=JobCache)
    storage: JobStorage = Field(default_factory=JobStorage)
    docker: JobDockerMount = Field(default_factory=JobDockerMount)

    annotations: Dict[str, str] = Field(default_factory=dict)
    stream_logs: bool = False

    _pod_name: Optional[str] = PrivateAttr(default=None)

    def __init__(
        self,
        name: str,
        image: str = "",
        tasks: Optional[List[str]] = None,
        image_force_pull: bool = False,
        **data: Any,
    ):
        super().__init__(
            name=name,
            image=image,
            tasks=list(tasks or []),
            image_force_pull=image_force_pull,
            **data,
        )

    @field_validator("env", mode="before")
    @classmethod
    def coerce_literal_env(cls, v):
        if isinstance(v, dict):
            return {
                key: {"kind": "literal", "value": value}
                if isinstance(value, str)
                else value
                for key, value in v.items()
            }
        return v

    @property
    def pod_name(self) -> Optional[str]:
        """Generated name of the execution instance, None until started."""
        return self._pod_name

    def assign_pod_name(self, pod_name: str) -> None:
        """Set the generated pod name. Only the runner calls this, once."""
        if self._pod_name is not None and self._pod_name != pod_name:
            raise RunnerStateError(
                f"job {self.name} already has pod name {self._pod_name}"
            )
        self._pod_name = pod_name

    @property
    def security_sensitive(self) -> bool:
        """Privileged containers with the host docker socket can control the host."""
        return self.privileged and self.docker.enabled

    @abstractmethod
    async def run(self) -> JobResult:
        """Execute the job and return its result."""
        pass

    @abstractmethod
    async def logs(self) -> str:
        """Return the logs produced so far; empty if the job has not started."""
        pass
