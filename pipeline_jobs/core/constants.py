from enum import Enum

# Well-known mount points shared by every job in a build
CACHE_PATH = "/mnt/brigade/cache"
STORAGE_PATH = "/mnt/brigade/share"
DOCKER_SOCKET_PATH = "/var/run/docker.sock"
DOCKER_SOCKET_MOUNT_NAME = "docker-socket"


class Environment(str, Enum):
    """Environment profiles."""

    LOCAL = "local"
    DEV = "dev"
    STAGING = "staging"
    PRODUCTION = "production"


class ExecutionMode(str, Enum):
    """Job execution backends."""

    DOCKER = "docker"
    K8S = "k8s"


class JobState(str, Enum):
    """Lifecycle states of a job runner."""

    CREATED = "created"
    STARTING = "starting"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset(
    {JobState.SUCCEEDED, JobState.FAILED, JobState.TIMED_OUT, JobState.CANCELED}
)
