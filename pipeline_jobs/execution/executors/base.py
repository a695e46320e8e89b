"""
Base executor interface.

Defines the common interface for container/pod execution backends.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any

from pipeline_jobs.execution.request import ExecutionRequest

STATUS_PENDING = "pending"
STATUS_RUNNING = "running"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"


class JobExecutor(ABC):
    """Abstract base class for job executors (Docker, K8s)."""

    @abstractmethod
    def launch(self, request: ExecutionRequest) -> Dict[str, Any]:
        """
        Submit an execution request.

        Args:
            request: Translated job with pod name, image, command, volumes, etc.

        Returns:
            Dict with execution info (mode, pod_name/container_id, etc.)

        Raises:
            SubmissionError: If the backend rejects the request
        """
        pass

    @abstractmethod
    def check_status(self, execution_info: Dict[str, Any]) -> Dict[str, Any]:
        """
        Check execution status.

        Args:
            execution_info: Info returned from launch()

        Returns:
            Dict with status ("pending"|"running"|"completed"|"failed"),
            exit_code once finished and error for failures
        """
        pass

    @abstractmethod
    def get_logs(self, execution_info: Dict[str, Any]) -> str:
        """
        Fetch the log text produced so far.

        Returns an empty string when the execution instance does not exist yet.
        """
        pass

    @abstractmethod
    def terminate(self, execution_info: Dict[str, Any]) -> None:
        """Stop a running execution (timeout or cancellation)."""
        pass

    def cleanup(self, execution_info: Dict[str, Any]) -> None:
        """
        Remove execution resources after a successful run.

        Failed executions are left in place for debugging.
        """
        self.terminate(execution_info)
