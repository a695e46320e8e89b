"""
Docker executor for local job execution.

Runs jobs as Docker containers through the docker CLI during development.
"""

import subprocess
from typing import Any, Dict, List, Optional

from pipeline_jobs.core.config import Settings, settings as default_settings
from pipeline_jobs.core.exceptions import SubmissionError
from pipeline_jobs.core.telemetry import get_logger
from pipeline_jobs.execution.executors.base import (
    STATUS_COMPLETED,
    STATUS_FAILED,
    STATUS_PENDING,
    STATUS_RUNNING,
    JobExecutor,
)
from pipeline_jobs.execution.request import ExecutionRequest

logger = get_logger(__name__)

_PULL_POLICIES = {"Always": "always", "IfNotPresent": "missing"}


class DockerExecutor(JobExecutor):
    """Executor for Docker-based job execution."""

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or default_settings
        self.network = settings.docker_network

    def build_run_command(self, request: ExecutionRequest) -> List[str]:
        """Build the docker run command line for a request."""
        cmd = [
            "docker",
            "run",
            "--name",
            request.pod_name,
            "-d",  # detached
            "--pull",
            _PULL_POLICIES.get(request.image_pull_policy, "missing"),
        ]

        if self.network:
            cmd.extend(["--network", self.network])

        for key, value in sorted(request.labels.items()):
            cmd.extend(["--label", f"{key}={value}"])
        for key, value in sorted(request.annotations.items()):
            cmd.extend(["--label", f"{key}={value}"])

        for entry in request.env:
            if entry.value_from is not None:
                raise SubmissionError(
                    f"Environment variable {entry.name} references a secret or "
                    "config map, which the docker backend cannot resolve"
                )
            cmd.extend(["-e", f"{entry.name}={entry.value}"])

        for volume in request.volumes:
            if volume.claim_name:
                source = f"{volume.claim_name}:{volume.mount_path}"
            elif volume.host_path:
                source = f"{volume.host_path}:{volume.mount_path}"
            else:
                source = volume.mount_path  # anonymous volume
            if volume.read_only:
                source += ":ro"
            cmd.extend(["-v", source])

        if request.privileged:
            cmd.append("--privileged")

        if request.working_dir:
            cmd.extend(["-w", request.working_dir])

        ignored = []
        if request.resource_requests or request.resource_limits:
            ignored.append("resource quantities")
        if request.node_selector or request.node_name:
            ignored.append("host constraints")
        if request.service_account:
            ignored.append("service account")
        if ignored:
            logger.info(f"Docker mode ignores {', '.join(ignored)} for {request.pod_name}")

        if request.command:
            cmd.extend(["--entrypoint", request.command[0], request.image])
            cmd.extend(request.command[1:])
        else:
            cmd.append(request.image)
        cmd.extend(request.args)

        return cmd

    def launch(self, request: ExecutionRequest) -> Dict[str, Any]:
        """Launch Docker container based on execution request."""
        cmd = self.build_run_command(request)

        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=True)
        except subprocess.CalledProcessError as e:
            raise SubmissionError(
                f"Docker run failed with exit code {e.returncode}\n"
                f"Stdout: {e.stdout}\n"
                f"Stderr: {e.stderr}"
            ) from e

        container_id = result.stdout.strip()
        logger.info(f"Started container {request.pod_name} ({container_id})")

        return {
            "mode": "docker",
            "container_id": container_id,
            "pod_name": request.pod_name,
        }

    def check_status(self, execution_info: Dict[str, Any]) -> Dict[str, Any]:
        """Check Docker container status."""
        container_id = execution_info["container_id"]

        status_result = subprocess.run(
            [
                "docker",
                "inspect",
                container_id,
                "--format",
                "{{.State.Status}} {{.State.ExitCode}}",
            ],
            capture_output=True,
            text=True,
        )

        if status_result.returncode != 0:
            return {"status": STATUS_FAILED, "error": "Container not found"}

        status, _, exit_code = status_result.stdout.strip().partition(" ")

        if status == "created":
            return {"status": STATUS_PENDING}

        if status in ("exited", "dead"):
            exit_code = int(exit_code or 1)
            if exit_code == 0:
                return {"status": STATUS_COMPLETED, "exit_code": 0}
            return {
                "status": STATUS_FAILED,
                "exit_code": exit_code,
                "error": f"Container exited with code {exit_code}",
            }

        return {"status": STATUS_RUNNING}

    def get_logs(self, execution_info: Dict[str, Any]) -> str:
        """Read container stdout and stderr so far."""
        container_id = execution_info["container_id"]

        result = subprocess.run(
            ["docker", "logs", container_id],
            capture_output=True,
            text=True,
        )
        if result.returncode != 0:
            return ""
        return result.stdout + result.stderr

    def terminate(self, execution_info: Dict[str, Any]) -> None:
        """Remove the container, killing it if still running."""
        container_id = execution_info["container_id"]
        pod_name = execution_info.get("pod_name", "unknown")

        result = subprocess.run(
            ["docker", "rm", "-f", container_id],
            capture_output=True,
            text=True,
            check=False,  # Don't raise on error
        )

        if result.returncode == 0:
            logger.info(f"Removed Docker container {pod_name} ({container_id})")
        else:
            logger.warning(f"Failed to remove container {pod_name}: {result.stderr}")
