from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest

from pipeline_jobs.core.config import Settings
from pipeline_jobs.execution.executors.base import JobExecutor
from pipeline_jobs.execution.request import ExecutionRequest
from pipeline_jobs.execution.runner import PollingConfig


class FakeExecutor(JobExecutor):
    """In-memory backend that replays scripted statuses."""

    def __init__(
        self,
        statuses: Optional[List[Dict[str, Any]]] = None,
        logs: str = "",
        volumes_root: Optional[Path] = None,
        on_launch: Optional[Callable[[ExecutionRequest, Dict[str, Path]], None]] = None,
    ):
        self.statuses = list(statuses or [{"status": "completed", "exit_code": 0}])
        self.log_text = logs
        self.volumes_root = volumes_root
        self.on_launch = on_launch
        self.launch_error: Optional[Exception] = None
        self.launched: List[ExecutionRequest] = []
        self.status_checks = 0
        self.terminated: List[str] = []
        self.cleaned_up: List[str] = []

    def launch(self, request: ExecutionRequest) -> Dict[str, Any]:
        if self.launch_error is not None:
            raise self.launch_error
        self.launched.append(request)

        if self.volumes_root is not None:
            # Claims become directories, so executions sharing a claim share files
            mounts = {}
            for volume in request.volumes:
                if volume.claim_name:
                    path = self.volumes_root / volume.claim_name
                    path.mkdir(parents=True, exist_ok=True)
                    mounts[volume.mount_path] = path
            if self.on_launch is not None:
                self.on_launch(request, mounts)

        return {"mode": "fake", "pod_name": request.pod_name}

    def check_status(self, execution_info: Dict[str, Any]) -> Dict[str, Any]:
        self.status_checks += 1
        if len(self.statuses) > 1:
            return self.statuses.pop(0)
        return self.statuses[0]

    def get_logs(self, execution_info: Dict[str, Any]) -> str:
        return self.log_text

    def terminate(self, execution_info: Dict[str, Any]) -> None:
        self.terminated.append(execution_info["pod_name"])

    def cleanup(self, execution_info: Dict[str, Any]) -> None:
        self.cleaned_up.append(execution_info["pod_name"])


@pytest.fixture
def fake_executor():
    return FakeExecutor()


@pytest.fixture
def executor_factory():
    """Build FakeExecutors with scripted statuses."""
    return FakeExecutor


@pytest.fixture
def test_settings():
    """Settings for a build in a test namespace."""
    return Settings(
        project_id="demo",
        namespace="ci",
        build_id=None,
        source_claim_name=None,
        storage_claim_name=None,
        default_service_account=None,
    )


@pytest.fixture
def fast_polling():
    return PollingConfig(
        poll_interval_seconds=0.01,
        schedule_timeout_seconds=1.0,
        log_poll_interval_seconds=0.01,
    )
