"""
Plain container job: runs its tasks in one container on the configured backend.
"""

from typing import Any, List, Optional

from pydantic import PrivateAttr

from pipeline_jobs.core.config import Settings
from pipeline_jobs.execution.executors.base import JobExecutor
from pipeline_jobs.execution.job import Job
from pipeline_jobs.execution.result import JobResult
from pipeline_jobs.execution.runner import BackendJobRunner


class ContainerJob(Job):
    """Job executed by a BackendJobRunner."""

    _executor: Optional[JobExecutor] = PrivateAttr(default=None)
    _settings: Optional[Settings] = PrivateAttr(default=None)
    _runner: Optional[BackendJobRunner] = PrivateAttr(default=None)
    _build_id: Optional[str] = PrivateAttr(default=None)

    def __init__(
        self,
        name: str,
        image: str = "",
        tasks: Optional[List[str]] = None,
        image_force_pull: bool = False,
        executor: Optional[JobExecutor] = None,
        settings: Optional[Settings] = None,
        **data: Any,
    ):
        super().__init__(name, image, tasks, image_force_pull, **data)
        self._executor = executor
        self._settings = settings

    @property
    def runner(self) -> Optional[BackendJobRunner]:
        return self._runner

    async def run(self) -> JobResult:
        """Start the job and wait for its result; a second call returns the same result."""
        if self._runner is None:
            self._runner = BackendJobRunner(
                self,
                executor=self._executor,
                settings=self._settings,
                build_id=self._build_id,
            )
            # A retry after a failed start keeps the same pod name
            self._build_id = self._runner.build_id
            try:
                await self._runner.start()
            except Exception:
                # Nothing was submitted that wait() could observe
                self._runner = None
                raise
        return await self._runner.wait()

    async def logs(self) -> str:
        if self._runner is None:
            return ""
        return await self._runner.logs()
