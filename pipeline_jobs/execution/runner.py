"""
Job runners.

A JobRunner binds one Job to one backend execution and drives it through
Created -> Starting -> Running -> {Succeeded, Failed, TimedOut, Canceled}.
Backend calls are blocking client calls and run in worker threads so the
event loop is never blocked.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from pipeline_jobs.core.config import Settings, settings as default_settings
from pipeline_jobs.core.constants import JobState
from pipeline_jobs.core.exceptions import (
    JobValidationError,
    RunnerStateError,
    SubmissionError,
)
from pipeline_jobs.core.telemetry import get_logger, log_span_event, trace_span
from pipeline_jobs.execution.executors import get_executor
from pipeline_jobs.execution.executors.base import (
    STATUS_COMPLETED,
    STATUS_FAILED,
    STATUS_RUNNING,
    JobExecutor,
)
from pipeline_jobs.execution.job import Job
from pipeline_jobs.execution.naming import (
    clean_build_id,
    generate_pod_name,
    new_build_id,
    validate,
)
from pipeline_jobs.execution.request import DEFAULT_MOUNTS, MountPaths
from pipeline_jobs.execution.result import JobResult
from pipeline_jobs.execution.translation import build_execution_request

logger = get_logger(__name__)

LOG_FLUSH_TIMEOUT_SECONDS = 5.0


@dataclass
class PollingConfig:
    """Configuration for polling an execution until completion."""

    poll_interval_seconds: float
    schedule_timeout_seconds: float
    log_poll_interval_seconds: float = 1.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "PollingConfig":
        return cls(
            poll_interval_seconds=settings.poll_interval_seconds,
            schedule_timeout_seconds=settings.schedule_timeout_seconds,
            log_poll_interval_seconds=settings.log_poll_interval_seconds,
        )


class JobRunner(ABC):
    """Runtime logic that executes a Job on some backend."""

    state: JobState

    @abstractmethod
    async def start(self) -> "JobRunner":
        """Submit the job; returns once the backend has accepted it."""
        pass

    @abstractmethod
    async def wait(self) -> JobResult:
        """Suspend until the execution reaches a terminal state."""
        pass

    @abstractmethod
    async def logs(self) -> str:
        """Return the logs produced so far, or an empty string."""
        pass


class BackendJobRunner(JobRunner):
    """Runs a job through a JobExecutor (Kubernetes pod or Docker container)."""

    def __init__(
        self,
        job: Job,
        executor: Optional[JobExecutor] = None,
        settings: Optional[Settings] = None,
        mounts: MountPaths = DEFAULT_MOUNTS,
        polling: Optional[PollingConfig] = None,
        log_sink: Optional[Callable[[str], None]] = None,
        cleanup_on_success: bool = False,
        build_id: Optional[str] = None,
    ):
        self.job = job
        self.settings = settings or default_settings
        self.mounts = mounts
        self.polling = polling or PollingConfig.from_settings(self.settings)
        self.build_id = (
            clean_build_id(build_id or self.settings.build_id or "") or new_build_id()
        )
        self.cleanup_on_success = cleanup_on_success

        self.state = JobState.CREATED
        self.execution_info: Optional[Dict[str, Any]] = None
        self.result: Optional[JobResult] = None

        self._executor = executor
        self._log_sink = log_sink or self._log_line
        self._log_task: Optional[asyncio.Task] = None
        self._forwarded = 0
        self._final_logs: Optional[str] = None
        self._started_at: Optional[datetime] = None
        self._terminal: Optional[asyncio.Event] = None
        self._wait_lock: Optional[asyncio.Lock] = None

    @property
    def executor(self) -> JobExecutor:
        if self._executor is None:
            self._executor = get_executor(self.settings)
        return self._executor

    @trace_span
    async def start(self) -> "BackendJobRunner":
        """
        Validate, translate and submit the job.

        Returns:
            This runner, once the backend has accepted the execution

        Raises:
            JobValidationError: If the job name is invalid (nothing is submitted)
            SubmissionError: If the backend rejects the request
            RunnerStateError: If the runner was already started
        """
        if self.state != JobState.CREATED:
            raise RunnerStateError(
                f"Runner for job {self.job.name} already started (state {self.state.value})"
            )

        self.state = JobState.STARTING
        self._terminal = asyncio.Event()
        self._wait_lock = asyncio.Lock()

        try:
            validate(self.job)
        except JobValidationError:
            self.state = JobState.FAILED
            raise

        try:
            pod_name = generate_pod_name(self.job.name, self.build_id)
            self.job.assign_pod_name(pod_name)
            request = build_execution_request(
                self.job,
                pod_name,
                self.settings,
                mounts=self.mounts,
                build_id=self.build_id,
            )
            executor = self.executor
            self.execution_info = await asyncio.to_thread(executor.launch, request)
        except (SubmissionError, RunnerStateError):
            self.state = JobState.FAILED
            raise
        except Exception as e:
            self.state = JobState.FAILED
            raise SubmissionError(f"Failed to submit job {self.job.name}: {e}") from e

        self.state = JobState.RUNNING
        log_span_event(
            f"Submitted job {self.job.name} as {pod_name}",
            {"job": self.job.name, "pod": pod_name},
        )

        if self.job.stream_logs:
            self._log_task = asyncio.create_task(self._forward_logs())

        return self

    @trace_span
    async def wait(self) -> JobResult:
        """
        Poll the backend until the execution finishes, fails or times out.

        The timeout clock starts when the backend first reports the execution
        as running. Runtime failures and timeouts are returned as results.

        Raises:
            RunnerStateError: If start() has not completed
            BackendError: If the backend cannot report status
        """
        if self.result is not None:
            return self.result
        if self.execution_info is None:
            raise RunnerStateError(
                f"wait() called on job {self.job.name} before start() completed"
            )

        async with self._wait_lock:
            if self.result is not None:
                return self.result
            return await self._poll_until_complete()

    async def _poll_until_complete(self) -> JobResult:
        loop = asyncio.get_running_loop()
        submitted_at = loop.time()
        running_since: Optional[float] = None
        timeout_seconds = self.job.timeout / 1000

        while True:
            # cancel() may have resolved the runner while we slept
            if self.result is not None:
                return self.result

            status = await asyncio.to_thread(
                self.executor.check_status, self.execution_info
            )
            # A terminal result set while the check was in flight is final
            if self.result is not None:
                return self.result
            now = loop.time()
            logger.debug(f"Status check for {self.job.pod_name}: {status}")

            if status["status"] == STATUS_COMPLETED:
                return await self._finish(
                    JobState.SUCCEEDED, exit_code=status.get("exit_code", 0)
                )

            if status["status"] == STATUS_FAILED:
                return await self._finish(
                    JobState.FAILED,
                    exit_code=status.get("exit_code"),
                    message=status.get("error", ""),
                )

            if status["status"] == STATUS_RUNNING:
                if running_since is None:
                    running_since = now
                    self._started_at = datetime.now(timezone.utc)
                if now - running_since >= timeout_seconds:
                    return await self._time_out(
                        f"did not finish within {self.job.timeout}ms"
                    )
                delay = min(
                    self.polling.poll_interval_seconds,
                    running_since + timeout_seconds - now,
                )
            else:
                if now - submitted_at >= self.polling.schedule_timeout_seconds:
                    return await self._time_out(
                        "was not scheduled within "
                        f"{self.polling.schedule_timeout_seconds:g}s"
                    )
                delay = self.polling.poll_interval_seconds

            await asyncio.sleep(max(delay, 0))

    async def _time_out(self, message: str) -> JobResult:
        logger.warning(f"Job {self.job.name} {message}, terminating")
        try:
            await asyncio.to_thread(self.executor.terminate, self.execution_info)
        except Exception as e:
            logger.error(f"Failed to terminate timed out job {self.job.name}: {e}")
        return await self._finish(JobState.TIMED_OUT, message=message)

    @trace_span
    async def cancel(self) -> JobResult:
        """
        Resolve the runner as canceled and stop the execution.

        The result is recorded before the backend is asked to terminate, so a
        status check that observes the deletion cannot turn it into a failure.

        Raises:
            BackendError: If the execution could not be terminated
        """
        if self.result is not None:
            return self.result

        result = await self._finish(JobState.CANCELED, message="canceled by caller")

        if self.execution_info is not None:
            await asyncio.to_thread(self.executor.terminate, self.execution_info)

        return result

    async def _finish(
        self,
        state: JobState,
        exit_code: Optional[int] = None,
        message: str = "",
    ) -> JobResult:
        # The first terminal state wins
        if self.result is not None:
            return self.result

        self.state = state
        self.result = JobResult(
            job_name=self.job.name,
            pod_name=self.job.pod_name,
            status=state,
            exit_code=exit_code,
            message=message,
            started_at=self._started_at,
            finished_at=datetime.now(timezone.utc),
        )
        if self._terminal is not None:
            self._terminal.set()

        await self._flush_logs()

        if state == JobState.SUCCEEDED and self.cleanup_on_success:
            # Keep the output readable once the execution is gone
            self._final_logs = await self.logs()
            try:
                await asyncio.to_thread(self.executor.cleanup, self.execution_info)
            except Exception as e:
                logger.error(f"Failed to clean up job {self.job.name}: {e}")

        log_span_event(str(self.result), {"job": self.job.name, "state": state.value})
        return self.result

    async def logs(self) -> str:
        """Logs so far; empty before start() or before the instance exists."""
        if self._final_logs is not None:
            return self._final_logs
        if self.execution_info is None:
            return ""
        return await asyncio.to_thread(self.executor.get_logs, self.execution_info)

    async def _flush_logs(self) -> None:
        """Let the streaming task forward the final lines before returning."""
        task = self._log_task
        if task is None or task.done():
            return
        try:
            # wait_for cancels the task if it does not finish in time
            await asyncio.wait_for(task, timeout=LOG_FLUSH_TIMEOUT_SECONDS)
        except asyncio.TimeoutError:
            logger.warning(f"Log streaming for {self.job.name} did not finish, stopped")
        except Exception as e:
            logger.warning(f"Log streaming for {self.job.name} stopped: {e}")

    async def _forward_logs(self) -> None:
        """Forward new log lines to the sink until the runner is terminal."""
        while True:
            done = self.state.is_terminal
            try:
                text = await self.logs()
            except Exception as e:
                logger.warning(f"Log streaming for {self.job.name} failed: {e}")
                text = ""

            if len(text) > self._forwarded:
                chunk = text[self._forwarded :]
                if not done:
                    # Hold back a trailing partial line
                    chunk = chunk[: chunk.rfind("\n") + 1]
                self._forwarded += len(chunk)
                for line in chunk.splitlines():
                    self._log_sink(line)

            if done:
                return

            try:
                await asyncio.wait_for(
                    self._terminal.wait(), timeout=self.polling.log_poll_interval_seconds
                )
            except asyncio.TimeoutError:
                pass

    def _log_line(self, line: str) -> None:
        logger.info(f"[{self.job.pod_name}] {line}")
