import pytest
from pydantic import ValidationError

from pipeline_jobs.core.constants import JobState
from pipeline_jobs.execution.result import JobResult


class TestJobResult:
    """Tests for result rendering."""

    def test_success_rendering(self):
        result = JobResult(
            job_name="build-1",
            pod_name="build-1-abc",
            status=JobState.SUCCEEDED,
            exit_code=0,
        )

        assert str(result) == "job build-1 (pod build-1-abc) succeeded with exit code 0"
        assert result.ok is True

    def test_failure_includes_diagnostics(self):
        result = JobResult(
            job_name="build-1",
            status=JobState.FAILED,
            exit_code=2,
            message="Container exited with code 2",
        )

        text = str(result)
        assert "failed with exit code 2" in text
        assert "Container exited with code 2" in text
        assert result.ok is False
        assert result.timed_out is False

    def test_timeout_rendering(self):
        result = JobResult(
            job_name="build-1",
            status=JobState.TIMED_OUT,
            message="did not finish within 1000ms",
        )

        assert "timed out" in str(result)
        assert result.timed_out is True

    def test_canceled_rendering(self):
        result = JobResult(job_name="build-1", status=JobState.CANCELED)

        assert str(result) == "job build-1 canceled"

    def test_is_immutable(self):
        result = JobResult(job_name="build-1", status=JobState.SUCCEEDED)

        with pytest.raises(ValidationError):
            result.status = JobState.FAILED
