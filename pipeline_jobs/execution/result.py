"""
Outcome of a single job execution.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from pipeline_jobs.core.constants import JobState

_STATE_LABELS = {
    JobState.SUCCEEDED: "succeeded",
    JobState.FAILED: "failed",
    JobState.TIMED_OUT: "timed out",
    JobState.CANCELED: "canceled",
}


class JobResult(BaseModel):
    """Immutable result of one execution; render with str()."""

    job_name: str
    pod_name: Optional[str] = None
    status: JobState
    exit_code: Optional[int] = None
    message: str = Field(default="", description="Backend diagnostic text")
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    model_config = {"frozen": True}

    @property
    def ok(self) -> bool:
        return self.status == JobState.SUCCEEDED

    @property
    def timed_out(self) -> bool:
        return self.status == JobState.TIMED_OUT

    def __str__(self) -> str:
        label = _STATE_LABELS.get(self.status, self.status.value)
        text = f"job {self.job_name}"
        if self.pod_name:
            text += f" (pod {self.pod_name})"
        text += f" {label}"
        if self.exit_code is not None:
            text += f" with exit code {self.exit_code}"
        if self.message:
            text += f": {self.message}"
        return text
