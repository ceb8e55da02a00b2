"""Generation job Pydantic models."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, Field


class JobKind(str, Enum):
    """Media kind produced by a generation job."""

    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"


class JobStatus(str, Enum):
    """Normalized lifecycle state shared by every provider."""

    PENDING = "pending"
    PROCESSING = "processing"
    READY = "ready"
    FAILED = "failed"
    MODERATED = "moderated"
    NOT_FOUND = "not_found"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {
        JobStatus.READY,
        JobStatus.FAILED,
        JobStatus.MODERATED,
        JobStatus.NOT_FOUND,
        JobStatus.TIMED_OUT,
    }
)

# Position along pending -> processing -> terminal
_STATUS_RANK = {
    JobStatus.PENDING: 0,
    JobStatus.PROCESSING: 1,
}


class ErrorDetail(BaseModel):
    """Structured error exposed to the UI."""

    kind: str
    message: str
    suggestions: list[str] = Field(default_factory=list)
    code: Optional[Union[int, str]] = None
    field: Optional[str] = None


class GenerationJob(BaseModel):
    """One request to an external generation provider."""

    job_id: str = Field(min_length=1)
    kind: JobKind
    operation: str = Field(min_length=1)
    submitted_params: dict[str, Any] = Field(default_factory=dict)
    status: JobStatus = JobStatus.PENDING
    provider_status: Optional[str] = None
    progress: float = Field(default=0.0, ge=0.0, le=1.0)
    result_ref: Optional[str] = None
    attempts: int = Field(default=0, ge=0)
    error: Optional[ErrorDetail] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_terminal(self) -> bool:
        """True once no further polling may occur."""
        return self.status.is_terminal

    def advance(
        self,
        status: JobStatus,
        progress: Optional[float] = None,
        result_ref: Optional[str] = None,
        provider_status: Optional[str] = None,
        error: Optional[ErrorDetail] = None,
        count_attempt: bool = False,
    ) -> "GenerationJob":
        """
        Return the next snapshot of this job.

        Terminal jobs are returned unchanged. A reported status that would
        move the job backwards (processing -> pending) keeps the current
        status, and progress never decreases.

        Args:
            status: Normalized status reported by the provider
            progress: Advisory completion estimate in [0, 1]
            result_ref: Artifact URL or inline payload, once ready
            provider_status: Raw provider status string
            error: Structured error for failed terminal states
            count_attempt: Whether this snapshot consumed a polling attempt

        Returns:
            A new GenerationJob snapshot
        """
        if self.is_terminal:
            return self

        if not status.is_terminal and _STATUS_RANK[status] < _STATUS_RANK[self.status]:
            status = self.status

        next_progress = self.progress
        if progress is not None:
            next_progress = max(self.progress, min(max(progress, 0.0), 1.0))
        if status == JobStatus.READY:
            next_progress = 1.0

        update: dict[str, Any] = {
            "status": status,
            "progress": next_progress,
            "updated_at": datetime.utcnow(),
        }
        if count_attempt:
            update["attempts"] = self.attempts + 1
        if provider_status is not None:
            update["provider_status"] = provider_status
        if result_ref is not None:
            update["result_ref"] = result_ref
        if error is not None:
            update["error"] = error

        return self.model_copy(update=update)
