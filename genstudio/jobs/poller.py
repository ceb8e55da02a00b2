"""Status poller: one cooperative loop shared by every provider adapter."""

import asyncio
import inspect
import logging
import random
from typing import Any, Awaitable, Callable, Optional, Union

from pydantic import BaseModel, Field

from genstudio.models.job import ErrorDetail, GenerationJob, JobKind, JobStatus
from genstudio.providers.base import ProviderAdapter, StatusReport
from genstudio.utils.errors import (
    JobNotFound,
    JobTimedOut,
    ProviderError,
    RateLimited,
    UpstreamUnavailable,
)
from genstudio.utils.retry import backoff_delay

logger = logging.getLogger(__name__)

OnUpdate = Callable[[GenerationJob], Union[None, Awaitable[None]]]

MODERATED_SUGGESTIONS = [
    "Remove disallowed content from the prompt or reference image",
    "Simplify the prompt",
]
FAILED_SUGGESTIONS = [
    "Try again with a simpler prompt",
    "Check the reference images meet the provider limits",
]


class PollPolicy(BaseModel):
    """Delay between status checks and the attempt budget."""

    interval_seconds: float = Field(default=3.0, ge=0)
    max_attempts: int = Field(default=40, ge=1)
    backoff: bool = False
    max_interval_seconds: float = Field(default=30.0, ge=0)
    jitter: float = Field(default=0.0, ge=0, le=1)

    def delay(self, attempt: int, rng: Optional[random.Random] = None) -> float:
        """Seconds to wait before poll number ``attempt`` (0-based)."""
        if not self.backoff:
            return self.interval_seconds
        return backoff_delay(
            attempt,
            self.interval_seconds,
            max_delay=self.max_interval_seconds,
            jitter=self.jitter,
            rng=rng,
        )


def policy_for_kind(kind: JobKind, settings: Optional[Any] = None) -> PollPolicy:
    """Default polling policy for a media kind from application settings."""
    if settings is None:
        from genstudio.config import get_settings

        settings = get_settings()

    if kind == JobKind.VIDEO:
        return PollPolicy(
            interval_seconds=settings.poll_interval_seconds,
            max_attempts=settings.video_max_poll_attempts,
        )
    if kind == JobKind.AUDIO:
        return PollPolicy(
            interval_seconds=settings.audio_poll_interval_seconds,
            max_attempts=settings.audio_max_poll_attempts,
        )
    return PollPolicy(
        interval_seconds=settings.poll_interval_seconds,
        max_attempts=settings.image_max_poll_attempts,
    )


async def notify(on_update: Optional[OnUpdate], job: GenerationJob) -> None:
    """Hand a snapshot to a sync or async callback."""
    if on_update is None:
        return
    result = on_update(job)
    if inspect.isawaitable(result):
        await result


def _detail(kind: str, message: str, suggestions: list[str]) -> ErrorDetail:
    return ErrorDetail(kind=kind, message=message, suggestions=list(suggestions))


class JobPoller:
    """
    Polls one provider job until it reaches a terminal state.

    Each tick is a single round trip. ``run`` drives the ticks on a timer;
    callers that schedule ticks themselves use ``poll_once``. Cancelling the
    task running ``run`` abandons the job; nothing upstream is released.
    """

    def __init__(
        self,
        adapter: ProviderAdapter,
        policy: Optional[PollPolicy] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the JobPoller.

        Args:
            adapter: Adapter that knows how to check and normalize the job
            policy: Delay and attempt budget (defaults per adapter kind)
            sleep: Awaitable sleep, injectable for tests
        """
        self.adapter = adapter
        self.policy = policy or policy_for_kind(adapter.kind)
        self._sleep = sleep

    def apply(self, job: GenerationJob, report: StatusReport) -> GenerationJob:
        """Fold one status report into the job as a counted attempt."""
        status = report.status
        error: Optional[ErrorDetail] = None

        if status == JobStatus.READY and not report.result_ref:
            status = JobStatus.FAILED
            error = _detail(
                "EmptyResult",
                "Provider reported success without a result",
                ["Submit the generation again"],
            )
        elif status == JobStatus.FAILED:
            error = _detail("Failed", report.message or "Generation failed", FAILED_SUGGESTIONS)
        elif status == JobStatus.MODERATED:
            error = _detail(
                "Moderated",
                f"Content moderated: {report.provider_status}",
                MODERATED_SUGGESTIONS,
            )
        elif status == JobStatus.NOT_FOUND:
            error = ErrorDetail(**JobNotFound(f"Task {job.job_id} not found").to_detail())
        elif status == JobStatus.TIMED_OUT:
            error = ErrorDetail(**JobTimedOut(f"Provider timed out job {job.job_id}").to_detail())

        return job.advance(
            status,
            progress=report.progress,
            result_ref=report.result_ref,
            provider_status=report.provider_status,
            error=error,
            count_attempt=True,
        )

    async def tick(self, job: GenerationJob) -> GenerationJob:
        """
        One status check, ignoring the attempt budget.

        Terminal jobs are returned unchanged without a request.
        """
        if job.is_terminal:
            return job

        try:
            report = await self.adapter.check(job.job_id)
        except JobNotFound as e:
            return job.advance(
                JobStatus.NOT_FOUND, error=ErrorDetail(**e.to_detail()), count_attempt=True
            )
        except (UpstreamUnavailable, RateLimited) as e:
            # Transient: the attempt is spent and the next tick tries again
            logger.warning(f"Poll {job.attempts + 1} for {job.job_id} failed: {e}")
            return job.advance(job.status, count_attempt=True)
        except ProviderError as e:
            logger.error(f"Poll for {job.job_id} rejected: {e}")
            return job.advance(
                JobStatus.FAILED, error=ErrorDetail(**e.to_detail()), count_attempt=True
            )

        return self.apply(job, report)

    async def poll_once(self, job: GenerationJob) -> GenerationJob:
        """One status check within the attempt budget; exhausting it times the job out."""
        if job.is_terminal:
            return job
        if job.attempts < self.policy.max_attempts:
            job = await self.tick(job)
        if not job.is_terminal and job.attempts >= self.policy.max_attempts:
            timeout = JobTimedOut(
                f"Job {job.job_id} did not finish after {job.attempts} status checks"
            )
            job = job.advance(JobStatus.TIMED_OUT, error=ErrorDetail(**timeout.to_detail()))
        return job

    async def run(self, job: GenerationJob, on_update: Optional[OnUpdate] = None) -> GenerationJob:
        """
        Poll until the job is terminal.

        Args:
            job: Job returned by the submitter
            on_update: Called with every new snapshot

        Returns:
            The terminal GenerationJob
        """
        logger.info(
            f"Polling {job.operation} job {job.job_id} every "
            f"{self.policy.interval_seconds}s (max {self.policy.max_attempts} attempts)"
        )
        while not job.is_terminal:
            await self._sleep(self.policy.delay(job.attempts))
            job = await self.poll_once(job)
            logger.debug(
                f"Job {job.job_id}: {job.status.value} ({round(job.progress * 100)}%) "
                f"attempt {job.attempts}/{self.policy.max_attempts}"
            )
            await notify(on_update, job)

        logger.info(f"Job {job.job_id} finished as {job.status.value} after {job.attempts} checks")
        return job
