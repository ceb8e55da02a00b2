"""Generation pipeline: submit, poll, materialize and optionally persist one job."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from pydantic import BaseModel

from genstudio.jobs.poller import JobPoller, OnUpdate, PollPolicy, notify, policy_for_kind
from genstudio.jobs.submitter import JobSubmitter
from genstudio.media.materializer import Artifact, ResultMaterializer
from genstudio.models.job import ErrorDetail, GenerationJob, JobKind, JobStatus
from genstudio.services.storage import MediaStore, SavedMedia
from genstudio.utils.errors import MaterializationError, PersistenceError

logger = logging.getLogger(__name__)


class JobOutcome(BaseModel):
    """Everything the caller learns from one pipeline run."""

    job: GenerationJob
    artifact: Optional[Artifact] = None
    saved: Optional[SavedMedia] = None
    error: Optional[ErrorDetail] = None

    @property
    def succeeded(self) -> bool:
        return self.job.status == JobStatus.READY and self.artifact is not None


class GenerationPipeline:
    """
    Runs a job end to end.

    Submission errors propagate to the caller. Every later failure lands on
    the returned JobOutcome; a storage failure keeps the materialized
    artifact so the caller can still download it.
    """

    def __init__(
        self,
        submitter: JobSubmitter,
        materializer: ResultMaterializer,
        store: Optional[MediaStore] = None,
        policies: Optional[Mapping[JobKind, PollPolicy]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the GenerationPipeline.

        Args:
            submitter: Validates and creates jobs
            materializer: Fetches finished results
            store: Persists artifacts when ``persist`` is requested
            policies: Polling policy per media kind (defaults from settings)
            sleep: Awaitable sleep passed to pollers, injectable for tests
        """
        self.submitter = submitter
        self.materializer = materializer
        self.store = store
        self.policies = dict(policies or {})
        self._sleep = sleep

    def poller_for(self, job: GenerationJob) -> JobPoller:
        adapter = self.submitter.adapter_for(job.operation)
        policy = self.policies.get(job.kind) or policy_for_kind(job.kind)
        return JobPoller(adapter, policy=policy, sleep=self._sleep)

    async def run(
        self,
        operation: str,
        params: Union[BaseModel, Mapping[str, Any]],
        on_update: Optional[OnUpdate] = None,
        persist: bool = False,
        user_id: Optional[str] = None,
    ) -> JobOutcome:
        """
        Submit a job and follow it to a usable artifact.

        Args:
            operation: Operation key
            params: Generation parameters
            on_update: Called with every job snapshot
            persist: Save the artifact to the media store
            user_id: Owner recorded with persisted media

        Returns:
            JobOutcome with the terminal job and, on success, the artifact

        Raises:
            ValidationError: Parameters rejected before submission
            ProviderError: Submission failed
        """
        job = await self.submitter.submit(operation, params)
        await notify(on_update, job)

        job = await self.poller_for(job).run(job, on_update)
        if job.status != JobStatus.READY or not job.result_ref:
            logger.warning(f"Job {job.job_id} ended as {job.status.value}")
            return JobOutcome(job=job, error=job.error)

        try:
            artifact = await self.materializer.materialize(job.result_ref, job.kind)
        except MaterializationError as e:
            logger.error(f"Could not materialize job {job.job_id}: {e}")
            return JobOutcome(job=job, error=ErrorDetail(**e.to_detail()))

        outcome = JobOutcome(job=job, artifact=artifact)
        if not persist:
            return outcome

        if self.store is None:
            failure = PersistenceError("No media store configured", artifact=artifact)
            return outcome.model_copy(update={"error": ErrorDetail(**failure.to_detail())})

        try:
            saved = await self.store.save(artifact, job, user_id=user_id)
        except PersistenceError as e:
            logger.error(f"Could not persist job {job.job_id}: {e}")
            return outcome.model_copy(update={"error": ErrorDetail(**e.to_detail())})

        return outcome.model_copy(update={"saved": saved})


def create_pipeline(http_client: Optional[Any] = None, persist: bool = False) -> GenerationPipeline:
    """
    Create a GenerationPipeline using application settings.

    Args:
        http_client: Optional shared httpx client
        persist: Whether to wire up the Supabase media store

    Returns:
        Configured GenerationPipeline instance
    """
    from genstudio.jobs.submitter import create_submitter
    from genstudio.media.materializer import create_materializer
    from genstudio.services.storage import create_media_store

    return GenerationPipeline(
        submitter=create_submitter(http_client=http_client),
        materializer=create_materializer(http_client=http_client),
        store=create_media_store() if persist else None,
    )
