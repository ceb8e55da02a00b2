"""Job submitter: validate parameters, then issue exactly one creation request."""

import logging
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel

from genstudio.models.job import GenerationJob, JobKind, JobStatus
from genstudio.providers.base import ProviderAdapter, redact_payload
from genstudio.utils.errors import ValidationError

logger = logging.getLogger(__name__)


class JobSubmitter:
    """Submits generation jobs to the adapter registered for an operation."""

    def __init__(self, adapters: Mapping[str, ProviderAdapter]) -> None:
        """
        Initialize the JobSubmitter.

        Args:
            adapters: Provider adapters keyed by operation
        """
        self.adapters = dict(adapters)

    @property
    def operations(self) -> list[str]:
        return sorted(self.adapters)

    def adapter_for(self, operation: str) -> ProviderAdapter:
        """
        Look up the adapter for an operation.

        Raises:
            ValidationError: If the operation is unknown
        """
        adapter = self.adapters.get(operation)
        if adapter is None:
            raise ValidationError(
                "operation",
                f"unknown operation {operation!r}; expected one of {', '.join(self.operations)}",
            )
        return adapter

    async def submit(
        self,
        operation: str,
        params: Union[BaseModel, Mapping[str, Any]],
        kind: Optional[JobKind] = None,
    ) -> GenerationJob:
        """
        Validate and submit one generation job.

        Args:
            operation: Operation key, e.g. ``kling-text2video``
            params: Raw parameters or an already-built parameter model
            kind: Expected media kind; rejected when it does not match

        Returns:
            A pending GenerationJob carrying the provider job id

        Raises:
            ValidationError: Before any network call, when parameters are invalid
            ProviderError: Classified provider or transport failure
        """
        adapter = self.adapter_for(operation)
        if kind is not None and kind != adapter.kind:
            raise ValidationError(
                "kind", f"{operation} produces {adapter.kind.value}, not {kind.value}"
            )

        validated = adapter.validate(params)
        receipt = await adapter.create(validated)

        job = GenerationJob(
            job_id=receipt.job_id,
            kind=adapter.kind,
            operation=operation,
            submitted_params=redact_payload(validated.model_dump(exclude_none=True)),
            provider_status=receipt.provider_status,
            status=JobStatus.PENDING,
            progress=adapter.progress_for(JobStatus.PENDING) or 0.0,
        )
        logger.info(f"Submitted {operation} job {job.job_id}")
        return job


def create_submitter(http_client: Optional[Any] = None) -> JobSubmitter:
    """
    Create a JobSubmitter with every provider adapter using application settings.

    Args:
        http_client: Optional shared httpx client

    Returns:
        Configured JobSubmitter instance
    """
    from genstudio.providers import create_adapters

    return JobSubmitter(create_adapters(http_client=http_client))
