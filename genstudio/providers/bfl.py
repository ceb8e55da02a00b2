"""Black Forest Labs (Flux) image adapters."""

import logging
from typing import Any, Optional

import httpx
from pydantic import BaseModel

from genstudio.models.job import JobKind, JobStatus
from genstudio.models.params import (
    FluxCannyParams,
    FluxFillParams,
    FluxTextToImageParams,
    KontextParams,
)
from genstudio.providers.base import ProviderAdapter, StatusReport, TaskReceipt
from genstudio.utils.errors import AuthError, ProviderRejected

logger = logging.getLogger(__name__)

BFL_BASE_URL = "https://api.us1.bfl.ai/v1"

BFL_STATUS_TABLE = {
    "Pending": JobStatus.PENDING,
    "Queued": JobStatus.PENDING,
    "Processing": JobStatus.PROCESSING,
    "Ready": JobStatus.READY,
    "Error": JobStatus.FAILED,
    "Failed": JobStatus.FAILED,
    "Request Moderated": JobStatus.MODERATED,
    "Content Moderated": JobStatus.MODERATED,
    "Task not found": JobStatus.NOT_FOUND,
}

BFL_PROGRESS = {
    JobStatus.PENDING: 0.1,
    JobStatus.PROCESSING: 0.5,
    JobStatus.READY: 1.0,
}


def extract_image(result: Any) -> Optional[str]:
    """Pull the image reference out of a BFL ``result`` field."""
    if isinstance(result, str):
        return result or None
    if isinstance(result, dict):
        for key in ("sample", "url", "image"):
            if result.get(key):
                return result[key]
    return None


class BflAdapter(ProviderAdapter):
    """Shared BFL behaviour: ``x-key`` auth and the ``get_result`` poll endpoint."""

    provider = "bfl"
    kind = JobKind.IMAGE
    status_table = BFL_STATUS_TABLE
    progress_table = BFL_PROGRESS
    endpoint = ""

    def __init__(
        self,
        api_key: str,
        base_url: str = BFL_BASE_URL,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ) -> None:
        super().__init__(base_url, http_client=http_client, timeout=timeout)
        self.api_key = api_key

    def auth_headers(self) -> dict[str, str]:
        if not self.api_key:
            raise AuthError(
                "BFL API key is not configured",
                suggestions=["Set BFL_API_KEY in the environment"],
                provider=self.provider,
            )
        return {"x-key": self.api_key}

    def endpoint_for(self, params: BaseModel) -> str:
        return self.endpoint

    async def create(self, params: BaseModel) -> TaskReceipt:
        payload = self.build_payload(params)
        body = await self._request("POST", self.endpoint_for(params), json=payload)

        task_id = body.get("id") if isinstance(body, dict) else None
        if not task_id:
            raise ProviderRejected("No task id in BFL response", provider=self.provider)

        logger.info(f"BFL task created: {task_id} ({self.operation})")
        return TaskReceipt(job_id=task_id, provider_status=body.get("status"))

    async def check(self, job_id: str) -> StatusReport:
        body = await self._request("GET", "/get_result", params={"id": job_id})
        if not isinstance(body, dict):
            raise ProviderRejected("Invalid JSON response from BFL polling", provider=self.provider)

        raw = body.get("status") or ""
        status = self.normalize(raw)
        result_ref = extract_image(body.get("result")) if status == JobStatus.READY else None

        details = body.get("details")
        return StatusReport(
            provider_status=raw,
            status=status,
            progress=self.progress_for(status, body.get("progress")),
            result_ref=result_ref,
            message=str(details) if details else None,
        )


class KontextProAdapter(BflAdapter):
    """Flux Kontext Pro image editing."""

    operation = "flux-kontext-pro"
    params_model = KontextParams
    endpoint = "/flux-kontext-pro"


class KontextMaxAdapter(BflAdapter):
    """Flux Kontext Max image editing."""

    operation = "flux-kontext-max"
    params_model = KontextParams
    endpoint = "/flux-kontext-max"


class FluxFillAdapter(BflAdapter):
    """Flux Fill inpainting."""

    operation = "flux-fill"
    params_model = FluxFillParams
    endpoint = "/flux-pro-1.0-fill"


class FluxCannyAdapter(BflAdapter):
    """Flux Canny edge-guided generation."""

    operation = "flux-canny"
    params_model = FluxCannyParams
    endpoint = "/flux-pro-1.0-canny"


class FluxTextToImageAdapter(BflAdapter):
    """Plain Flux text-to-image; the model picks the endpoint."""

    operation = "flux-text2image"
    params_model = FluxTextToImageParams

    def endpoint_for(self, params: BaseModel) -> str:
        return f"/{params.model}"

    def build_payload(self, params: BaseModel) -> dict[str, Any]:
        return params.model_dump(exclude_none=True, exclude={"model"})
