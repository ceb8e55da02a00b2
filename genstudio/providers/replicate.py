"""Replicate image upscale adapter (Real-ESRGAN predictions)."""

import logging
from typing import Any, Optional

import httpx
from pydantic import BaseModel

from genstudio.models.job import JobKind, JobStatus
from genstudio.models.params import UpscaleParams
from genstudio.providers.base import ProviderAdapter, StatusReport, TaskReceipt
from genstudio.utils.errors import AuthError, ProviderRejected

logger = logging.getLogger(__name__)

REPLICATE_BASE_URL = "https://api.replicate.com"
PREDICTIONS_ENDPOINT = "/v1/predictions"
UPSCALE_MODEL_VERSION = "9283608cc6b7be6b65a8e44983db012355fde4132009bf99d976b2f0896856a3"

REPLICATE_STATUS_TABLE = {
    "starting": JobStatus.PENDING,
    "processing": JobStatus.PROCESSING,
    "succeeded": JobStatus.READY,
    "failed": JobStatus.FAILED,
    "canceled": JobStatus.FAILED,
}

REPLICATE_PROGRESS = {
    JobStatus.PENDING: 0.1,
    JobStatus.PROCESSING: 0.5,
    JobStatus.READY: 1.0,
}


def first_output(output: Any) -> Optional[str]:
    """Result URL from a prediction's ``output`` (a URL or a list of URLs)."""
    if isinstance(output, list):
        output = output[0] if output else None
    if isinstance(output, str) and output:
        return output
    return None


class ReplicateUpscaleAdapter(ProviderAdapter):
    """Image upscaling through a pinned Real-ESRGAN version on Replicate."""

    provider = "replicate"
    operation = "replicate-upscale"
    kind = JobKind.IMAGE
    params_model = UpscaleParams
    status_table = REPLICATE_STATUS_TABLE
    progress_table = REPLICATE_PROGRESS

    def __init__(
        self,
        api_token: str,
        base_url: str = REPLICATE_BASE_URL,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ) -> None:
        super().__init__(base_url, http_client=http_client, timeout=timeout)
        self.api_token = api_token

    def auth_headers(self) -> dict[str, str]:
        if not self.api_token:
            raise AuthError(
                "Replicate API token is not configured",
                suggestions=["Set REPLICATE_API_TOKEN in the environment"],
                provider=self.provider,
            )
        return {"Authorization": f"Bearer {self.api_token}"}

    def build_payload(self, params: BaseModel) -> dict[str, Any]:
        return {
            "version": UPSCALE_MODEL_VERSION,
            "input": {
                "img": params.image_url,
                "upscale": params.scale,
                "face_enhance": params.face_enhance,
                "model_type": params.model_type,
            },
        }

    async def create(self, params: BaseModel) -> TaskReceipt:
        body = await self._request("POST", PREDICTIONS_ENDPOINT, json=self.build_payload(params))

        prediction_id = body.get("id") if isinstance(body, dict) else None
        if not prediction_id:
            raise ProviderRejected("No prediction id in Replicate response", provider=self.provider)

        logger.info(f"Replicate upscale prediction created: {prediction_id}")
        return TaskReceipt(job_id=prediction_id, provider_status=body.get("status"))

    async def check(self, job_id: str) -> StatusReport:
        body = await self._request("GET", f"{PREDICTIONS_ENDPOINT}/{job_id}")
        if not isinstance(body, dict):
            raise ProviderRejected("Unexpected response format from Replicate", provider=self.provider)

        raw = body.get("status") or ""
        status = self.normalize(raw)
        result_ref = first_output(body.get("output")) if status == JobStatus.READY else None

        error = body.get("error")
        return StatusReport(
            provider_status=raw,
            status=status,
            progress=self.progress_for(status),
            result_ref=result_ref,
            message=str(error) if error else None,
        )
