"""AIML text-to-audio (music) adapter."""

import logging
from typing import Optional

import httpx
from pydantic import BaseModel

from genstudio.models.job import JobKind, JobStatus
from genstudio.models.params import MusicParams
from genstudio.providers.base import ProviderAdapter, StatusReport, TaskReceipt
from genstudio.utils.errors import AuthError, ProviderRejected

logger = logging.getLogger(__name__)

AIML_BASE_URL = "https://api.aimlapi.com"
AUDIO_ENDPOINT = "/v2/generate/audio"

AIML_STATUS_TABLE = {
    "queued": JobStatus.PENDING,
    "generating": JobStatus.PROCESSING,
    "processing": JobStatus.PROCESSING,
    "completed": JobStatus.READY,
    "error": JobStatus.FAILED,
    "failed": JobStatus.FAILED,
}

AIML_PROGRESS = {
    JobStatus.PENDING: 0.1,
    JobStatus.PROCESSING: 0.5,
    JobStatus.READY: 1.0,
}


class MusicAdapter(ProviderAdapter):
    """Music generation through the AIML audio endpoint."""

    provider = "aiml"
    operation = "aiml-music"
    kind = JobKind.AUDIO
    params_model = MusicParams
    status_table = AIML_STATUS_TABLE
    progress_table = AIML_PROGRESS

    def __init__(
        self,
        api_key: str,
        base_url: str = AIML_BASE_URL,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ) -> None:
        super().__init__(base_url, http_client=http_client, timeout=timeout)
        self.api_key = api_key

    def auth_headers(self) -> dict[str, str]:
        if not self.api_key:
            raise AuthError(
                "AIML API key is not configured",
                suggestions=["Set AIML_API_KEY in the environment"],
                provider=self.provider,
            )
        return {"Authorization": f"Bearer {self.api_key}"}

    async def create(self, params: BaseModel) -> TaskReceipt:
        body = await self._request("POST", AUDIO_ENDPOINT, json=self.build_payload(params))

        generation_id = body.get("id") if isinstance(body, dict) else None
        if not generation_id:
            raise ProviderRejected("No generation id in AIML response", provider=self.provider)

        logger.info(f"AIML audio generation created: {generation_id}")
        return TaskReceipt(job_id=generation_id, provider_status=body.get("status"))

    async def check(self, job_id: str) -> StatusReport:
        body = await self._request("GET", AUDIO_ENDPOINT, params={"generation_id": job_id})
        if not isinstance(body, dict):
            raise ProviderRejected("Unexpected response format from AIML", provider=self.provider)

        raw = body.get("status") or ""
        status = self.normalize(raw)
        result_ref = None
        if status == JobStatus.READY:
            result_ref = (body.get("audio_file") or {}).get("url")

        error = body.get("error")
        return StatusReport(
            provider_status=raw,
            status=status,
            progress=self.progress_for(status),
            result_ref=result_ref,
            message=str(error) if error else None,
        )
