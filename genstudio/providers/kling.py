"""Kling video adapters (text-to-video and image-to-video)."""

import logging
from typing import Any, Optional

import httpx
from pydantic import BaseModel

from genstudio.auth.signer import TokenSigner
from genstudio.models.job import JobKind, JobStatus
from genstudio.models.params import KlingImageToVideoParams, KlingTextToVideoParams
from genstudio.providers.base import ProviderAdapter, StatusReport, TaskReceipt
from genstudio.providers.error_codes import error_for_code
from genstudio.utils.errors import ProviderRejected, ValidationError

logger = logging.getLogger(__name__)

KLING_BASE_URL = "https://api-singapore.klingai.com"

KLING_STATUS_TABLE = {
    "submitted": JobStatus.PENDING,
    "processing": JobStatus.PROCESSING,
    "succeed": JobStatus.READY,
    "failed": JobStatus.FAILED,
}

KLING_PROGRESS = {
    JobStatus.PENDING: 0.1,
    JobStatus.PROCESSING: 0.5,
    JobStatus.READY: 1.0,
}


class TaskSummary(StatusReport):
    """A task from the Kling history listing."""

    task_id: str
    created_at: Optional[int] = None
    updated_at: Optional[int] = None


class KlingAdapter(ProviderAdapter):
    """Shared Kling behaviour: signed auth, ``code`` envelope, video results."""

    provider = "kling"
    kind = JobKind.VIDEO
    status_table = KLING_STATUS_TABLE
    progress_table = KLING_PROGRESS
    endpoint = ""

    def __init__(
        self,
        signer: TokenSigner,
        base_url: str = KLING_BASE_URL,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ) -> None:
        """
        Initialize the adapter.

        Args:
            signer: Mints the short-lived bearer token sent with every call
            base_url: Kling API root
            http_client: Optional shared httpx client
            timeout: Per-request timeout in seconds
        """
        super().__init__(base_url, http_client=http_client, timeout=timeout)
        self.signer = signer

    def auth_headers(self) -> dict[str, str]:
        return self.signer.auth_header()

    def _unwrap(self, body: Any, expected: type = dict) -> Any:
        """
        Return ``data`` from Kling's ``{code, message, data}`` envelope.

        A missing ``data`` becomes an empty ``expected``; any other shape is a
        ProviderRejected.
        """
        if not isinstance(body, dict):
            raise ProviderRejected("Unexpected response format from Kling", provider=self.provider)
        code = body.get("code")
        if code not in (0, None):
            message = body.get("message") or "Unknown error from Kling API"
            logger.error(
                f"Kling response error {code}: {message} (request {body.get('request_id')})"
            )
            raise error_for_code(self.provider, code, message)
        data = body.get("data")
        if data is None:
            return expected()
        if not isinstance(data, expected):
            raise ProviderRejected(
                f"Unexpected data in Kling response: {type(data).__name__}", provider=self.provider
            )
        return data

    async def create(self, params: BaseModel) -> TaskReceipt:
        payload = self.build_payload(params)
        body = await self._request("POST", self.endpoint, json=payload)
        data = self._unwrap(body)

        task_id = data.get("task_id")
        if not task_id:
            raise ProviderRejected("No task id in Kling response", provider=self.provider)

        logger.info(f"Kling task created: {task_id} ({self.operation})")
        return TaskReceipt(
            job_id=task_id,
            provider_status=data.get("task_status"),
            external_task_id=(data.get("task_info") or {}).get("external_task_id"),
        )

    async def check(self, job_id: str) -> StatusReport:
        body = await self._request("GET", f"{self.endpoint}/{job_id}")
        return self.report(self._unwrap(body))

    def report(self, data: dict[str, Any]) -> StatusReport:
        """Normalize one Kling task record."""
        raw = data.get("task_status") or ""
        status = self.normalize(raw)

        result_ref = None
        if status == JobStatus.READY:
            videos = (data.get("task_result") or {}).get("videos") or []
            if videos:
                result_ref = videos[0].get("url")

        return StatusReport(
            provider_status=raw,
            status=status,
            progress=self.progress_for(status),
            result_ref=result_ref,
            message=data.get("task_status_msg"),
        )


class KlingTextToVideoAdapter(KlingAdapter):
    """Kling text-to-video."""

    operation = "kling-text2video"
    params_model = KlingTextToVideoParams
    endpoint = "/v1/videos/text2video"

    async def list_tasks(self, page_num: int = 1, page_size: int = 30) -> list[TaskSummary]:
        """
        Fetch one page of the account's text-to-video history.

        Raises:
            ValidationError: If the page number or size is out of range
        """
        if not 1 <= page_num <= 1000:
            raise ValidationError("page_num", "page number must be between 1 and 1000")
        if not 1 <= page_size <= 500:
            raise ValidationError("page_size", "page size must be between 1 and 500")

        body = await self._request(
            "GET", self.endpoint, params={"pageNum": page_num, "pageSize": page_size}
        )
        tasks = self._unwrap(body, expected=list)

        summaries = []
        for task in tasks:
            if not isinstance(task, dict):
                raise ProviderRejected("Unexpected task entry in Kling response", provider=self.provider)
            report = self.report(task)
            summaries.append(
                TaskSummary(
                    task_id=task.get("task_id", ""),
                    created_at=task.get("created_at"),
                    updated_at=task.get("updated_at"),
                    **report.model_dump(),
                )
            )
        logger.info(f"Fetched {len(summaries)} Kling tasks (page {page_num})")
        return summaries


class KlingImageToVideoAdapter(KlingAdapter):
    """Kling image-to-video with end frame, motion brush and camera control."""

    operation = "kling-image2video"
    params_model = KlingImageToVideoParams
    endpoint = "/v1/videos/image2video"

    def build_payload(self, params: BaseModel) -> dict[str, Any]:
        data = params.model_dump(exclude_none=True)
        payload: dict[str, Any] = {
            "model_name": data["model_name"],
            "mode": data["mode"],
            "duration": data["duration"],
            "prompt": data.get("prompt", ""),
            "cfg_scale": data["cfg_scale"],
        }
        if data.get("input_image"):
            payload["image"] = data["input_image"]
        for key in ("image_tail", "negative_prompt", "static_mask", "camera_control", "external_task_id"):
            if data.get(key):
                payload[key] = data[key]
        if data.get("dynamic_masks"):
            payload["dynamic_masks"] = data["dynamic_masks"]
        return payload
