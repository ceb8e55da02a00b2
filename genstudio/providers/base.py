"""Provider adapter base: the create / check / normalize capability set."""

import logging
import math
from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional, Union

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from genstudio.models.job import JobKind, JobStatus
from genstudio.providers.error_codes import error_for_status
from genstudio.utils.errors import UpstreamUnavailable, ValidationError

logger = logging.getLogger(__name__)

# Strings longer than this in a payload are treated as binary blobs when logged
_BLOB_THRESHOLD = 512
_TEXT_FIELDS = frozenset({"prompt", "negative_prompt"})


class TaskReceipt(BaseModel):
    """Provider acknowledgement of a creation request."""

    job_id: str
    provider_status: Optional[str] = None
    external_task_id: Optional[str] = None


class StatusReport(BaseModel):
    """One normalized answer to a status check."""

    provider_status: str
    status: JobStatus
    progress: Optional[float] = None
    result_ref: Optional[str] = None
    message: Optional[str] = None


def to_validation_error(exc: PydanticValidationError) -> ValidationError:
    """Convert the first pydantic error into a ValidationError{field, reason}."""
    first = exc.errors()[0]
    loc = [str(part) for part in first.get("loc", ())]
    field = loc[0] if loc else "params"
    reason = str(first.get("msg", "invalid value"))
    for prefix in ("Value error, ", "Assertion failed, "):
        if reason.startswith(prefix):
            reason = reason[len(prefix) :]
    return ValidationError(field, reason)


def redact_payload(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Copy of a request payload with base64 blobs replaced by a size marker."""

    def redact(key: str, value: Any) -> Any:
        if isinstance(value, str) and key not in _TEXT_FIELDS and len(value) > _BLOB_THRESHOLD:
            return f"<{len(value)} chars>"
        if isinstance(value, Mapping):
            return {k: redact(k, v) for k, v in value.items()}
        if isinstance(value, list):
            return [redact(key, v) for v in value]
        return value

    return {k: redact(k, v) for k, v in payload.items()}


def response_message(response: httpx.Response, body: Any) -> str:
    """Best human-readable message from a provider response."""
    if isinstance(body, dict):
        for key in ("message", "detail", "error", "details"):
            value = body.get(key)
            if value:
                return str(value)
    return response.text[:300] or response.reason_phrase


class ProviderAdapter(ABC):
    """
    One generation operation on one provider.

    Subclasses declare the parameter model and status vocabulary and
    implement ``create`` and ``check``; the poller and submitter only ever
    talk to this interface.
    """

    provider: str = ""
    operation: str = ""
    kind: JobKind = JobKind.IMAGE
    params_model: type[BaseModel] = BaseModel
    status_table: dict[str, JobStatus] = {}
    progress_table: dict[JobStatus, float] = {}

    def __init__(
        self,
        base_url: str,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ) -> None:
        """
        Initialize the adapter.

        Args:
            base_url: Provider API root
            http_client: Shared client (tests inject one with a mock transport)
            timeout: Per-request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = http_client
        self._folded_table = {k.casefold(): v for k, v in self.status_table.items()}

    # ==================== Validation ====================

    def validate(self, params: Union[BaseModel, Mapping[str, Any]]) -> BaseModel:
        """
        Validate caller parameters against this operation's constraints.

        Raises:
            ValidationError: On the first invalid field; no request is made
        """
        if isinstance(params, self.params_model):
            return params
        if isinstance(params, BaseModel):
            raise ValidationError(
                "params", f"expected {self.params_model.__name__}, got {type(params).__name__}"
            )
        if not isinstance(params, Mapping):
            raise ValidationError("params", "parameters must be an object")
        try:
            return self.params_model.model_validate(dict(params))
        except PydanticValidationError as e:
            raise to_validation_error(e)

    def build_payload(self, params: BaseModel) -> dict[str, Any]:
        """Request body for the creation endpoint."""
        return params.model_dump(exclude_none=True)

    # ==================== Normalization ====================

    def normalize(self, raw_status: Optional[str]) -> JobStatus:
        """
        Map a provider status string onto the shared taxonomy.

        Exact match first, then case-insensitive. Unknown strings are treated
        as still processing so the attempt budget bounds them.
        """
        raw = (raw_status or "").strip()
        if raw in self.status_table:
            return self.status_table[raw]
        folded = self._folded_table.get(raw.casefold())
        if folded is not None:
            return folded
        logger.warning(f"Unknown {self.provider} status {raw_status!r}; treating as processing")
        return JobStatus.PROCESSING

    def progress_for(self, status: JobStatus, reported: Optional[Any] = None) -> Optional[float]:
        """
        Coarse progress for a status, preferring a value reported upstream.

        Reported values above 1 are read as percentages. Values that are not
        finite numbers fall back to the status table.
        """
        if reported is not None and status in (JobStatus.PENDING, JobStatus.PROCESSING):
            try:
                value = float(reported)
            except (TypeError, ValueError, OverflowError):
                logger.debug(f"Ignoring non-numeric {self.provider} progress {reported!r}")
                value = None
            if value is not None and math.isfinite(value):
                if value > 1.0:
                    value = value / 100.0
                return min(max(value, 0.0), 1.0)
        return self.progress_table.get(status)

    # ==================== Transport ====================

    def auth_headers(self) -> dict[str, str]:
        """Provider credentials for one request."""
        return {}

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        """
        Send one request and classify failures.

        Returns:
            Decoded JSON body (or None when the body is not JSON)

        Raises:
            ProviderError: Classified failure; raw httpx errors never escape
        """
        url = f"{self.base_url}{path}"
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            **self.auth_headers(),
        }

        try:
            if self._client is not None:
                response = await self._client.request(
                    method, url, json=json, params=params, headers=headers, timeout=self.timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(
                        method, url, json=json, params=params, headers=headers
                    )
        except httpx.TimeoutException as e:
            raise UpstreamUnavailable(
                f"{self.provider} request timed out: {e}", provider=self.provider
            )
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(
                f"HTTP error talking to {self.provider}: {e}", provider=self.provider
            )

        try:
            body = response.json()
        except ValueError:
            body = None

        if not response.is_success:
            code = body.get("code") if isinstance(body, dict) else None
            message = response_message(response, body)
            logger.error(
                f"{self.provider} {method} {path} failed with {response.status_code}: {message}"
            )
            raise error_for_status(self.provider, response.status_code, message, code)

        return body

    # ==================== Capabilities ====================

    @abstractmethod
    async def create(self, params: BaseModel) -> TaskReceipt:
        """Issue the creation request and return the provider job id."""

    @abstractmethod
    async def check(self, job_id: str) -> StatusReport:
        """Query the provider once for the job's status."""
