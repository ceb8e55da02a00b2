"""FastAPI routes for generation jobs and prompt optimization."""

import logging
from typing import Any, Literal, Optional

from fastapi import APIRouter, Body, Depends, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from genstudio.agents.prompt_optimizer import OptimizedPrompt
from genstudio.api.deps import get_prompt_assistant, get_submitter
from genstudio.jobs.poller import JobPoller
from genstudio.jobs.submitter import JobSubmitter
from genstudio.models.job import GenerationJob, JobKind, JobStatus
from genstudio.providers.kling import KlingTextToVideoAdapter, TaskSummary
from genstudio.services.prompt_assistant import MAX_VARIATIONS, PromptAssistant
from genstudio.utils.errors import (
    AuthError,
    GenStudioError,
    JobNotFound,
    JobTimedOut,
    MaterializationError,
    PromptAssistantError,
    ProviderRejected,
    ProxyError,
    RateLimited,
    UpstreamUnavailable,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Create router
router = APIRouter()

# Most specific class first
STATUS_BY_ERROR: list[tuple[type[GenStudioError], int]] = [
    (ValidationError, 422),
    (AuthError, 401),
    (RateLimited, 429),
    (JobNotFound, 404),
    (ProviderRejected, 400),
    (UpstreamUnavailable, 502),
    (MaterializationError, 502),
    (PromptAssistantError, 502),
    (JobTimedOut, 504),
]


def status_for(exc: GenStudioError) -> int:
    if isinstance(exc, ProxyError):
        return exc.status_code
    for error_class, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_class):
            return status_code
    return 500


# ==================== Exception Handlers ====================


async def genstudio_exception_handler(request: Request, exc: GenStudioError) -> JSONResponse:
    """Handle application-specific errors."""
    detail = exc.to_detail()
    content: dict[str, Any] = {
        "detail": exc.message,
        "error_type": exc.kind,
        "suggestions": detail["suggestions"],
    }
    for key in ("code", "field"):
        if key in detail:
            content[key] = detail[key]
    return JSONResponse(status_code=status_for(exc), content=content)


async def request_validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle FastAPI request validation errors."""
    return JSONResponse(
        status_code=422,
        content={
            "detail": "Validation error",
            "error_type": "ValidationError",
            "errors": jsonable_encoder(exc.errors()),
        },
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error_type": "InternalError",
        },
    )


# ==================== Request/Response Models ====================


class SubmitResponse(BaseModel):
    """Response model for job submission."""

    job_id: str
    operation: str
    kind: JobKind
    status: JobStatus
    progress: float


class TaskListResponse(BaseModel):
    """Response model for the Kling task history."""

    page_num: int
    page_size: int
    tasks: list[TaskSummary]


class OptimizeRequest(BaseModel):
    """Request model for prompt optimization."""

    prompt: str = Field(min_length=1, description="Draft prompt")
    target: Literal["video", "image", "audio"] = "image"
    model: Optional[str] = Field(default=None, description="Model the prompt is meant for")


class OptimizeResponse(BaseModel):
    """Response model for prompt optimization."""

    prompt: str
    notes: str
    target: str


class VariationsRequest(OptimizeRequest):
    """Request model for prompt variations."""

    count: int = Field(default=3, ge=1, le=MAX_VARIATIONS, description="Number of variations")


class VariationsResponse(BaseModel):
    """Response model for prompt variations."""

    variations: list[OptimizedPrompt]
    count: int
    target: str


# ==================== Endpoints ====================


@router.post("/jobs/{operation}", response_model=SubmitResponse)
async def submit_job(
    operation: str,
    params: dict[str, Any] = Body(...),
    submitter: JobSubmitter = Depends(get_submitter),
) -> SubmitResponse:
    """Validate parameters and create a generation job."""
    job = await submitter.submit(operation, params)
    return SubmitResponse(
        job_id=job.job_id,
        operation=job.operation,
        kind=job.kind,
        status=job.status,
        progress=job.progress,
    )


@router.get("/jobs/kling/tasks", response_model=TaskListResponse)
async def list_kling_tasks(
    page_num: int = Query(1),
    page_size: int = Query(30),
    submitter: JobSubmitter = Depends(get_submitter),
) -> TaskListResponse:
    """Page through the Kling text-to-video task history."""
    adapter = submitter.adapter_for("kling-text2video")
    if not isinstance(adapter, KlingTextToVideoAdapter):
        raise ValidationError("operation", "task history is only available for Kling")
    tasks = await adapter.list_tasks(page_num=page_num, page_size=page_size)
    return TaskListResponse(page_num=page_num, page_size=page_size, tasks=tasks)


@router.get("/jobs/{operation}/{job_id}", response_model=GenerationJob)
async def check_job(
    operation: str,
    job_id: str,
    submitter: JobSubmitter = Depends(get_submitter),
) -> GenerationJob:
    """Run one status check and return the normalized job snapshot."""
    adapter = submitter.adapter_for(operation)
    job = GenerationJob(job_id=job_id, kind=adapter.kind, operation=operation)
    return await JobPoller(adapter).tick(job)


@router.post("/prompts/optimize", response_model=OptimizeResponse)
async def optimize_prompt(
    request: OptimizeRequest,
    assistant: PromptAssistant = Depends(get_prompt_assistant),
) -> OptimizeResponse:
    """Rewrite a draft prompt for the target media kind."""
    optimized = await assistant.optimize(request.prompt, request.target, request.model)
    return OptimizeResponse(prompt=optimized.prompt, notes=optimized.notes, target=request.target)


@router.post("/prompts/variations", response_model=VariationsResponse)
async def prompt_variations(
    request: VariationsRequest,
    assistant: PromptAssistant = Depends(get_prompt_assistant),
) -> VariationsResponse:
    """Generate alternative rewrites of a draft prompt."""
    variations = await assistant.variations(
        request.prompt, request.target, request.count, request.model
    )
    return VariationsResponse(variations=variations, count=len(variations), target=request.target)
