"""End-to-end lifecycle tests: submit, poll, materialize, persist.

Feature: genstudio
Property 9: Storage Failure Keeps The Artifact
"""

import json
from unittest.mock import MagicMock

import httpx
import pytest
from hypothesis import given, settings, strategies as st

from genstudio.auth.signer import TokenSigner
from genstudio.config import Settings
from genstudio.jobs.pipeline import GenerationPipeline
from genstudio.jobs.poller import PollPolicy
from genstudio.jobs.submitter import JobSubmitter
from genstudio.media.materializer import ResultMaterializer
from genstudio.models.job import GenerationJob, JobKind, JobStatus
from genstudio.providers import create_adapters
from genstudio.services.storage import MediaStore
from genstudio.utils.errors import ValidationError

KLING_API = "api-singapore.klingai.com"
BFL_API = "api.us1.bfl.ai"
REPLICATE_API = "api.replicate.com"
FAST = {kind: PollPolicy(interval_seconds=0, max_attempts=10) for kind in JobKind}


async def no_sleep(delay: float) -> None:
    pass


def kling_envelope(data: dict) -> httpx.Response:
    return httpx.Response(200, json={"code": 0, "message": "SUCCEED", "request_id": "req", "data": data})


def build_pipeline(handler, store=None) -> GenerationPipeline:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    settings = Settings(
        _env_file=None, bfl_api_key="bfl-key", aiml_api_key="aiml-key", replicate_api_token="r8-token"
    )
    adapters = create_adapters(settings=settings, signer=TokenSigner("ak", "sk"), http_client=client)
    return GenerationPipeline(
        submitter=JobSubmitter(adapters),
        materializer=ResultMaterializer("http://localhost:8000/proxy", http_client=client),
        store=store,
        policies=FAST,
        sleep=no_sleep,
    )


def fox_handler(task_payload: dict, processing_checks: int = 2):
    """Kling accepts the fox job, reports processing, then succeeds; the proxy serves the video."""
    checks = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal checks
        if request.url.host == KLING_API:
            if request.method == "POST":
                return kling_envelope({"task_id": "task-fox", "task_status": "submitted"})
            checks += 1
            if checks <= processing_checks:
                return kling_envelope({"task_id": "task-fox", "task_status": "processing"})
            return kling_envelope(task_payload)
        if request.url.host == "localhost":
            return httpx.Response(200, content=b"fox-video", headers={"content-type": "video/mp4"})
        return httpx.Response(403)

    return handler


def supabase_mock(upload_error: Exception = None) -> MagicMock:
    supabase = MagicMock()
    bucket = supabase.storage.from_.return_value
    if upload_error is not None:
        bucket.upload.side_effect = upload_error
    else:
        bucket.upload.return_value = {"Key": "ai-generated-media/videos/fox.mp4"}
    bucket.get_public_url.return_value = "https://project.supabase.co/storage/v1/object/public/fox.mp4"
    supabase.table.return_value.insert.return_value.execute.return_value = MagicMock(data=[{"id": 7}])
    return supabase


class TestFoxVideoLifecycle:
    """A text-to-video job runs from submission to a downloadable artifact."""

    @pytest.mark.asyncio
    async def test_fox_in_the_snow(self, kling_task_payload: dict) -> None:
        pipeline = build_pipeline(fox_handler(kling_task_payload))
        snapshots: list[GenerationJob] = []

        outcome = await pipeline.run(
            "kling-text2video",
            {"prompt": "A fox in the snow", "duration": "5"},
            on_update=snapshots.append,
        )

        assert [s.status for s in snapshots] == [
            JobStatus.PENDING,
            JobStatus.PROCESSING,
            JobStatus.PROCESSING,
            JobStatus.READY,
        ]
        assert [s.progress for s in snapshots] == [0.1, 0.5, 0.5, 1.0]
        assert outcome.succeeded
        assert outcome.error is None
        assert outcome.job.attempts == 3
        assert outcome.job.result_ref == "https://v15-kling.klingai.com/fox.mp4"
        assert outcome.artifact.transport == "proxy"
        assert outcome.artifact.content == b"fox-video"
        assert outcome.saved is None

    @pytest.mark.asyncio
    async def test_provider_failure_is_reported(self) -> None:
        failed = {"task_id": "task-fox", "task_status": "failed", "task_status_msg": "Failure to pass the risk control system"}
        pipeline = build_pipeline(fox_handler(failed, processing_checks=1))

        outcome = await pipeline.run("kling-text2video", {"prompt": "A fox in the snow"})

        assert outcome.job.status == JobStatus.FAILED
        assert outcome.artifact is None
        assert outcome.error.kind == "Failed"
        assert "risk control" in outcome.error.message
        assert outcome.error.suggestions

    @pytest.mark.asyncio
    async def test_submission_errors_propagate(self) -> None:
        pipeline = build_pipeline(fox_handler({}))

        with pytest.raises(ValidationError):
            await pipeline.run("kling-text2video", {"prompt": ""})

    @pytest.mark.asyncio
    async def test_persisted_video(self, kling_task_payload: dict) -> None:
        supabase = supabase_mock()
        store = MediaStore(supabase, max_retry_attempts=1, base_delay=0)
        pipeline = build_pipeline(fox_handler(kling_task_payload), store=store)

        outcome = await pipeline.run(
            "kling-text2video", {"prompt": "A fox in the snow"}, persist=True, user_id="user-1"
        )

        assert outcome.error is None
        assert outcome.saved.record_id == "7"
        assert outcome.saved.storage_path.startswith("videos/kling_kling-v2-master_")
        assert outcome.saved.storage_path.endswith(".mp4")
        record = supabase.table.return_value.insert.call_args[0][0]
        assert record["file_type"] == "VIDEO"
        assert record["user_id"] == "user-1"
        assert record["metadata"]["task_id"] == "task-fox"
        assert record["metadata"]["original_url"] == "https://v15-kling.klingai.com/fox.mp4"


class TestImageLifecycle:
    """A Flux Kontext job polls BFL and downloads the sample directly."""

    @pytest.mark.asyncio
    async def test_kontext_pro(self) -> None:
        checks = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal checks
            if request.url.host == BFL_API and request.method == "POST":
                assert json.loads(request.content)["prompt"] == "make the car red"
                return httpx.Response(200, json={"id": "bfl-1"})
            if request.url.host == BFL_API:
                checks += 1
                assert request.url.params["id"] == "bfl-1"
                if checks == 1:
                    return httpx.Response(200, json={"id": "bfl-1", "status": "Pending", "progress": 30})
                return httpx.Response(
                    200,
                    json={"id": "bfl-1", "status": "Ready", "result": {"sample": "https://delivery-eu1.bfl.ai/x.jpeg"}},
                )
            return httpx.Response(200, content=b"jpeg", headers={"content-type": "image/jpeg"})

        outcome = await build_pipeline(handler).run("flux-kontext-pro", {"prompt": "make the car red"})

        assert outcome.succeeded
        assert outcome.job.kind == JobKind.IMAGE
        assert outcome.artifact.transport == "direct"
        assert outcome.artifact.content_type == "image/jpeg"

    @pytest.mark.asyncio
    async def test_moderated_image(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "POST":
                return httpx.Response(200, json={"id": "bfl-2"})
            return httpx.Response(200, json={"id": "bfl-2", "status": "Content Moderated"})

        outcome = await build_pipeline(handler).run("flux-kontext-max", {"prompt": "something"})

        assert outcome.job.status == JobStatus.MODERATED
        assert outcome.error.kind == "Moderated"

    @pytest.mark.asyncio
    async def test_replicate_upscale(self) -> None:
        checks = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal checks
            if request.url.host == REPLICATE_API and request.method == "POST":
                body = json.loads(request.content)
                assert body["input"] == {
                    "img": "https://delivery-eu1.bfl.ai/x.jpeg",
                    "upscale": 4,
                    "face_enhance": True,
                    "model_type": "PHOTO",
                }
                return httpx.Response(201, json={"id": "pred-1", "status": "starting"})
            if request.url.host == REPLICATE_API:
                checks += 1
                assert request.url.path == "/v1/predictions/pred-1"
                if checks == 1:
                    return httpx.Response(200, json={"id": "pred-1", "status": "processing"})
                return httpx.Response(
                    200,
                    json={"id": "pred-1", "status": "succeeded", "output": "https://replicate.delivery/pbxt/big.png"},
                )
            assert request.url.host == "replicate.delivery"
            return httpx.Response(200, content=b"big-png", headers={"content-type": "image/png"})

        outcome = await build_pipeline(handler).run(
            "replicate-upscale", {"image_url": "https://delivery-eu1.bfl.ai/x.jpeg", "scale": 4}
        )

        assert outcome.succeeded
        assert outcome.job.kind == JobKind.IMAGE
        assert outcome.job.result_ref == "https://replicate.delivery/pbxt/big.png"
        assert outcome.artifact.transport == "direct"
        assert outcome.artifact.content == b"big-png"

    @pytest.mark.asyncio
    async def test_canceled_upscale_fails(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "POST":
                return httpx.Response(201, json={"id": "pred-2", "status": "starting"})
            return httpx.Response(200, json={"id": "pred-2", "status": "canceled", "error": "canceled by user"})

        outcome = await build_pipeline(handler).run(
            "replicate-upscale", {"image_url": "https://delivery-eu1.bfl.ai/x.jpeg"}
        )

        assert outcome.job.status == JobStatus.FAILED
        assert outcome.artifact is None


class TestProperty9StorageFailureKeepsArtifact:
    """Property 9: Storage Failure Keeps The Artifact.

    *For any* storage failure after a job is ready, the outcome SHALL keep
    the materialized artifact and report a PersistenceError.
    """

    @settings(max_examples=25, deadline=None)
    @given(message=st.text(min_size=1, max_size=40))
    @pytest.mark.asyncio
    async def test_upload_failure(self, message: str) -> None:
        payload = {
            "task_id": "task-fox",
            "task_status": "succeed",
            "task_result": {"videos": [{"url": "https://v15-kling.klingai.com/fox.mp4"}]},
        }
        supabase = supabase_mock(upload_error=RuntimeError(message))
        store = MediaStore(supabase, max_retry_attempts=2, base_delay=0)
        pipeline = build_pipeline(fox_handler(payload, processing_checks=0), store=store)

        outcome = await pipeline.run("kling-text2video", {"prompt": "A fox"}, persist=True)

        assert outcome.job.status == JobStatus.READY
        assert outcome.artifact is not None
        assert outcome.artifact.content == b"fox-video"
        assert outcome.saved is None
        assert outcome.error.kind == "PersistenceError"
        assert supabase.storage.from_.return_value.upload.call_count == 2

    @pytest.mark.asyncio
    async def test_missing_store(self, kling_task_payload: dict) -> None:
        pipeline = build_pipeline(fox_handler(kling_task_payload, processing_checks=0))

        outcome = await pipeline.run("kling-text2video", {"prompt": "A fox"}, persist=True)

        assert outcome.artifact is not None
        assert outcome.error.kind == "PersistenceError"
