"""Property-based tests for job submission.

Feature: genstudio
Property 5: Validation Precedes Network
Property 6: Provider Failures Are Classified
"""

import base64
import json

import httpx
import pytest
from hypothesis import given, settings, strategies as st

from genstudio.auth.signer import TokenSigner
from genstudio.jobs.submitter import JobSubmitter
from genstudio.models.job import JobKind, JobStatus
from genstudio.providers import create_adapters
from genstudio.providers.replicate import UPSCALE_MODEL_VERSION
from genstudio.config import Settings
from genstudio.utils.errors import (
    AuthError,
    ProviderRejected,
    RateLimited,
    UpstreamUnavailable,
    ValidationError,
)


def build_submitter(handler) -> tuple[JobSubmitter, list[httpx.Request]]:
    """Submitter whose adapters talk to ``handler`` and record every request."""
    requests: list[httpx.Request] = []

    def recording(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(recording))
    settings = Settings(
        _env_file=None,
        kling_access_key="ak",
        kling_secret_key="sk",
        bfl_api_key="bfl-key",
        aiml_api_key="aiml-key",
        replicate_api_token="r8-token",
    )
    adapters = create_adapters(settings=settings, signer=TokenSigner("ak", "sk"), http_client=client)
    return JobSubmitter(adapters), requests


def kling_created(request: httpx.Request) -> httpx.Response:
    return httpx.Response(
        200,
        json={
            "code": 0,
            "message": "SUCCEED",
            "request_id": "req-1",
            "data": {"task_id": "task-fox", "task_status": "submitted"},
        },
    )


def bfl_created(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"id": "bfl-task-1", "polling_url": "https://api.us1.bfl.ai/v1/get_result?id=bfl-task-1"})


class TestProperty5ValidationPrecedesNetwork:
    """Property 5: Validation Precedes Network.

    *For any* invalid parameter set, submission SHALL raise a ValidationError
    naming the offending field and SHALL issue zero network requests.
    """

    @settings(max_examples=100, deadline=None)
    @given(length=st.integers(min_value=2501, max_value=4000))
    @pytest.mark.asyncio
    async def test_long_video_prompt_rejected_offline(self, length: int) -> None:
        submitter, requests = build_submitter(kling_created)

        with pytest.raises(ValidationError) as exc_info:
            await submitter.submit("kling-text2video", {"prompt": "a" * length})

        assert exc_info.value.field == "prompt"
        assert requests == []

    @settings(max_examples=100, deadline=None)
    @given(prompt=st.text(alphabet=" \t\n", min_size=1, max_size=20))
    @pytest.mark.asyncio
    async def test_blank_prompt_rejected_offline(self, prompt: str) -> None:
        submitter, requests = build_submitter(bfl_created)

        with pytest.raises(ValidationError) as exc_info:
            await submitter.submit("flux-text2image", {"prompt": prompt})

        assert exc_info.value.field == "prompt"
        assert requests == []

    @pytest.mark.asyncio
    async def test_prompt_at_limit_is_accepted(self) -> None:
        submitter, requests = build_submitter(kling_created)

        job = await submitter.submit("kling-text2video", {"prompt": "a" * 2500})

        assert job.job_id == "task-fox"
        assert len(requests) == 1

    @pytest.mark.asyncio
    async def test_unknown_operation(self) -> None:
        submitter, requests = build_submitter(kling_created)

        with pytest.raises(ValidationError) as exc_info:
            await submitter.submit("sora-video", {"prompt": "fox"})

        assert exc_info.value.field == "operation"
        assert requests == []

    @pytest.mark.asyncio
    async def test_kind_mismatch(self) -> None:
        submitter, requests = build_submitter(kling_created)

        with pytest.raises(ValidationError) as exc_info:
            await submitter.submit("kling-text2video", {"prompt": "fox"}, kind=JobKind.IMAGE)

        assert exc_info.value.field == "kind"
        assert requests == []

    @pytest.mark.asyncio
    async def test_image_to_video_needs_a_frame(self) -> None:
        submitter, requests = build_submitter(kling_created)

        with pytest.raises(ValidationError) as exc_info:
            await submitter.submit("kling-image2video", {"prompt": "the fox runs"})

        assert "input_image or image_tail" in exc_info.value.reason
        assert requests == []

    @pytest.mark.asyncio
    async def test_end_frame_excludes_camera_control(self, png_data_url: str) -> None:
        submitter, requests = build_submitter(kling_created)

        with pytest.raises(ValidationError):
            await submitter.submit(
                "kling-image2video",
                {
                    "input_image": png_data_url,
                    "image_tail": png_data_url,
                    "camera_control": {"type": "down_back"},
                },
            )
        assert requests == []

    @pytest.mark.asyncio
    async def test_oversized_reference_image(self) -> None:
        submitter, requests = build_submitter(bfl_created)
        big = base64.b64encode(b"\x00" * (10 * 1024 * 1024 + 1)).decode()

        with pytest.raises(ValidationError) as exc_info:
            await submitter.submit("flux-kontext-pro", {"prompt": "make it red", "input_image": big})

        assert exc_info.value.field == "input_image"
        assert "10MB" in exc_info.value.reason
        assert requests == []

    @pytest.mark.asyncio
    async def test_canny_thresholds_must_be_ordered(self, png_data_url: str) -> None:
        submitter, requests = build_submitter(bfl_created)

        with pytest.raises(ValidationError):
            await submitter.submit(
                "flux-canny",
                {
                    "prompt": "city at night",
                    "control_image": png_data_url,
                    "canny_low_threshold": 300,
                    "canny_high_threshold": 100,
                },
            )
        assert requests == []

    @pytest.mark.asyncio
    async def test_music_duration_bounds(self) -> None:
        submitter, requests = build_submitter(bfl_created)

        with pytest.raises(ValidationError) as exc_info:
            await submitter.submit("aiml-music", {"prompt": "lofi beat", "seconds_total": 90})

        assert exc_info.value.field == "seconds_total"
        assert requests == []

    @settings(max_examples=50, deadline=None)
    @given(
        params=st.one_of(
            st.builds(lambda s: {"image_url": "https://delivery-eu1.bfl.ai/x.jpeg", "scale": s}, st.integers(11, 100)),
            st.builds(lambda s: {"image_url": "https://delivery-eu1.bfl.ai/x.jpeg", "scale": s}, st.integers(-5, 0)),
            st.just({"image_url": "ftp://example.com/x.jpeg"}),
            st.just({"image_url": "https://delivery-eu1.bfl.ai/x.jpeg", "model_type": "CARTOON"}),
        )
    )
    @pytest.mark.asyncio
    async def test_upscale_parameters_checked_offline(self, params: dict) -> None:
        submitter, requests = build_submitter(bfl_created)

        with pytest.raises(ValidationError) as exc_info:
            await submitter.submit("replicate-upscale", params)

        assert exc_info.value.field in ("scale", "image_url", "model_type")
        assert requests == []


class TestProperty6ProviderFailuresAreClassified:
    """Property 6: Provider Failures Are Classified.

    *For any* failed creation request, the submitter SHALL raise a member of
    the error taxonomy carrying at least one actionable suggestion.
    """

    @settings(max_examples=100, deadline=None)
    @given(status_code=st.sampled_from([400, 401, 403, 404, 422, 429, 500, 502, 503]))
    @pytest.mark.asyncio
    async def test_http_failures_have_suggestions(self, status_code: int) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status_code, json={"detail": "nope"})

        submitter, _ = build_submitter(handler)

        with pytest.raises(Exception) as exc_info:
            await submitter.submit("flux-text2image", {"prompt": "lighthouse"})

        error = exc_info.value
        assert error.suggestions
        if status_code in (401, 403):
            assert isinstance(error, AuthError)
        elif status_code == 429:
            assert isinstance(error, RateLimited)
        elif status_code >= 500:
            assert isinstance(error, UpstreamUnavailable)

    @pytest.mark.asyncio
    async def test_kling_401_is_auth_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"code": 1001, "message": "Authorization failed"})

        submitter, _ = build_submitter(handler)

        with pytest.raises(AuthError) as exc_info:
            await submitter.submit("kling-text2video", {"prompt": "fox"})

        assert any("credential" in s.lower() for s in exc_info.value.suggestions)

    @pytest.mark.asyncio
    async def test_kling_business_code_in_success_envelope(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"code": 1301, "message": "risk control", "data": None})

        submitter, _ = build_submitter(handler)

        with pytest.raises(ProviderRejected) as exc_info:
            await submitter.submit("kling-text2video", {"prompt": "fox"})

        assert exc_info.value.code == 1301
        assert "Simplify the prompt" in exc_info.value.suggestions

    @settings(max_examples=50, deadline=None)
    @given(data=st.one_of(st.text(max_size=20), st.integers(), st.booleans(), st.lists(st.integers(), max_size=3)))
    @pytest.mark.asyncio
    async def test_kling_malformed_data_is_rejected(self, data) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"code": 0, "message": "SUCCEED", "data": data})

        submitter, _ = build_submitter(handler)

        with pytest.raises(ProviderRejected) as exc_info:
            await submitter.submit("kling-text2video", {"prompt": "fox"})

        assert exc_info.value.suggestions

    @pytest.mark.asyncio
    async def test_kling_status_with_scalar_data_is_rejected(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"code": 0, "message": "SUCCEED", "data": "oops"})

        submitter, _ = build_submitter(handler)
        adapter = submitter.adapter_for("kling-text2video")

        with pytest.raises(ProviderRejected):
            await adapter.check("task-fox")
        with pytest.raises(ProviderRejected):
            await adapter.list_tasks()

    @pytest.mark.asyncio
    async def test_kling_task_list_with_bad_entry_is_rejected(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"code": 0, "message": "SUCCEED", "data": ["task-fox"]})

        submitter, _ = build_submitter(handler)

        with pytest.raises(ProviderRejected):
            await submitter.adapter_for("kling-text2video").list_tasks()

    @pytest.mark.asyncio
    async def test_network_error_is_upstream_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        submitter, _ = build_submitter(handler)

        with pytest.raises(UpstreamUnavailable):
            await submitter.submit("aiml-music", {"prompt": "lofi beat"})

    @pytest.mark.asyncio
    async def test_missing_credentials_fail_before_request(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return kling_created(request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        adapters = create_adapters(
            settings=Settings(_env_file=None, kling_access_key="", kling_secret_key=""),
            signer=TokenSigner("", ""),
            http_client=client,
        )

        with pytest.raises(AuthError):
            await JobSubmitter(adapters).submit("kling-text2video", {"prompt": "fox"})
        assert requests == []


class TestSuccessfulSubmission:
    """Accepted submissions return a pending job and send the provider's payload."""

    @pytest.mark.asyncio
    async def test_kling_text_to_video(self) -> None:
        submitter, requests = build_submitter(kling_created)

        job = await submitter.submit("kling-text2video", {"prompt": "A fox in the snow", "duration": "5"})

        assert job.job_id == "task-fox"
        assert job.kind == JobKind.VIDEO
        assert job.status == JobStatus.PENDING
        assert job.progress == 0.1
        assert job.attempts == 0
        request = requests[0]
        assert request.url.path == "/v1/videos/text2video"
        assert request.headers["authorization"].startswith("Bearer ")
        body = json.loads(request.content)
        assert body["prompt"] == "A fox in the snow"
        assert body["model_name"] == "kling-v2-master"

    @pytest.mark.asyncio
    async def test_image_to_video_maps_input_image(self, png_data_url: str) -> None:
        submitter, requests = build_submitter(kling_created)

        await submitter.submit("kling-image2video", {"input_image": png_data_url, "prompt": "wind"})

        body = json.loads(requests[0].content)
        assert request_path(requests[0]) == "/v1/videos/image2video"
        assert not body["image"].startswith("data:")
        assert "input_image" not in body

    @pytest.mark.asyncio
    async def test_flux_text_to_image_uses_model_endpoint(self) -> None:
        submitter, requests = build_submitter(bfl_created)

        job = await submitter.submit(
            "flux-text2image", {"prompt": "lighthouse", "model": "flux-pro-1.1-ultra", "width": 1024}
        )

        assert job.job_id == "bfl-task-1"
        assert request_path(requests[0]) == "/v1/flux-pro-1.1-ultra"
        assert requests[0].headers["x-key"] == "bfl-key"
        assert "model" not in json.loads(requests[0].content)

    @pytest.mark.asyncio
    async def test_large_images_are_redacted_from_job(self) -> None:
        submitter, _ = build_submitter(bfl_created)
        image = base64.b64encode(b"\x01" * 2000).decode()

        job = await submitter.submit("flux-kontext-max", {"prompt": "make it red", "input_image": image})

        assert job.submitted_params["prompt"] == "make it red"
        assert job.submitted_params["input_image"] == f"<{len(image)} chars>"

    @pytest.mark.asyncio
    async def test_music_submission(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(201, json={"id": "gen-42", "status": "queued"})

        submitter, requests = build_submitter(handler)

        job = await submitter.submit("aiml-music", {"prompt": "lofi beat", "seconds_total": 30})

        assert job.kind == JobKind.AUDIO
        assert job.provider_status == "queued"
        assert request_path(requests[0]) == "/v2/generate/audio"
        assert requests[0].headers["authorization"] == "Bearer aiml-key"

    @pytest.mark.asyncio
    async def test_upscale_submission(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(201, json={"id": "pred-1", "status": "starting"})

        submitter, requests = build_submitter(handler)

        job = await submitter.submit("replicate-upscale", {"image_url": "https://delivery-eu1.bfl.ai/x.jpeg"})

        assert job.job_id == "pred-1"
        assert job.kind == JobKind.IMAGE
        assert job.status == JobStatus.PENDING
        assert request_path(requests[0]) == "/v1/predictions"
        assert requests[0].headers["authorization"] == "Bearer r8-token"
        body = json.loads(requests[0].content)
        assert body["version"] == UPSCALE_MODEL_VERSION
        assert body["input"] == {
            "img": "https://delivery-eu1.bfl.ai/x.jpeg",
            "upscale": 2,
            "face_enhance": True,
            "model_type": "PHOTO",
        }


def request_path(request: httpx.Request) -> str:
    return request.url.path
