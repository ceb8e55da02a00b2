"""Provider adapters for genstudio."""

from typing import Any, Optional

import httpx

from genstudio.providers.aiml import MusicAdapter
from genstudio.providers.base import ProviderAdapter, StatusReport, TaskReceipt
from genstudio.providers.bfl import (
    FluxCannyAdapter,
    FluxFillAdapter,
    FluxTextToImageAdapter,
    KontextMaxAdapter,
    KontextProAdapter,
)
from genstudio.providers.kling import (
    KlingImageToVideoAdapter,
    KlingTextToVideoAdapter,
    TaskSummary,
)
from genstudio.providers.replicate import ReplicateUpscaleAdapter


def create_adapters(
    settings: Optional[Any] = None,
    signer: Optional[Any] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> dict[str, ProviderAdapter]:
    """
    Build every adapter keyed by operation using application settings.

    Args:
        settings: Settings instance (defaults to the cached settings)
        signer: TokenSigner for Kling (defaults to one built from settings)
        http_client: Optional shared httpx client

    Returns:
        Mapping of operation key to adapter
    """
    from genstudio.auth.signer import create_token_signer
    from genstudio.config import get_settings

    settings = settings or get_settings()
    signer = signer or create_token_signer()
    timeout = settings.request_timeout_seconds

    kling = {"signer": signer, "base_url": settings.kling_base_url}
    bfl = {"api_key": settings.bfl_api_key, "base_url": settings.bfl_base_url}
    adapters: list[ProviderAdapter] = [
        KlingTextToVideoAdapter(**kling, http_client=http_client, timeout=timeout),
        KlingImageToVideoAdapter(**kling, http_client=http_client, timeout=timeout),
        KontextProAdapter(**bfl, http_client=http_client, timeout=timeout),
        KontextMaxAdapter(**bfl, http_client=http_client, timeout=timeout),
        FluxFillAdapter(**bfl, http_client=http_client, timeout=timeout),
        FluxCannyAdapter(**bfl, http_client=http_client, timeout=timeout),
        FluxTextToImageAdapter(**bfl, http_client=http_client, timeout=timeout),
        MusicAdapter(
            api_key=settings.aiml_api_key,
            base_url=settings.aiml_base_url,
            http_client=http_client,
            timeout=timeout,
        ),
        ReplicateUpscaleAdapter(
            api_token=settings.replicate_api_token,
            base_url=settings.replicate_base_url,
            http_client=http_client,
            timeout=timeout,
        ),
    ]
    return {adapter.operation: adapter for adapter in adapters}


__all__ = [
    "ProviderAdapter",
    "StatusReport",
    "TaskReceipt",
    "TaskSummary",
    "KlingTextToVideoAdapter",
    "KlingImageToVideoAdapter",
    "KontextProAdapter",
    "KontextMaxAdapter",
    "FluxFillAdapter",
    "FluxCannyAdapter",
    "FluxTextToImageAdapter",
    "MusicAdapter",
    "ReplicateUpscaleAdapter",
    "create_adapters",
]
