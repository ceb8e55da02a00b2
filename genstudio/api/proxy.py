"""Same-origin media proxy for provider CDNs without CORS headers."""

import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from genstudio.api.deps import get_proxy_client
from genstudio.media.materializer import UPSTREAM_HEADERS, is_allowed_host, send_within_allow_list
from genstudio.utils.errors import ProxyError

logger = logging.getLogger(__name__)

router = APIRouter()

IMAGE_CACHE_SECONDS = 3600
VIDEO_CACHE_SECONDS = 31536000


def cache_control(content_type: str) -> str:
    max_age = VIDEO_CACHE_SECONDS if content_type.startswith("video/") else IMAGE_CACHE_SECONDS
    return f"public, max-age={max_age}"


@router.get("/proxy")
async def proxy_media(
    url: Optional[str] = Query(default=None),
    client: httpx.AsyncClient = Depends(get_proxy_client),
) -> StreamingResponse:
    """
    Stream a provider-hosted file back with permissive CORS headers.

    Only hosts on the provider allow-list are fetched, including every
    redirect hop.
    """
    if not url:
        raise ProxyError(400, "URL parameter is required")
    if not is_allowed_host(url):
        logger.warning(f"Refused to proxy {url}")
        raise ProxyError(403, "Unauthorized media source")

    request = client.build_request("GET", url, headers=UPSTREAM_HEADERS)
    try:
        upstream = await send_within_allow_list(client, request, stream=True)
    except httpx.HTTPError as e:
        logger.error(f"Proxy fetch failed for {url}: {e}")
        raise ProxyError(502, f"Failed to fetch media: {e}")

    if not upstream.is_success:
        await upstream.aclose()
        logger.error(f"Proxy upstream returned {upstream.status_code} for {url}")
        raise ProxyError(upstream.status_code, f"Failed to fetch media: {upstream.status_code}")

    content_type = upstream.headers.get("content-type", "application/octet-stream")
    headers = {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": "GET",
        "Cache-Control": cache_control(content_type),
    }
    # Decoded bytes are streamed, so a compressed length would be wrong
    if upstream.headers.get("content-length") and "content-encoding" not in upstream.headers:
        headers["Content-Length"] = upstream.headers["content-length"]

    return StreamingResponse(
        upstream.aiter_bytes(),
        media_type=content_type,
        headers=headers,
        background=BackgroundTask(upstream.aclose),
    )
