"""Result materializer: turn a provider result reference into bytes the app can use."""

import base64
import binascii
import logging
import re
from typing import Any, Awaitable, Callable, Literal, Optional
from urllib.parse import urlencode, urlparse

import httpx
from pydantic import BaseModel

from genstudio.models.job import JobKind
from genstudio.utils.errors import MaterializationError, ProxyError

logger = logging.getLogger(__name__)

# Provider CDNs that do not serve CORS headers; the same list gates the proxy
PROXY_DOMAINS = (
    "klingai.com",
    "kwimgs.com",
    "kuaishou.com",
    "aimlapi.com",
    "replicate.delivery",
    "bfl.ai",
)

UPSTREAM_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "*/*",
}

MAX_REDIRECTS = 5

ACCEPT_BY_KIND = {
    JobKind.IMAGE: "image/*",
    JobKind.VIDEO: "video/*",
    JobKind.AUDIO: "audio/*",
}

DEFAULT_CONTENT_TYPE = {
    JobKind.IMAGE: "image/png",
    JobKind.VIDEO: "video/mp4",
    JobKind.AUDIO: "audio/mpeg",
}

_DATA_URI = re.compile(r"^data:(?P<type>[\w.+-]+/[\w.+-]+)?(?P<params>(;[^,;]+)*);base64,(?P<data>.*)$", re.S)

Transport = Literal["direct", "proxy", "inline"]


def _host(url: str) -> Optional[str]:
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https"):
        return None
    return (parsed.hostname or "").lower() or None


def is_allowed_host(url: str, domains: tuple[str, ...] = PROXY_DOMAINS) -> bool:
    """True when the URL's host is one of ``domains`` or a subdomain of one."""
    host = _host(url)
    if host is None:
        return False
    return any(host == domain or host.endswith(f".{domain}") for domain in domains)


def needs_proxy(url: str) -> bool:
    """Whether a result URL is served from a CDN that blocks cross-origin reads."""
    return is_allowed_host(url)


def proxied_url(url: str, proxy_base_url: str) -> str:
    """Same-origin proxy URL for ``url``."""
    return f"{proxy_base_url}?{urlencode({'url': url})}"


async def send_within_allow_list(
    client: httpx.AsyncClient,
    request: httpx.Request,
    stream: bool = False,
    max_redirects: int = MAX_REDIRECTS,
) -> httpx.Response:
    """
    Send a request, following redirects only while every hop is allow-listed.

    Raises:
        ProxyError: 403 when a redirect leaves the allow-list, 502 when there
            are too many redirects
    """
    for _ in range(max_redirects + 1):
        response = await client.send(request, stream=stream, follow_redirects=False)
        target = response.next_request
        if not response.is_redirect or target is None:
            return response
        await response.aclose()
        if not is_allowed_host(str(target.url)):
            logger.warning(f"Refused redirect from {request.url} to {target.url}")
            raise ProxyError(403, "Unauthorized media source")
        request = target
    raise ProxyError(502, f"Too many redirects fetching {request.url}")


def is_inline(result_ref: str) -> bool:
    return result_ref.startswith("data:") or _host(result_ref) is None


def decode_inline(result_ref: str, kind: JobKind) -> tuple[bytes, str]:
    """
    Decode a data URI or bare base64 payload.

    Returns:
        Tuple of (content, content_type)

    Raises:
        MaterializationError: If the payload is not valid base64
    """
    content_type = DEFAULT_CONTENT_TYPE[kind]
    data = result_ref.strip()

    match = _DATA_URI.match(data)
    if match:
        content_type = match.group("type") or content_type
        data = match.group("data")
    elif data.startswith("data:"):
        raise MaterializationError("Unsupported data URI; only base64 payloads are accepted")

    try:
        content = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MaterializationError(f"Result is neither a URL nor valid base64: {e}")
    if not content:
        raise MaterializationError("Inline result is empty")
    return content, content_type


def to_data_uri(content: bytes, content_type: str) -> str:
    return f"data:{content_type};base64,{base64.b64encode(content).decode('ascii')}"


class Artifact(BaseModel):
    """The deliverable of a finished job, in a form the caller can use."""

    ref: str
    source_url: Optional[str] = None
    transport: Transport
    content: Optional[bytes] = None
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content) if self.content is not None else 0


class ResultMaterializer:
    """
    Fetches job results, falling back through transports for image CDNs.

    Images on a CDN without CORS headers try direct, then the proxy, then
    an inline data URI, each at most once. Video and audio use a single
    transport: the proxy when the host needs one, otherwise direct.
    """

    def __init__(
        self,
        proxy_base_url: str,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 50.0,
        max_bytes: int = 100 * 1024 * 1024,
    ) -> None:
        """
        Initialize the ResultMaterializer.

        Args:
            proxy_base_url: URL of the same-origin ``/proxy`` endpoint
            http_client: Shared client (tests inject one with a mock transport)
            timeout: Per-fetch timeout in seconds
            max_bytes: Largest artifact accepted
        """
        self.proxy_base_url = proxy_base_url
        self.timeout = timeout
        self.max_bytes = max_bytes
        self._client = http_client

    def transports_for(self, url: str, kind: JobKind) -> list[Transport]:
        """Ordered transports tried for a result URL."""
        if not needs_proxy(url):
            return ["direct"]
        if kind == JobKind.IMAGE:
            return ["direct", "proxy", "inline"]
        return ["proxy"]

    async def materialize(self, result_ref: str, kind: JobKind) -> Artifact:
        """
        Retrieve a result reference as an Artifact.

        Args:
            result_ref: URL or inline payload from a ready job
            kind: Media kind of the job

        Returns:
            Artifact with its content and the transport that produced it

        Raises:
            MaterializationError: When every transport failed
        """
        if not result_ref:
            raise MaterializationError("Job has no result to materialize")

        if is_inline(result_ref):
            content, content_type = decode_inline(result_ref, kind)
            self._check_size(len(content))
            return Artifact(
                ref=to_data_uri(content, content_type),
                transport="inline",
                content=content,
                content_type=content_type,
            )

        steps: dict[Transport, Callable[[str, JobKind], Awaitable[Artifact]]] = {
            "direct": self._direct,
            "proxy": self._proxy,
            "inline": self._inline,
        }
        failures: list[str] = []
        for transport in self.transports_for(result_ref, kind):
            try:
                artifact = await steps[transport](result_ref, kind)
            except MaterializationError as e:
                logger.warning(f"{transport} fetch of {result_ref} failed: {e.message}")
                failures.append(f"{transport}: {e.message}")
                continue
            logger.info(f"Materialized {kind.value} via {transport} ({artifact.size} bytes)")
            return artifact

        raise MaterializationError(f"Could not retrieve result ({'; '.join(failures)})")

    # ==================== Transports ====================

    async def _direct(self, url: str, kind: JobKind) -> Artifact:
        content, content_type = await self._fetch(url, {"Accept": ACCEPT_BY_KIND[kind]})
        return Artifact(
            ref=url,
            source_url=url,
            transport="direct",
            content=content,
            content_type=content_type or DEFAULT_CONTENT_TYPE[kind],
        )

    async def _proxy(self, url: str, kind: JobKind) -> Artifact:
        via = proxied_url(url, self.proxy_base_url)
        content, content_type = await self._fetch(via, {"Accept": ACCEPT_BY_KIND[kind]})
        return Artifact(
            ref=via,
            source_url=url,
            transport="proxy",
            content=content,
            content_type=content_type or DEFAULT_CONTENT_TYPE[kind],
        )

    async def _inline(self, url: str, kind: JobKind) -> Artifact:
        content, content_type = await self._fetch(url, UPSTREAM_HEADERS)
        content_type = content_type or DEFAULT_CONTENT_TYPE[kind]
        return Artifact(
            ref=to_data_uri(content, content_type),
            source_url=url,
            transport="inline",
            content=content,
            content_type=content_type,
        )

    # ==================== Helpers ====================

    def _check_size(self, size: int) -> None:
        if size > self.max_bytes:
            limit_mb = self.max_bytes // (1024 * 1024)
            raise MaterializationError(
                f"Result is {size / (1024 * 1024):.1f}MB, above the {limit_mb}MB limit"
            )

    async def _send(self, client: httpx.AsyncClient, url: str, headers: dict[str, str]) -> httpx.Response:
        request = client.build_request("GET", url, headers=headers, timeout=self.timeout)
        # Provider CDN redirects must stay on the provider CDNs
        if is_allowed_host(url):
            return await send_within_allow_list(client, request)
        return await client.send(request, follow_redirects=True)

    async def _fetch(self, url: str, headers: dict[str, str]) -> tuple[bytes, Optional[str]]:
        try:
            if self._client is not None:
                response = await self._send(self._client, url, headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await self._send(client, url, headers)
        except ProxyError as e:
            raise MaterializationError(e.message)
        except httpx.HTTPError as e:
            raise MaterializationError(f"request failed: {e}")

        if not response.is_success:
            raise MaterializationError(f"HTTP {response.status_code}")

        declared = response.headers.get("content-length")
        if declared and declared.isdigit():
            self._check_size(int(declared))
        content = response.content
        if not content:
            raise MaterializationError("empty response body")
        self._check_size(len(content))

        content_type = response.headers.get("content-type")
        if content_type:
            content_type = content_type.split(";")[0].strip()
        return content, content_type


def create_materializer(http_client: Optional[Any] = None) -> ResultMaterializer:
    """
    Create a ResultMaterializer using application settings.

    Returns:
        Configured ResultMaterializer instance
    """
    from genstudio.config import get_settings

    settings = get_settings()
    return ResultMaterializer(
        proxy_base_url=settings.proxy_base_url,
        http_client=http_client,
        timeout=settings.proxy_timeout_seconds,
        max_bytes=settings.max_artifact_mb * 1024 * 1024,
    )
