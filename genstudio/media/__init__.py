"""Result materialization for genstudio."""

from genstudio.media.materializer import (
    PROXY_DOMAINS,
    Artifact,
    ResultMaterializer,
    create_materializer,
    decode_inline,
    is_allowed_host,
    needs_proxy,
    proxied_url,
)

__all__ = [
    "PROXY_DOMAINS",
    "Artifact",
    "ResultMaterializer",
    "create_materializer",
    "decode_inline",
    "is_allowed_host",
    "needs_proxy",
    "proxied_url",
]
