"""HTTP API for genstudio."""

from genstudio.api.proxy import router as proxy_router
from genstudio.api.routes import router

__all__ = ["router", "proxy_router"]
