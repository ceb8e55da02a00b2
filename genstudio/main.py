"""FastAPI application for the generation studio."""

import logging

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from genstudio import __version__
from genstudio.api.proxy import router as proxy_router
from genstudio.api.routes import (
    generic_exception_handler,
    genstudio_exception_handler,
    request_validation_exception_handler,
)
from genstudio.api.routes import router as jobs_router
from genstudio.config import get_settings
from genstudio.utils.errors import GenStudioError


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app() -> FastAPI:
    """Build the API application with routers, CORS and error handlers."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="GenStudio API", version=__version__)

    app.include_router(jobs_router)
    app.include_router(proxy_router)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(GenStudioError, genstudio_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run("genstudio.main:app", host="0.0.0.0", port=8000, reload=True)
