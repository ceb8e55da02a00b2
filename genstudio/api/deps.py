"""FastAPI dependencies for the genstudio API."""

from functools import lru_cache

import httpx

from genstudio.config import Settings, get_settings
from genstudio.jobs.submitter import JobSubmitter, create_submitter
from genstudio.services.prompt_assistant import PromptAssistant, create_prompt_assistant


def get_settings_dep() -> Settings:
    """Dependency for application settings."""
    return get_settings()


@lru_cache
def get_submitter() -> JobSubmitter:
    """Dependency for the job submitter (adapters are stateless, so one is shared)."""
    return create_submitter()


@lru_cache
def get_prompt_assistant() -> PromptAssistant:
    """Dependency for the prompt assistant."""
    return create_prompt_assistant()


@lru_cache
def get_proxy_client() -> httpx.AsyncClient:
    """Long-lived client used to stream proxied media; redirects are checked hop by hop."""
    settings = get_settings()
    return httpx.AsyncClient(timeout=settings.proxy_timeout_seconds, follow_redirects=False)
