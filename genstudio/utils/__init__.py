"""Utility modules for genstudio."""

from genstudio.utils.errors import (
    AuthError,
    GenStudioError,
    JobNotFound,
    JobTimedOut,
    MaterializationError,
    PersistenceError,
    PromptAssistantError,
    ProviderError,
    ProviderRejected,
    ProxyError,
    RateLimited,
    UpstreamUnavailable,
    ValidationError,
)
from genstudio.utils.retry import backoff_delay, with_retry

__all__ = [
    "GenStudioError",
    "ValidationError",
    "ProviderError",
    "AuthError",
    "RateLimited",
    "ProviderRejected",
    "UpstreamUnavailable",
    "JobNotFound",
    "JobTimedOut",
    "MaterializationError",
    "PersistenceError",
    "ProxyError",
    "PromptAssistantError",
    "backoff_delay",
    "with_retry",
]
