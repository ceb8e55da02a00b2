"""Provider error classification.

Numeric business codes are provider documentation; the table below only
records the ones the dashboard has seen and has guidance for. Anything else
falls back to classification by HTTP status.
"""

from typing import NamedTuple, Optional, Union

from genstudio.utils.errors import (
    AuthError,
    JobNotFound,
    ProviderError,
    ProviderRejected,
    RateLimited,
    UpstreamUnavailable,
)

Code = Union[int, str]


class ErrorCodeEntry(NamedTuple):
    """Guidance for one ``(provider, code)`` pair."""

    error_class: type[ProviderError]
    message: str
    suggestions: tuple[str, ...]


ERROR_CODES: dict[tuple[str, Code], ErrorCodeEntry] = {
    ("kling", 1000): ErrorCodeEntry(
        AuthError,
        "Authentication failed",
        ("Check that KLING_ACCESS_KEY and KLING_SECRET_KEY are configured",),
    ),
    ("kling", 1001): ErrorCodeEntry(
        AuthError,
        "Authentication failed",
        (
            "Verify your Kling credentials",
            "Check the signing secret and token claims",
        ),
    ),
    ("kling", 1002): ErrorCodeEntry(
        AuthError,
        "Authorization token is invalid",
        ("Check that the server clock is correct; tokens are time-limited",),
    ),
    ("kling", 1004): ErrorCodeEntry(
        AuthError,
        "Authorization token has expired",
        ("Retry the request; a fresh token is minted for each call",),
    ),
    ("kling", 1102): ErrorCodeEntry(
        ProviderRejected,
        "Account balance or resource package exhausted",
        ("Top up the provider account or wait for the quota to renew",),
    ),
    ("kling", 1200): ErrorCodeEntry(
        AuthError,
        "Request rejected: authentication or parameter format issue",
        ("Check your access key and secret key configuration",),
    ),
    ("kling", 1301): ErrorCodeEntry(
        ProviderRejected,
        "Content failed the provider safety check",
        (
            "Remove any inappropriate or sensitive content",
            "Simplify the prompt",
        ),
    ),
    ("kling", 1302): ErrorCodeEntry(
        RateLimited,
        "Too many requests",
        ("Wait a few minutes before trying again",),
    ),
    ("kling", 1303): ErrorCodeEntry(
        RateLimited,
        "Concurrent task limit reached",
        ("Wait for running generations to finish before submitting more",),
    ),
    ("kling", 400001): ErrorCodeEntry(
        ProviderRejected,
        "Invalid request parameters",
        (
            "Check that your image is valid and under 10MB",
            "Ensure image dimensions are at least 300px",
            "Verify prompt is under 2500 characters",
        ),
    ),
    ("kling", 400002): ErrorCodeEntry(
        ProviderRejected,
        "Image content policy violation",
        (
            "Ensure your image follows content guidelines",
            "Remove any inappropriate or sensitive content",
            "Try with a different image",
        ),
    ),
    ("kling", 429001): ErrorCodeEntry(
        RateLimited,
        "Rate limit exceeded",
        (
            "Wait a few minutes before trying again",
            "Check your API quota and usage limits",
        ),
    ),
    ("bfl", 402): ErrorCodeEntry(
        ProviderRejected,
        "Insufficient credits",
        ("Add credits to the Black Forest Labs account",),
    ),
    ("aiml", 402): ErrorCodeEntry(
        ProviderRejected,
        "Insufficient balance",
        ("Add credits to the AIML account",),
    ),
}


def lookup(provider: str, code: Optional[Code]) -> Optional[ErrorCodeEntry]:
    """Find the guidance entry for a provider code, if any."""
    if code is None:
        return None
    entry = ERROR_CODES.get((provider, code))
    if entry is None and isinstance(code, str) and code.isdigit():
        entry = ERROR_CODES.get((provider, int(code)))
    return entry


def error_for_status(
    provider: str,
    status_code: int,
    message: str,
    code: Optional[Code] = None,
) -> ProviderError:
    """
    Classify a failed provider response into the error taxonomy.

    HTTP 401/403 always means an auth failure. Otherwise a known provider
    code wins over the HTTP status.

    Args:
        provider: Provider key (kling, bfl, aiml)
        status_code: HTTP status of the response
        message: Provider message or response text
        code: Provider business error code, when present

    Returns:
        A ProviderError subclass instance ready to raise
    """
    kwargs = {"code": code, "status_code": status_code, "provider": provider}

    if status_code in (401, 403):
        return AuthError(f"{provider} authentication failed: {message}", **kwargs)

    entry = lookup(provider, code if code is not None else status_code)
    if entry is not None:
        return entry.error_class(
            f"{entry.message}: {message}" if message else entry.message,
            suggestions=list(entry.suggestions),
            **kwargs,
        )

    if status_code == 404:
        return JobNotFound(f"{provider} task not found: {message}", **kwargs)
    if status_code == 429:
        return RateLimited(f"{provider} rate limit exceeded: {message}", **kwargs)
    if status_code >= 500:
        return UpstreamUnavailable(f"{provider} is unavailable ({status_code}): {message}", **kwargs)
    return ProviderRejected(f"{provider} rejected the request: {message}", **kwargs)


def error_for_code(provider: str, code: Code, message: str) -> ProviderError:
    """Classify a business-level error reported inside a successful HTTP response."""
    entry = lookup(provider, code)
    if entry is not None:
        return entry.error_class(
            f"{entry.message}: {message}" if message else entry.message,
            suggestions=list(entry.suggestions),
            code=code,
            provider=provider,
        )
    return ProviderRejected(
        f"{provider} error {code}: {message}",
        code=code,
        provider=provider,
    )
