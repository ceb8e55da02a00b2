"""Custom exception classes for genstudio."""

from typing import Any, Optional, Union


class GenStudioError(Exception):
    """Base exception for all application errors."""

    kind = "GenStudioError"
    default_suggestions: tuple[str, ...] = ()

    def __init__(
        self,
        message: str,
        suggestions: Optional[list[str]] = None,
        code: Optional[Union[int, str]] = None,
    ) -> None:
        self.message = message
        self.code = code
        self.suggestions = (
            list(suggestions) if suggestions else list(self.default_suggestions)
        )
        super().__init__(message)

    def to_detail(self) -> dict[str, Any]:
        """Structured form handed to the UI: kind, message, suggestions."""
        detail: dict[str, Any] = {
            "kind": self.kind,
            "message": self.message,
            "suggestions": self.suggestions,
        }
        if self.code is not None:
            detail["code"] = self.code
        return detail


class ValidationError(GenStudioError):
    """Generation parameters were rejected before any network call."""

    kind = "ValidationError"
    default_suggestions = ("Correct the highlighted parameter and submit again",)

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")

    def to_detail(self) -> dict[str, Any]:
        detail = super().to_detail()
        detail["field"] = self.field
        return detail


class ProviderError(GenStudioError):
    """Errors returned by (or on the way to) a generation provider."""

    kind = "ProviderError"

    def __init__(
        self,
        message: str,
        suggestions: Optional[list[str]] = None,
        code: Optional[Union[int, str]] = None,
        status_code: Optional[int] = None,
        provider: Optional[str] = None,
    ) -> None:
        self.status_code = status_code
        self.provider = provider
        super().__init__(message, suggestions=suggestions, code=code)


class AuthError(ProviderError):
    """Credential or token failure."""

    kind = "AuthError"
    default_suggestions = (
        "Check the provider credentials configured in the environment",
        "Verify the access key and secret key have not expired",
    )


class RateLimited(ProviderError):
    """Provider answered 429 or an equivalent quota code."""

    kind = "RateLimited"
    default_suggestions = (
        "Wait a few minutes before trying again",
        "Check your API quota and usage limits",
    )


class ProviderRejected(ProviderError):
    """Business-rule rejection such as content moderation or bad parameters."""

    kind = "ProviderRejected"
    default_suggestions = (
        "Simplify the prompt or remove disallowed content",
        "Check the request parameters against the provider limits",
    )


class UpstreamUnavailable(ProviderError):
    """Network failure, timeout or provider outage."""

    kind = "UpstreamUnavailable"
    default_suggestions = (
        "Wait a moment and retry",
        "Check network connectivity to the provider",
    )


class JobNotFound(ProviderError):
    """The job expired or is unknown to the provider."""

    kind = "NotFound"
    default_suggestions = ("Submit the generation again",)


class JobTimedOut(GenStudioError):
    """The polling attempt budget ran out without a terminal state."""

    kind = "TimedOut"
    default_suggestions = (
        "The provider may still finish; check the task history later",
        "Try a shorter duration or a simpler prompt",
    )


class MaterializationError(GenStudioError):
    """The artifact could not be retrieved through any transport."""

    kind = "MaterializationError"
    default_suggestions = (
        "Retry the download",
        "Open the original result URL before it expires",
    )


class PersistenceError(GenStudioError):
    """Saving an already-materialized artifact failed."""

    kind = "PersistenceError"
    default_suggestions = (
        "Retry saving the result",
        "Download the result locally",
    )

    def __init__(self, message: str, artifact: Optional[Any] = None) -> None:
        self.artifact = artifact
        super().__init__(message)


class ProxyError(GenStudioError):
    """The same-origin proxy refused or failed to fetch a URL."""

    kind = "ProxyError"

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        super().__init__(message)


class PromptAssistantError(GenStudioError):
    """The prompt assistant failed to produce a usable prompt."""

    kind = "PromptAssistantError"
    default_suggestions = ("Try again or edit the prompt manually",)
