"""Failure taxonomy for the relay and its translation into client responses."""

from __future__ import annotations

from typing import Iterable, Optional

from relay.models import ErrorOutcome, Provider

HOP_PROVIDER = "provider"
HOP_DOWNLOAD = "download"

TIMEOUT_MESSAGE = "The AI processing took too long. Please try with a smaller image."

UPSTREAM_STATUS_MESSAGES = {
    400: "Invalid image format or corrupted file",
    401: "API authentication error. Please check your API key",
    403: "API authentication error. Please check your API key",
    429: "API rate limit exceeded. Please try again later",
    500: "AI processing error. Please try again",
    503: "Service temporarily unavailable. Please try again in a moment",
}


class RelayError(Exception):
    """Base class for failures that map onto a fixed client response."""

    status_code = 500
    error = "Internal server error"

    def __init__(self, details: Optional[str] = None, message: Optional[str] = None):
        super().__init__(details or message or self.error)
        self.details = details
        self.message = message

    def outcome(self, provider: Optional[Provider] = None) -> ErrorOutcome:
        return ErrorOutcome(
            status_code=self.status_code,
            error=self.error,
            details=self.details,
            message=self.message,
        )


class MissingInputError(RelayError):
    status_code = 400
    error = "No file uploaded"


class EmptyUploadError(RelayError):
    status_code = 400
    error = "Empty file uploaded"


class UnsupportedMediaTypeError(RelayError):
    status_code = 415
    error = "Invalid file type"


class PayloadTooLargeError(RelayError):
    status_code = 413
    error = "File too large"


class MissingConfigurationError(RelayError):
    error = "API key not configured"


class UpstreamMalformedResponseError(RelayError):
    error = "Invalid API response format"


class UpstreamProviderError(RelayError):
    """The provider answered 2xx but reported a failure in its envelope."""

    error = "Image enhancement failed"


class MissingImageURLError(RelayError):
    error = "No enhanced image URL returned"


class UpstreamHTTPError(RelayError):
    """The provider answered with a non-2xx status."""

    def __init__(self, status_code: int, details: Optional[str] = None, hop: str = HOP_PROVIDER):
        super().__init__(details=details)
        self.status_code = status_code
        self.hop = hop

    @property
    def rejected_credentials(self) -> bool:
        """True when the provider itself refused our API key."""
        return self.hop == HOP_PROVIDER and self.status_code in (401, 403)

    def outcome(self, provider: Optional[Provider] = None) -> ErrorOutcome:
        fallback = f"{provider.label} failed" if provider else "Processing failed"
        error = UPSTREAM_STATUS_MESSAGES.get(self.status_code, fallback)
        return ErrorOutcome(status_code=self.status_code, error=error, details=self.details)


class TransportTimeoutError(RelayError):
    status_code = 504
    error = "Request timeout"

    def __init__(self, timeout: float, hop: str = HOP_PROVIDER):
        super().__init__(message=TIMEOUT_MESSAGE)
        self.timeout = timeout
        self.hop = hop


class TransportUnreachableError(RelayError):
    status_code = 503
    error = "Service unavailable"

    def __init__(self, hop: str = HOP_PROVIDER, reason: Optional[str] = None):
        super().__init__(details=reason)
        self.hop = hop

    def outcome(self, provider: Optional[Provider] = None) -> ErrorOutcome:
        service = provider.service if provider else "the processing service"
        return ErrorOutcome(
            status_code=self.status_code,
            error=self.error,
            message=f"Unable to connect to {service}. Please try again later.",
        )


def _redact(text: Optional[str], secrets: Iterable[str]) -> Optional[str]:
    if text is None:
        return None
    for secret in secrets:
        if secret:
            text = text.replace(secret, "[redacted]")
    return text


def translate(exc: BaseException, provider: Optional[Provider] = None, secrets: Iterable[str] = ()) -> ErrorOutcome:
    """Map any failure raised while relaying a request to an ErrorOutcome."""
    if isinstance(exc, RelayError):
        outcome = exc.outcome(provider)
    else:
        outcome = ErrorOutcome(status_code=500, error="Internal server error", message=str(exc) or type(exc).__name__)

    secrets = [s for s in secrets if s]
    if secrets:
        outcome = outcome.model_copy(
            update={
                "details": _redact(outcome.details, secrets),
                "message": _redact(outcome.message, secrets),
            }
        )
    return outcome
