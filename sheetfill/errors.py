"""Error taxonomy for cell generation.

Every error carries the HTTP status and the user-facing message the server
returns for it. Backend exceptions (LiteLLM, OpenAI SDK, or anything else)
are mapped onto this taxonomy by classify_backend_error().
"""

from __future__ import annotations

import logging

logger = logging.getLogger("sheetfill.errors")


class SheetfillError(Exception):
    """Base class for all classified generation errors."""

    status_code: int = 500
    public_message: str = "Failed to generate content"
    retryable: bool = False

    def __init__(self, message: str | None = None):
        super().__init__(message or self.public_message)


class ConfigurationError(SheetfillError):
    """Credential or required setting is absent. Surfaced before any network call."""

    status_code = 500
    public_message = "OpenAI API key not configured"


class AuthError(SheetfillError):
    """The backend rejected the credential."""

    status_code = 401
    public_message = "Invalid API key"


class QuotaError(SheetfillError):
    """Rate limit or billing quota exhausted."""

    status_code = 429
    public_message = "API quota exceeded"


class ValidationError(SheetfillError):
    """Malformed request. No network call is made."""

    status_code = 400
    public_message = "Invalid request"


class TransientBackendError(SheetfillError):
    """Any other backend failure. Retryable up to the attempt budget."""

    status_code = 500
    public_message = "Failed to generate content"
    retryable = True


class ParseAnomaly(SheetfillError):
    """Backend response had an unrecognized shape.

    Never propagated out of the gateway: callers log it and degrade to the
    "Not Found" sentinel with no sources.
    """


TERMINAL_MARKERS = ("API key", "quota")


def is_terminal_message(message: str | None) -> bool:
    """True when an error message names an invalid credential or exhausted quota."""
    if not message:
        return False
    return any(marker in message for marker in TERMINAL_MARKERS)


def classify_backend_error(exc: BaseException) -> SheetfillError:
    """Map an arbitrary backend exception onto the error taxonomy."""
    if isinstance(exc, SheetfillError):
        return exc

    import litellm

    if isinstance(exc, litellm.AuthenticationError):
        return AuthError()
    if isinstance(exc, litellm.RateLimitError):
        return QuotaError()

    message = str(exc)
    if "API key" in message:
        return AuthError()
    if "quota" in message:
        return QuotaError()

    logger.debug(f"Unclassified backend error ({type(exc).__name__}): {message}")
    err = TransientBackendError()
    err.__cause__ = exc
    return err


def public_text(err: SheetfillError) -> str:
    """User-facing text: validation errors keep their specific message."""
    return str(err) if isinstance(err, ValidationError) else err.public_message
