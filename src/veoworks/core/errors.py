"""Error taxonomy and display-message normalisation.

Every failure in the generation flow is one of a small set of tagged
variants.  Each class carries a ``kind`` tag so callers (and the job API) can
branch on the category without string matching:

==================  ================  =========================================
Class               ``kind``          Raised when
==================  ================  =========================================
ValidationError     ``validation``    Bad user input, before any network call
ConfigurationError  ``configuration`` Service credential missing at startup
SubmissionError     ``transport``     Job submission call failed
StatusCheckError    ``transport``     An operation status check failed
PollTimeoutError    ``transport``     Polling exceeded its time budget
DownloadError       ``transport``     Video download failed or was non-2xx
NoVideoFoundError   ``semantic``      Operation finished without a video URI
==================  ================  =========================================

Transport errors may carry a structured error ``body`` supplied by the
transport layer.  :func:`describe_error` converts an exception to its detail
text.  :func:`describe_failure` adds the ``"Video generation failed: "`` prefix
once, for the message shown in the UI.
"""

from __future__ import annotations

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)

UNKNOWN_ERROR_MESSAGE = "An unknown error occurred during video generation."


class VideoGenerationError(Exception):
    """Base class for every error raised by the generation flow."""

    kind = "unknown"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(VideoGenerationError):
    """User-friendly validation error.

    The message is intended to be displayed directly to the user.
    """

    kind = "validation"


class ConfigurationError(VideoGenerationError):
    """Required configuration (the service credential) is missing."""

    kind = "configuration"


class TransportError(VideoGenerationError):
    """A call to the remote service failed.

    Attributes:
        body: Structured error payload supplied by the transport layer, e.g.
            ``{"error": {"code": 400, "message": "..."}}``, or ``None``.
        status_code: HTTP status code when one is known.
    """

    kind = "transport"

    def __init__(
        self,
        message: str,
        *,
        body: dict[str, Any] | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.body = body
        self.status_code = status_code

    @property
    def detail(self) -> str | None:
        """The service's own error message from :attr:`body`, if present."""
        return structured_error_message(self.body)


class SubmissionError(TransportError):
    """The job-submission call failed."""


class StatusCheckError(TransportError):
    """A status check failed while polling a running operation."""


class PollTimeoutError(TransportError):
    """The operation did not finish within the polling budget."""


class DownloadError(TransportError):
    """The finished video could not be downloaded."""


class SemanticError(VideoGenerationError):
    """The operation completed but its result is unusable."""

    kind = "semantic"


class NoVideoFoundError(SemanticError):
    """The completed operation contains no downloadable video."""


def structured_error_message(body: Any) -> str | None:
    """Extract ``error.message`` from a structured error payload.

    Args:
        body: Parsed error payload (any shape).

    Returns:
        The nested message string, or ``None`` if the payload does not have
        the expected ``{"error": {"message": str}}`` shape.
    """
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if not isinstance(error, dict):
        return None
    message = error.get("message")
    if isinstance(message, str) and message:
        return message
    return None


def parse_embedded_error(message: str) -> dict[str, Any] | None:
    """Parse the JSON object embedded in an error message.

    Service client libraries often format errors as ``"400 Bad Request.
    {...json...}"``.  The text from the first ``{`` onward is parsed.

    Args:
        message: Raw error message.

    Returns:
        The parsed object, or ``None`` if there is no brace or the text is
        not a JSON object.
    """
    start = message.find("{")
    if start == -1:
        return None
    try:
        parsed = json.loads(message[start:])
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def unwrap_error_message(message: str) -> str:
    """Return the nested ``error.message`` embedded in *message*.

    Falls back to *message* unchanged when nothing can be extracted.  Never
    raises.
    """
    try:
        extracted = structured_error_message(parse_embedded_error(message))
    except Exception:
        logger.debug("Could not unwrap error message %r", message, exc_info=True)
        return message
    return extracted if extracted is not None else message


def describe_error(exc: object) -> str:
    """Convert any failure into a single display string.

    Args:
        exc: The exception raised by the generation flow (anything is
            accepted).

    Returns:
        A human-readable message.  This function never raises.
    """
    try:
        if isinstance(exc, TransportError):
            return exc.detail or exc.message or UNKNOWN_ERROR_MESSAGE

        if isinstance(exc, VideoGenerationError):
            return exc.message or UNKNOWN_ERROR_MESSAGE

        if isinstance(exc, BaseException):
            source = exc.__cause__ if exc.__cause__ is not None else exc
            message = str(source)
            if not message:
                return UNKNOWN_ERROR_MESSAGE
            return unwrap_error_message(message)
    except Exception:
        logger.debug("Failed to describe error %r", exc, exc_info=True)

    return UNKNOWN_ERROR_MESSAGE


FAILURE_PREFIX = "Video generation failed: "


def describe_failure(exc: object) -> str:
    """Return the text shown when a generation job fails.

    Failures from the generation flow read ``"Video generation failed:
    <detail>"`` where the detail comes from :func:`describe_error`.  Input and
    configuration errors, and the unknown-error fallback, are shown as-is.
    """
    message = describe_error(exc)
    if message == UNKNOWN_ERROR_MESSAGE:
        return message
    if isinstance(exc, (ValidationError, ConfigurationError)) or message.startswith(FAILURE_PREFIX):
        return message
    return f"{FAILURE_PREFIX}{message}"
