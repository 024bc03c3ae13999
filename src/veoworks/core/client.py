"""Explicitly constructed client for the remote generative-video service.

:class:`VideoServiceClient` wraps the ``google-genai`` async client for job
submission and status checks, and an ``httpx.AsyncClient`` for downloading
finished videos.  Nothing is created at import time: the application builds
one client at startup (see :func:`VideoServiceClient.from_config`) and passes
it into the orchestration functions, so tests can substitute a fake object
with the same three coroutine methods.

Usage
-----
::

    from veoworks.core.client import VideoServiceClient
    from veoworks.core.config import config

    async with VideoServiceClient.from_config(config) as client:
        operation = await client.submit(request)
        operation = await client.get_operation(operation)
"""

from __future__ import annotations

import base64
import logging
from typing import Any

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from veoworks.core.config import VeoworksConfig
from veoworks.core.errors import ConfigurationError, SubmissionError, parse_embedded_error
from veoworks.core.models import GenerationRequest

logger = logging.getLogger(__name__)

MISSING_API_KEY_MESSAGE = "API_KEY environment variable is not set"


def error_body_from_exception(exc: BaseException) -> dict[str, Any] | None:
    """Return the structured error body carried by a service exception.

    ``google.genai.errors.APIError`` exposes the decoded response JSON as
    ``details``.  Other exceptions are checked for a JSON object embedded in
    their (or their cause's) message.

    Args:
        exc: Exception raised by the SDK or the HTTP layer.

    Returns:
        The error body dictionary, or ``None``.
    """
    if isinstance(exc, genai_errors.APIError) and isinstance(exc.details, dict):
        return exc.details

    source = exc.__cause__ if exc.__cause__ is not None else exc
    return parse_embedded_error(str(source))


class VideoServiceClient:
    """Client for video job submission, status checks and downloads.

    Attributes:
        api_key: Service credential.  Also appended to download URLs.
        http: ``httpx.AsyncClient`` used for video downloads.
    """

    def __init__(
        self,
        api_key: str,
        *,
        download_timeout: float = 120.0,
        genai_client: genai.Client | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the client.

        Args:
            api_key: Service credential; must be non-empty.
            download_timeout: Timeout in seconds for video downloads.
            genai_client: Pre-built SDK client (for tests).
            http_client: Pre-built HTTP client (for tests).

        Raises:
            ConfigurationError: If *api_key* is empty.
        """
        if not api_key or not api_key.strip():
            raise ConfigurationError(MISSING_API_KEY_MESSAGE)

        self.api_key = api_key
        self._genai = genai_client if genai_client is not None else genai.Client(api_key=api_key)
        self.http = (
            http_client
            if http_client is not None
            else httpx.AsyncClient(timeout=download_timeout, follow_redirects=True)
        )

    @classmethod
    def from_config(cls, cfg: VeoworksConfig) -> VideoServiceClient:
        """Build a client from application configuration.

        Raises:
            ConfigurationError: If no API key is configured.  The server
                refuses to start in that case.
        """
        if not cfg.has_api_key:
            raise ConfigurationError(MISSING_API_KEY_MESSAGE)
        return cls(
            cfg.api_key.get_secret_value(),
            download_timeout=cfg.download_timeout,
        )

    async def submit(self, request: GenerationRequest) -> types.GenerateVideosOperation:
        """Submit a generation job and return its operation handle.

        Raises:
            SubmissionError: If the service rejects the request or cannot be
                reached.  ``body`` carries the service's error payload when
                one is available.
        """
        payload = request.to_payload()
        options = payload["config"]

        image = None
        if "image" in payload:
            image = types.Image(
                image_bytes=base64.b64decode(payload["image"]["imageBytes"]),
                mime_type=payload["image"]["mimeType"],
            )

        logger.info(
            "Submitting video job (model=%s, aspect=%s, resolution=%s, image=%s)",
            payload["model"],
            options["aspectRatio"],
            options["resolution"],
            image is not None,
        )

        try:
            return await self._genai.aio.models.generate_videos(
                model=payload["model"],
                prompt=payload["prompt"],
                image=image,
                config=types.GenerateVideosConfig(
                    number_of_videos=options["numberOfVideos"],
                    aspect_ratio=options["aspectRatio"],
                    resolution=options["resolution"],
                ),
            )
        except Exception as e:
            status_code = getattr(e, "code", None)
            raise SubmissionError(
                str(e),
                body=error_body_from_exception(e),
                status_code=status_code if isinstance(status_code, int) else None,
            ) from e

    async def get_operation(
        self, operation: types.GenerateVideosOperation
    ) -> types.GenerateVideosOperation:
        """Fetch the current state of *operation*.

        SDK exceptions propagate unchanged; the poller decides how to treat
        them.
        """
        return await self._genai.aio.operations.get(operation)

    async def aclose(self) -> None:
        """Close the underlying HTTP connections."""
        await self.http.aclose()
        close_sdk = getattr(self._genai.aio, "aclose", None)
        if close_sdk is not None:
            await close_sdk()

    async def __aenter__(self) -> VideoServiceClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
