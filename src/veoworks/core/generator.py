"""End-to-end video generation: submit, poll, download.

:func:`generate_video` is the orchestration entry point.  It takes an
explicitly constructed service client, so tests can pass a fake with the same
interface.  Errors propagate as the typed exceptions from
:mod:`veoworks.core.errors`; turning them into display text is the caller's
job (see :mod:`veoworks.core.jobs`).

Progress Messages
-----------------
The optional ``on_progress`` callback receives, in order:

1. ``"Initializing video generation..."``
2. ``"Video generation in progress... This may take several minutes."``
3. ``"Downloading generated video..."``
4. ``"Done!"``

The callback is for display only.  If it raises, the error is logged and the
generation continues.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

import httpx

from veoworks.core.assets import AssetHandle, AssetStore
from veoworks.core.models import GenerationRequest
from veoworks.core.poller import DEFAULT_POLL_INTERVAL, poll_operation
from veoworks.core.resolver import resolve_video

logger = logging.getLogger(__name__)

MSG_INITIALIZING = "Initializing video generation..."
MSG_IN_PROGRESS = "Video generation in progress... This may take several minutes."
MSG_DOWNLOADING = "Downloading generated video..."
MSG_DONE = "Done!"

ProgressCallback = Callable[[str], None]


class VideoService(Protocol):
    """Interface of :class:`~veoworks.core.client.VideoServiceClient` used here."""

    api_key: str
    http: httpx.AsyncClient

    async def submit(self, request: GenerationRequest) -> Any: ...

    async def get_operation(self, operation: Any) -> Any: ...


def _report(on_progress: ProgressCallback | None, message: str) -> None:
    logger.info(message)
    if on_progress is None:
        return
    try:
        on_progress(message)
    except Exception as e:
        logger.warning(f"Progress callback failed: {e}")


async def generate_video(
    client: VideoService,
    request: GenerationRequest,
    store: AssetStore,
    *,
    on_progress: ProgressCallback | None = None,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    poll_timeout: float | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> AssetHandle:
    """Generate a video and return a handle to the downloaded file.

    Args:
        client: Service client (submission, status checks, HTTP download).
        request: Validated request from
            :func:`~veoworks.core.models.build_generation_request`.
        store: Asset store that will own the downloaded video.
        on_progress: Optional display callback for stage transitions.
        poll_interval: Seconds between status checks.
        poll_timeout: Polling budget in seconds, or ``None`` for no limit.
        sleep: Coroutine function used between polls (injectable for tests).

    Returns:
        :class:`AssetHandle` for the video.  The caller must release it.

    Raises:
        SubmissionError: Job submission failed.
        StatusCheckError: A status check failed.
        PollTimeoutError: The job did not finish within ``poll_timeout``.
        NoVideoFoundError: The job finished without a video.
        DownloadError: The video could not be downloaded.
    """
    _report(on_progress, MSG_INITIALIZING)

    operation = await client.submit(request)

    _report(on_progress, MSG_IN_PROGRESS)

    completed = await poll_operation(
        client,
        operation,
        interval=poll_interval,
        timeout=poll_timeout,
        sleep=sleep,
    )

    _report(on_progress, MSG_DOWNLOADING)

    handle = await resolve_video(
        completed,
        http=client.http,
        api_key=client.api_key,
        store=store,
    )

    _report(on_progress, MSG_DONE)
    return handle
