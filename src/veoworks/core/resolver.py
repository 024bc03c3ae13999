"""Turning a completed operation into a locally held video.

:func:`resolve_video` finds the first generated video's URI in the operation
response, downloads it with the service credential appended as a ``key``
query parameter, and registers the bytes with an
:class:`~veoworks.core.assets.AssetStore`.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode, urlsplit, urlunsplit

import httpx

from veoworks.core.assets import AssetHandle, AssetStore
from veoworks.core.errors import DownloadError, NoVideoFoundError

logger = logging.getLogger(__name__)

DEFAULT_VIDEO_MIME_TYPE = "video/mp4"
NO_VIDEO_MESSAGE = "Video generation completed, but no video URI was found in the response."


def find_video_uri(operation: Any) -> str:
    """Return the URI of the first generated video in *operation*.

    Raises:
        NoVideoFoundError: If the response, the video list, or the URI is
            missing.  This is a completed-but-unusable result, not a
            transport failure.
    """
    response = getattr(operation, "response", None)
    videos = getattr(response, "generated_videos", None) or []
    if videos:
        video = getattr(videos[0], "video", None)
        uri = getattr(video, "uri", None)
        if uri:
            return uri
    raise NoVideoFoundError(NO_VIDEO_MESSAGE)


def with_api_key(uri: str, api_key: str) -> str:
    """Append ``key=<api_key>`` to *uri*.

    The existing query string is kept byte for byte; only a previous ``key``
    parameter is dropped.
    """
    parts = urlsplit(uri)
    params = [param for param in parts.query.split("&") if param and not param.startswith("key=")]
    params.append(urlencode({"key": api_key}))
    return urlunsplit(parts._replace(query="&".join(params)))


async def download_video(http: httpx.AsyncClient, uri: str, api_key: str) -> tuple[bytes, str]:
    """Download a generated video.

    Args:
        http: HTTP client used for the request.
        uri: Video URI from the operation response.
        api_key: Service credential added as the ``key`` query parameter.

    Returns:
        Tuple of ``(content, mime_type)``.

    Raises:
        DownloadError: On a transport failure or a non-success status.
    """
    try:
        response = await http.get(with_api_key(uri, api_key))
    except httpx.HTTPError as e:
        raise DownloadError(f"Failed to download video. {e}") from e

    if not response.is_success:
        reason = response.reason_phrase or str(response.status_code)
        raise DownloadError(
            f"Failed to download video. Status: {reason}",
            status_code=response.status_code,
        )

    mime_type = response.headers.get("content-type", "").split(";")[0].strip()
    return response.content, mime_type or DEFAULT_VIDEO_MIME_TYPE


async def resolve_video(
    operation: Any,
    *,
    http: httpx.AsyncClient,
    api_key: str,
    store: AssetStore,
) -> AssetHandle:
    """Download the video from a completed operation into *store*.

    Returns:
        Handle for the stored video.  The caller owns it and must release it.

    Raises:
        NoVideoFoundError: If the operation has no video URI (no download is
            attempted).
        DownloadError: If the download fails.
    """
    uri = find_video_uri(operation)
    content, mime_type = await download_video(http, uri, api_key)
    handle = store.create(content, mime_type)
    logger.info(f"Downloaded video ({len(content)} bytes) as asset {handle.asset_id}")
    return handle
