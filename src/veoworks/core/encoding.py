"""Reference image validation and transport encoding."""

from __future__ import annotations

import asyncio
import base64
import io
import logging

from PIL import Image, UnidentifiedImageError

from veoworks.core.errors import ValidationError
from veoworks.core.models import EncodedImage

logger = logging.getLogger(__name__)

INVALID_IMAGE_MESSAGE = "Please upload a valid image file (JPEG, PNG, GIF, etc.)."
UNREADABLE_IMAGE_MESSAGE = "Could not read the uploaded image file."

# Declared types that say nothing about the content.
_GENERIC_MIME_TYPES = {"", "application/octet-stream", "binary/octet-stream"}


def encode_image(data: bytes) -> str:
    """Return the base64 text of *data* (no ``data:`` URL prefix).

    Raises:
        ValidationError: If *data* is empty or not a bytes-like object.
    """
    if not isinstance(data, (bytes, bytearray, memoryview)) or len(data) == 0:
        raise ValidationError(UNREADABLE_IMAGE_MESSAGE)
    return base64.b64encode(bytes(data)).decode("ascii")


async def encode_image_async(data: bytes) -> str:
    """Encode *data* in a worker thread so the event loop stays responsive."""
    return await asyncio.to_thread(encode_image, data)


def sniff_mime_type(data: bytes) -> str | None:
    """Identify an image's MIME type from its content using Pillow.

    Returns:
        The MIME type (e.g. ``image/png``), or ``None`` if Pillow cannot
        identify the data as an image.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            image_format = img.format
    except (UnidentifiedImageError, OSError, ValueError):
        return None
    if not image_format:
        return None
    return Image.MIME.get(image_format.upper())


def resolve_mime_type(data: bytes, declared: str | None) -> str:
    """Decide the MIME type for an upload.

    The declared type wins when it is specific.  Missing or generic types are
    replaced by the sniffed type.

    Raises:
        ValidationError: If the resulting type is not ``image/*``.
    """
    declared = (declared or "").strip().lower()

    if declared in _GENERIC_MIME_TYPES:
        sniffed = sniff_mime_type(data)
        if sniffed is None:
            raise ValidationError(INVALID_IMAGE_MESSAGE)
        return sniffed

    if not declared.startswith("image/"):
        raise ValidationError(INVALID_IMAGE_MESSAGE)

    return declared


async def load_image_file(
    data: bytes,
    declared_mime: str | None,
    *,
    max_bytes: int | None = None,
) -> EncodedImage:
    """Validate an uploaded image and encode it for transport.

    Args:
        data: Raw upload content.
        declared_mime: Content type sent by the browser.
        max_bytes: Optional upper bound on the upload size.

    Returns:
        The :class:`EncodedImage` carrying base64 text and the MIME type.

    Raises:
        ValidationError: If the upload is empty, too large, or not an image.
    """
    if not data:
        raise ValidationError(UNREADABLE_IMAGE_MESSAGE)

    if max_bytes is not None and len(data) > max_bytes:
        limit_mb = max_bytes / (1024 * 1024)
        raise ValidationError(f"Image is too large. Maximum size is {limit_mb:.0f}MB.")

    mime_type = resolve_mime_type(data, declared_mime)
    encoded = await encode_image_async(data)

    logger.info(f"Encoded reference image ({len(data)} bytes, {mime_type})")
    return EncodedImage(image_bytes=encoded, mime_type=mime_type)
