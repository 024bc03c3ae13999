"""Uploaded reference image bookkeeping for the Video Generator API.

This module keeps the uploaded-image state out of ``veoworks.api.main`` so
route handlers can focus on HTTP concerns.  Each upload is held as an
:class:`ImageFile`: the encoded form that is sent to the service plus a
preview blob registered with the shared
:class:`~veoworks.core.assets.AssetStore`.

Removing or replacing an upload releases its preview, and the oldest upload
is released once the store is full.  Nothing is persisted
to disk.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from veoworks.core.assets import AssetHandle, AssetStore
from veoworks.core.models import EncodedImage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageFile:
    """An uploaded reference image.

    Attributes:
        image_id: Identifier used by ``POST /api/generate``.
        preview: Handle for the raw bytes, shown as a thumbnail in the page.
        encoded: Base64 text and MIME type for the service request.
        filename: Original filename, if known.
    """

    image_id: str
    preview: AssetHandle
    encoded: EncodedImage
    filename: str | None = None


class UploadStore:
    """Tracks uploaded images and owns their preview handles.

    At most *max_images* uploads are kept.  Adding one more releases the
    oldest, so images abandoned by closed pages do not accumulate.
    """

    def __init__(self, assets: AssetStore, max_images: int = 32) -> None:
        self._assets = assets
        self._max_images = max_images
        self._images: dict[str, ImageFile] = {}

    def add(
        self,
        data: bytes,
        encoded: EncodedImage,
        filename: str | None = None,
        *,
        replaces: str | None = None,
    ) -> ImageFile:
        """Register an upload, releasing the image it replaces (if any)."""
        if replaces:
            self.remove(replaces)

        preview = self._assets.create(data, encoded.mime_type)
        image = ImageFile(
            image_id=uuid.uuid4().hex,
            preview=preview,
            encoded=encoded,
            filename=filename,
        )
        self._images[image.image_id] = image
        logger.info(f"Stored upload {image.image_id} ({filename or 'unnamed'})")

        while len(self._images) > self._max_images:
            oldest = next(iter(self._images))
            logger.info(f"Upload limit reached; releasing {oldest}")
            self.remove(oldest)
        return image

    def get(self, image_id: str) -> ImageFile | None:
        return self._images.get(image_id)

    def remove(self, image_id: str) -> bool:
        """Forget an upload and release its preview.

        Returns:
            ``True`` if the upload existed.
        """
        image = self._images.pop(image_id, None)
        if image is None:
            return False
        self._assets.release(image.preview)
        logger.info(f"Removed upload {image_id}")
        return True

    def clear(self) -> None:
        for image_id in list(self._images):
            self.remove(image_id)

    def __len__(self) -> int:
        return len(self._images)
