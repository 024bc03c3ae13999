"""In-process registry of locally addressable binary assets.

Downloaded videos and uploaded image previews are held in memory and exposed
to the page through ``/api/assets/{asset_id}`` URLs.  Handles are not
reference counted: whoever creates a handle releases it, and replacing an
asset means releasing the old handle first.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

logger = logging.getLogger(__name__)

ASSET_URL_PREFIX = "/api/assets"


@dataclass(frozen=True)
class AssetHandle:
    """Reference to a blob held by an :class:`AssetStore`."""

    asset_id: str
    mime_type: str
    size: int

    @property
    def url(self) -> str:
        """URL the browser uses to fetch the asset."""
        return f"{ASSET_URL_PREFIX}/{self.asset_id}"

    def to_dict(self) -> dict:
        return {
            "asset_id": self.asset_id,
            "url": self.url,
            "mime_type": self.mime_type,
            "size": self.size,
        }


class AssetStore:
    """Holds binary payloads until they are explicitly released."""

    def __init__(self) -> None:
        self._blobs: dict[str, tuple[bytes, str]] = {}

    def create(self, data: bytes, mime_type: str) -> AssetHandle:
        """Store *data* and return a handle addressing it."""
        asset_id = uuid.uuid4().hex
        self._blobs[asset_id] = (bytes(data), mime_type)
        logger.debug(f"Created asset {asset_id} ({mime_type}, {len(data)} bytes)")
        return AssetHandle(asset_id=asset_id, mime_type=mime_type, size=len(data))

    def get(self, asset_id: str) -> tuple[bytes, str] | None:
        """Return ``(data, mime_type)`` for *asset_id*, or ``None``."""
        return self._blobs.get(asset_id)

    def release(self, handle: AssetHandle | str | None) -> bool:
        """Free an asset.

        Args:
            handle: An :class:`AssetHandle`, a bare asset id, or ``None``.

        Returns:
            ``True`` if something was released, ``False`` if the asset was
            unknown or already released.
        """
        if handle is None:
            return False
        asset_id = handle.asset_id if isinstance(handle, AssetHandle) else handle
        released = self._blobs.pop(asset_id, None) is not None
        if released:
            logger.debug(f"Released asset {asset_id}")
        return released

    def clear(self) -> None:
        """Release every asset."""
        count = len(self._blobs)
        self._blobs.clear()
        if count:
            logger.info(f"Released {count} assets")

    def __contains__(self, asset_id: object) -> bool:
        return asset_id in self._blobs

    def __len__(self) -> int:
        return len(self._blobs)
