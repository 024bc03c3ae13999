"""Domain models for video generation requests.

This module defines the option enums shown in the UI, the generation
configuration record, the encoded reference image, and the immutable
:class:`GenerationRequest` that is submitted to the remote service.

Request Builder
---------------
:func:`build_generation_request` is the single way a request is created.  It
rejects an empty prompt before anything else happens and attaches the image
only when one was supplied.  :meth:`GenerationRequest.to_payload` produces the
job-submission body in the service's camelCase wire shape::

    {
        "model": "veo-3.1-generate-preview",
        "prompt": "A cat",
        "config": {"numberOfVideos": 1, "aspectRatio": "16:9", "resolution": "1080p"},
        "image": {"imageBytes": "<base64>", "mimeType": "image/png"},  # optional
    }

The ``image`` key is omitted entirely (never ``None``) for text-only requests.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from veoworks.core.errors import ValidationError

# Always one video per request; the UI has no control for it.
NUMBER_OF_VIDEOS = 1


class AspectRatio(str, Enum):
    """Output aspect ratios supported by the service."""

    LANDSCAPE = "16:9"
    PORTRAIT = "9:16"


class Resolution(str, Enum):
    """Output resolutions supported by the service."""

    HD = "720p"
    FULL_HD = "1080p"


class VideoModel(str, Enum):
    """Model variants: a fast preview model and the full-quality model."""

    FAST = "veo-3.1-fast-generate-preview"
    QUALITY = "veo-3.1-generate-preview"

    @property
    def label(self) -> str:
        """Short label used by the UI option selector."""
        return "Fast" if self is VideoModel.FAST else "Quality"


class GenerationConfig(BaseModel):
    """User-selected generation options."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    aspect_ratio: AspectRatio = AspectRatio.LANDSCAPE
    resolution: Resolution = Resolution.FULL_HD
    model: VideoModel = VideoModel.QUALITY


class EncodedImage(BaseModel):
    """A reference image in transport form.

    Attributes:
        image_bytes: Base64 text of the image content, without any
            ``data:<mime>;base64,`` prefix.
        mime_type: Original MIME type of the upload (e.g. ``image/png``).
    """

    model_config = ConfigDict(frozen=True)

    image_bytes: str = Field(..., min_length=1)
    mime_type: str = Field(..., pattern=r"^image/")


class GenerationRequest(BaseModel):
    """An immutable job-submission request.

    Create instances with :func:`build_generation_request` rather than
    directly, so that prompt validation is always applied.
    """

    model_config = ConfigDict(frozen=True)

    prompt: str
    image: EncodedImage | None = None
    config: GenerationConfig = Field(default_factory=GenerationConfig)

    def to_payload(self) -> dict[str, Any]:
        """Return the service payload for this request.

        Returns:
            Dictionary with ``model``, ``prompt`` and ``config`` keys, plus an
            ``image`` key only when a reference image is attached.
        """
        payload: dict[str, Any] = {
            "model": self.config.model.value,
            "prompt": self.prompt,
            "config": {
                "numberOfVideos": NUMBER_OF_VIDEOS,
                "aspectRatio": self.config.aspect_ratio.value,
                "resolution": self.config.resolution.value,
            },
        }

        if self.image is not None:
            payload["image"] = {
                "imageBytes": self.image.image_bytes,
                "mimeType": self.image.mime_type,
            }

        return payload


def build_generation_request(
    prompt: str,
    image: EncodedImage | None = None,
    config: GenerationConfig | None = None,
) -> GenerationRequest:
    """Build a validated generation request.

    Args:
        prompt: Text prompt describing the video.
        image: Optional encoded reference image.
        config: Generation options; defaults to :class:`GenerationConfig`.

    Returns:
        A frozen :class:`GenerationRequest`.

    Raises:
        ValidationError: If the prompt is empty or whitespace only.
    """
    if not prompt or not prompt.strip():
        raise ValidationError("Please enter a prompt.")

    return GenerationRequest(
        prompt=prompt,
        image=image,
        config=config if config is not None else GenerationConfig(),
    )
