"""Pydantic request and response models for the Video Generator API.

These models define the JSON schema for the API endpoints.  FastAPI uses
them for automatic request validation, serialisation, and OpenAPI
documentation generation.

Models
------
GenerateRequest
    Payload for ``POST /api/generate``: prompt, optional uploaded image and
    the three generation options.
ImageUploadResponse
    Body returned by ``POST /api/images``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from veoworks.core.models import AspectRatio, GenerationConfig, Resolution, VideoModel


class GenerateRequest(BaseModel):
    """Request body for the ``POST /api/generate`` endpoint.

    Attributes:
        prompt: Text prompt.  Emptiness is checked by the request builder so
            the user gets the same message as in the page itself.
        image_id: Identifier returned by ``POST /api/images``, or ``None``
            for a text-only request.
        aspect_ratio: ``"16:9"`` or ``"9:16"``.
        resolution: ``"720p"`` or ``"1080p"``.
        model: Model identifier (fast or quality variant).
        session_id: Browser session identifier.  One job may be in flight
            per session.
    """

    model_config = ConfigDict(protected_namespaces=())

    prompt: str = Field(
        default="",
        description="Text prompt describing the video.",
    )
    image_id: str | None = Field(
        default=None,
        description="Uploaded reference image ID (from POST /api/images).",
    )
    aspect_ratio: AspectRatio = Field(
        default=AspectRatio.LANDSCAPE,
        description="Output aspect ratio.",
    )
    resolution: Resolution = Field(
        default=Resolution.FULL_HD,
        description="Output resolution.",
    )
    model: VideoModel = Field(
        default=VideoModel.QUALITY,
        description="Model variant (fast or quality).",
    )
    session_id: str = Field(
        default="default",
        min_length=1,
        max_length=128,
        description="Browser session identifier.",
    )

    def to_generation_config(self) -> GenerationConfig:
        return GenerationConfig(
            aspect_ratio=self.aspect_ratio,
            resolution=self.resolution,
            model=self.model,
        )


class ImageUploadResponse(BaseModel):
    """Response body for ``POST /api/images``.

    Attributes:
        image_id: Identifier to pass as ``image_id`` when generating.
        preview_url: Locally addressable preview of the upload.
        mime_type: MIME type that will be sent to the service.
        filename: Original filename, if the browser supplied one.
    """

    image_id: str
    preview_url: str
    mime_type: str
    filename: str | None = None
