"""Tests for veoworks.api.models — Pydantic request/response models.

Tests cover:
- Default values for optional fields on GenerateRequest.
- Enum validation of the generation options.
- Session identifier constraints.
- Conversion to the core GenerationConfig.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from veoworks.api.models import GenerateRequest, ImageUploadResponse
from veoworks.core.models import AspectRatio, GenerationConfig, Resolution, VideoModel


class TestGenerateRequest:
    """Test GenerateRequest Pydantic model."""

    def test_defaults(self):
        """An empty body validates; prompt emptiness is checked later."""
        req = GenerateRequest()
        assert req.prompt == ""
        assert req.image_id is None
        assert req.aspect_ratio is AspectRatio.LANDSCAPE
        assert req.resolution is Resolution.FULL_HD
        assert req.model is VideoModel.QUALITY
        assert req.session_id == "default"

    def test_options_from_wire_values(self):
        req = GenerateRequest(
            prompt="A cat",
            aspect_ratio="9:16",
            resolution="720p",
            model="veo-3.1-fast-generate-preview",
        )
        assert req.aspect_ratio is AspectRatio.PORTRAIT
        assert req.resolution is Resolution.HD
        assert req.model is VideoModel.FAST

    @pytest.mark.parametrize(
        "field, value",
        [("aspect_ratio", "4:3"), ("resolution", "4k"), ("model", "veo-2")],
    )
    def test_unknown_option_rejected(self, field, value):
        with pytest.raises(ValidationError):
            GenerateRequest(prompt="A cat", **{field: value})

    @pytest.mark.parametrize("session_id", ["", "x" * 129])
    def test_session_id_length(self, session_id):
        with pytest.raises(ValidationError):
            GenerateRequest(prompt="A cat", session_id=session_id)

    def test_to_generation_config(self):
        req = GenerateRequest(prompt="A cat", resolution="720p")
        assert req.to_generation_config() == GenerationConfig(resolution=Resolution.HD)


class TestImageUploadResponse:
    """Test ImageUploadResponse serialisation."""

    def test_filename_optional(self):
        resp = ImageUploadResponse(image_id="abc", preview_url="/api/assets/def", mime_type="image/png")
        assert resp.model_dump() == {
            "image_id": "abc",
            "preview_url": "/api/assets/def",
            "mime_type": "image/png",
            "filename": None,
        }
