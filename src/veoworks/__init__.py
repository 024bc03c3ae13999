"""Veoworks Video Generator - text and image to video with a remote video model."""

__version__ = "0.1.0"

from veoworks.core.config import VeoworksConfig, config
from veoworks.core.generator import generate_video
from veoworks.core.models import GenerationConfig, GenerationRequest, build_generation_request

__all__ = [
    "GenerationConfig",
    "GenerationRequest",
    "VeoworksConfig",
    "build_generation_request",
    "config",
    "generate_video",
]
