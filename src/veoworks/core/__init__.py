"""Core functionality for video generation.

This module provides the core components for the Veoworks Video Generator:

- **VeoworksConfig / config**: Configuration management using Pydantic Settings
- **build_generation_request**: Validated, immutable job-submission requests
- **VideoServiceClient**: Explicitly constructed client for the remote service
- **poll_operation**: Cancellable, time-bounded operation polling
- **resolve_video**: Locate, download and store the finished video
- **generate_video**: The submit → poll → download orchestration
- **JobManager**: Background jobs with one in-flight job per session
- **describe_error / describe_failure**: Failure detail and the message shown in the UI

Architecture Overview
---------------------
1. **Configuration Layer** (config.py):
   - Environment-based configuration using Pydantic Settings
   - All settings prefixed with VEOWORKS_ in .env files

2. **Request Layer** (models.py, encoding.py):
   - Option enums, generation config, encoded reference image
   - Pillow-based image sniffing and base64 encoding

3. **Service Layer** (client.py, poller.py, resolver.py, generator.py):
   - google-genai for job submission and status checks
   - httpx for the final video download

4. **Support Utilities**:
   - assets.py: In-memory blobs addressed by URL, explicit release
   - jobs.py: Background task management
   - errors.py: Tagged error variants and the error normalizer

Usage Example
-------------
    from veoworks.core import (
        AssetStore, VideoServiceClient, build_generation_request, config, generate_video,
    )

    request = build_generation_request("A cat surfing at sunset")
    async with VideoServiceClient.from_config(config) as client:
        handle = await generate_video(client, request, AssetStore())
"""

from veoworks.core.assets import AssetHandle, AssetStore
from veoworks.core.client import VideoServiceClient
from veoworks.core.config import VeoworksConfig, config
from veoworks.core.errors import describe_error, describe_failure
from veoworks.core.generator import generate_video
from veoworks.core.jobs import JobManager
from veoworks.core.models import build_generation_request
from veoworks.core.poller import poll_operation
from veoworks.core.resolver import resolve_video

__all__ = [
    "AssetHandle",
    "AssetStore",
    "JobManager",
    "VeoworksConfig",
    "VideoServiceClient",
    "build_generation_request",
    "config",
    "describe_error",
    "describe_failure",
    "generate_video",
    "poll_operation",
    "resolve_video",
]
