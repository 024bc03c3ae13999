"""Configuration management for Veoworks Video Generator.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the VEOWORKS_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (VEOWORKS_* prefix)
2. .env file in the project root
3. Default values defined in VeoworksConfig

The service credential is the one exception to the prefix rule: it is read
from ``VEOWORKS_API_KEY``, ``GEMINI_API_KEY`` or plain ``API_KEY`` (first match
wins), so an existing Gemini key works without renaming it.

Example .env file:
    VEOWORKS_API_KEY=...
    VEOWORKS_DEFAULT_MODEL=veo-3.1-fast-generate-preview
    VEOWORKS_POLL_INTERVAL=10
    VEOWORKS_POLL_TIMEOUT=None
    VEOWORKS_SERVER_PORT=7860

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
Loading the configuration never fails because of a missing credential; the
credential is checked when the service client is constructed
(see :meth:`veoworks.core.client.VideoServiceClient.from_config`).

Usage Example
-------------
    from veoworks.core.config import config

    print(config.poll_interval)
    print(config.default_model)
"""

from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from veoworks.core.models import AspectRatio, Resolution, VideoModel

_PACKAGE_DIR = Path(__file__).resolve().parent.parent


class VeoworksConfig(BaseSettings):
    """Main configuration for Veoworks Video Generator.

    Attributes
    ----------
    Service Settings:
        api_key : SecretStr | None
            Credential for the generative-video service
        default_model : VideoModel
            Model preselected in the UI
        default_aspect_ratio : AspectRatio
            Aspect ratio preselected in the UI
        default_resolution : Resolution
            Resolution preselected in the UI

    Polling and Download:
        poll_interval : float
            Seconds to wait between operation status checks
        poll_timeout : float | None
            Upper bound on polling time in seconds (None, or the env
            value "None", polls forever)
        download_timeout : float
            HTTP timeout for the final video download

    Uploads:
        max_upload_bytes : int
            Largest accepted reference image
        upload_retention : int
            Uploaded images kept before the oldest is released

    Jobs:
        job_retention : int
            Finished jobs kept before the oldest is evicted

    Server Settings:
        server_host : str
            Server bind address
        server_port : int
            Server port (1024-65535)
        log_level : str
            Root logging level used by the CLI entry point

    Paths:
        static_dir : Path
            CSS/JS assets served under /static
        templates_dir : Path
            Directory holding index.html

    Examples
    --------
        >>> custom_config = VeoworksConfig(
        ...     api_key="test-key",
        ...     poll_interval=1.0,
        ... )
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="VEOWORKS_",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
        env_parse_none_str="None",
    )

    # Service settings
    api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("VEOWORKS_API_KEY", "GEMINI_API_KEY", "API_KEY"),
        description="Access credential for the generative-video service",
    )
    default_model: VideoModel = Field(
        default=VideoModel.QUALITY,
        description="Model preselected in the UI",
    )
    default_aspect_ratio: AspectRatio = Field(
        default=AspectRatio.LANDSCAPE,
        description="Aspect ratio preselected in the UI",
    )
    default_resolution: Resolution = Field(
        default=Resolution.FULL_HD,
        description="Resolution preselected in the UI",
    )

    # Polling and download
    poll_interval: float = Field(
        default=10.0,
        description="Seconds between operation status checks",
        gt=0,
    )
    poll_timeout: float | None = Field(
        default=1800.0,
        description="Maximum seconds to poll before giving up (None = no limit)",
        gt=0,
    )
    download_timeout: float = Field(
        default=120.0,
        description="HTTP timeout in seconds for the video download",
        gt=0,
    )

    # Uploads
    max_upload_bytes: int = Field(
        default=10 * 1024 * 1024,
        description="Largest accepted reference image in bytes",
        ge=1,
    )
    upload_retention: int = Field(
        default=32,
        description="Uploaded images kept in memory before the oldest is released",
        ge=1,
    )

    # Jobs
    job_retention: int = Field(
        default=64,
        description="Finished jobs kept before the oldest is evicted with its video",
        ge=1,
    )

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address (0.0.0.0 for local network)",
    )
    server_port: int = Field(
        default=7860,
        description="Server port",
        ge=1024,
        le=65535,
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level for the server process",
    )

    # Paths
    static_dir: Path = Field(
        default=_PACKAGE_DIR / "static",
        description="Directory of static assets served under /static",
    )
    templates_dir: Path = Field(
        default=_PACKAGE_DIR / "templates",
        description="Directory containing index.html",
    )

    @property
    def has_api_key(self) -> bool:
        """Whether a non-empty credential is configured."""
        return self.api_key is not None and bool(self.api_key.get_secret_value().strip())


# Global configuration instance
# Loads values from environment variables (VEOWORKS_* prefix) and .env file.
config = VeoworksConfig()
