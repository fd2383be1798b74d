"""Configuration management for the Flux Kontext API.

This module provides centralized configuration management using Pydantic Settings.
Configuration is loaded from environment variables with the FLUXKONTEXT_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (FLUXKONTEXT_* prefix)
2. .env file in the project root
3. Default values defined in FluxKontextConfig

A few settings also accept the conventional unprefixed names used by
Replicate deployments (``REPLICATE_API_TOKEN``, ``BASE_URL``, ``PORT``).

Example .env file:
    REPLICATE_API_TOKEN=r8_...
    BASE_URL=https://flux.example.com
    FLUXKONTEXT_UPLOADS_DIR=uploads
    FLUXKONTEXT_JOB_TTL_SECONDS=60

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time and
is the default configuration for :func:`fluxkontext.api.main.create_app`.

Usage Example
-------------
    from fluxkontext.core.config import config

    print(config.uploads_dir)
    print(config.replicate_connected)

Directory Management
--------------------
The configuration automatically creates the uploads directory on
initialization.  Uploaded source images and downloaded generation artifacts
are both written there and served at ``/uploads``.
"""

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

#: MIME types accepted by ``POST /api/upload-image``.
DEFAULT_UPLOAD_TYPES = ["image/jpeg", "image/png", "image/webp", "image/heic"]


class FluxKontextConfig(BaseSettings):
    """Main configuration for the Flux Kontext API.

    Attributes
    ----------
    Provider Settings:
        replicate_api_token : str | None
            Replicate API token.  Optional at startup; when missing the
            health endpoint reports ``replicateConnected: false`` and
            provider calls fail upstream.
        download_timeout : float
            Timeout in seconds for downloading generated artifacts.

    Server Settings:
        base_url : str
            Public base URL used to build links to generated artifacts.
        server_host : str
            uvicorn bind address.
        server_port : int
            uvicorn port (1-65535).
        cors_origins : list[str]
            Origins allowed by the CORS middleware.
        log_level : str
            Root logging level used by the CLI entry point.

    Upload Settings:
        uploads_dir : Path
            Directory for uploaded images and downloaded artifacts.
        max_upload_mb : int
            Maximum accepted upload size in megabytes.
        allowed_upload_types : list[str]
            Accepted upload MIME types.

    Job Settings:
        job_ttl_seconds : float
            Delay between the first terminal status observed for a job and
            its removal from the job store.

    Generation Defaults:
        default_guidance : float
            Guidance used by both processing paths when none is supplied.
        default_aspect_ratio : str
            Aspect ratio used when none is supplied.
        max_random_seed : int
            Exclusive upper bound for seeds drawn by the edit path.

    Examples
    --------
        >>> custom = FluxKontextConfig(uploads_dir="/tmp/uploads", job_ttl_seconds=5)
        >>> custom.max_upload_bytes
        10485760
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="FLUXKONTEXT_",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Provider settings
    replicate_api_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("REPLICATE_API_TOKEN", "FLUXKONTEXT_REPLICATE_API_TOKEN"),
        description="Replicate API token",
    )
    download_timeout: float = Field(
        default=60.0,
        gt=0,
        description="Timeout in seconds for downloading generated artifacts",
    )

    # Server settings
    base_url: str = Field(
        default="http://localhost:3000",
        validation_alias=AliasChoices("BASE_URL", "FLUXKONTEXT_BASE_URL"),
        description="Public base URL for links to generated artifacts",
    )
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address",
    )
    server_port: int = Field(
        default=3000,
        validation_alias=AliasChoices("PORT", "FLUXKONTEXT_SERVER_PORT"),
        description="Server port",
        ge=1,
        le=65535,
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Origins allowed by the CORS middleware",
    )
    log_level: str = Field(
        default="INFO",
        description="Root logging level",
    )

    # Upload settings
    uploads_dir: Path = Field(
        default=Path("uploads"),
        description="Directory for uploaded images and generated artifacts",
    )
    max_upload_mb: int = Field(
        default=10,
        ge=1,
        description="Maximum upload size in megabytes",
    )
    allowed_upload_types: list[str] = Field(
        default_factory=lambda: list(DEFAULT_UPLOAD_TYPES),
        description="Accepted upload MIME types",
    )

    # Job settings
    job_ttl_seconds: float = Field(
        default=60.0,
        ge=0,
        description="Seconds a terminal job stays queryable before removal",
    )

    # Generation defaults
    default_guidance: float = Field(default=3.5, ge=0)
    default_aspect_ratio: str = Field(default="1:1")
    max_random_seed: int = Field(default=1_000_000, gt=0)

    def __init__(self, **kwargs):
        """Initialize configuration and create the uploads directory.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        self.uploads_dir.mkdir(parents=True, exist_ok=True)

    @property
    def max_upload_bytes(self) -> int:
        """Maximum upload size in bytes."""
        return self.max_upload_mb * 1024 * 1024

    @property
    def replicate_connected(self) -> bool:
        """Whether a provider credential is configured."""
        return bool(self.replicate_api_token)


# Global configuration instance
# Loads values from environment variables (FLUXKONTEXT_* prefix) and .env file.
config = FluxKontextConfig()
