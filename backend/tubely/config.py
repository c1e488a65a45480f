"""
Tubely Configuration Management Module

This module provides configuration management for the Tubely media upload
service using Pydantic Settings. It loads and validates the environment
variables required for:
- Application settings (name, environment, debug mode, logging)
- Bearer token signing and validation
- MongoDB connection and pooling for video records
- S3 object storage for uploaded videos
- Local asset storage for thumbnails
- Upload size limits and the ffprobe/ffmpeg toolchain

The Settings object is built once per process and treated as read-only
afterwards. Handlers receive it through FastAPI dependency injection.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Configuration settings for the Tubely media upload service.

    Values come from environment variables and an optional .env file with
    full type validation.

    Configuration Categories:
    - Application: Core app settings like name, environment, debug mode
    - Auth: JWT signing secret, algorithm and issuer
    - MongoDB: Database connection URI and connection pool settings
    - S3: Object storage credentials, bucket and optional CDN host
    - Assets: Local thumbnail directory and the host used in asset URLs
    - Uploads: Size limits and chunking for multipart bodies
    - Media: ffprobe/ffmpeg binaries and fast-start behaviour

    Example usage:
        ```python
        from tubely.config import Settings

        settings = Settings()
        print(f"Uploading videos to bucket: {settings.s3_bucket_name}")
        ```
    """

    # =========================================================================
    # Application Settings
    # =========================================================================

    app_name: str = Field(
        default="Tubely",
        description="Application name displayed in API documentation and logs",
    )

    app_env: str = Field(
        default="development",
        description="Application environment (development, staging, production)",
    )

    debug: bool = Field(default=False, description="Enable debug mode with verbose logging")

    log_level: str = Field(
        default="info", description="Logging level (debug, info, warning, error, critical)"
    )

    json_logs: bool = Field(
        default=False,
        description="Emit structured JSON log lines instead of human-readable text",
    )

    host: str = Field(default="0.0.0.0", description="Host address for the API server to bind to")

    port: int = Field(default=8091, description="Port number for the API server", ge=1, le=65535)

    cors_origins: list[str] = Field(
        default=["http://localhost:3000"],
        description="List of allowed CORS origins for frontend access",
    )

    # =========================================================================
    # Auth Configuration
    # =========================================================================

    secret_key: str = Field(
        default="development-secret-key-change-in-production-32chars",
        description="Shared secret used to sign and validate bearer tokens",
        min_length=32,
    )

    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")

    jwt_issuer: str = Field(
        default="tubely-access", description="Issuer claim required on access tokens"
    )

    access_token_expire_minutes: int = Field(
        default=60, description="Lifetime of issued access tokens in minutes", ge=1
    )

    # =========================================================================
    # MongoDB Configuration
    # =========================================================================

    mongodb_uri: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI (e.g., mongodb://localhost:27017)",
    )

    mongodb_db_name: str = Field(
        default="tubely", description="MongoDB database name holding video records"
    )

    mongodb_min_pool_size: int = Field(
        default=1, description="Minimum number of connections in MongoDB connection pool", ge=0
    )

    mongodb_max_pool_size: int = Field(
        default=50, description="Maximum number of connections in MongoDB connection pool", ge=1
    )

    # =========================================================================
    # S3 Storage Configuration
    # =========================================================================

    s3_endpoint_url: str | None = Field(
        default=None,
        description="Custom S3 endpoint (e.g. a MinIO URL). Leave unset for AWS S3.",
    )

    s3_access_key_id: str | None = Field(
        default=None, description="S3 access key ID. Falls back to the default AWS chain."
    )

    s3_secret_access_key: str | None = Field(
        default=None, description="S3 secret access key. Falls back to the default AWS chain."
    )

    s3_bucket_name: str = Field(
        default="tubely-videos", description="Bucket that receives uploaded videos"
    )

    s3_region: str = Field(default="us-east-1", description="Region of the video bucket")

    s3_cdn_host: str | None = Field(
        default=None,
        description="CDN host fronting the bucket. Video URLs use it when set.",
    )

    # =========================================================================
    # Asset and Upload Configuration
    # =========================================================================

    assets_root: str = Field(
        default="./assets", description="Directory where thumbnail files are written"
    )

    assets_host: str = Field(
        default="localhost", description="Host name used when composing thumbnail URLs"
    )

    max_thumbnail_size_mb: int = Field(
        default=10, description="Maximum thumbnail request size in megabytes", ge=1
    )

    max_video_upload_mb: int = Field(
        default=1024, description="Maximum video request body size in megabytes", ge=1
    )

    upload_chunk_size: int = Field(
        default=1024 * 1024,
        description="Chunk size in bytes used when buffering uploads to disk",
        ge=1024,
    )

    temp_dir: str | None = Field(
        default=None,
        description="Parent directory for request-scoped temp files (system default if unset)",
    )

    # =========================================================================
    # Media Toolchain Configuration
    # =========================================================================

    ffprobe_path: str = Field(default="ffprobe", description="ffprobe executable")

    ffmpeg_path: str = Field(default="ffmpeg", description="ffmpeg executable")

    video_fast_start: bool = Field(
        default=True,
        description="Move the MP4 index to the front of uploaded videos before storing them",
    )

    media_timeout_seconds: float | None = Field(
        default=None,
        description="Timeout for ffprobe/ffmpeg invocations. Unset means no timeout.",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that log level is one of the allowed values."""
        allowed_levels = {"debug", "info", "warning", "error", "critical"}
        if v.lower() not in allowed_levels:
            raise ValueError(f"log_level must be one of: {', '.join(sorted(allowed_levels))}")
        return v.lower()

    @field_validator("assets_host", "s3_cdn_host")
    @classmethod
    def strip_host(cls, v: str | None) -> str | None:
        """Normalize host values so URLs never contain a scheme or trailing slash."""
        if v is None:
            return None
        host = v.strip()
        for scheme in ("https://", "http://"):
            if host.startswith(scheme):
                host = host[len(scheme) :]
        host = host.rstrip("/")
        return host or None

    @property
    def max_thumbnail_size_bytes(self) -> int:
        """Thumbnail request ceiling in bytes."""
        return self.max_thumbnail_size_mb * 1024 * 1024

    @property
    def max_video_upload_bytes(self) -> int:
        """Video request body ceiling in bytes."""
        return self.max_video_upload_mb * 1024 * 1024

    @property
    def assets_path(self) -> Path:
        """Assets root as a Path."""
        return Path(self.assets_root)


@lru_cache
def get_settings() -> Settings:
    """
    Get the global Settings instance.

    The @lru_cache decorator ensures that the Settings object is created only
    once on first call, so every request sees the same read-only configuration.

    Returns:
        Settings: The global configuration instance.
    """
    return Settings()
