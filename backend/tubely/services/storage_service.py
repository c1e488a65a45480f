"""
Storage services for Tubely.

Two sinks receive uploaded bytes:

- StorageService: S3-compatible object storage for videos, wrapping boto3 with
  async methods (AWS S3 in production, MinIO or any S3 endpoint in development)
- LocalAssetStorage: a directory on local disk for thumbnails, written with
  aiofiles and served by the application under ``/assets``

Public URLs for stored objects are composed by ``build_object_url`` and
``build_asset_url`` so the same convention is applied everywhere.
"""

import asyncio
import logging

from functools import wraps
from pathlib import Path
from typing import Any, Callable, TypeVar

import aiofiles
import aiofiles.os
import boto3

from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from tubely.config import Settings


# Set up module-level logger for tracking storage operations
logger = logging.getLogger(__name__)

# Type variable for generic async wrapper
T = TypeVar("T")


def async_wrap(func: Callable[..., T]) -> Callable[..., "asyncio.Future[T]"]:
    """
    Decorator to wrap synchronous boto3 operations for async execution.

    Uses asyncio.to_thread so blocking S3 calls never stall the event loop.
    """

    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        return await asyncio.to_thread(func, *args, **kwargs)

    return wrapper


class StorageServiceError(Exception):
    """Base exception for storage service errors."""


class StorageConnectionError(StorageServiceError):
    """Raised when the S3 client cannot be created."""


class StorageCredentialsError(StorageServiceError):
    """Raised when storage credentials are missing or invalid."""


class StorageOperationError(StorageServiceError):
    """Raised when a storage operation fails."""


# =============================================================================
# URL Composition
# =============================================================================


def build_object_url(settings: Settings, object_key: str) -> str:
    """
    Compose the public URL of an object in the video bucket.

    Uses ``https://{s3_cdn_host}/{key}`` when a CDN host is configured and
    the virtual-hosted bucket URL otherwise.
    """
    if settings.s3_cdn_host:
        return f"https://{settings.s3_cdn_host}/{object_key}"
    return f"https://{settings.s3_bucket_name}.s3.{settings.s3_region}.amazonaws.com/{object_key}"


def build_asset_url(settings: Settings, filename: str) -> str:
    """Compose the URL under which a local asset is served."""
    return f"http://{settings.assets_host}:{settings.port}/assets/{filename}"


# =============================================================================
# S3 Object Storage
# =============================================================================


class StorageService:
    """
    S3-compatible storage service for uploaded videos.

    Attributes:
        bucket_name: The default S3 bucket name for operations
        endpoint_url: The S3-compatible endpoint URL (None for AWS S3)
        region_name: AWS region name

    Example:
        >>> service = StorageService(bucket_name="tubely-videos", region_name="us-east-1")
        >>> await service.upload_file("landscape/abc.mp4", file_path="/tmp/x.mp4",
        ...                           content_type="video/mp4")
    """

    def __init__(
        self,
        bucket_name: str,
        endpoint_url: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        region_name: str = "us-east-1",
    ) -> None:
        """
        Initialize the S3-compatible storage service.

        Args:
            bucket_name: Default bucket name for all operations
            endpoint_url: S3-compatible endpoint URL (None for AWS S3 default)
            access_key: AWS access key ID or MinIO access key
            secret_key: AWS secret access key or MinIO secret key
            region_name: AWS region (default: us-east-1)

        Raises:
            StorageCredentialsError: If credentials are missing or invalid
            StorageConnectionError: If the client cannot be created
        """
        self.bucket_name = bucket_name
        self.endpoint_url = endpoint_url
        self.region_name = region_name

        logger.info(
            "Initializing StorageService with bucket=%s, endpoint=%s",
            bucket_name,
            endpoint_url or "AWS S3 default",
        )

        client_config: dict[str, Any] = {
            "service_name": "s3",
            "region_name": region_name,
            # No transport retries: a failed put fails the request.
            "config": Config(signature_version="s3v4", retries={"max_attempts": 1}),
        }
        if endpoint_url:
            client_config["endpoint_url"] = endpoint_url
        # Without explicit keys boto3 falls back to the environment/IAM chain
        if access_key and secret_key:
            client_config["aws_access_key_id"] = access_key
            client_config["aws_secret_access_key"] = secret_key

        try:
            self._client = boto3.client(**client_config)
        except NoCredentialsError as e:
            logger.error("S3 credentials not found")
            raise StorageCredentialsError("S3 credentials not found") from e
        except BotoCoreError as e:
            logger.error("Failed to initialize S3 client: %s", e)
            raise StorageConnectionError(f"Failed to initialize S3 client: {e!s}") from e

    @classmethod
    def from_settings(cls, settings: Settings) -> "StorageService":
        return cls(
            bucket_name=settings.s3_bucket_name,
            endpoint_url=settings.s3_endpoint_url,
            access_key=settings.s3_access_key_id,
            secret_key=settings.s3_secret_access_key,
            region_name=settings.s3_region,
        )

    async def upload_file(
        self,
        object_key: str,
        file_path: str | Path,
        content_type: str | None = None,
        bucket_name: str | None = None,
    ) -> dict[str, Any]:
        """
        Upload a local file to S3.

        Args:
            object_key: The S3 object key for the uploaded file
            file_path: Local file system path to upload
            content_type: MIME type stored as the object's ContentType
            bucket_name: Optional bucket override (defaults to service bucket)

        Returns:
            Dictionary with ``object_key`` and ``bucket``.

        Raises:
            StorageOperationError: If the upload fails
        """
        target_bucket = bucket_name or self.bucket_name
        extra_args: dict[str, Any] = {}
        if content_type:
            extra_args["ContentType"] = content_type

        logger.info(
            "Uploading object",
            extra={"object_key": object_key, "bucket": target_bucket, "content_type": content_type},
        )

        @async_wrap
        def _upload_file() -> None:
            self._client.upload_file(
                str(file_path),
                target_bucket,
                object_key,
                ExtraArgs=extra_args or None,
            )

        try:
            await _upload_file()
        except ClientError as e:
            message = e.response.get("Error", {}).get("Message", str(e))
            raise StorageOperationError(f"Failed to upload file: {message}") from e
        except BotoCoreError as e:
            raise StorageOperationError(f"Storage operation error during upload: {e!s}") from e
        except OSError as e:
            raise StorageOperationError(f"File system error during upload: {e!s}") from e

        logger.info("Successfully uploaded %s", object_key)
        return {"object_key": object_key, "bucket": target_bucket}

    async def delete_file(self, object_key: str, bucket_name: str | None = None) -> None:
        """
        Delete an object. S3 reports success even when the key does not exist.

        Raises:
            StorageOperationError: If the delete call fails
        """
        target_bucket = bucket_name or self.bucket_name

        @async_wrap
        def _delete() -> dict[str, Any]:
            return self._client.delete_object(Bucket=target_bucket, Key=object_key)

        try:
            await _delete()
        except (ClientError, BotoCoreError) as e:
            raise StorageOperationError(f"Failed to delete {object_key}: {e!s}") from e

        logger.info("Deleted %s from %s", object_key, target_bucket)


# =============================================================================
# Local Asset Storage
# =============================================================================


class LocalAssetStorage:
    """Writes thumbnail files under a single root directory."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def path_for(self, filename: str) -> Path:
        """
        Resolve ``filename`` inside the root.

        Raises:
            ValueError: If the name would escape the root directory
        """
        if not filename or filename in (".", "..") or Path(filename).name != filename:
            raise ValueError(f"Invalid asset filename: {filename!r}")
        return self.root / filename

    async def save(self, filename: str, data: bytes) -> Path:
        """
        Write ``data`` to ``{root}/{filename}``, creating the root if needed.

        Raises:
            StorageOperationError: On any file system error
        """
        path = self.path_for(filename)
        try:
            await aiofiles.os.makedirs(self.root, exist_ok=True)
            async with aiofiles.open(path, "wb") as out:
                await out.write(data)
        except OSError as e:
            raise StorageOperationError(f"Failed to write asset {filename}: {e!s}") from e

        logger.info("Saved asset", extra={"asset_path": str(path), "size_bytes": len(data)})
        return path

    async def delete(self, filename: str) -> None:
        """
        Remove an asset file. A file that is already gone is not an error.

        Raises:
            StorageOperationError: On any other file system error
        """
        path = self.path_for(filename)
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            return
        except OSError as e:
            raise StorageOperationError(f"Failed to delete asset {filename}: {e!s}") from e


# Container for the process-wide S3 client
_singleton_container: dict[str, StorageService] = {}


def get_storage_service(settings: Settings) -> StorageService:
    """Return the shared StorageService, creating it on first use."""
    if "instance" not in _singleton_container:
        _singleton_container["instance"] = StorageService.from_settings(settings)
    return _singleton_container["instance"]
