"""
Storage Service Test Suite

Tests for backend/tubely/services/storage_service.py:
- Public URL composition for S3 objects and local assets
- StorageService client construction and S3 calls (boto3 mocked)
- Error mapping of ClientError/BotoCoreError to StorageOperationError
- LocalAssetStorage writes, deletes and filename checks
"""

from collections.abc import Generator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from botocore.exceptions import ClientError, EndpointConnectionError

from tubely.config import Settings
from tubely.services import storage_service
from tubely.services.storage_service import (
    LocalAssetStorage,
    StorageOperationError,
    StorageService,
    build_asset_url,
    build_object_url,
    get_storage_service,
)


CLIENT_TARGET = "tubely.services.storage_service.boto3.client"


def client_error(code: str, operation: str = "PutObject") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": f"{code} happened"}}, operation)


@pytest.fixture
def mock_s3_client() -> Generator[MagicMock, None, None]:
    with patch(CLIENT_TARGET) as mock_factory:
        client = MagicMock()
        mock_factory.return_value = client
        yield client


@pytest.fixture
def service(mock_s3_client: MagicMock) -> StorageService:
    return StorageService(bucket_name="tubely-test", region_name="us-east-2")


# =============================================================================
# URL Composition
# =============================================================================


@pytest.mark.unit
class TestUrlComposition:
    def test_object_url_uses_bucket_host(self, test_settings: Settings) -> None:
        url = build_object_url(test_settings, "landscape/abc.mp4")

        assert url == "https://tubely-test.s3.us-east-2.amazonaws.com/landscape/abc.mp4"

    def test_object_url_prefers_cdn_host(self, test_settings: Settings) -> None:
        settings = test_settings.model_copy(update={"s3_cdn_host": "cdn.example.com"})

        assert build_object_url(settings, "other/x.mp4") == "https://cdn.example.com/other/x.mp4"

    def test_asset_url(self, test_settings: Settings) -> None:
        assert build_asset_url(test_settings, "k.png") == "http://localhost:8091/assets/k.png"


# =============================================================================
# S3 StorageService
# =============================================================================


@pytest.mark.unit
class TestStorageService:
    def test_client_configuration(self) -> None:
        with patch(CLIENT_TARGET) as mock_factory:
            StorageService(
                bucket_name="b",
                endpoint_url="http://localhost:9000",
                access_key="minio",
                secret_key="minio123",
                region_name="us-east-2",
            )

        kwargs = mock_factory.call_args.kwargs
        assert kwargs["service_name"] == "s3"
        assert kwargs["endpoint_url"] == "http://localhost:9000"
        assert kwargs["aws_access_key_id"] == "minio"
        assert kwargs["region_name"] == "us-east-2"
        assert kwargs["config"].retries["max_attempts"] == 1

    def test_credentials_omitted_without_keys(self) -> None:
        with patch(CLIENT_TARGET) as mock_factory:
            StorageService(bucket_name="b")

        kwargs = mock_factory.call_args.kwargs
        assert "aws_access_key_id" not in kwargs
        assert "endpoint_url" not in kwargs

    @pytest.mark.asyncio
    async def test_upload_file_path_sets_content_type(
        self, service: StorageService, mock_s3_client: MagicMock, tmp_path: Path
    ) -> None:
        source = tmp_path / "clip.mp4"
        source.write_bytes(b"data")

        result = await service.upload_file(
            "portrait/key.mp4", file_path=source, content_type="video/mp4"
        )

        assert result == {"object_key": "portrait/key.mp4", "bucket": "tubely-test"}
        mock_s3_client.upload_file.assert_called_once_with(
            str(source),
            "tubely-test",
            "portrait/key.mp4",
            ExtraArgs={"ContentType": "video/mp4"},
        )

    @pytest.mark.asyncio
    async def test_upload_without_content_type_passes_no_extra_args(
        self, service: StorageService, mock_s3_client: MagicMock, tmp_path: Path
    ) -> None:
        source = tmp_path / "clip.mp4"
        source.write_bytes(b"data")

        await service.upload_file("other/key.mp4", file_path=source)

        assert mock_s3_client.upload_file.call_args.kwargs["ExtraArgs"] is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            client_error("AccessDenied"),
            EndpointConnectionError(endpoint_url="http://s3"),
            FileNotFoundError("clip.mp4"),
        ],
    )
    async def test_upload_errors_are_wrapped(
        self,
        service: StorageService,
        mock_s3_client: MagicMock,
        tmp_path: Path,
        error: Exception,
    ) -> None:
        mock_s3_client.upload_file.side_effect = error

        with pytest.raises(StorageOperationError):
            await service.upload_file("k", file_path=tmp_path / "clip.mp4")

    @pytest.mark.asyncio
    async def test_delete_file(self, service: StorageService, mock_s3_client: MagicMock) -> None:
        await service.delete_file("landscape/k.mp4")

        mock_s3_client.delete_object.assert_called_once_with(
            Bucket="tubely-test", Key="landscape/k.mp4"
        )

    @pytest.mark.asyncio
    async def test_delete_failure_is_wrapped(
        self, service: StorageService, mock_s3_client: MagicMock
    ) -> None:
        mock_s3_client.delete_object.side_effect = client_error("InternalError", "DeleteObject")

        with pytest.raises(StorageOperationError):
            await service.delete_file("k")

    def test_get_storage_service_is_shared(self, test_settings: Settings) -> None:
        storage_service._singleton_container.clear()
        try:
            with patch(CLIENT_TARGET):
                first = get_storage_service(test_settings)
                second = get_storage_service(test_settings)
            assert first is second
            assert first.bucket_name == "tubely-test"
        finally:
            storage_service._singleton_container.clear()


# =============================================================================
# Local Asset Storage
# =============================================================================


@pytest.mark.unit
class TestLocalAssetStorage:
    @pytest.mark.asyncio
    async def test_save_creates_root_and_writes(self, tmp_path: Path) -> None:
        storage = LocalAssetStorage(tmp_path / "assets")

        path = await storage.save("key.png", b"\x89PNG")

        assert path == tmp_path / "assets" / "key.png"
        assert path.read_bytes() == b"\x89PNG"

    @pytest.mark.asyncio
    async def test_delete_removes_file_and_tolerates_missing(self, tmp_path: Path) -> None:
        storage = LocalAssetStorage(tmp_path)
        await storage.save("key.jpg", b"jpeg")

        await storage.delete("key.jpg")
        await storage.delete("key.jpg")

        assert not (tmp_path / "key.jpg").exists()

    @pytest.mark.parametrize("filename", ["", "../escape.png", "nested/key.png", ".."])
    def test_path_for_rejects_names_outside_root(self, tmp_path: Path, filename: str) -> None:
        with pytest.raises(ValueError):
            LocalAssetStorage(tmp_path).path_for(filename)

    @pytest.mark.asyncio
    async def test_save_failure_is_wrapped(self, tmp_path: Path) -> None:
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file")
        storage = LocalAssetStorage(blocker)

        with pytest.raises(StorageOperationError):
            await storage.save("key.png", b"data")
