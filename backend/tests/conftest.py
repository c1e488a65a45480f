"""
Pytest Configuration and Test Fixtures for the Tubely Backend

This module provides:
- Test Settings pointing assets and temp files at per-test directories
- An in-memory stand-in for the MongoDB ``videos`` collection
- A recording stand-in for the S3 storage service
- A scripted media processor replacing ffprobe/ffmpeg
- Bearer token headers for an owner and a second user
- FastAPI TestClient with all external dependencies overridden
- Real JPEG/PNG bytes generated with Pillow
"""

from collections.abc import Generator
from io import BytesIO
from pathlib import Path
from uuid import UUID, uuid4

import pytest

from fastapi.testclient import TestClient
from PIL import Image

from tubely.api.v1.videos import get_media_processor, get_object_storage, get_video_service
from tubely.config import Settings, get_settings
from tubely.core.auth import create_access_token
from tubely.main import app
from tubely.models.video import Video
from tubely.services.video_service import VideoService

from fakes import InMemoryVideoCollection, RecordingStorage, ScriptedMediaProcessor


# ==============================================================================
# Pytest Configuration
# ==============================================================================

TEST_SECRET_KEY = "test-secret-key-for-jwt-signing-minimum-32-chars"


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "integration: mark test as API-level test")


# ==============================================================================
# Settings Fixtures
# ==============================================================================


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings with assets and temp files under the test's tmp_path."""
    temp_dir = tmp_path / "tmp"
    temp_dir.mkdir()
    return Settings(
        app_env="testing",
        secret_key=TEST_SECRET_KEY,
        port=8091,
        assets_root=str(tmp_path / "assets"),
        assets_host="localhost",
        s3_bucket_name="tubely-test",
        s3_region="us-east-2",
        s3_cdn_host=None,
        temp_dir=str(temp_dir),
        video_fast_start=True,
    )


# ==============================================================================
# Collaborator Fixtures
# ==============================================================================


@pytest.fixture
def videos_collection() -> InMemoryVideoCollection:
    return InMemoryVideoCollection()


@pytest.fixture
def video_service(videos_collection: InMemoryVideoCollection) -> VideoService:
    return VideoService(videos_collection)  # type: ignore[arg-type]


@pytest.fixture
def recording_storage() -> RecordingStorage:
    return RecordingStorage()


@pytest.fixture
def media_processor() -> ScriptedMediaProcessor:
    return ScriptedMediaProcessor()


# ==============================================================================
# Users, Tokens and Records
# ==============================================================================


@pytest.fixture
def owner_id() -> UUID:
    return uuid4()


@pytest.fixture
def other_user_id() -> UUID:
    return uuid4()


@pytest.fixture
def owner_headers(owner_id: UUID, test_settings: Settings) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(owner_id, test_settings)}"}


@pytest.fixture
def other_user_headers(other_user_id: UUID, test_settings: Settings) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(other_user_id, test_settings)}"}


@pytest.fixture
def draft_video(owner_id: UUID, videos_collection: InMemoryVideoCollection) -> Video:
    """A video record owned by ``owner_id`` with no assets yet."""
    video = Video(user_id=owner_id, title="Boots in the rain", description="Draft")
    videos_collection.insert(video)
    return video


# ==============================================================================
# Test Client
# ==============================================================================


@pytest.fixture
def test_client(
    test_settings: Settings,
    video_service: VideoService,
    recording_storage: RecordingStorage,
    media_processor: ScriptedMediaProcessor,
) -> Generator[TestClient, None, None]:
    """TestClient with settings, metadata store, S3 and media processor overridden."""
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_video_service] = lambda: video_service
    app.dependency_overrides[get_object_storage] = lambda: recording_storage
    app.dependency_overrides[get_media_processor] = lambda: media_processor

    client = TestClient(app)
    yield client

    app.dependency_overrides.clear()


# ==============================================================================
# Sample Files
# ==============================================================================


def make_image_bytes(image_format: str, size: tuple[int, int] = (64, 36)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", size, color=(200, 40, 40)).save(buf, format=image_format)
    return buf.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes("PNG")


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image_bytes("JPEG")


@pytest.fixture
def mp4_bytes() -> bytes:
    """Bytes with an MP4 ``ftyp`` header; the scripted processor never decodes them."""
    return b"\x00\x00\x00\x20ftypisom\x00\x00\x02\x00isomiso2avc1mp41" + b"\x00" * 2048
