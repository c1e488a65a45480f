"""
Tests for VideoService against the in-memory collection and a failing Motor mock.
"""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from pymongo.errors import ServerSelectionTimeoutError

from tubely.models.video import Video
from tubely.services.video_service import VideoNotFoundError, VideoService, VideoServiceError

from fakes import InMemoryVideoCollection


@pytest.mark.unit
class TestVideoService:
    @pytest.mark.asyncio
    async def test_get_video(self, video_service: VideoService, draft_video: Video) -> None:
        video = await video_service.get_video(draft_video.id)

        assert video.id == draft_video.id
        assert video.user_id == draft_video.user_id
        assert video.title == "Boots in the rain"

    @pytest.mark.asyncio
    async def test_get_unknown_video(self, video_service: VideoService) -> None:
        with pytest.raises(VideoNotFoundError):
            await video_service.get_video(uuid4())

    @pytest.mark.asyncio
    async def test_update_only_touches_mutable_fields(
        self,
        video_service: VideoService,
        videos_collection: InMemoryVideoCollection,
        draft_video: Video,
    ) -> None:
        changed = draft_video.model_copy(
            update={"video_url": "https://cdn.example.com/other/k.mp4", "user_id": uuid4()}
        )

        await video_service.update_video(changed)

        stored = videos_collection.get(draft_video.id)
        assert stored.video_url == "https://cdn.example.com/other/k.mp4"
        assert stored.user_id == draft_video.user_id

    @pytest.mark.asyncio
    async def test_update_missing_record(self, video_service: VideoService, owner_id) -> None:
        with pytest.raises(VideoNotFoundError):
            await video_service.update_video(Video(user_id=owner_id))

    @pytest.mark.asyncio
    async def test_list_videos_limit(
        self, video_service: VideoService, videos_collection: InMemoryVideoCollection, owner_id
    ) -> None:
        for index in range(5):
            videos_collection.insert(Video(user_id=owner_id, title=f"clip {index}"))

        videos = await video_service.list_videos_for_user(owner_id, limit=3)

        assert len(videos) == 3
        assert all(video.user_id == owner_id for video in videos)


@pytest.mark.unit
class TestVideoServiceStoreFailures:
    @pytest.fixture
    def failing_collection(self) -> MagicMock:
        collection = MagicMock()
        error = ServerSelectionTimeoutError("no servers")
        collection.find_one = AsyncMock(side_effect=error)
        collection.update_one = AsyncMock(side_effect=error)
        collection.find.side_effect = error
        return collection

    @pytest.mark.asyncio
    async def test_get_wraps_driver_error(self, failing_collection: MagicMock) -> None:
        with pytest.raises(VideoServiceError) as exc_info:
            await VideoService(failing_collection).get_video(uuid4())

        assert not isinstance(exc_info.value, VideoNotFoundError)
        assert isinstance(exc_info.value.__cause__, ServerSelectionTimeoutError)

    @pytest.mark.asyncio
    async def test_update_wraps_driver_error(self, failing_collection: MagicMock) -> None:
        with pytest.raises(VideoServiceError):
            await VideoService(failing_collection).update_video(Video(user_id=uuid4()))

    @pytest.mark.asyncio
    async def test_list_wraps_driver_error(self, failing_collection: MagicMock) -> None:
        with pytest.raises(VideoServiceError):
            await VideoService(failing_collection).list_videos_for_user(uuid4())
