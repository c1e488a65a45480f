"""
Video record access on top of the MongoDB ``videos`` collection.
"""

import logging

from typing import Any
from uuid import UUID

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from tubely.models.video import Video


logger = logging.getLogger(__name__)

# Fields the upload handlers are allowed to change
MUTABLE_FIELDS = ("title", "description", "thumbnail_url", "video_url", "updated_at")


class VideoServiceError(Exception):
    """Raised when the metadata store fails."""


class VideoNotFoundError(VideoServiceError):
    """Raised when no record exists for a video id."""


class VideoService:
    """Keyed lookup and update of video records."""

    def __init__(self, collection: AsyncIOMotorCollection) -> None:
        self.collection = collection

    async def get_video(self, video_id: UUID) -> Video:
        """
        Fetch a record by id.

        Raises:
            VideoNotFoundError: If no record has this id
            VideoServiceError: If the query fails
        """
        try:
            document = await self.collection.find_one({"_id": str(video_id)})
        except PyMongoError as e:
            raise VideoServiceError(f"Failed to load video {video_id}: {e!s}") from e

        if document is None:
            raise VideoNotFoundError(f"Video {video_id} not found")
        return Video.from_document(document)

    async def update_video(self, video: Video) -> Video:
        """
        Persist the mutable fields of ``video``.

        Last write wins; there is no version check.

        Raises:
            VideoNotFoundError: If the record no longer exists
            VideoServiceError: If the update fails
        """
        document = video.to_document()
        changes: dict[str, Any] = {field: document[field] for field in MUTABLE_FIELDS}

        try:
            result = await self.collection.update_one({"_id": str(video.id)}, {"$set": changes})
        except PyMongoError as e:
            raise VideoServiceError(f"Failed to update video {video.id}: {e!s}") from e

        if result.matched_count == 0:
            raise VideoNotFoundError(f"Video {video.id} not found")

        logger.info(
            "Updated video record",
            extra={
                "video_id": str(video.id),
                "thumbnail_url": video.thumbnail_url,
                "video_url": video.video_url,
            },
        )
        return video

    async def list_videos_for_user(self, user_id: UUID, limit: int = 100) -> list[Video]:
        """Return a user's videos, newest first."""
        try:
            cursor = (
                self.collection.find({"user_id": str(user_id)})
                .sort("created_at", DESCENDING)
                .limit(limit)
            )
            documents = await cursor.to_list(length=limit)
        except PyMongoError as e:
            raise VideoServiceError(f"Failed to list videos for {user_id}: {e!s}") from e
        return [Video.from_document(doc) for doc in documents]
