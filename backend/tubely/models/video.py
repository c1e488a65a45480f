"""
Video Pydantic models for Tubely.

Defines the Video record stored in MongoDB and returned by the API, along
with the aspect-ratio classification used to prefix video object keys.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS
# =============================================================================


class AspectRatio(str, Enum):
    """
    Coarse bucketing of a video's width/height ratio.

    Only used to prefix storage keys. It is never persisted on the record.
    """

    LANDSCAPE = "landscape"
    PORTRAIT = "portrait"
    OTHER = "other"


# =============================================================================
# MODELS
# =============================================================================


class Video(BaseModel):
    """
    A video record owned by a single user.

    Attributes:
        id: Video UUID (stored as the string ``_id`` of the MongoDB document)
        user_id: UUID of the owning user; only this user may change the URL fields
        title: Display title
        description: Free-form description
        thumbnail_url: URL of the most recently uploaded thumbnail
        video_url: URL of the most recently uploaded video file
        created_at: Record creation timestamp (UTC)
        updated_at: Last modification timestamp (UTC)
    """

    id: UUID = Field(default_factory=uuid4, alias="_id", description="Video identifier")

    user_id: UUID = Field(..., description="Owning user's identifier")

    title: str = Field(default="", max_length=500, description="Video title")

    description: str = Field(default="", max_length=5000, description="Video description")

    thumbnail_url: str | None = Field(default=None, description="Public thumbnail URL")

    video_url: str | None = Field(default=None, description="Public video URL")

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="Creation timestamp (UTC)"
    )

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="Last modification timestamp (UTC)"
    )

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "6a1b0ff0-8a41-4f5c-9a55-0f3c6b6f2f1e",
                "user_id": "0d9d2a0b-3c43-4a55-b7a9-2e6c1f0d5a10",
                "title": "Boots in the rain",
                "description": "A short clip",
                "thumbnail_url": "http://localhost:8091/assets/Zm9vYmFy.png",
                "video_url": "https://tubely-videos.s3.us-east-1.amazonaws.com/landscape/YmFy.mp4",
                "created_at": "2025-01-15T10:30:00Z",
                "updated_at": "2025-01-15T10:31:00Z",
            }
        },
    )

    def is_owned_by(self, user_id: UUID) -> bool:
        return self.user_id == user_id

    def touch(self) -> None:
        """Bump ``updated_at`` to now."""
        self.updated_at = datetime.now(UTC)

    def to_document(self) -> dict[str, Any]:
        """Serialize to a MongoDB document with string UUIDs."""
        document = self.model_dump(by_alias=True)
        document["_id"] = str(self.id)
        document["user_id"] = str(self.user_id)
        return document

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "Video":
        return cls.model_validate(document)


class VideoResponse(BaseModel):
    """API representation of a video record."""

    id: UUID
    user_id: UUID
    title: str
    description: str
    thumbnail_url: str | None = None
    video_url: str | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_video(cls, video: Video) -> "VideoResponse":
        return cls(**video.model_dump())
