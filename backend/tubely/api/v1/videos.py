"""
FastAPI Videos Router for Tubely

Endpoints:
- POST /videos/{video_id}/thumbnail - Upload a JPEG/PNG thumbnail (multipart field ``thumbnail``)
- POST /videos/{video_id}/video - Upload an MP4 video (multipart field ``video``)
- GET /videos/{video_id} - Fetch one of the caller's video records
- GET /videos - List the caller's video records

All endpoints require ``Authorization: Bearer <token>``. Only the owner of a
record may read or change it. Error responses follow the taxonomy in
``tubely.core.exceptions``.
"""

import logging

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request

from tubely.config import Settings, get_settings
from tubely.core.auth import get_current_user_id
from tubely.core.database import get_db_client
from tubely.core.exceptions import InternalServerError, InvalidInputError
from tubely.models.video import VideoResponse
from tubely.services.media_service import MediaProcessor
from tubely.services.storage_service import (
    LocalAssetStorage,
    StorageService,
    get_storage_service,
)
from tubely.services.upload_service import UploadService
from tubely.services.video_service import VideoService, VideoServiceError
from tubely.utils.multipart import get_upload_field, read_multipart_form


# Configure module logger
logger = logging.getLogger(__name__)

THUMBNAIL_FIELD = "thumbnail"
VIDEO_FIELD = "video"

ERROR_RESPONSES: dict[int | str, dict[str, str]] = {
    400: {"description": "Bad identifier, unparseable form or unsupported media type"},
    401: {"description": "Missing or invalid token, or caller does not own the video"},
    404: {"description": "Unknown video identifier"},
    500: {"description": "Storage, media processing or metadata store failure"},
}

router = APIRouter(responses=ERROR_RESPONSES)


# ============================================================================
# Dependency Injection Functions
# ============================================================================


def get_video_service() -> VideoService:
    return VideoService(get_db_client().get_videos_collection())


def get_object_storage(settings: Settings = Depends(get_settings)) -> StorageService:
    return get_storage_service(settings)


def get_asset_storage(settings: Settings = Depends(get_settings)) -> LocalAssetStorage:
    return LocalAssetStorage(settings.assets_path)


def get_media_processor(settings: Settings = Depends(get_settings)) -> MediaProcessor:
    return MediaProcessor.from_settings(settings)


def get_upload_service(
    settings: Settings = Depends(get_settings),
    videos: VideoService = Depends(get_video_service),
    storage: StorageService = Depends(get_object_storage),
    assets: LocalAssetStorage = Depends(get_asset_storage),
    media: MediaProcessor = Depends(get_media_processor),
) -> UploadService:
    """
    Dependency injection for UploadService.

    Each collaborator is its own dependency so tests can override them
    individually through ``app.dependency_overrides``.
    """
    return UploadService(
        settings=settings, videos=videos, storage=storage, assets=assets, media=media
    )


# ============================================================================
# Helper Functions
# ============================================================================


def parse_video_id(video_id: str) -> UUID:
    """
    Parse the path parameter as a UUID.

    Raises:
        InvalidInputError: If it is not a valid UUID
    """
    try:
        return UUID(video_id)
    except ValueError as e:
        raise InvalidInputError("Invalid ID", error="invalid_video_id") from e


# ============================================================================
# Upload Endpoints
# ============================================================================


@router.post(
    "/{video_id}/thumbnail",
    response_model=VideoResponse,
    summary="Upload a video thumbnail",
)
async def upload_thumbnail(
    video_id: str,
    request: Request,
    user_id: UUID = Depends(get_current_user_id),
    upload_service: UploadService = Depends(get_upload_service),
    settings: Settings = Depends(get_settings),
) -> VideoResponse:
    """
    Upload a JPEG or PNG thumbnail for one of the caller's videos.

    The image is written under the assets root and served from ``/assets``.
    Returns the updated video record.
    """
    parsed_id = parse_video_id(video_id)
    video = await upload_service.get_owned_video(parsed_id, user_id)

    logger.info("Uploading thumbnail for video %s by user %s", parsed_id, user_id)

    form = await read_multipart_form(request, settings.max_thumbnail_size_bytes)
    try:
        upload = get_upload_field(form, THUMBNAIL_FIELD)
        updated = await upload_service.upload_thumbnail(video, upload)
    finally:
        await form.close()

    return VideoResponse.from_video(updated)


@router.post(
    "/{video_id}/video",
    response_model=VideoResponse,
    summary="Upload a video file",
)
async def upload_video(
    video_id: str,
    request: Request,
    user_id: UUID = Depends(get_current_user_id),
    upload_service: UploadService = Depends(get_upload_service),
    settings: Settings = Depends(get_settings),
) -> VideoResponse:
    """
    Upload an MP4 for one of the caller's videos.

    The file is probed for its aspect ratio, rewritten for fast start and
    stored as ``{aspect}/{random key}.mp4``. Returns the updated video record.
    """
    parsed_id = parse_video_id(video_id)
    video = await upload_service.get_owned_video(parsed_id, user_id)

    logger.info("Uploading video for video %s by user %s", parsed_id, user_id)

    form = await read_multipart_form(request, settings.max_video_upload_bytes)
    try:
        upload = get_upload_field(form, VIDEO_FIELD)
        updated = await upload_service.upload_video(video, upload)
    finally:
        await form.close()

    return VideoResponse.from_video(updated)


# ============================================================================
# Read Endpoints
# ============================================================================


@router.get("/{video_id}", response_model=VideoResponse, summary="Get a video")
async def get_video(
    video_id: str,
    user_id: UUID = Depends(get_current_user_id),
    upload_service: UploadService = Depends(get_upload_service),
) -> VideoResponse:
    video = await upload_service.get_owned_video(parse_video_id(video_id), user_id)
    return VideoResponse.from_video(video)


@router.get("", response_model=list[VideoResponse], summary="List your videos")
async def list_videos(
    user_id: UUID = Depends(get_current_user_id),
    limit: int = Query(default=100, ge=1, le=500),
    videos: VideoService = Depends(get_video_service),
) -> list[VideoResponse]:
    try:
        records = await videos.list_videos_for_user(user_id, limit=limit)
    except VideoServiceError as e:
        raise InternalServerError("Couldn't retrieve videos", error="metadata_error") from e
    return [VideoResponse.from_video(video) for video in records]
