"""
Tubely Upload Service Module

Orchestrates the two upload pipelines behind the video endpoints.

Thumbnail:
    validate type (.jpg/.png) -> random asset key -> write under assets_root
    -> point thumbnail_url at /assets/{key}{ext} -> update record

Video:
    validate type (video/mp4) -> buffer to a request-scoped temp dir
    -> ffprobe width/height -> classify aspect ratio -> ffmpeg fast-start
    -> put to S3 as {aspect}/{key}.mp4 -> point video_url at the object
    -> update record -> remove temp dir

Every failure is raised as a TubelyAPIError chained to its cause. When the
record update fails after bytes were stored, the object written by this
request is deleted again; objects referenced by earlier uploads are left
in place.
"""

import asyncio
import logging
import shutil
import tempfile

from collections.abc import Awaitable, Callable
from pathlib import Path
from uuid import UUID

import aiofiles

from starlette.datastructures import UploadFile

from tubely.config import Settings
from tubely.core.exceptions import (
    InternalServerError,
    InvalidInputError,
    NotFoundError,
    UnauthorizedError,
)
from tubely.models.video import Video
from tubely.services.media_service import (
    FastStartError,
    MediaProbeError,
    MediaProcessor,
    classify_aspect_ratio,
)
from tubely.services.storage_service import (
    LocalAssetStorage,
    StorageService,
    StorageServiceError,
    build_asset_url,
    build_object_url,
)
from tubely.services.video_service import VideoNotFoundError, VideoService, VideoServiceError
from tubely.utils.file_validator import (
    MediaTypeError,
    generate_asset_key,
    require_mp4,
    resolve_thumbnail_extension,
)
from tubely.utils.logger import add_log_context


# Configure module logger
logger = logging.getLogger(__name__)

TEMP_DIR_PREFIX = "tubely_upload_"
BUFFERED_UPLOAD_NAME = "upload.mp4"


class UploadService:
    """
    Upload pipelines for thumbnails and videos.

    Attributes:
        settings: Read-only application settings
        videos: Metadata store access
        storage: S3 sink for videos
        assets: Local sink for thumbnails
        media: ffprobe/ffmpeg wrapper
    """

    def __init__(
        self,
        settings: Settings,
        videos: VideoService,
        storage: StorageService,
        assets: LocalAssetStorage,
        media: MediaProcessor,
    ) -> None:
        self.settings = settings
        self.videos = videos
        self.storage = storage
        self.assets = assets
        self.media = media

    # =========================================================================
    # Ownership
    # =========================================================================

    async def get_owned_video(self, video_id: UUID, user_id: UUID) -> Video:
        """
        Load a record and check that ``user_id`` owns it.

        Raises:
            NotFoundError: If the record does not exist
            UnauthorizedError: If the caller is not the owner
            InternalServerError: If the metadata store fails
        """
        try:
            video = await self.videos.get_video(video_id)
        except VideoNotFoundError as e:
            raise NotFoundError("Couldn't find video", error="video_not_found") from e
        except VideoServiceError as e:
            raise InternalServerError("Couldn't get video", error="metadata_error") from e

        if not video.is_owned_by(user_id):
            raise UnauthorizedError("You do not own this video", error="not_owner")
        return video

    # =========================================================================
    # Thumbnail Pipeline
    # =========================================================================

    async def upload_thumbnail(self, video: Video, upload: UploadFile) -> Video:
        """
        Store a thumbnail image and point the record at it.

        Args:
            video: Record already checked for ownership
            upload: The ``thumbnail`` form part

        Returns:
            Video: The updated record

        Raises:
            InvalidInputError: If the content type is not JPEG/PNG
            InternalServerError: If writing the file or updating the record fails
        """
        ctx_logger = add_log_context(logger, video_id=str(video.id), user_id=str(video.user_id))

        try:
            extension = resolve_thumbnail_extension(upload.content_type)
        except MediaTypeError as e:
            raise InvalidInputError(str(e), error="unsupported_media_type") from e

        data = await upload.read()

        filename = f"{generate_asset_key()}{extension}"
        try:
            await self.assets.save(filename, data)
        except StorageServiceError as e:
            raise InternalServerError("Couldn't save thumbnail", error="storage_error") from e

        updated = video.model_copy(
            update={"thumbnail_url": build_asset_url(self.settings, filename)}
        )
        updated.touch()
        await self._save_record(updated, rollback=lambda: self.assets.delete(filename))

        ctx_logger.info(
            "Thumbnail uploaded",
            extra={"asset_filename": filename, "size_bytes": len(data)},
        )
        return updated

    # =========================================================================
    # Video Pipeline
    # =========================================================================

    async def upload_video(self, video: Video, upload: UploadFile) -> Video:
        """
        Probe, fast-start, store and record an MP4 upload.

        The temp directory holding the buffered and rewritten files is removed
        on every exit path.

        Args:
            video: Record already checked for ownership
            upload: The ``video`` form part

        Returns:
            Video: The updated record

        Raises:
            InvalidInputError: If the content type is not video/mp4 or the file is empty
            InternalServerError: If buffering, probing, rewriting, storing or
                updating the record fails
        """
        ctx_logger = add_log_context(logger, video_id=str(video.id), user_id=str(video.user_id))

        try:
            media_type = require_mp4(upload.content_type)
        except MediaTypeError as e:
            raise InvalidInputError(str(e), error="unsupported_media_type") from e

        workdir = Path(tempfile.mkdtemp(prefix=TEMP_DIR_PREFIX, dir=self.settings.temp_dir))
        try:
            buffered = workdir / BUFFERED_UPLOAD_NAME
            size = await self._buffer_upload(upload, buffered)

            try:
                geometry = await self.media.probe(buffered)
            except MediaProbeError as e:
                raise InternalServerError(
                    "Couldn't get video aspect ratio", error="probe_failed"
                ) from e

            aspect = classify_aspect_ratio(geometry.width, geometry.height)

            source = buffered
            if self.settings.video_fast_start:
                try:
                    source = await self.media.rewrite_fast_start(buffered)
                except FastStartError as e:
                    raise InternalServerError(
                        "Couldn't process video for fast start", error="fast_start_failed"
                    ) from e

            object_key = f"{aspect.value}/{generate_asset_key()}.mp4"
            try:
                await self.storage.upload_file(
                    object_key=object_key,
                    file_path=source,
                    content_type=media_type,
                )
            except StorageServiceError as e:
                raise InternalServerError(
                    "Couldn't upload video to storage", error="storage_error"
                ) from e

            updated = video.model_copy(
                update={"video_url": build_object_url(self.settings, object_key)}
            )
            updated.touch()
            await self._save_record(updated, rollback=lambda: self.storage.delete_file(object_key))

            ctx_logger.info(
                "Video uploaded",
                extra={
                    "object_key": object_key,
                    "aspect_ratio": aspect.value,
                    "width": geometry.width,
                    "height": geometry.height,
                    "size_bytes": size,
                    "fast_start": self.settings.video_fast_start,
                },
            )
            return updated
        finally:
            await self._remove_workdir(workdir)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _buffer_upload(self, upload: UploadFile, destination: Path) -> int:
        """Copy an upload to ``destination`` in chunks. The form parser already capped its size."""
        chunk_size = self.settings.upload_chunk_size
        written = 0

        try:
            async with aiofiles.open(destination, "wb") as out:
                while chunk := await upload.read(chunk_size):
                    written += len(chunk)
                    await out.write(chunk)
        except OSError as e:
            raise InternalServerError("Couldn't write temp file", error="io_error") from e

        if written == 0:
            raise InvalidInputError("Uploaded video is empty", error="empty_file")
        return written

    async def _save_record(
        self, video: Video, rollback: Callable[[], Awaitable[object]]
    ) -> None:
        """
        Persist ``video``. On failure run ``rollback`` to drop the bytes this request stored.
        """
        try:
            await self.videos.update_video(video)
        except VideoServiceError as e:
            await self._run_rollback(video, rollback)
            if isinstance(e, VideoNotFoundError):
                raise NotFoundError("Couldn't find video", error="video_not_found") from e
            raise InternalServerError("Couldn't update video", error="metadata_error") from e

    async def _run_rollback(
        self, video: Video, rollback: Callable[[], Awaitable[object]]
    ) -> None:
        try:
            await rollback()
        except StorageServiceError:
            logger.exception(
                "Failed to remove stored asset after record update failure; asset is orphaned",
                extra={"video_id": str(video.id)},
            )

    async def _remove_workdir(self, workdir: Path) -> None:
        try:
            await asyncio.to_thread(shutil.rmtree, workdir)
        except FileNotFoundError:
            return
        except OSError:
            logger.warning("Failed to clean up temp directory %s", workdir, exc_info=True)
