"""
Media probing and fast-start rewriting for uploaded videos.

MediaProcessor is the narrow interface the upload pipeline uses for the
ffprobe/ffmpeg toolchain:

- probe(path) -> VideoGeometry: width/height of the first video stream
- rewrite_fast_start(path) -> Path: stream-copy into a new MP4 with the
  ``moov`` atom at the front, so playback can start before the download ends

Both run the external binary in a worker thread via asyncio.to_thread and
raise MediaProcessingError subclasses on failure. Handlers and tests swap
the whole processor through FastAPI dependency overrides.
"""

import asyncio
import json
import logging
import subprocess

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from tubely.config import Settings
from tubely.models.video import AspectRatio


logger = logging.getLogger(__name__)

LANDSCAPE_RATIO = 16 / 9
PORTRAIT_RATIO = 9 / 16
ASPECT_TOLERANCE = 0.1

# Tail of stderr kept in error messages
STDERR_TAIL_CHARS = 2000


class MediaProcessingError(Exception):
    """Base exception for ffprobe/ffmpeg failures."""


class MediaProbeError(MediaProcessingError):
    """Raised when a file cannot be probed for its stream geometry."""


class FastStartError(MediaProcessingError):
    """Raised when the fast-start rewrite fails."""


@dataclass(frozen=True)
class VideoGeometry:
    width: int
    height: int

    @property
    def aspect_ratio(self) -> AspectRatio:
        return classify_aspect_ratio(self.width, self.height)


def classify_aspect_ratio(width: int, height: int) -> AspectRatio:
    """
    Bucket a width/height pair into landscape, portrait or other.

    A ratio within 0.1 of 16:9 is landscape and within 0.1 of 9:16 is
    portrait. Everything else, including a zero height, is other.

    Args:
        width: Frame width in pixels
        height: Frame height in pixels

    Returns:
        AspectRatio: The classification
    """
    if height <= 0 or width <= 0:
        return AspectRatio.OTHER

    ratio = width / height
    if abs(ratio - LANDSCAPE_RATIO) < ASPECT_TOLERANCE:
        return AspectRatio.LANDSCAPE
    if abs(ratio - PORTRAIT_RATIO) < ASPECT_TOLERANCE:
        return AspectRatio.PORTRAIT
    return AspectRatio.OTHER


def _stderr_tail(stderr: str | bytes | None) -> str:
    if not stderr:
        return ""
    if isinstance(stderr, bytes):
        stderr = stderr.decode("utf-8", errors="replace")
    return stderr.strip()[-STDERR_TAIL_CHARS:]


def _parse_geometry(output: str) -> VideoGeometry:
    try:
        data: dict[str, Any] = json.loads(output)
    except json.JSONDecodeError as e:
        raise MediaProbeError(f"Could not parse ffprobe output: {e}") from e

    streams = data.get("streams") if isinstance(data, dict) else None
    if not streams:
        raise MediaProbeError("No streams found in ffprobe output")

    for stream in streams:
        width = stream.get("width")
        height = stream.get("height")
        if isinstance(width, int) and isinstance(height, int) and width > 0 and height > 0:
            return VideoGeometry(width=width, height=height)

    raise MediaProbeError("No stream with valid dimensions found in ffprobe output")


class MediaProcessor:
    """Runs ffprobe and ffmpeg against local files."""

    def __init__(
        self,
        ffprobe_path: str = "ffprobe",
        ffmpeg_path: str = "ffmpeg",
        timeout: float | None = None,
    ) -> None:
        self.ffprobe_path = ffprobe_path
        self.ffmpeg_path = ffmpeg_path
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "MediaProcessor":
        return cls(
            ffprobe_path=settings.ffprobe_path,
            ffmpeg_path=settings.ffmpeg_path,
            timeout=settings.media_timeout_seconds,
        )

    def _run(self, cmd: list[str]) -> subprocess.CompletedProcess:
        return subprocess.run(
            cmd,
            check=True,
            capture_output=True,
            text=True,
            timeout=self.timeout,
        )

    async def probe(self, path: str | Path) -> VideoGeometry:
        """
        Read the width and height of the first stream that has them.

        Args:
            path: Local file to probe

        Returns:
            VideoGeometry: Probed dimensions

        Raises:
            MediaProbeError: If ffprobe is missing, exits non-zero, times out,
                prints unparseable output or reports no usable stream
        """
        cmd = [
            self.ffprobe_path,
            "-v",
            "error",
            "-print_format",
            "json",
            "-show_streams",
            str(path),
        ]
        logger.debug("Probing %s", path)

        try:
            result = await asyncio.to_thread(self._run, cmd)
        except FileNotFoundError as e:
            raise MediaProbeError(f"ffprobe executable not found: {self.ffprobe_path}") from e
        except subprocess.CalledProcessError as e:
            raise MediaProbeError(
                f"ffprobe exited with status {e.returncode}: {_stderr_tail(e.stderr)}"
            ) from e
        except subprocess.TimeoutExpired as e:
            raise MediaProbeError(f"ffprobe timed out after {e.timeout}s") from e

        geometry = _parse_geometry(result.stdout)
        logger.info(
            "Probed video geometry",
            extra={"path": str(path), "width": geometry.width, "height": geometry.height},
        )
        return geometry

    async def rewrite_fast_start(self, path: str | Path) -> Path:
        """
        Copy the streams of ``path`` into a new MP4 with the index moved to the front.

        The output is written next to the input as ``<stem>.faststart.mp4``.
        The caller owns cleanup of both files.

        Args:
            path: Local MP4 file

        Returns:
            Path: The rewritten file

        Raises:
            FastStartError: If ffmpeg is missing, exits non-zero or times out
        """
        source = Path(path)
        output = source.with_name(f"{source.stem}.faststart.mp4")
        cmd = [
            self.ffmpeg_path,
            "-y",
            "-v",
            "error",
            "-i",
            str(source),
            "-c",
            "copy",
            "-movflags",
            "faststart",
            "-f",
            "mp4",
            str(output),
        ]
        logger.debug("Rewriting %s for fast start", source)

        try:
            await asyncio.to_thread(self._run, cmd)
        except FileNotFoundError as e:
            raise FastStartError(f"ffmpeg executable not found: {self.ffmpeg_path}") from e
        except subprocess.CalledProcessError as e:
            raise FastStartError(
                f"ffmpeg exited with status {e.returncode}: {_stderr_tail(e.stderr)}"
            ) from e
        except subprocess.TimeoutExpired as e:
            raise FastStartError(f"ffmpeg timed out after {e.timeout}s") from e

        return output
