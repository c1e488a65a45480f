"""
Upload validation helpers for Tubely.

- parse_media_type: split a Content-Type header into a lowercased media type and parameters
- resolve_thumbnail_extension: map a thumbnail content type onto ``.jpg`` or ``.png``
- require_mp4: accept exactly ``video/mp4``
- generate_asset_key: random, URL-safe name for stored assets
- format_file_size: human-readable byte counts for error messages

Declared content types are trusted as sent by the client; the bytes are not
sniffed. Video files are still probed by ffprobe before they are stored.
"""

import base64
import mimetypes
import re
import secrets


# =============================================================================
# CONSTANTS
# =============================================================================

BYTES_PER_KB: int = 1024

# Random bytes behind every asset key
ASSET_KEY_BYTES: int = 32

MP4_MEDIA_TYPE: str = "video/mp4"

ALLOWED_THUMBNAIL_EXTENSIONS: frozenset[str] = frozenset({".jpg", ".png"})

# Preferred extension per thumbnail type; mimetypes is consulted for anything else
THUMBNAIL_EXTENSIONS: dict[str, str] = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
}

_TOKEN = r"[!#$%&'*+\-.^_`|~0-9a-z]+"
_MEDIA_TYPE_REGEX = re.compile(rf"^{_TOKEN}/{_TOKEN}$")
_PARAM_REGEX = re.compile(rf"^({_TOKEN})=(\"[^\"]*\"|{_TOKEN})$", re.IGNORECASE)


class MediaTypeError(ValueError):
    """Raised when a declared content type is malformed or not accepted."""


# =============================================================================
# MEDIA TYPES
# =============================================================================


def parse_media_type(content_type: str | None) -> tuple[str, dict[str, str]]:
    """
    Parse a Content-Type value such as ``video/mp4; codecs="avc1"``.

    Args:
        content_type: Raw header value

    Returns:
        Tuple of the lowercased ``type/subtype`` and a dict of parameters
        with lowercased names and unquoted values.

    Raises:
        MediaTypeError: If the value is empty or not ``type/subtype[; k=v]*``
    """
    if not content_type or not content_type.strip():
        raise MediaTypeError("Missing content type")

    media_type, *raw_params = (part.strip() for part in content_type.split(";"))
    media_type = media_type.lower()
    if not _MEDIA_TYPE_REGEX.match(media_type):
        raise MediaTypeError(f"Malformed media type: {content_type!r}")

    params: dict[str, str] = {}
    for raw in raw_params:
        if not raw:
            continue
        match = _PARAM_REGEX.match(raw)
        if match is None:
            raise MediaTypeError(f"Malformed media type parameter: {raw!r}")
        params[match.group(1).lower()] = match.group(2).strip('"')

    return media_type, params


def resolve_thumbnail_extension(content_type: str | None) -> str:
    """
    Map a thumbnail content type onto the extension it is stored under.

    Raises:
        MediaTypeError: If the type is malformed or is not JPEG or PNG
    """
    media_type, _ = parse_media_type(content_type)
    extension = THUMBNAIL_EXTENSIONS.get(media_type) or mimetypes.guess_extension(media_type)
    if extension not in ALLOWED_THUMBNAIL_EXTENSIONS:
        raise MediaTypeError(f"Unsupported thumbnail type: {media_type}")
    return extension


def require_mp4(content_type: str | None) -> str:
    """
    Accept only ``video/mp4``, returning the bare media type.

    Raises:
        MediaTypeError: If the type is malformed or anything other than MP4
    """
    media_type, _ = parse_media_type(content_type)
    if media_type != MP4_MEDIA_TYPE:
        raise MediaTypeError(f"Unsupported video type: {media_type}")
    return media_type


# =============================================================================
# NAMING
# =============================================================================


def generate_asset_key() -> str:
    """32 random bytes, URL-safe base64 without padding (43 characters)."""
    return base64.urlsafe_b64encode(secrets.token_bytes(ASSET_KEY_BYTES)).rstrip(b"=").decode("ascii")


def format_file_size(size_bytes: int) -> str:
    if size_bytes < BYTES_PER_KB:
        return f"{size_bytes} B"
    if size_bytes < BYTES_PER_KB**2:
        return f"{size_bytes / BYTES_PER_KB:.1f} KB"
    if size_bytes < BYTES_PER_KB**3:
        return f"{size_bytes / BYTES_PER_KB**2:.1f} MB"
    return f"{size_bytes / BYTES_PER_KB**3:.2f} GB"
