"""
Tests for content-type handling and asset naming in tubely.utils.file_validator.
"""

import re

import pytest

from tubely.utils.file_validator import (
    MediaTypeError,
    format_file_size,
    generate_asset_key,
    parse_media_type,
    require_mp4,
    resolve_thumbnail_extension,
)


@pytest.mark.unit
class TestParseMediaType:
    def test_bare_type(self) -> None:
        assert parse_media_type("image/png") == ("image/png", {})

    def test_case_and_parameters(self) -> None:
        media_type, params = parse_media_type('Video/MP4; Codecs="avc1.42E01E, mp4a.40.2"; x=1')

        assert media_type == "video/mp4"
        assert params == {"codecs": "avc1.42E01E, mp4a.40.2", "x": "1"}

    def test_trailing_semicolon(self) -> None:
        assert parse_media_type("image/jpeg;") == ("image/jpeg", {})

    @pytest.mark.parametrize(
        "value",
        [None, "", "   ", "image", "image/", "/png", "image/png/x", "image/png; broken", "im age/png"],
    )
    def test_malformed(self, value: str | None) -> None:
        with pytest.raises(MediaTypeError):
            parse_media_type(value)


@pytest.mark.unit
class TestResolveThumbnailExtension:
    @pytest.mark.parametrize(
        ("content_type", "expected"),
        [
            ("image/png", ".png"),
            ("image/jpeg", ".jpg"),
            ("image/jpeg; charset=binary", ".jpg"),
            ("IMAGE/PNG", ".png"),
        ],
    )
    def test_supported(self, content_type: str, expected: str) -> None:
        assert resolve_thumbnail_extension(content_type) == expected

    @pytest.mark.parametrize(
        "content_type", ["image/gif", "image/webp", "image/svg+xml", "text/plain", "application/x-unknown"]
    )
    def test_unsupported(self, content_type: str) -> None:
        with pytest.raises(MediaTypeError):
            resolve_thumbnail_extension(content_type)


@pytest.mark.unit
class TestRequireMp4:
    def test_accepts_mp4_with_parameters(self) -> None:
        assert require_mp4('video/mp4; codecs="avc1"') == "video/mp4"

    @pytest.mark.parametrize("content_type", [None, "video/quicktime", "audio/mp4", "video/mpeg"])
    def test_rejects_other_types(self, content_type: str | None) -> None:
        with pytest.raises(MediaTypeError):
            require_mp4(content_type)


@pytest.mark.unit
class TestGenerateAssetKey:
    def test_shape(self) -> None:
        key = generate_asset_key()

        assert len(key) == 43
        assert re.fullmatch(r"[A-Za-z0-9_-]{43}", key)

    def test_keys_differ(self) -> None:
        assert len({generate_asset_key() for _ in range(100)}) == 100


@pytest.mark.unit
@pytest.mark.parametrize(
    ("size", "expected"),
    [(512, "512 B"), (2048, "2.0 KB"), (10 * 1024 * 1024, "10.0 MB"), (1024**3, "1.00 GB")],
)
def test_format_file_size(size: int, expected: str) -> None:
    assert format_file_size(size) == expected
