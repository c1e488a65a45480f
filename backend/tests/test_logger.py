"""
Tests for the structured logging helpers.
"""

import json
import logging
import sys

from uuid import uuid4

import pytest

from tubely.utils.logger import (
    JSONFormatter,
    StandardFormatter,
    add_log_context,
    setup_logging,
)


def make_record(msg: str = "Video uploaded", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="tubely.services.upload_service",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.mark.unit
class TestJSONFormatter:
    def test_basic_fields(self) -> None:
        entry = json.loads(JSONFormatter().format(make_record()))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "tubely.services.upload_service"
        assert entry["message"] == "Video uploaded"
        assert "extra" not in entry

    def test_extra_fields_are_serialized(self) -> None:
        video_id = uuid4()
        entry = json.loads(
            JSONFormatter().format(make_record(video_id=video_id, object_key="landscape/k.mp4"))
        )

        assert entry["extra"] == {"video_id": str(video_id), "object_key": "landscape/k.mp4"}

    def test_exception_details(self) -> None:
        try:
            raise RuntimeError("ffprobe exploded")
        except RuntimeError:
            record = make_record()
            record.exc_info = sys.exc_info()

        entry = json.loads(JSONFormatter().format(record))

        assert entry["exception"]["type"] == "RuntimeError"
        assert "ffprobe exploded" in entry["exception"]["traceback"]

    def test_source_location(self) -> None:
        entry = json.loads(JSONFormatter(include_source_location=True).format(make_record()))

        assert entry["source"]["lineno"] == 10


@pytest.mark.unit
class TestLoggingSetup:
    def test_setup_json(self, restore_logging) -> None:
        setup_logging(log_level="debug", json_logs=True)

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
        assert logging.getLogger("botocore").level == logging.WARNING

    def test_setup_text(self, restore_logging) -> None:
        setup_logging(log_level="warning", json_logs=False)

        assert isinstance(logging.getLogger().handlers[0].formatter, StandardFormatter)

    def test_context_adapter_merges_extra(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = logging.getLogger("tubely.tests.context")
        ctx_logger = add_log_context(logger, video_id="v1", user_id="u1")

        with caplog.at_level(logging.INFO, logger="tubely.tests.context"):
            ctx_logger.info("Thumbnail uploaded", extra={"user_id": "override"})

        (record,) = caplog.records
        assert record.video_id == "v1"
        assert record.user_id == "override"
