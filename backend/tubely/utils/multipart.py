"""
Size-bounded multipart form parsing.

Starlette's ``Request.form()`` reads the whole body before the handler can
look at it. ``read_multipart_form`` rejects a declared Content-Length above
the limit before any byte is read, and stops streaming bodies that cross
the limit part way through.
"""

from collections.abc import AsyncGenerator

from starlette.datastructures import FormData, UploadFile
from starlette.formparsers import MultiPartException, MultiPartParser
from starlette.requests import Request

from tubely.core.exceptions import InvalidInputError
from tubely.utils.file_validator import format_file_size


class BodyTooLargeError(MultiPartException):
    """Raised from inside the parser when the streamed body crosses the limit."""


async def _limited_stream(request: Request, max_bytes: int) -> AsyncGenerator[bytes, None]:
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > max_bytes:
            raise BodyTooLargeError(f"Request body exceeds {format_file_size(max_bytes)}")
        yield chunk


async def read_multipart_form(request: Request, max_bytes: int) -> FormData:
    """
    Parse a multipart/form-data body of at most ``max_bytes``.

    The caller must ``await form.close()`` once done with the uploaded files.

    Raises:
        InvalidInputError: If the body is too large, is not multipart or cannot be parsed
    """
    content_length = request.headers.get("content-length")
    if content_length is not None:
        try:
            declared = int(content_length)
        except ValueError as e:
            raise InvalidInputError("Invalid Content-Length header", error="invalid_form") from e
        if declared > max_bytes:
            raise InvalidInputError(
                f"Request body exceeds {format_file_size(max_bytes)}", error="request_too_large"
            )

    content_type = request.headers.get("content-type", "")
    if not content_type.lower().startswith("multipart/form-data"):
        raise InvalidInputError("Expected a multipart/form-data body", error="invalid_form")

    parser = MultiPartParser(request.headers, _limited_stream(request, max_bytes), max_files=1)
    try:
        return await parser.parse()
    except BodyTooLargeError as e:
        raise InvalidInputError(e.message, error="request_too_large") from e
    except MultiPartException as e:
        raise InvalidInputError(f"Couldn't parse form: {e.message}", error="invalid_form") from e


def get_upload_field(form: FormData, field: str) -> UploadFile:
    """
    Return the file part named ``field``.

    Raises:
        InvalidInputError: If the field is missing or is not a file
    """
    value = form.get(field)
    if not isinstance(value, UploadFile):
        raise InvalidInputError(f"Unable to find form file '{field}'", error="missing_file")
    return value
