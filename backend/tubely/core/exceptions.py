"""
Tubely API error taxonomy.

Every failure a request can hit is raised as one of four classes, each
bound to an HTTP status:

- InvalidInputError (400): bad identifier, unparseable form, unsupported media type
- UnauthorizedError (401): missing/invalid token or a caller who does not own the video
- NotFoundError (404): unknown video identifier
- InternalServerError (500): I/O, subprocess, storage or metadata-store failure

Raise them ``from`` the underlying exception. The handler registered by
``register_exception_handlers`` renders a JSON body and logs the chained
cause, so callers never need to log before raising.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse


logger = logging.getLogger(__name__)


class TubelyAPIError(Exception):
    """Base class for errors that map directly onto an HTTP response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "internal_error"

    def __init__(self, message: str, *, error: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if error is not None:
            self.error = error

    @property
    def headers(self) -> dict[str, str] | None:
        return None

    def to_dict(self) -> dict[str, str | int]:
        return {"error": self.error, "message": self.message, "status_code": self.status_code}


class InvalidInputError(TubelyAPIError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "invalid_input"


class UnauthorizedError(TubelyAPIError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error = "unauthorized"

    @property
    def headers(self) -> dict[str, str] | None:
        return {"WWW-Authenticate": "Bearer"}


class NotFoundError(TubelyAPIError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "not_found"


class InternalServerError(TubelyAPIError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "internal_error"


async def tubely_api_error_handler(request: Request, exc: TubelyAPIError) -> JSONResponse:
    """
    Render a TubelyAPIError as JSON and log it with its underlying cause.

    Client errors are logged at warning level, server errors at error level
    with the chained exception's traceback attached.
    """
    cause = exc.__cause__
    log_extra = {
        "path": request.url.path,
        "method": request.method,
        "status_code": exc.status_code,
        "error_code": exc.error,
        "cause": repr(cause) if cause is not None else None,
    }

    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        exc_info = (type(cause), cause, cause.__traceback__) if cause is not None else None
        logger.error(
            "%s %s failed: %s", request.method, request.url.path, exc.message,
            extra=log_extra,
            exc_info=exc_info,
        )
    else:
        logger.warning(
            "%s %s rejected: %s", request.method, request.url.path, exc.message,
            extra=log_extra,
        )

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=exc.headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the taxonomy handler to ``app``."""
    app.add_exception_handler(TubelyAPIError, tubely_api_error_handler)  # type: ignore[arg-type]
