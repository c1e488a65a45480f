"""
Tubely Authentication Module

Bearer token handling for the Tubely API. Tokens are HS256 JWTs signed with
the shared ``secret_key`` and carrying:

- sub: UUID of the user the token was issued to
- iss: Issuer, must equal ``settings.jwt_issuer``
- iat / exp: Issue and expiry timestamps

Usage:
    ```python
    from fastapi import Depends
    from tubely.core.auth import get_current_user_id

    @router.get("/videos")
    async def list_videos(user_id: UUID = Depends(get_current_user_id)):
        ...
    ```
"""

import logging

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from tubely.config import Settings, get_settings
from tubely.core.exceptions import UnauthorizedError


# Configure module logger
logger = logging.getLogger(__name__)


# =============================================================================
# Security Scheme
# =============================================================================

# auto_error is off so a missing header surfaces as a 401 from the taxonomy
# instead of FastAPI's default 403.
security = HTTPBearer(
    scheme_name="Bearer",
    description="JWT Bearer token authentication.",
    auto_error=False,
)


# =============================================================================
# Token Creation and Validation
# =============================================================================


def create_access_token(
    user_id: UUID,
    settings: Settings | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create an HS256 access token for the given user.

    Args:
        user_id: The user's unique identifier.
        settings: Optional Settings instance. If not provided, uses get_settings().
        expires_delta: Token lifetime. Defaults to ``access_token_expire_minutes``.

    Returns:
        str: The encoded JWT access token.
    """
    if settings is None:
        settings = get_settings()

    now = datetime.now(UTC)
    expire = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))

    payload: dict[str, Any] = {
        "sub": str(user_id),
        "iss": settings.jwt_issuer,
        "iat": now,
        "exp": expire,
    }

    token = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    logger.info("Created access token for user: %s (expires: %s)", user_id, expire.isoformat())
    return token


def validate_access_token(token: str, settings: Settings) -> UUID:
    """
    Validate an access token and return the user it was issued to.

    Args:
        token: The JWT token string to validate.
        settings: Settings instance containing the secret, algorithm and issuer.

    Returns:
        UUID: The user identifier from the ``sub`` claim.

    Raises:
        JWTError: If the signature, expiry or issuer check fails, or the
            subject is missing or not a UUID.
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
        )
    except jwt.ExpiredSignatureError:
        logger.warning("Access token has expired")
        raise
    except JWTError as e:
        logger.warning("Access token validation failed: %s", str(e))
        raise

    subject = payload.get("sub")
    if not subject:
        raise JWTError("Token has no subject")
    try:
        return UUID(str(subject))
    except ValueError as e:
        raise JWTError(f"Token subject is not a valid user id: {subject}") from e


# =============================================================================
# FastAPI Dependencies
# =============================================================================


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    settings: Settings = Depends(get_settings),
) -> UUID:
    """
    Resolve the bearer token on the request to a user id.

    Args:
        credentials: HTTP Authorization credentials extracted by HTTPBearer.
        settings: Application settings (injected via FastAPI dependency).

    Returns:
        UUID: The authenticated user's id.

    Raises:
        UnauthorizedError: If the header is missing or the token is invalid.
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Couldn't find JWT", error="missing_token")

    try:
        return validate_access_token(credentials.credentials, settings)
    except JWTError as e:
        raise UnauthorizedError("Couldn't validate JWT", error="invalid_token") from e
