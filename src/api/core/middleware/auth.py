from uuid import UUID

import structlog
from fastapi import Request, status
from fastapi.responses import JSONResponse
from jose import JWTError, jwt

from src.api.core.constants import JWT_ALGORITHM, SKIP_AUTH_PATHS
from src.api.core.exceptions.base import PracticeAPIException
from src.api.core.messages import MessageCode
from src.core.context import AuthenticatedUserContext
from src.utils.path_helpers import path_matches
from src.utils.settings.auth import AuthSettings

logger = structlog.get_logger(__name__)


def decode_access_token(token: str) -> AuthenticatedUserContext:
    """Verify a Supabase access token and build the user context from its claims."""
    settings = AuthSettings()
    try:
        payload = jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
        )
    except JWTError as e:
        logger.warning("JWT decoding failed", error=str(e))
        raise PracticeAPIException(
            MessageCode.INVALID_TOKEN,
            status.HTTP_401_UNAUTHORIZED,
            details={"description": "Invalid or expired authentication token"},
        ) from e

    if payload.get("role") == "anon":
        raise PracticeAPIException(
            MessageCode.INSUFFICIENT_PERMISSIONS,
            status.HTTP_403_FORBIDDEN,
            details={"description": "Anonymous access not permitted"},
        )

    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError as e:
        raise PracticeAPIException(
            MessageCode.INVALID_TOKEN,
            status.HTTP_401_UNAUTHORIZED,
            details={"description": "Token subject is not a user id"},
        ) from e

    return AuthenticatedUserContext(
        user_id=user_id,
        email=payload.get("email"),
        role=payload.get("role") or "authenticated",
    )


def _bearer_token(authorization: str) -> str:
    if not authorization:
        raise PracticeAPIException(
            MessageCode.AUTH_REQUIRED,
            status.HTTP_401_UNAUTHORIZED,
            details={"description": "Provide an 'Authorization: Bearer <token>' header"},
        )
    auth_parts = authorization.split(" ")
    if len(auth_parts) != 2 or auth_parts[0].lower() != "bearer":
        raise PracticeAPIException(
            MessageCode.INVALID_TOKEN,
            status.HTTP_401_UNAUTHORIZED,
            details={"description": "Authorization header must be 'Bearer <token>'"},
        )
    return auth_parts[1]


async def auth_middleware(request: Request, call_next):
    """Verify the bearer JWT and put the caller on ``request.state.user``.

    Errors are rendered here because exception handlers do not see
    exceptions raised from middleware.
    """
    if request.method == "OPTIONS" or path_matches(request.url.path, SKIP_AUTH_PATHS):
        request.state.user = None
        return await call_next(request)

    try:
        token = _bearer_token(request.headers.get("Authorization", ""))
        request.state.user = decode_access_token(token)
    except PracticeAPIException as e:
        logger.debug(
            "Authentication rejected",
            path=request.url.path,
            message_code=e.message_code.value,
        )
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_response_dict(),
        )

    structlog.contextvars.bind_contextvars(user_id=str(request.state.user.user_id))
    return await call_next(request)
