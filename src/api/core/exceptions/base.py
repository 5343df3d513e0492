"""Exception hierarchy and global exception handlers for the FastAPI application."""

import traceback

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..messages import MessageCode, get_default_message
from src.utils.logger import get_logger

logger = get_logger(__name__)


class PracticeAPIException(Exception):
    """Base exception for the practice API with unified message codes.

    ``extra`` holds top-level response fields (credit counters and the like)
    that clients read without digging into ``details``.
    """

    default_code: MessageCode = MessageCode.INTERNAL_SERVER_ERROR
    default_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message_code: MessageCode | None = None,
        status_code: int | None = None,
        message: str | None = None,
        details: dict | None = None,
        extra: dict | None = None,
        headers: dict | None = None,
    ):
        self.message_code = message_code or self.default_code
        self.status_code = status_code or self.default_status
        self.message: str = message or get_default_message(self.message_code)
        self.details = details or {}
        self.extra = extra or {}
        self.headers = headers or {}
        super().__init__(self.message)

    def to_response_dict(self) -> dict:
        """Convert exception to API response format."""
        return {
            "code": self.message_code.value,
            "error": self.message,
            "details": self.details,
            **self.extra,
        }


class NoKeyAvailableError(PracticeAPIException):
    default_code = MessageCode.NO_API_KEY
    default_status = status.HTTP_400_BAD_REQUEST


class SecretNotFoundError(PracticeAPIException):
    default_code = MessageCode.API_KEY_NOT_FOUND
    default_status = status.HTTP_400_BAD_REQUEST


class InvalidApiKeyError(PracticeAPIException):
    default_code = MessageCode.INVALID_API_KEY
    default_status = status.HTTP_403_FORBIDDEN


class QuotaExceededError(PracticeAPIException):
    """Either the user's daily credits or the provider's rate limits ran out."""


class CreditQuotaExceededError(QuotaExceededError):
    default_code = MessageCode.CREDIT_LIMIT_EXCEEDED
    default_status = status.HTTP_403_FORBIDDEN

    def __init__(
        self,
        message: str,
        credits_used: int,
        credits_remaining: int,
        daily_limit: int,
    ):
        super().__init__(
            message=message,
            extra={
                "errorType": MessageCode.CREDIT_LIMIT_EXCEEDED.value,
                "creditsUsed": credits_used,
                "creditsRemaining": credits_remaining,
                "dailyLimit": daily_limit,
            },
        )


class ProviderQuotaExceededError(QuotaExceededError):
    default_code = MessageCode.QUOTA_EXCEEDED
    default_status = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, message: str | None = None, details: dict | None = None):
        super().__init__(
            message=message,
            details=details,
            extra={"errorType": MessageCode.QUOTA_EXCEEDED.value},
        )


class MalformedOutputError(PracticeAPIException):
    default_code = MessageCode.PARSE_ERROR
    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR


class GenerationFailedError(PracticeAPIException):
    default_code = MessageCode.AI_SERVICE_ERROR
    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR


class AudioSynthesisError(PracticeAPIException):
    default_code = MessageCode.AUDIO_GENERATION_FAILED
    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR

    QUOTA_EXCEEDED = "quota_exceeded"
    PERMISSION_DENIED = "permission_denied"
    FAILED = "failed"

    def __init__(self, message: str, reason: str = FAILED):
        self.reason = reason
        super().__init__(message=message, details={"reason": reason})


class ServerConfigError(PracticeAPIException):
    default_code = MessageCode.SERVER_CONFIG_ERROR
    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR


class DecryptionError(ServerConfigError):
    """A stored secret could not be decrypted with the process-wide key."""


def _error_body(code: MessageCode, message: str, details: dict | None = None) -> dict:
    return {"code": code.value, "error": message, "details": details or {}}


def _serializable_errors(exc: RequestValidationError | ValidationError) -> list[dict]:
    serializable_errors = []
    for error in exc.errors():
        error_dict = dict(error)
        if "input" in error_dict and hasattr(error_dict["input"], "isoformat"):
            error_dict["input"] = error_dict["input"].isoformat()
        # ctx may carry the raw exception instance, which is not JSON serializable
        if "ctx" in error_dict:
            error_dict["ctx"] = {k: str(v) for k, v in error_dict["ctx"].items()}
        serializable_errors.append(error_dict)
    return serializable_errors


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app."""

    @app.exception_handler(PracticeAPIException)
    async def practice_exception_handler(
        request: Request, exc: PracticeAPIException
    ) -> JSONResponse:
        """Handle domain exceptions."""
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            "Request failed",
            path=request.url.path,
            method=request.method,
            message_code=exc.message_code.value,
            status_code=exc.status_code,
            details=exc.details,
        )

        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_response_dict(),
            headers=exc.headers,
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(
        request: Request, exc: HTTPException
    ) -> JSONResponse:
        """Handle FastAPI HTTP exceptions."""
        logger.warning(
            f"HTTP exception {exc.status_code}: {exc.detail}",
            path=request.url.path,
            method=request.method,
        )

        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(MessageCode.BAD_REQUEST, str(exc.detail)),
        )

    @app.exception_handler(StarletteHTTPException)
    async def starlette_http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        """Handle Starlette HTTP exceptions."""
        code = (
            MessageCode.NOT_FOUND
            if exc.status_code == status.HTTP_404_NOT_FOUND
            else MessageCode.BAD_REQUEST
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(code, str(exc.detail)),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle request validation errors."""
        logger.warning(
            "Validation error occurred",
            path=request.url.path,
            method=request.method,
        )

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=_error_body(
                MessageCode.VALIDATION_ERROR,
                get_default_message(MessageCode.VALIDATION_ERROR),
                {"validation_errors": _serializable_errors(exc)},
            ),
        )

    @app.exception_handler(ValidationError)
    async def pydantic_validation_exception_handler(
        request: Request, exc: ValidationError
    ) -> JSONResponse:
        """Handle Pydantic validation errors."""
        logger.warning(
            "Pydantic validation error occurred",
            path=request.url.path,
            method=request.method,
        )

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=_error_body(
                MessageCode.VALIDATION_ERROR,
                get_default_message(MessageCode.VALIDATION_ERROR),
                {"validation_errors": _serializable_errors(exc)},
            ),
        )

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_exception_handler(
        request: Request, exc: SQLAlchemyError
    ) -> JSONResponse:
        """Handle SQLAlchemy database errors."""
        logger.error(
            f"Database error: {str(exc)}",
            path=request.url.path,
            method=request.method,
            exception_type=type(exc).__name__,
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(
                MessageCode.DATABASE_ERROR,
                get_default_message(MessageCode.DATABASE_ERROR),
            ),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle all other unhandled exceptions."""
        if isinstance(exc, PracticeAPIException):
            return await practice_exception_handler(request, exc)

        logger.error(
            f"Unhandled exception: {str(exc)}",
            path=request.url.path,
            method=request.method,
            exception_type=type(exc).__name__,
            traceback=traceback.format_exc(),
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(
                MessageCode.INTERNAL_SERVER_ERROR,
                get_default_message(MessageCode.INTERNAL_SERVER_ERROR),
                {"error_type": type(exc).__name__},
            ),
        )
