"""Centralized message codes and default messages for API responses."""

from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel


class MessageCode(str, Enum):
    """Centralized message codes for API responses."""

    # Success codes
    SUCCESS = "SUCCESS"
    TEST_GENERATED = "TEST_GENERATED"
    EVALUATION_COMPLETED = "EVALUATION_COMPLETED"
    EXPLANATION_GENERATED = "EXPLANATION_GENERATED"
    SESSION_CREATED = "SESSION_CREATED"
    API_KEY_VALID = "API_KEY_VALID"

    # Authentication & Authorization
    AUTH_REQUIRED = "AUTH_REQUIRED"
    INVALID_TOKEN = "INVALID_TOKEN"
    INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"

    # Provider credentials
    NO_API_KEY = "NO_API_KEY"
    API_KEY_NOT_FOUND = "API_KEY_NOT_FOUND"
    INVALID_API_KEY = "INVALID_API_KEY"

    # Quotas
    CREDIT_LIMIT_EXCEEDED = "CREDIT_LIMIT_EXCEEDED"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"

    # AI generation
    PARSE_ERROR = "PARSE_ERROR"
    AUDIO_GENERATION_FAILED = "AUDIO_GENERATION_FAILED"
    AI_SERVICE_ERROR = "AI_SERVICE_ERROR"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"

    # Generic errors
    SERVER_CONFIG_ERROR = "SERVER_CONFIG_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    BAD_REQUEST = "BAD_REQUEST"
    NOT_FOUND = "NOT_FOUND"


# Default messages for each message code
DEFAULT_MESSAGES = {
    # Success messages
    MessageCode.SUCCESS: "Operation completed successfully",
    MessageCode.TEST_GENERATED: "Practice test generated successfully",
    MessageCode.EVALUATION_COMPLETED: "Evaluation completed successfully",
    MessageCode.EXPLANATION_GENERATED: "Explanation generated successfully",
    MessageCode.SESSION_CREATED: "Speaking session created successfully",
    MessageCode.API_KEY_VALID: "API key is valid",
    # Authentication & Authorization
    MessageCode.AUTH_REQUIRED: "Authentication required",
    MessageCode.INVALID_TOKEN: "Invalid authentication token",
    MessageCode.INSUFFICIENT_PERMISSIONS: "Insufficient permissions",
    # Provider credentials
    MessageCode.NO_API_KEY: (
        "No API key available. Please add your Gemini API key in Settings, "
        "or contact support if using system keys."
    ),
    MessageCode.API_KEY_NOT_FOUND: (
        "Gemini API key not found. Please add your API key in Settings."
    ),
    MessageCode.INVALID_API_KEY: (
        "API access denied. Please verify your Gemini API key is valid "
        "and has the correct permissions."
    ),
    # Quotas
    MessageCode.CREDIT_LIMIT_EXCEEDED: (
        "Daily credit limit reached. Add your own Gemini API key in Settings."
    ),
    MessageCode.QUOTA_EXCEEDED: (
        "QUOTA_EXCEEDED: All API keys have reached their rate limit. "
        "Please wait a few minutes and try again."
    ),
    # AI generation
    MessageCode.PARSE_ERROR: "AI returned invalid content. Please try again.",
    MessageCode.AUDIO_GENERATION_FAILED: "Audio generation failed. Please try again.",
    MessageCode.AI_SERVICE_ERROR: (
        "The AI service is temporarily having trouble. Please try again."
    ),
    # Validation errors
    MessageCode.VALIDATION_ERROR: "Validation failed",
    MessageCode.PAYLOAD_TOO_LARGE: "Request payload too large",
    # Generic errors
    MessageCode.SERVER_CONFIG_ERROR: "Server configuration error",
    MessageCode.DATABASE_ERROR: "Database error occurred",
    MessageCode.INTERNAL_SERVER_ERROR: "Internal server error",
    MessageCode.BAD_REQUEST: "Bad request",
    MessageCode.NOT_FOUND: "Resource not found",
}

T = TypeVar("T")


class APIResponse(BaseModel, Generic[T]):
    """Base API response model with consistent structure and proper typing."""

    message_code: MessageCode
    message: str
    data: T | None = None

    @classmethod
    def success(
        cls,
        message_code: MessageCode = MessageCode.SUCCESS,
        message: str | None = None,
        data: T | None = None,
    ) -> "APIResponse[T]":
        """Create a success response."""
        return cls(
            message_code=message_code,
            message=message or DEFAULT_MESSAGES.get(message_code, "Success"),
            data=data,
        )


def get_default_message(message_code: MessageCode) -> str:
    """Get default message for a message code."""
    return DEFAULT_MESSAGES.get(message_code, "Operation completed")
