"""Database models for the IELTS practice API."""

from .api_keys import DEACTIVATED_ERROR_COUNT, ApiKey, KeyProvider
from .base import Base
from .credits import DailyCreditUsage
from .test_presets import TestPreset
from .usage import GeminiDailyUsage
from .user_secrets import GEMINI_SECRET_NAME, UserSecret

# Export all models and enums
__all__ = [
    # Base
    "Base",
    # Enums and constants
    "KeyProvider",
    "DEACTIVATED_ERROR_COUNT",
    "GEMINI_SECRET_NAME",
    # Models
    "ApiKey",
    "DailyCreditUsage",
    "GeminiDailyUsage",
    "TestPreset",
    "UserSecret",
]
