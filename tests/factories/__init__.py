"""Test factories for IELTS practice API models."""

from .base import AsyncSQLAlchemyModelFactory
from .api_keys import ApiKeyFactory
from .credits import DailyCreditUsageFactory
from .user_secrets import UserSecretFactory

__all__ = [
    "AsyncSQLAlchemyModelFactory",
    "ApiKeyFactory",
    "DailyCreditUsageFactory",
    "UserSecretFactory",
]
