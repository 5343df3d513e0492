"""Factory for DailyCreditUsage ledger rows."""

from datetime import datetime, timezone

import factory

from src.database.models import DailyCreditUsage
from src.modules.billing.credits.service import utc_today
from .base import AsyncSQLAlchemyModelFactory, UUIDFactory


class DailyCreditUsageFactory(AsyncSQLAlchemyModelFactory[DailyCreditUsage]):
    class Meta:
        model = DailyCreditUsage

    id = UUIDFactory()
    user_id = UUIDFactory()
    usage_date = factory.LazyFunction(utc_today)
    credits_used = 0
    daily_limit = 100
    updated_at = factory.LazyFunction(lambda: datetime.now(timezone.utc))
