"""Daily provider token accounting per user."""

from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError

from src.core.base import BaseService
from src.database.models import GeminiDailyUsage
from src.database.upsert import insert_for


class GeminiUsageTracker(BaseService):
    async def record(self, user_id: UUID, tokens_used: int) -> None:
        """Add one request and its tokens to today's usage row."""
        now = datetime.now(timezone.utc)
        insert = insert_for(self.dialect_name)
        stmt = insert(GeminiDailyUsage).values(
            id=uuid4(),
            user_id=user_id,
            usage_date=now.date(),
            tokens_used=tokens_used,
            requests_count=1,
            last_updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[GeminiDailyUsage.user_id, GeminiDailyUsage.usage_date],
            set_={
                "tokens_used": GeminiDailyUsage.tokens_used + tokens_used,
                "requests_count": GeminiDailyUsage.requests_count + 1,
                "last_updated_at": now,
            },
        )

        try:
            await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            self.logger.error(
                "Failed to record token usage", user_id=str(user_id), error=str(e)
            )
