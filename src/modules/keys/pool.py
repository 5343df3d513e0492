"""Server-managed provider key pool."""

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from src.core.base import BaseService
from src.database.models import DEACTIVATED_ERROR_COUNT, ApiKey, KeyProvider


class ApiKeyPoolRepository(BaseService):
    """Reads and updates the shared key pool.

    Counter updates are plain UPDATE statements without row locks. Two
    requests racing on the same key can leave the ordering slightly stale,
    which only affects which key is tried first.
    """

    async def get_active_keys(
        self, provider: KeyProvider = KeyProvider.GEMINI
    ) -> list[ApiKey]:
        """Active keys for ``provider``, healthiest (fewest errors) first."""
        stmt = (
            select(ApiKey)
            .where(ApiKey.provider == provider.value, ApiKey.is_active.is_(True))
            .order_by(ApiKey.error_count.asc(), ApiKey.created_at.asc())
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def increment_error_count(self, key_id: UUID, deactivate: bool = False) -> None:
        """Count a failure against a key, or switch it off for good."""
        if deactivate:
            values = {"is_active": False, "error_count": DEACTIVATED_ERROR_COUNT}
        else:
            values = {"error_count": ApiKey.error_count + 1}

        await self._apply(key_id, values, change="deactivated" if deactivate else "error_counted")

    async def reset_error_count(self, key_id: UUID) -> None:
        await self._apply(key_id, {"error_count": 0}, change="error_count_reset")

    async def _apply(self, key_id: UUID, values: dict, change: str) -> None:
        # Pool bookkeeping never fails the request it is observed in
        try:
            await self.db.execute(
                update(ApiKey).where(ApiKey.id == key_id).values(**values)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            self.logger.error(
                "Failed to update pool key", key_id=str(key_id), change=change, error=str(e)
            )
            return

        self.logger.info("Pool key updated", key_id=str(key_id), change=change)
