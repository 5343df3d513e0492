"""Daily credit ledger for pool-funded AI operations."""

from contextlib import AbstractAsyncContextManager, asynccontextmanager, nullcontext
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import AsyncIterator, Callable
from uuid import UUID, uuid4

from sqlalchemy import case, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.core.exceptions.base import CreditQuotaExceededError
from src.core.base import BaseService
from src.database.models import DailyCreditUsage
from src.database.upsert import insert_for
from src.modules.billing.constants import OperationKind, operation_cost
from src.utils.settings.credits import credit_settings


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


@dataclass(frozen=True)
class CreditCheckResult:
    ok: bool
    credits_used: int
    credits_remaining: int
    error: str | None = None
    # False for free operations and for requests let through while the ledger was down
    charged: bool = False
    usage_date: date | None = None


@dataclass(frozen=True)
class CreditStatus:
    credits_used: int
    credits_remaining: int
    limit: int


class CreditLedgerService(BaseService):
    """Per-user daily credit budget with atomic reserve and refund.

    A reservation is a single conditional upsert, so concurrent requests from
    the same user are serialised by the database and can never push
    ``credits_used`` past the daily limit.
    """

    def __init__(
        self,
        db: AsyncSession,
        daily_limit: int | None = None,
        today: Callable[[], date] = utc_today,
    ):
        super().__init__(db)
        self.daily_limit = daily_limit or credit_settings.DAILY_CREDIT_LIMIT
        self._today = today

    async def reserve(self, user_id: UUID, operation: OperationKind) -> CreditCheckResult:
        cost = operation_cost(operation)
        if cost == 0:
            return CreditCheckResult(
                ok=True, credits_used=0, credits_remaining=self.daily_limit
            )

        usage_date = self._today()
        try:
            credits_used = await self._try_reserve(user_id, usage_date, cost)
            if credits_used is None:
                current = await self._current_usage(user_id, usage_date)
                await self.db.commit()
                return self._rejection(user_id, operation, current)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            # Ledger outages must not lock users out of the app
            self.logger.error(
                "Credit reservation failed, allowing request",
                user_id=str(user_id),
                operation=operation.value,
                error=str(e),
            )
            return CreditCheckResult(
                ok=True, credits_used=0, credits_remaining=self.daily_limit
            )

        self.logger.info(
            "Credits reserved",
            user_id=str(user_id),
            operation=operation.value,
            cost=cost,
            credits_used=credits_used,
            daily_limit=self.daily_limit,
        )
        return CreditCheckResult(
            ok=True,
            credits_used=credits_used,
            credits_remaining=max(0, self.daily_limit - credits_used),
            charged=True,
            usage_date=usage_date,
        )

    async def refund(
        self,
        user_id: UUID,
        operation: OperationKind,
        usage_date: date | None = None,
    ) -> None:
        """Give back the cost of a reservation whose work failed, floored at zero."""
        cost = operation_cost(operation)
        if cost == 0:
            return

        usage_date = usage_date or self._today()
        try:
            await self.db.execute(
                update(DailyCreditUsage)
                .where(
                    DailyCreditUsage.user_id == user_id,
                    DailyCreditUsage.usage_date == usage_date,
                )
                .values(
                    credits_used=case(
                        (DailyCreditUsage.credits_used >= cost, DailyCreditUsage.credits_used - cost),
                        else_=0,
                    ),
                    updated_at=datetime.now(timezone.utc),
                )
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            self.logger.error(
                "Credit refund failed",
                user_id=str(user_id),
                operation=operation.value,
                error=str(e),
            )
            return

        self.logger.info(
            "Credits refunded", user_id=str(user_id), operation=operation.value, cost=cost
        )

    async def get_status(self, user_id: UUID) -> CreditStatus:
        credits_used = await self._current_usage(user_id, self._today())
        return CreditStatus(
            credits_used=credits_used,
            credits_remaining=max(0, self.daily_limit - credits_used),
            limit=self.daily_limit,
        )

    @asynccontextmanager
    async def hold(
        self, user_id: UUID, operation: OperationKind
    ) -> AsyncIterator[CreditCheckResult]:
        """Reserve credits for the body and refund them once if it raises."""
        reservation = await self.reserve(user_id, operation)
        if not reservation.ok:
            raise CreditQuotaExceededError(
                message=reservation.error,
                credits_used=reservation.credits_used,
                credits_remaining=reservation.credits_remaining,
                daily_limit=self.daily_limit,
            )

        try:
            yield reservation
        except Exception:
            if reservation.charged:
                await self.db.rollback()
                await self.refund(user_id, operation, reservation.usage_date)
            raise

    async def _try_reserve(self, user_id: UUID, usage_date: date, cost: int) -> int | None:
        """Credits used after the reservation, or None when it would exceed the limit."""
        if cost > self.daily_limit:
            return None

        insert = insert_for(self.dialect_name)
        stmt = insert(DailyCreditUsage).values(
            id=uuid4(),
            user_id=user_id,
            usage_date=usage_date,
            credits_used=cost,
            daily_limit=self.daily_limit,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[DailyCreditUsage.user_id, DailyCreditUsage.usage_date],
            set_={
                "credits_used": DailyCreditUsage.credits_used + cost,
                "daily_limit": self.daily_limit,
                "updated_at": datetime.now(timezone.utc),
            },
            where=DailyCreditUsage.credits_used + cost <= self.daily_limit,
        ).returning(DailyCreditUsage.credits_used)

        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def _current_usage(self, user_id: UUID, usage_date: date) -> int:
        result = await self.db.execute(
            select(DailyCreditUsage.credits_used).where(
                DailyCreditUsage.user_id == user_id,
                DailyCreditUsage.usage_date == usage_date,
            )
        )
        return result.scalar_one_or_none() or 0

    def _rejection(
        self, user_id: UUID, operation: OperationKind, credits_used: int
    ) -> CreditCheckResult:
        self.logger.info(
            "Daily credit limit reached",
            user_id=str(user_id),
            operation=operation.value,
            credits_used=credits_used,
            daily_limit=self.daily_limit,
        )
        return CreditCheckResult(
            ok=False,
            credits_used=credits_used,
            credits_remaining=max(0, self.daily_limit - credits_used),
            error=(
                f"Daily credit limit reached ({credits_used}/{self.daily_limit}). "
                "Add your own Gemini API key in Settings."
            ),
        )


def credit_hold(
    db: AsyncSession,
    user_id: UUID,
    operation: OperationKind,
    is_user_provided: bool,
) -> AbstractAsyncContextManager:
    """Ledger hold for pool-funded requests; users paying with their own key are not charged."""
    if is_user_provided:
        return nullcontext()
    return CreditLedgerService(db).hold(user_id, operation)
