"""Daily credit ledger tests."""

import asyncio
from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

from src.api.core.exceptions.base import CreditQuotaExceededError, GenerationFailedError
from src.api.core.messages import MessageCode
from src.modules.billing.constants import OPERATION_COSTS, OperationKind, operation_cost
from src.modules.billing.credits.service import CreditLedgerService, credit_hold
from tests.factories import DailyCreditUsageFactory


class TestCreditLedgerService:
    """Reservation, refund and status of the per-user daily budget."""

    @pytest.fixture
    def ledger(self, db_session):
        return CreditLedgerService(db_session, daily_limit=100)

    def test_operation_costs(self):
        assert operation_cost(OperationKind.GENERATE_READING) == 20
        assert operation_cost(OperationKind.GENERATE_LISTENING) == 20
        assert operation_cost(OperationKind.GENERATE_WRITING) == 5
        assert operation_cost(OperationKind.GENERATE_SPEAKING) == 5
        assert operation_cost(OperationKind.EVALUATE_SPEAKING) == 15
        assert operation_cost(OperationKind.EVALUATE_READING) == 0
        assert set(OPERATION_COSTS) == set(OperationKind)

    @pytest.mark.asyncio
    async def test_reserve_accumulates(self, ledger, test_user_id):
        first = await ledger.reserve(test_user_id, OperationKind.GENERATE_READING)
        second = await ledger.reserve(test_user_id, OperationKind.GENERATE_WRITING)

        assert first.ok and first.charged
        assert first.credits_used == 20
        assert second.credits_used == 25
        assert second.credits_remaining == 75

    @pytest.mark.asyncio
    async def test_reserve_rejects_past_limit(self, ledger, db_session, test_user_id):
        await DailyCreditUsageFactory.create_async(
            db_session, user_id=test_user_id, credits_used=90
        )

        result = await ledger.reserve(test_user_id, OperationKind.GENERATE_LISTENING)

        assert not result.ok
        assert result.credits_used == 90
        assert result.credits_remaining == 10
        assert "90/100" in result.error
        assert (await ledger.get_status(test_user_id)).credits_used == 90

    @pytest.mark.asyncio
    async def test_reserve_exactly_to_limit(self, ledger, db_session, test_user_id):
        await DailyCreditUsageFactory.create_async(
            db_session, user_id=test_user_id, credits_used=80
        )

        result = await ledger.reserve(test_user_id, OperationKind.GENERATE_READING)

        assert result.ok
        assert result.credits_remaining == 0

    @pytest.mark.asyncio
    async def test_free_operations_never_touch_the_ledger(self, ledger, test_user_id):
        result = await ledger.reserve(test_user_id, OperationKind.EVALUATE_READING)

        assert result.ok
        assert not result.charged
        assert (await ledger.get_status(test_user_id)).credits_used == 0

    @pytest.mark.asyncio
    async def test_refund_floors_at_zero(self, ledger, db_session, test_user_id):
        await DailyCreditUsageFactory.create_async(
            db_session, user_id=test_user_id, credits_used=5
        )

        await ledger.refund(test_user_id, OperationKind.GENERATE_READING)

        assert (await ledger.get_status(test_user_id)).credits_used == 0

    @pytest.mark.asyncio
    async def test_days_are_independent(self, db_session, test_user_id):
        yesterday = CreditLedgerService(
            db_session, daily_limit=100, today=lambda: date(2026, 3, 1)
        )
        today = CreditLedgerService(
            db_session, daily_limit=100, today=lambda: date(2026, 3, 2)
        )
        for _ in range(5):
            assert (await yesterday.reserve(test_user_id, OperationKind.GENERATE_READING)).ok

        assert not (await yesterday.reserve(test_user_id, OperationKind.GENERATE_READING)).ok
        assert (await today.reserve(test_user_id, OperationKind.GENERATE_READING)).ok

    @pytest.mark.asyncio
    async def test_status_for_new_user(self, ledger, test_user_id):
        status = await ledger.get_status(test_user_id)

        assert (status.credits_used, status.credits_remaining, status.limit) == (0, 100, 100)


class TestConcurrentReservations:
    @pytest.mark.asyncio
    async def test_parallel_reserves_never_overspend(self, session_factory, test_user_id):
        async def reserve_in_own_session():
            async with session_factory() as session:
                ledger = CreditLedgerService(session, daily_limit=100)
                return await ledger.reserve(test_user_id, OperationKind.GENERATE_READING)

        results = await asyncio.gather(*(reserve_in_own_session() for _ in range(6)))

        assert sum(r.ok for r in results) == 5
        async with session_factory() as session:
            ledger = CreditLedgerService(session, daily_limit=100)
            assert (await ledger.get_status(test_user_id)).credits_used == 100

            await ledger.refund(test_user_id, OperationKind.GENERATE_READING)
            assert (await ledger.reserve(test_user_id, OperationKind.GENERATE_READING)).ok
            assert not (await ledger.reserve(test_user_id, OperationKind.GENERATE_READING)).ok


class TestCreditHold:
    @pytest.mark.asyncio
    async def test_failure_inside_hold_refunds_once(self, db_session, test_user_id):
        ledger = CreditLedgerService(db_session, daily_limit=100)

        with pytest.raises(GenerationFailedError):
            async with ledger.hold(test_user_id, OperationKind.GENERATE_LISTENING):
                assert (await ledger.get_status(test_user_id)).credits_used == 20
                raise GenerationFailedError()

        assert (await ledger.get_status(test_user_id)).credits_used == 0

    @pytest.mark.asyncio
    async def test_success_keeps_the_charge(self, db_session, test_user_id):
        ledger = CreditLedgerService(db_session, daily_limit=100)

        async with ledger.hold(test_user_id, OperationKind.EVALUATE_SPEAKING) as reservation:
            assert reservation.charged

        assert (await ledger.get_status(test_user_id)).credits_used == 15

    @pytest.mark.asyncio
    async def test_ledger_outage_lets_request_through_uncharged(
        self, db_session, test_user_id, monkeypatch
    ):
        ledger = CreditLedgerService(db_session, daily_limit=100)
        refunds = []

        async def broken_execute(*args, **kwargs):
            raise OperationalError("INSERT INTO daily_credit_usage", {}, Exception("db down"))

        async def recording_refund(*args, **kwargs):
            refunds.append(args)

        monkeypatch.setattr(db_session, "execute", broken_execute)
        monkeypatch.setattr(ledger, "refund", recording_refund)

        reservation = await ledger.reserve(test_user_id, OperationKind.GENERATE_READING)
        assert reservation.ok
        assert not reservation.charged

        with pytest.raises(GenerationFailedError):
            async with ledger.hold(test_user_id, OperationKind.GENERATE_READING) as held:
                assert held.ok and not held.charged
                raise GenerationFailedError()

        assert refunds == []
        monkeypatch.undo()
        assert (await ledger.get_status(test_user_id)).credits_used == 0

    @pytest.mark.asyncio
    async def test_exhausted_budget_raises_before_work(self, db_session, test_user_id):
        await DailyCreditUsageFactory.create_async(
            db_session, user_id=test_user_id, credits_used=99
        )
        ledger = CreditLedgerService(db_session, daily_limit=100)
        ran = False

        with pytest.raises(CreditQuotaExceededError) as exc_info:
            async with ledger.hold(test_user_id, OperationKind.EXPLAIN_ANSWER):
                ran = True

        assert not ran
        body = exc_info.value.to_response_dict()
        assert body["code"] == MessageCode.CREDIT_LIMIT_EXCEEDED.value
        assert body["errorType"] == "CREDIT_LIMIT_EXCEEDED"
        assert (body["creditsUsed"], body["creditsRemaining"], body["dailyLimit"]) == (99, 1, 100)
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_user_keys_are_not_charged(self, db_session, test_user_id):
        async with credit_hold(
            db_session, test_user_id, OperationKind.GENERATE_READING, is_user_provided=True
        ):
            pass

        ledger = CreditLedgerService(db_session)
        assert (await ledger.get_status(test_user_id)).credits_used == 0
