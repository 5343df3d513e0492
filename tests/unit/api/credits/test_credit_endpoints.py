"""Credit status endpoint tests."""

import pytest
from httpx import AsyncClient

from src.api.core.messages import MessageCode
from tests.factories import DailyCreditUsageFactory
from tests.utils.assertions import assert_success_response


@pytest.mark.asyncio
async def test_fresh_user_has_full_budget(authorized_client: AsyncClient):
    response = await authorized_client.get("/v1/credits/status")

    data = assert_success_response(
        response,
        MessageCode.SUCCESS,
        data_assertions={"credits_used": 0, "credits_remaining": 100, "limit": 100},
    )
    assert data["costs"]["generate_reading"] == 20
    assert data["costs"]["evaluate_listening"] == 0


@pytest.mark.asyncio
async def test_status_reflects_todays_usage(
    authorized_client: AsyncClient, db_session, test_user_id
):
    await DailyCreditUsageFactory.create_async(
        db_session, user_id=test_user_id, credits_used=45
    )
    await DailyCreditUsageFactory.create_async(db_session, credits_used=90)

    response = await authorized_client.get("/v1/credits/status")

    assert_success_response(
        response, data_assertions={"credits_used": 45, "credits_remaining": 55}
    )
