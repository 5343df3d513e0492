"""Practice generation endpoint tests."""

import pytest
from fastapi import status
from httpx import AsyncClient

from src.api.core.messages import MessageCode
from src.modules.billing.credits.service import CreditLedgerService
from tests.factories import ApiKeyFactory, DailyCreditUsageFactory
from tests.utils.assertions import (
    assert_error_response,
    assert_success_response,
    assert_validation_error,
)
from tests.utils.gemini import json_response, rate_limited

READING_PAYLOAD = {
    "passage": {"title": "Tidal Energy", "content": "A. Tidal power is predictable..."},
    "questions": [
        {
            "question_number": 1,
            "question_text": "Tidal power is predictable.",
            "correct_answer": "TRUE",
        }
    ],
}


@pytest.mark.asyncio
async def test_generate_with_header_key(authorized_client: AsyncClient, fake_gemini):
    fake_gemini.queue(json_response(READING_PAYLOAD))

    response = await authorized_client.post(
        "/v1/practice/generate",
        json={"module": "reading", "questionType": "TRUE_FALSE_NOT_GIVEN", "topic": "Energy"},
        headers={"x-gemini-api-key": "AIzaHeaderKey"},
    )

    data = assert_success_response(response, MessageCode.TEST_GENERATED)
    assert data["testId"]
    assert data["topic"] == "Energy"
    group = data["questionGroups"][0]
    assert group["question_type"] == "TRUE_FALSE_NOT_GIVEN"
    assert group["questions"][0]["correct_answer"] == "TRUE"
    assert fake_gemini.calls[0].api_key == "AIzaHeaderKey"


@pytest.mark.asyncio
async def test_credit_limit_blocks_before_any_provider_call(
    authorized_client: AsyncClient, db_session, test_user_id, fake_gemini
):
    await ApiKeyFactory.create_async(db_session)
    await DailyCreditUsageFactory.create_async(
        db_session, user_id=test_user_id, credits_used=90
    )

    response = await authorized_client.post("/v1/practice/generate", json={"module": "listening"})

    body = assert_error_response(response, MessageCode.CREDIT_LIMIT_EXCEEDED, status.HTTP_403_FORBIDDEN)
    assert body["errorType"] == "CREDIT_LIMIT_EXCEEDED"
    assert (body["creditsUsed"], body["creditsRemaining"], body["dailyLimit"]) == (90, 10, 100)
    assert fake_gemini.calls == []


@pytest.mark.asyncio
async def test_exhausted_pool_returns_429_and_refunds(
    authorized_client: AsyncClient, db_session, test_user_id, fake_gemini
):
    await ApiKeyFactory.create_async(db_session)
    fake_gemini.handler = lambda model, key, body: rate_limited()

    response = await authorized_client.post("/v1/practice/generate", json={"module": "writing"})

    body = assert_error_response(response, MessageCode.QUOTA_EXCEEDED, status.HTTP_429_TOO_MANY_REQUESTS)
    assert body["errorType"] == "QUOTA_EXCEEDED"
    status_after = await CreditLedgerService(db_session).get_status(test_user_id)
    assert status_after.credits_used == 0


@pytest.mark.asyncio
async def test_no_key_available(authorized_client: AsyncClient):
    response = await authorized_client.post("/v1/practice/generate", json={"module": "speaking"})

    assert_error_response(response, MessageCode.NO_API_KEY, status.HTTP_400_BAD_REQUEST)


@pytest.mark.asyncio
async def test_unknown_module_is_validation_error(authorized_client: AsyncClient):
    response = await authorized_client.post("/v1/practice/generate", json={"module": "grammar"})

    assert_validation_error(response, field="module")
