"""Evaluation endpoint tests."""

import pytest
from httpx import AsyncClient

from src.api.core.messages import MessageCode
from src.modules.billing.credits.service import CreditLedgerService
from tests.factories import ApiKeyFactory
from tests.utils.assertions import assert_success_response, assert_validation_error
from tests.utils.gemini import text_response

EXPLAIN_BODY = {
    "questionText": "The author prefers tidal power.",
    "userAnswer": "TRUE",
    "correctAnswer": "NOT GIVEN",
    "isCorrect": False,
    "passageContext": "Tidal power is predictable.",
}


@pytest.mark.asyncio
async def test_explain_with_pool_key_charges_credits(
    authorized_client: AsyncClient, db_session, test_user_id, fake_gemini
):
    await ApiKeyFactory.create_async(db_session)
    fake_gemini.queue(text_response("  The passage never states a preference.  "))

    response = await authorized_client.post("/v1/evaluation/explain", json=EXPLAIN_BODY)

    assert_success_response(
        response,
        MessageCode.EXPLANATION_GENERATED,
        data_assertions={"explanation": "The passage never states a preference."},
    )
    status_after = await CreditLedgerService(db_session).get_status(test_user_id)
    assert status_after.credits_used == 2


@pytest.mark.asyncio
async def test_explain_with_header_key_is_free(
    authorized_client: AsyncClient, db_session, test_user_id, fake_gemini
):
    fake_gemini.queue(text_response("Because the passage says so."))

    response = await authorized_client.post(
        "/v1/evaluation/explain",
        json=EXPLAIN_BODY,
        headers={"x-gemini-api-key": "AIzaHeaderKey"},
    )

    assert_success_response(response, MessageCode.EXPLANATION_GENERATED)
    status_after = await CreditLedgerService(db_session).get_status(test_user_id)
    assert status_after.credits_used == 0


@pytest.mark.asyncio
async def test_writing_rejects_duplicate_tasks(authorized_client: AsyncClient):
    task = {"task_number": 2, "instruction": "Discuss both views.", "response_text": "Essay"}

    response = await authorized_client.post(
        "/v1/evaluation/writing", json={"tasks": [task, task]}
    )

    assert_validation_error(response, field="tasks")
