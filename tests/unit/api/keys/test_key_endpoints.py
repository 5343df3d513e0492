"""API key preflight endpoint tests."""

import pytest
from fastapi import status
from httpx import AsyncClient

from src.api.core.messages import MessageCode
from src.utils.logger import key_fingerprint
from tests.utils.assertions import (
    assert_error_response,
    assert_success_response,
    assert_validation_error,
)
from tests.utils.gemini import forbidden


@pytest.mark.asyncio
async def test_preflight_accepts_working_key(authorized_client: AsyncClient, fake_gemini):
    response = await authorized_client.post("/v1/keys/preflight", json={"apiKey": "AIzaFresh"})

    assert_success_response(
        response,
        MessageCode.API_KEY_VALID,
        data_assertions={"valid": True, "fingerprint": key_fingerprint("AIzaFresh")},
    )
    assert fake_gemini.calls[0].api_key == "AIzaFresh"
    assert "AIzaFresh" not in response.text


@pytest.mark.asyncio
async def test_preflight_rejects_forbidden_key(authorized_client: AsyncClient, fake_gemini):
    fake_gemini.list_models_error = forbidden()

    response = await authorized_client.post("/v1/keys/preflight", json={"apiKey": "AIzaRevoked"})

    assert_error_response(response, MessageCode.INVALID_API_KEY, status.HTTP_403_FORBIDDEN)


@pytest.mark.asyncio
async def test_preflight_requires_key(authorized_client: AsyncClient):
    response = await authorized_client.post("/v1/keys/preflight", json={})

    assert_validation_error(response, field="apiKey")
