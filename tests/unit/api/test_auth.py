"""Authentication middleware tests."""

from uuid import uuid4

import pytest
from httpx import AsyncClient

from src.api.core.messages import MessageCode
from tests.utils.assertions import assert_authentication_error, assert_error_response


@pytest.mark.asyncio
async def test_missing_token_is_rejected(public_client: AsyncClient):
    response = await public_client.get("/v1/credits/status")

    assert_authentication_error(response)


@pytest.mark.asyncio
async def test_malformed_header_is_rejected(public_client: AsyncClient):
    response = await public_client.get(
        "/v1/credits/status", headers={"Authorization": "Token abc"}
    )

    assert_authentication_error(response, MessageCode.INVALID_TOKEN)


@pytest.mark.asyncio
async def test_token_signed_with_other_secret(public_client: AsyncClient):
    from jose import jwt

    token = jwt.encode(
        {"sub": str(uuid4()), "aud": "authenticated", "role": "authenticated"},
        "not-the-server-secret",
        algorithm="HS256",
    )

    response = await public_client.get(
        "/v1/credits/status", headers={"Authorization": f"Bearer {token}"}
    )

    assert_authentication_error(response, MessageCode.INVALID_TOKEN)


@pytest.mark.asyncio
async def test_anonymous_users_are_forbidden(public_client: AsyncClient, jwt_token_factory):
    token = jwt_token_factory(str(uuid4()), role="anon")

    response = await public_client.get(
        "/v1/credits/status", headers={"Authorization": f"Bearer {token}"}
    )

    assert_error_response(response, MessageCode.INSUFFICIENT_PERMISSIONS, 403)


@pytest.mark.asyncio
async def test_non_uuid_subject_is_rejected(public_client: AsyncClient, jwt_token_factory):
    token = jwt_token_factory("service-account")

    response = await public_client.get(
        "/v1/credits/status", headers={"Authorization": f"Bearer {token}"}
    )

    assert_authentication_error(response, MessageCode.INVALID_TOKEN)


@pytest.mark.asyncio
async def test_valid_token_passes(authorized_client: AsyncClient):
    response = await authorized_client.get("/v1/credits/status")

    assert response.status_code == 200
    assert response.headers["X-Request-ID"]
