"""HTTP client for the Gemini generateContent API."""

import asyncio
import base64
import binascii
import json
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator

import aiohttp
from fastapi import Request

from src.utils.logger import get_logger
from src.utils.settings.gemini import gemini_settings

logger = get_logger(__name__)

RATE_LIMIT_STATUSES = {"RESOURCE_EXHAUSTED"}
PERMISSION_STATUSES = {"PERMISSION_DENIED", "UNAUTHENTICATED"}


class GeminiError(Exception):
    """Any failure talking to the provider."""


class GeminiConnectionError(GeminiError):
    """Network failure or timeout before a response arrived."""


class GeminiAPIError(GeminiError):
    """The provider answered with an error status."""

    def __init__(self, status: int, provider_status: str = "", message: str = ""):
        self.status = status
        self.provider_status = provider_status
        self.message = message
        super().__init__(f"{status} {provider_status}: {message}".strip())

    @property
    def is_rate_limited(self) -> bool:
        return self.status == 429 or self.provider_status in RATE_LIMIT_STATUSES

    @property
    def is_permission_denied(self) -> bool:
        return self.status in (401, 403) or self.provider_status in PERMISSION_STATUSES

    @property
    def is_server_error(self) -> bool:
        return self.status >= 500


@dataclass(frozen=True)
class GeminiResponse:
    data: dict[str, Any]

    @property
    def candidate(self) -> dict[str, Any] | None:
        candidates = self.data.get("candidates") or []
        return candidates[0] if candidates else None

    @property
    def parts(self) -> list[dict[str, Any]]:
        if not self.candidate:
            return []
        return (self.candidate.get("content") or {}).get("parts") or []

    @property
    def text(self) -> str:
        return "".join(part.get("text", "") for part in self.parts)

    @property
    def finish_reason(self) -> str | None:
        return self.candidate.get("finishReason") if self.candidate else None

    @property
    def blocked_by_safety(self) -> bool:
        block_reason = (self.data.get("promptFeedback") or {}).get("blockReason")
        return self.finish_reason == "SAFETY" or bool(block_reason)

    @property
    def tokens_used(self) -> int:
        usage = self.data.get("usageMetadata") or {}
        return int(usage.get("promptTokenCount", 0)) + int(
            usage.get("candidatesTokenCount", 0)
        )

    @property
    def audio(self) -> bytes | None:
        """Decoded inline audio of the first part, if any."""
        for part in self.parts:
            inline = part.get("inlineData") or part.get("inline_data")
            if inline and inline.get("data"):
                try:
                    return base64.b64decode(inline["data"])
                except (binascii.Error, ValueError):
                    return None
        return None


class GeminiClient:
    """Thin async wrapper over the Gemini REST API.

    Owns no retry policy; callers decide what to do with each error.
    """

    def __init__(
        self,
        base_url: str | None = None,
        session: aiohttp.ClientSession | None = None,
        default_timeout: float | None = None,
    ):
        self.base_url = (base_url or gemini_settings.GEMINI_API_BASE_URL).rstrip("/")
        self.default_timeout = (
            default_timeout or gemini_settings.GEMINI_REQUEST_TIMEOUT_SECONDS
        )
        self._session = session

    async def generate_content(
        self,
        model: str,
        api_key: str,
        body: dict[str, Any],
        timeout: float | None = None,
    ) -> GeminiResponse:
        url = f"{self.base_url}/models/{model}:generateContent"
        data = await self._request(
            "POST", url, api_key, json_body=body, timeout=timeout
        )
        return GeminiResponse(data)

    async def list_models(self, api_key: str, timeout: float = 15.0) -> list[str]:
        """Names of models visible to ``api_key``; used as a cheap key check."""
        data = await self._request(
            "GET",
            f"{self.base_url}/models",
            api_key,
            params={"pageSize": "1"},
            timeout=timeout,
        )
        return [m.get("name", "") for m in data.get("models", [])]

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()

    @asynccontextmanager
    async def _session_scope(self) -> AsyncIterator[aiohttp.ClientSession]:
        if self._session is not None:
            yield self._session
            return
        async with aiohttp.ClientSession() as session:
            yield session

    async def _request(
        self,
        method: str,
        url: str,
        api_key: str,
        json_body: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        query = {"key": api_key, **(params or {})}
        client_timeout = aiohttp.ClientTimeout(total=timeout or self.default_timeout)

        async with self._session_scope() as session:
            try:
                async with session.request(
                    method, url, params=query, json=json_body, timeout=client_timeout
                ) as response:
                    raw = await response.text()
                    status = response.status
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.warning(
                    "Gemini request failed to complete",
                    url=url,
                    error=str(e) or type(e).__name__,
                )
                raise GeminiConnectionError(str(e) or type(e).__name__) from e

        payload = _parse_json(raw)
        if status >= 400:
            error = (payload or {}).get("error") or {}
            raise GeminiAPIError(
                status=status,
                provider_status=str(error.get("status", "")),
                message=str(error.get("message") or raw[:200]),
            )
        if payload is None:
            raise GeminiAPIError(
                status=status,
                provider_status="INVALID_RESPONSE",
                message="Provider returned a non-JSON body",
            )
        return payload


def _parse_json(raw: str) -> dict[str, Any] | None:
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError:
        return None
    return payload if isinstance(payload, dict) else None


async def get_gemini_client(request: Request) -> GeminiClient:
    """Get the shared Gemini client for dependency injection."""
    return request.app.state.gemini_client
