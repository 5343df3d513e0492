"""Model fallback, key rotation and retry around text generation."""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable

from src.api.core.exceptions.base import (
    GenerationFailedError,
    InvalidApiKeyError,
    MalformedOutputError,
    PracticeAPIException,
    ProviderQuotaExceededError,
)
from src.modules.generation.infrastructure.gemini_client import (
    GeminiAPIError,
    GeminiClient,
    GeminiConnectionError,
)
from src.modules.generation.json_extraction import extract_json
from src.modules.keys.pool import ApiKeyPoolRepository
from src.modules.keys.provider import KeyResolution
from src.modules.keys.rotation import KeyRotation
from src.utils.logger import get_logger
from src.utils.settings.gemini import GeminiSettings, gemini_settings

logger = get_logger(__name__)

QUOTA_MESSAGE = (
    "QUOTA_EXCEEDED: All API keys have reached their rate limit. "
    "Please wait a few minutes and try again."
)
ACCESS_DENIED_MESSAGE = (
    "API access denied. Please verify your Gemini API key is valid "
    "and has the correct permissions."
)
BAD_REQUEST_MESSAGE = (
    "Invalid request to AI. The generation request was rejected. "
    "Please try again with different settings."
)
SAFETY_MESSAGE = "Content was filtered by safety settings. Please try a different topic."
EMPTY_MESSAGE = "AI returned empty response. Please try again."

Prompt = str | list[dict[str, Any]]
PayloadValidator = Callable[[Any], str | None]
Sleep = Callable[[float], Awaitable[None]]


class AttemptOutcome(str, Enum):
    SUCCESS = "success"
    RATE_LIMITED = "rate_limited"
    FORBIDDEN = "forbidden"
    MALFORMED = "malformed"
    SERVER_ERROR = "server_error"
    CONNECTION_ERROR = "connection_error"


@dataclass(frozen=True)
class GenerationAttempt:
    model: str
    key: str  # fingerprint, never the key itself
    outcome: AttemptOutcome
    detail: str = ""


@dataclass
class GenerationResult:
    text: str
    model: str
    tokens_used: int = 0
    data: Any = None
    attempts: list[GenerationAttempt] = field(default_factory=list)


def compute_backoff(attempt: int, base: float, cap: float) -> float:
    """Delay before retry number ``attempt`` (0-based): ``min(base * 2**attempt, cap)``."""
    return min(base * (2**attempt), cap)


def build_request_body(prompt: Prompt, generation_config: dict[str, Any]) -> dict[str, Any]:
    parts = [{"text": prompt}] if isinstance(prompt, str) else prompt
    return {"contents": [{"parts": parts}], "generationConfig": generation_config}


class _FailureLog:
    """Tracks the most relevant reason a generation ended without a result."""

    def __init__(self):
        self.quota_hit = False
        self.last_message = "AI generation failed. Please try again."
        self.last_was_malformed = False

    def note(self, message: str, malformed: bool = False) -> None:
        self.last_message = message
        self.last_was_malformed = malformed

    def to_error(self, attempts: list[GenerationAttempt]) -> PracticeAPIException:
        details = {"attempts": len(attempts), "last_error": self.last_message}
        if self.quota_hit:
            return ProviderQuotaExceededError(message=QUOTA_MESSAGE, details=details)
        if self.last_was_malformed:
            return MalformedOutputError(details=details)
        return GenerationFailedError(message=self.last_message, details=details)


class GenerationOrchestrator:
    """Produces text or JSON from a prompt across models and keys.

    Models are tried strictly in order. Within a model, rate limits rotate to
    the next pool key without spending a retry, permission errors deactivate
    the key, and transient failures back off and retry the same key.
    """

    def __init__(
        self,
        client: GeminiClient,
        key_pool: ApiKeyPoolRepository | None = None,
        settings: GeminiSettings | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.client = client
        self.key_pool = key_pool
        self.settings = settings or gemini_settings
        self._sleep = sleep

    async def generate_text(
        self,
        resolution: KeyResolution,
        prompt: Prompt,
        *,
        models: list[str] | None = None,
        max_retries: int | None = None,
        generation_config: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> GenerationResult:
        config = {
            "temperature": self.settings.GEMINI_TEMPERATURE,
            "maxOutputTokens": self.settings.GEMINI_MAX_OUTPUT_TOKENS,
            **(generation_config or {}),
        }
        return await self._run(
            resolution,
            build_request_body(prompt, config),
            models=models or self.settings.GEMINI_TEXT_MODELS,
            max_retries=self._retries(max_retries),
            timeout=timeout,
            expect_json=False,
            validate=None,
        )

    async def generate_json(
        self,
        resolution: KeyResolution,
        prompt: Prompt,
        *,
        validate: PayloadValidator | None = None,
        models: list[str] | None = None,
        max_retries: int | None = None,
        generation_config: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> GenerationResult:
        """Like ``generate_text`` but the result carries parsed JSON in ``data``.

        ``validate`` returns a problem description for payloads that parse but
        lack required fields; such output counts as a failure of that model.
        """
        config = {
            "temperature": self.settings.GEMINI_TEMPERATURE,
            "maxOutputTokens": self.settings.GEMINI_MAX_OUTPUT_TOKENS,
            "responseMimeType": "application/json",
            **(generation_config or {}),
        }
        return await self._run(
            resolution,
            build_request_body(prompt, config),
            models=models or self.settings.GEMINI_TEXT_MODELS,
            max_retries=self._retries(max_retries),
            timeout=timeout,
            expect_json=True,
            validate=validate,
        )

    def _retries(self, max_retries: int | None) -> int:
        return self.settings.GEMINI_MAX_RETRIES if max_retries is None else max_retries

    async def _run(
        self,
        resolution: KeyResolution,
        body: dict[str, Any],
        models: list[str],
        max_retries: int,
        timeout: float | None,
        expect_json: bool,
        validate: PayloadValidator | None,
    ) -> GenerationResult:
        rotation = KeyRotation(resolution, self.key_pool)
        failures = _FailureLog()
        attempts: list[GenerationAttempt] = []

        for model in models:
            if rotation.exhausted:
                logger.error("Every pool key was deactivated, giving up")
                break
            rotation.restart()

            result = await self._try_model(
                model, rotation, body, max_retries, timeout, expect_json, validate,
                failures, attempts,
            )
            if result is not None:
                return result

            logger.warning("Model exhausted, falling back", model=model, reason=failures.last_message)

        error = failures.to_error(attempts)
        logger.error(
            "Generation failed on every model",
            models=models,
            attempts=len(attempts),
            error_code=error.message_code.value,
        )
        raise error

    async def _try_model(
        self,
        model: str,
        rotation: KeyRotation,
        body: dict[str, Any],
        max_retries: int,
        timeout: float | None,
        expect_json: bool,
        validate: PayloadValidator | None,
        failures: _FailureLog,
        attempts: list[GenerationAttempt],
    ) -> GenerationResult | None:
        retry = 0

        while True:
            key = rotation.current

            def record(outcome: AttemptOutcome, detail: str = "") -> None:
                attempts.append(GenerationAttempt(model, key.fingerprint, outcome, detail))
                logger.info(
                    "Generation attempt",
                    model=model,
                    key=key.fingerprint,
                    outcome=outcome.value,
                    retry=retry,
                    detail=detail,
                )

            try:
                response = await self.client.generate_content(
                    model, key.value, body, timeout=timeout
                )
            except GeminiConnectionError as e:
                record(AttemptOutcome.CONNECTION_ERROR, str(e))
                failures.note(
                    f"Connection error: Unable to reach AI service. {e}".strip()
                )
                if retry < max_retries:
                    await self._backoff(retry)
                    retry += 1
                    continue
                return None
            except GeminiAPIError as e:
                if e.is_rate_limited:
                    record(AttemptOutcome.RATE_LIMITED, e.message)
                    failures.quota_hit = True
                    failures.note(QUOTA_MESSAGE)
                    if rotation.has_next():
                        await rotation.rotate()
                        continue
                    if retry < max_retries:
                        await self._backoff(retry)
                        retry += 1
                        continue
                    await rotation.record_failure()
                    return None

                if e.is_permission_denied:
                    record(AttemptOutcome.FORBIDDEN, e.message)
                    if not rotation.pool_mode:
                        raise InvalidApiKeyError(details={"provider_status": e.provider_status})
                    failures.note(ACCESS_DENIED_MESSAGE)
                    if await rotation.rotate(deactivate=True):
                        continue
                    return None

                if e.is_server_error:
                    record(AttemptOutcome.SERVER_ERROR, e.message)
                    failures.note(f"AI service error ({e.status}): {e.message[:100]}")
                    if retry < max_retries:
                        await self._backoff(retry)
                        retry += 1
                        continue
                    return None

                record(AttemptOutcome.MALFORMED, e.message)
                failures.note(
                    BAD_REQUEST_MESSAGE
                    if e.status == 400
                    else f"AI request failed ({e.status}): {e.message[:100]}"
                )
                return None

            if response.blocked_by_safety:
                record(AttemptOutcome.MALFORMED, "safety")
                failures.note(SAFETY_MESSAGE)
                return None

            text = response.text
            if not text.strip():
                record(AttemptOutcome.MALFORMED, "empty")
                failures.note(EMPTY_MESSAGE)
                return None

            await rotation.record_success()

            data = None
            if expect_json:
                extraction = extract_json(text)
                problem = extraction.error
                if problem is None and validate is not None:
                    problem = validate(extraction.value)
                if problem is not None:
                    record(AttemptOutcome.MALFORMED, problem)
                    failures.note(problem, malformed=True)
                    return None
                data = extraction.value

            record(AttemptOutcome.SUCCESS)
            return GenerationResult(
                text=text,
                model=model,
                tokens_used=response.tokens_used,
                data=data,
                attempts=list(attempts),
            )

    async def _backoff(self, retry: int) -> None:
        delay = compute_backoff(
            retry,
            self.settings.GEMINI_BACKOFF_BASE_SECONDS,
            self.settings.GEMINI_BACKOFF_MAX_SECONDS,
        )
        logger.info("Backing off before retry", delay_seconds=delay, retry=retry + 1)
        await self._sleep(delay)
