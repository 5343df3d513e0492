from src.api.core.exceptions.base import GenerationFailedError, InvalidApiKeyError
from src.modules.generation.infrastructure.gemini_client import (
    GeminiAPIError,
    GeminiClient,
    GeminiConnectionError,
)
from src.utils.logger import get_logger, key_fingerprint

logger = get_logger(__name__)

# Provider status for an unknown key, sent with HTTP 400
INVALID_KEY_PROVIDER_STATUS = "INVALID_ARGUMENT"


async def check_api_key(client: GeminiClient, api_key: str) -> str:
    """Cheap provider call proving ``api_key`` authenticates. Returns its fingerprint.

    A rate-limited key still counts as valid.
    """
    api_key = api_key.strip()
    fingerprint = key_fingerprint(api_key)
    try:
        await client.list_models(api_key)
    except GeminiAPIError as e:
        if e.is_rate_limited:
            logger.info("Preflight key rate limited", key=fingerprint)
            return fingerprint
        if e.status in (401, 403) or (
            e.status == 400 and e.provider_status == INVALID_KEY_PROVIDER_STATUS
        ):
            logger.info("Preflight key rejected", key=fingerprint, status=e.status)
            raise InvalidApiKeyError(details={"provider_status": e.provider_status}) from e
        raise GenerationFailedError(
            message=f"Could not verify the API key ({e.status}).",
            details={"provider_status": e.provider_status},
        ) from e
    except GeminiConnectionError as e:
        raise GenerationFailedError(
            message="Connection error: Unable to reach AI service."
        ) from e

    logger.info("Preflight key accepted", key=fingerprint)
    return fingerprint
