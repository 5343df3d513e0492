"""Resolution of the provider credentials a request may use."""

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from pydantic import SecretStr

from src.api.core.exceptions.base import NoKeyAvailableError, SecretNotFoundError
from src.modules.keys.pool import ApiKeyPoolRepository
from src.modules.keys.secrets import UserSecretRepository
from src.utils.logger import get_logger, key_fingerprint

logger = get_logger(__name__)


class KeySource(str, Enum):
    HEADER = "header"
    BODY = "body"
    USER_SECRET = "user_secret"
    POOL = "pool"


@dataclass(frozen=True)
class ResolvedKey:
    value: str
    record_id: UUID | None = None

    @property
    def fingerprint(self) -> str:
        return key_fingerprint(self.value)


@dataclass(frozen=True)
class KeyResolution:
    """Credentials for one request.

    User-provided resolutions hold exactly one key and must never fall back
    to the pool. Pool resolutions hold the pool in preference order.
    """

    source: KeySource
    keys: tuple[ResolvedKey, ...]

    @property
    def is_user_provided(self) -> bool:
        return self.source != KeySource.POOL

    @property
    def primary(self) -> ResolvedKey:
        return self.keys[0]


def _clean(key: str | None) -> str | None:
    if key is None:
        return None
    return key.strip() or None


class KeyProvider:
    """Picks credentials in priority order: header, body, stored secret, pool."""

    def __init__(
        self,
        secrets: UserSecretRepository,
        pool: ApiKeyPoolRepository,
        encryption_key: SecretStr | None,
    ):
        self.secrets = secrets
        self.pool = pool
        self.encryption_key = encryption_key

    async def resolve(
        self,
        user_id: UUID,
        header_key: str | None = None,
        body_key: str | None = None,
    ) -> KeyResolution:
        try:
            return await self.resolve_user_key(user_id, header_key, body_key)
        except SecretNotFoundError:
            pass

        records = await self.pool.get_active_keys()
        if not records:
            logger.warning("No API key resolvable", user_id=str(user_id))
            raise NoKeyAvailableError()

        logger.info("Using pool keys", user_id=str(user_id), pool_size=len(records))
        return KeyResolution(
            source=KeySource.POOL,
            keys=tuple(ResolvedKey(value=r.key_value, record_id=r.id) for r in records),
        )

    async def resolve_user_key(
        self,
        user_id: UUID,
        header_key: str | None = None,
        body_key: str | None = None,
    ) -> KeyResolution:
        """Resolve only the user's own key. Raises ``SecretNotFoundError`` if none."""
        for source, candidate in (
            (KeySource.HEADER, _clean(header_key)),
            (KeySource.BODY, _clean(body_key)),
        ):
            if candidate:
                logger.info("Using request key", user_id=str(user_id), source=source.value)
                return KeyResolution(source=source, keys=(ResolvedKey(candidate),))

        value = await self.secrets.get_decrypted_secret(user_id, self.encryption_key)
        logger.info("Using stored user key", user_id=str(user_id))
        return KeyResolution(source=KeySource.USER_SECRET, keys=(ResolvedKey(value),))
