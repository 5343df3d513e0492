"""Key cursor shared by text generation and speech synthesis."""

from src.modules.keys.pool import ApiKeyPoolRepository
from src.modules.keys.provider import KeyResolution, ResolvedKey
from src.utils.logger import get_logger

logger = get_logger(__name__)


class KeyRotation:
    """Walks the keys of one resolution and reports outcomes to the pool.

    Keys deactivated during the call are skipped for the rest of it.
    """

    def __init__(self, resolution: KeyResolution, pool: ApiKeyPoolRepository | None):
        self.resolution = resolution
        self.pool = pool
        self._deactivated: set[int] = set()
        self._index = 0

    @property
    def current(self) -> ResolvedKey:
        return self.resolution.keys[self._index]

    @property
    def exhausted(self) -> bool:
        return len(self._deactivated) >= len(self.resolution.keys)

    @property
    def pool_mode(self) -> bool:
        return not self.resolution.is_user_provided

    def restart(self) -> None:
        """Point back at the healthiest key that is still usable."""
        self._index = self._next_usable(0) if not self.exhausted else 0

    def has_next(self) -> bool:
        return self.pool_mode and self._next_usable(self._index + 1) is not None

    async def rotate(self, deactivate: bool = False) -> bool:
        """Record a failure on the current key and move to the next usable one."""
        await self.record_failure(deactivate=deactivate)
        if not self.pool_mode:
            return False

        next_index = self._next_usable(self._index + 1)
        if next_index is None:
            return False

        logger.info(
            "Rotating API key",
            from_key=self.current.fingerprint,
            to_key=self.resolution.keys[next_index].fingerprint,
            deactivated=deactivate,
        )
        self._index = next_index
        return True

    async def record_failure(self, deactivate: bool = False) -> None:
        if deactivate:
            self._deactivated.add(self._index)
        key = self.current
        if self.pool is not None and key.record_id is not None:
            await self.pool.increment_error_count(key.record_id, deactivate=deactivate)

    async def record_success(self) -> None:
        key = self.current
        if self.pool is not None and key.record_id is not None:
            await self.pool.reset_error_count(key.record_id)

    def _next_usable(self, start: int) -> int | None:
        for index in range(start, len(self.resolution.keys)):
            if index not in self._deactivated:
                return index
        return None
