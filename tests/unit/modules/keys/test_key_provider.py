"""Key resolution priority and pool ordering tests."""

import pytest
from pydantic import SecretStr
from structlog.testing import capture_logs

from src.api.core.exceptions.base import DecryptionError, NoKeyAvailableError, SecretNotFoundError
from src.modules.keys.pool import ApiKeyPoolRepository
from src.modules.keys.provider import KeyProvider, KeySource
from src.modules.keys.secrets import UserSecretRepository
from tests.factories import ApiKeyFactory, UserSecretFactory


@pytest.fixture
def provider(db_session, encryption_key) -> KeyProvider:
    return KeyProvider(
        secrets=UserSecretRepository(db_session),
        pool=ApiKeyPoolRepository(db_session),
        encryption_key=encryption_key,
    )


class TestKeyPriority:
    @pytest.mark.asyncio
    async def test_header_key_wins_over_everything(self, provider, db_session, test_user_id):
        await UserSecretFactory.create_async(db_session, user_id=test_user_id, plaintext="AIzaStored")
        await ApiKeyFactory.create_async(db_session)

        resolution = await provider.resolve(
            test_user_id, header_key="AIzaHeader", body_key="AIzaBody"
        )

        assert resolution.source == KeySource.HEADER
        assert [k.value for k in resolution.keys] == ["AIzaHeader"]
        assert resolution.is_user_provided

    @pytest.mark.asyncio
    async def test_body_key_used_when_header_blank(self, provider, test_user_id):
        resolution = await provider.resolve(test_user_id, header_key="   ", body_key=" AIzaBody ")

        assert resolution.source == KeySource.BODY
        assert resolution.primary.value == "AIzaBody"

    @pytest.mark.asyncio
    async def test_stored_secret_beats_pool(self, provider, db_session, test_user_id):
        await UserSecretFactory.create_async(db_session, user_id=test_user_id, plaintext="AIzaStored")
        await ApiKeyFactory.create_async(db_session)

        resolution = await provider.resolve(test_user_id)

        assert resolution.source == KeySource.USER_SECRET
        assert resolution.primary.value == "AIzaStored"
        assert resolution.primary.record_id is None

    @pytest.mark.asyncio
    async def test_other_users_secret_is_ignored(self, provider, db_session, test_user_id):
        await UserSecretFactory.create_async(db_session, plaintext="AIzaSomeoneElse")
        pool_key = await ApiKeyFactory.create_async(db_session)

        resolution = await provider.resolve(test_user_id)

        assert resolution.source == KeySource.POOL
        assert resolution.primary.value == pool_key.key_value

    @pytest.mark.asyncio
    async def test_pool_keys_ordered_by_error_count(self, provider, db_session, test_user_id):
        flaky = await ApiKeyFactory.create_async(db_session, error_count=3)
        healthy_old = await ApiKeyFactory.create_async(db_session, error_count=0)
        healthy_new = await ApiKeyFactory.create_async(db_session, error_count=0)
        await ApiKeyFactory.create_async(db_session, is_active=False)

        resolution = await provider.resolve(test_user_id)

        assert resolution.source == KeySource.POOL
        assert not resolution.is_user_provided
        assert [k.record_id for k in resolution.keys] == [
            healthy_old.id,
            healthy_new.id,
            flaky.id,
        ]

    @pytest.mark.asyncio
    async def test_no_key_anywhere_raises(self, provider, test_user_id):
        with pytest.raises(NoKeyAvailableError):
            await provider.resolve(test_user_id)

    @pytest.mark.asyncio
    async def test_undecryptable_secret_is_not_masked_by_pool(
        self, db_session, test_user_id
    ):
        await UserSecretFactory.create_async(db_session, user_id=test_user_id)
        await ApiKeyFactory.create_async(db_session)
        provider = KeyProvider(
            secrets=UserSecretRepository(db_session),
            pool=ApiKeyPoolRepository(db_session),
            encryption_key=SecretStr("a-completely-different-key-0123456789"),
        )

        with pytest.raises(DecryptionError):
            await provider.resolve(test_user_id)

    @pytest.mark.asyncio
    async def test_missing_encryption_key_is_config_error(self, db_session, test_user_id):
        await UserSecretFactory.create_async(db_session, user_id=test_user_id)
        provider = KeyProvider(
            secrets=UserSecretRepository(db_session),
            pool=ApiKeyPoolRepository(db_session),
            encryption_key=None,
        )

        with pytest.raises(DecryptionError):
            await provider.resolve(test_user_id)


class TestResolveUserKey:
    @pytest.mark.asyncio
    async def test_never_falls_back_to_pool(self, provider, db_session, test_user_id):
        await ApiKeyFactory.create_async(db_session)

        with pytest.raises(SecretNotFoundError):
            await provider.resolve_user_key(test_user_id)


class TestPoolBookkeeping:
    @pytest.mark.asyncio
    async def test_increment_and_reset(self, db_session):
        key = await ApiKeyFactory.create_async(db_session)
        pool = ApiKeyPoolRepository(db_session)

        await pool.increment_error_count(key.id)
        await pool.increment_error_count(key.id)
        [reloaded] = await pool.get_active_keys()
        assert reloaded.error_count == 2

        await pool.reset_error_count(key.id)
        [reloaded] = await pool.get_active_keys()
        assert reloaded.error_count == 0

    @pytest.mark.asyncio
    async def test_deactivated_key_leaves_the_pool(self, db_session):
        key = await ApiKeyFactory.create_async(db_session)
        pool = ApiKeyPoolRepository(db_session)

        await pool.increment_error_count(key.id, deactivate=True)

        assert await pool.get_active_keys() == []

    @pytest.mark.asyncio
    async def test_updates_are_logged_with_the_change(self, db_session):
        key = await ApiKeyFactory.create_async(db_session)

        with capture_logs() as logs:
            pool = ApiKeyPoolRepository(db_session)
            await pool.increment_error_count(key.id)
            await pool.reset_error_count(key.id)
            await pool.increment_error_count(key.id, deactivate=True)

        updates = [entry for entry in logs if entry["event"] == "Pool key updated"]
        assert [entry["change"] for entry in updates] == [
            "error_counted",
            "error_count_reset",
            "deactivated",
        ]
        assert all(entry["key_id"] == str(key.id) for entry in updates)
