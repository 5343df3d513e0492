"""Per-user stored secrets and their AES-GCM decryption."""

import base64
import binascii
from uuid import UUID

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from pydantic import SecretStr
from sqlalchemy import select

from src.api.core.exceptions.base import DecryptionError, SecretNotFoundError
from src.core.base import BaseService
from src.database.models import GEMINI_SECRET_NAME, UserSecret

IV_LENGTH = 12
KEY_LENGTH = 32


def _cipher(encryption_key: str) -> AESGCM:
    try:
        return AESGCM(encryption_key.encode("utf-8")[:KEY_LENGTH])
    except ValueError as e:
        raise DecryptionError(
            message="Server configuration error: encryption key is too short."
        ) from e


def decrypt_secret(encrypted_value: str, encryption_key: str) -> str:
    """Decrypt a stored secret.

    The stored value is base64 of a 12 byte IV followed by the AES-GCM
    ciphertext and tag. The AES key is the first 32 bytes of the UTF-8
    encoded process key.
    """
    try:
        raw = base64.b64decode(encrypted_value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecryptionError(message="Stored secret is not valid base64.") from e

    if len(raw) <= IV_LENGTH:
        raise DecryptionError(message="Stored secret is truncated.")

    try:
        plaintext = _cipher(encryption_key).decrypt(raw[:IV_LENGTH], raw[IV_LENGTH:], None)
    except InvalidTag as e:
        raise DecryptionError(message="Stored secret failed authentication.") from e

    return plaintext.decode("utf-8")


class UserSecretRepository(BaseService):
    async def get_secret(
        self, user_id: UUID, secret_name: str = GEMINI_SECRET_NAME
    ) -> str | None:
        """Encrypted value of a user's secret, if one is stored."""
        result = await self.db.execute(
            select(UserSecret.encrypted_value).where(
                UserSecret.user_id == user_id,
                UserSecret.secret_name == secret_name,
            )
        )
        return result.scalar_one_or_none()

    async def get_decrypted_secret(
        self,
        user_id: UUID,
        encryption_key: SecretStr | None,
        secret_name: str = GEMINI_SECRET_NAME,
    ) -> str:
        encrypted_value = await self.get_secret(user_id, secret_name)
        if encrypted_value is None:
            raise SecretNotFoundError()

        if encryption_key is None or not encryption_key.get_secret_value():
            self.logger.error("Encryption key not configured", user_id=str(user_id))
            raise DecryptionError(
                message="Server configuration error: encryption key not set."
            )

        return decrypt_secret(encrypted_value, encryption_key.get_secret_value())
