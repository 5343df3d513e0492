from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class SecuritySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Symmetric key used to decrypt per-user stored secrets
    APP_ENCRYPTION_KEY: SecretStr | None = None
