from pydantic_settings import BaseSettings, SettingsConfigDict


class CreditSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DAILY_CREDIT_LIMIT: int = 100


credit_settings = CreditSettings()
