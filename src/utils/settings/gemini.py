"""Gemini provider settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    GEMINI_API_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"

    # Fallback order, strongest first
    GEMINI_TEXT_MODELS: list[str] = [
        "gemini-2.5-flash",
        "gemini-2.5-pro",
        "gemini-2.0-flash",
        "gemini-2.0-flash-lite",
    ]
    GEMINI_EVALUATION_MODELS: list[str] = [
        "gemini-2.5-flash",
        "gemini-flash-latest",
        "gemini-2.0-flash",
        "gemini-2.0-flash-001",
    ]
    GEMINI_TTS_MODEL: str = "gemini-2.5-flash-preview-tts"
    GEMINI_TTS_SAMPLE_RATE: int = 24000

    GEMINI_MAX_RETRIES: int = 2
    GEMINI_TTS_MAX_RETRIES: int = 3
    GEMINI_BACKOFF_BASE_SECONDS: float = 1.0
    GEMINI_BACKOFF_MAX_SECONDS: float = 30.0

    GEMINI_REQUEST_TIMEOUT_SECONDS: float = 60.0
    GEMINI_MULTIMODAL_TIMEOUT_SECONDS: float = 120.0
    GEMINI_TTS_TIMEOUT_SECONDS: float = 120.0

    GEMINI_TEMPERATURE: float = 0.7
    GEMINI_MAX_OUTPUT_TOKENS: int = 8192

    GEMINI_LIVE_MODEL: str = "models/gemini-2.0-flash-exp"
    GEMINI_LIVE_WS_ENDPOINT: str = (
        "wss://generativelanguage.googleapis.com/ws/"
        "google.ai.generativelanguage.v1alpha.GenerativeService.BidiGenerateContent"
    )


gemini_settings = GeminiSettings()
