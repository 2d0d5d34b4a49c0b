from typing import Any, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class AssistantSettings(BaseSettings):
    # Read .env by default (repo root). You can also export envs directly.
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Automation webhook
    WEBHOOK_URL: Optional[str] = None
    DISPATCH_TIMEOUT_SEC: float = 60.0

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # OpenAI speech
    OPENAI_API_KEY: Optional[str] = None
    WHISPER_MODEL: str = "whisper-1"
    VOICE_LANGUAGE: str = "en"
    AUDIO_SAMPLE_RATE: int = 16000
    OPENAI_TTS_MODEL: str = "tts-1"
    OPENAI_TTS_VOICE: str = "alloy"
    OPENAI_TTS_SPEED: float = 1.0  # 0.25 to 4.0
    TTS_CACHE_SIZE: int = 100


def load_settings(**overrides: Any) -> AssistantSettings:
    """Create a fresh settings object; keyword overrides win over the environment"""
    return AssistantSettings(**overrides)
