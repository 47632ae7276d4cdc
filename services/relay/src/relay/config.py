"""Relay service configuration."""
from pydantic_settings import SettingsConfigDict

from shared.config import BaseAppSettings


class RelaySettings(BaseAppSettings):
    model_config = SettingsConfigDict(env_prefix="RELAY_")

    port: int = 5000
    yandex_llm_url: str = "https://llm.api.cloud.yandex.net/foundationModels/v1"
    yandex_operations_url: str = "https://llm.api.cloud.yandex.net/operations"
    openai_url: str = "https://api.openai.com/v1"
    completion_timeout_seconds: float = 60.0
    request_timeout_seconds: float = 30.0
    poll_max_attempts: int = 60
    poll_interval_seconds: float = 1.0
