"""Generator service configuration."""
from pydantic import Field
from pydantic_settings import SettingsConfigDict

from shared.config import BaseAppSettings


class GeneratorSettings(BaseAppSettings):
    model_config = SettingsConfigDict(env_prefix="GENERATOR_")

    port: int = 8000
    relay_url: str = "http://relay:5000"
    retries: int = Field(default=3, ge=0)
    retry_delay_seconds: float = 2.0
    poll_timeout_seconds: int = Field(default=60, ge=1)
    poll_interval_seconds: float = 1.0
    completion_timeout_seconds: float = 60.0
    request_timeout_seconds: float = 30.0
    openai_enabled: bool = False
