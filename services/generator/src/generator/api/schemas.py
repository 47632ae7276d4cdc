"""Generation request/result models and API schemas."""
import enum

from pydantic import BaseModel, ConfigDict, Field, SecretStr, computed_field

from generator.service.prompts import (
    DEFAULT_IMAGE_PROMPT,
    DEFAULT_SUGGESTION_PROMPT,
    DEFAULT_SYSTEM_PROMPT,
)

DEFAULT_TEXT_MODEL = "yandexgpt-pro"
DEFAULT_IMAGE_MODEL = "yandex-art"


class Provider(str, enum.Enum):
    OPENAI = "openai"
    YANDEX = "yandex"

    @classmethod
    def for_model(cls, model_id: str) -> "Provider":
        return cls.YANDEX if model_id.startswith("yandex") else cls.OPENAI


class Credentials(BaseModel):
    """Provider credentials entered by the user. Never persisted."""

    model_config = ConfigDict(frozen=True)

    openai_key: SecretStr = SecretStr("")
    # optional separate key for image calls
    dalle_key: SecretStr = SecretStr("")
    yandex_key: SecretStr = SecretStr("")
    yandex_folder_id: str = ""

    @property
    def openai_api_key(self) -> str:
        return self.openai_key.get_secret_value()

    @property
    def image_api_key(self) -> str:
        return self.dalle_key.get_secret_value() or self.openai_api_key

    @property
    def yandex_api_key(self) -> str:
        return self.yandex_key.get_secret_value()


class GenerationRequest(BaseModel):
    """One wizard submission. The provider is derived from text_model once, here."""

    model_config = ConfigDict(frozen=True)

    occasion: str = ""
    recipient: str = ""
    flowers: list[str] = Field(default_factory=list)
    text_model: str = DEFAULT_TEXT_MODEL
    image_model: str = DEFAULT_IMAGE_MODEL
    temperature: float = Field(default=0.7, ge=0.0, le=1.0)
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    suggestion_prompt: str = DEFAULT_SUGGESTION_PROMPT
    image_prompt: str = DEFAULT_IMAGE_PROMPT
    credentials: Credentials = Field(default_factory=Credentials)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def provider(self) -> Provider:
        return Provider.for_model(self.text_model)


class GeneratedBouquet(BaseModel):
    """Final result; degraded is set when the enrichment fallback was used."""

    model_config = ConfigDict(frozen=True)

    flowers: tuple[str, ...]
    description: str
    images: tuple[str, ...] = ()
    degraded: bool = False


class SuggestionsResponse(BaseModel):
    suggestions: list[list[str]]


class ModelOption(BaseModel):
    id: str
    name: str
    provider: Provider


class ModelCatalog(BaseModel):
    text_models: list[ModelOption]
    image_models: list[ModelOption]
