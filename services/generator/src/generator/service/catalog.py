"""Selectable text and image models."""
from generator.api.schemas import ModelCatalog, ModelOption, Provider

OPENAI_TEXT_MODELS = [
    ModelOption(id="gpt-4", name="GPT-4 (OpenAI)", provider=Provider.OPENAI),
    ModelOption(id="gpt-3.5-turbo", name="GPT-3.5 Turbo (OpenAI)", provider=Provider.OPENAI),
]
YANDEX_TEXT_MODELS = [
    ModelOption(id="yandexgpt-pro", name="YandexGPT Pro", provider=Provider.YANDEX),
    ModelOption(id="yandexgpt-pro-32k", name="YandexGPT Pro 32k", provider=Provider.YANDEX),
]
OPENAI_IMAGE_MODELS = [
    ModelOption(id="dall-e-3", name="DALL-E 3 (OpenAI)", provider=Provider.OPENAI),
    ModelOption(id="dall-e-2", name="DALL-E 2 (OpenAI)", provider=Provider.OPENAI),
]
YANDEX_IMAGE_MODELS = [
    ModelOption(id="yandex-art", name="YandexART", provider=Provider.YANDEX),
]


def list_models(openai_enabled: bool) -> ModelCatalog:
    """OpenAI entries come first and only when OpenAI is enabled."""
    text_models = (OPENAI_TEXT_MODELS if openai_enabled else []) + YANDEX_TEXT_MODELS
    image_models = (OPENAI_IMAGE_MODELS if openai_enabled else []) + YANDEX_IMAGE_MODELS
    return ModelCatalog(text_models=text_models, image_models=image_models)
