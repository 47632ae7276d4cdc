"""Prompt templates and provider payload assembly."""
from __future__ import annotations

import base64
from typing import TYPE_CHECKING, Any

from shared.errors import ValidationError

if TYPE_CHECKING:
    from generator.api.schemas import GenerationRequest

DEFAULT_SYSTEM_PROMPT = (
    "You are a professional florist with extensive knowledge of flower arrangements."
)

DEFAULT_SUGGESTION_PROMPT = (
    "Отвечай на русском языке. Как профессиональный флорист, предложите 2 разных комбинации "
    "цветов для букета на {occasion} для {recipient}. Каждая комбинация должна содержать "
    "от 3 до 5 цветов. ВАЖНО: используйте только русские названия цветов (например: розы, "
    "тюльпаны, пионы, лилии и т.д.). Верните ТОЛЬКО сырой JSON-объект с точно такой "
    'структурой: {"suggestions":[["цветок1","цветок2","цветок3"],["цветок1","цветок2","цветок3"]]}. '
    "Не используйте markdown-форматирование, блоки кода или дополнительный текст. "
    "Верните только JSON-объект."
)

DEFAULT_IMAGE_PROMPT = (
    "Профессиональная, высококачественная фотография красивого букета цветов, содержащего "
    "{flowers}. Букет создан для {occasion} для {recipient}. Фотореалистичный стиль, "
    "студийное освещение, белый фон."
)

YANDEX_DESCRIPTION_PROMPT = (
    "Составь короткое описание букета на {occasion} для {recipient}, "
    "содержащего {flowers}. Одно-два предложения, без вступлений."
)

YANDEX_ENHANCE_PROMPT = (
    "Опиши этот букет красиво и эмоционально, используя художественные обороты и эпитеты, "
    'но без фраз вроде "вот описание" или "может быть таким". Описание должно быть прямым. '
    'Основа для описания: "{description}"'
)

OPENAI_DESCRIPTION_PROMPT = (
    "Create a beautiful description for a {occasion} bouquet for {recipient}. "
    "The bouquet contains: {flowers}."
)

OPENAI_IMAGE_PROMPT = (
    "A professional, high-quality photograph of a beautiful flower bouquet containing "
    "{flowers}. The bouquet is designed for {occasion} for {recipient}. "
    "Photorealistic style, studio lighting, white background."
)

OPENAI_SUGGESTION_SYSTEM_PROMPT = (
    "You are a professional florist. Generate two different flower combinations. "
    "Each combination should contain 3-5 flowers that work well together. "
    "Return the response in the following format: "
    '{"suggestions": [["flower1", "flower2", "flower3"], ["flower1", "flower2", "flower3"]]}'
)

OPENAI_SUGGESTION_USER_PROMPT = (
    "Create 2 different flower combinations for a {occasion} bouquet for {recipient}."
)

YANDEX_MODEL_PATHS = {
    "yandexgpt-pro": "yandexgpt/latest",
    "yandexgpt-pro-32k": "yandexgpt-32k/latest",
}

YANDEX_IMAGE_COUNT = 2
SUGGESTION_TEMPERATURE = 0.7
ENHANCE_TEMPERATURE = 0.7
OPENAI_MAX_TOKENS = 300
YANDEX_DESCRIPTION_MAX_TOKENS = 1000
YANDEX_SUGGESTION_MAX_TOKENS = 2000
HIGH_TIER_IMAGE_MODEL = "dall-e-3"


def render_template(
    template: str,
    occasion: str = "",
    recipient: str = "",
    flowers: list[str] | None = None,
) -> str:
    """Substitute every {occasion}, {recipient} and {flowers} token.

    Plain replacement, not str.format: templates embed literal JSON braces.
    """
    return (
        template.replace("{occasion}", occasion)
        .replace("{recipient}", recipient)
        .replace("{flowers}", ", ".join(flowers or []))
    )


def render_for(template: str, request: GenerationRequest) -> str:
    return render_template(template, request.occasion, request.recipient, request.flowers)


def yandex_model_uri(folder_id: str, model_id: str) -> str:
    path = YANDEX_MODEL_PATHS.get(model_id)
    if path is None:
        raise ValidationError(f"Invalid YandexGPT model: {model_id}")
    return f"gpt://{folder_id}/{path}"


def openai_image_count(image_model: str) -> int:
    return 1 if image_model == HIGH_TIER_IMAGE_MODEL else 3


def image_data_uri(image: bytes, mime_type: str = "image/jpeg") -> str:
    return f"data:{mime_type};base64,{base64.b64encode(image).decode('ascii')}"


def _yandex_completion_body(
    model_uri: str,
    messages: list[dict[str, str]],
    temperature: float,
    max_tokens: int,
) -> dict[str, Any]:
    return {
        "modelUri": model_uri,
        "completionOptions": {
            "stream": False,
            "temperature": temperature,
            "maxTokens": str(max_tokens),
        },
        "messages": messages,
    }


def build_yandex_description_body(request: GenerationRequest, model_uri: str) -> dict[str, Any]:
    messages = [
        {"role": "system", "text": request.system_prompt},
        {"role": "user", "text": render_for(YANDEX_DESCRIPTION_PROMPT, request)},
    ]
    return _yandex_completion_body(
        model_uri, messages, request.temperature, YANDEX_DESCRIPTION_MAX_TOKENS
    )


def build_yandex_enhance_body(model_uri: str, description: str) -> dict[str, Any]:
    messages = [
        {"role": "user", "text": YANDEX_ENHANCE_PROMPT.replace("{description}", description)}
    ]
    return _yandex_completion_body(
        model_uri, messages, ENHANCE_TEMPERATURE, YANDEX_DESCRIPTION_MAX_TOKENS
    )


def build_yandex_suggestions_body(request: GenerationRequest, model_uri: str) -> dict[str, Any]:
    messages = [{"role": "user", "text": render_for(request.suggestion_prompt, request)}]
    return _yandex_completion_body(
        model_uri, messages, SUGGESTION_TEMPERATURE, YANDEX_SUGGESTION_MAX_TOKENS
    )


def build_yandex_image_body(request: GenerationRequest) -> dict[str, Any]:
    folder_id = request.credentials.yandex_folder_id
    return {
        "modelUri": f"art://{folder_id}/yandex-art/latest",
        "messages": [{"text": render_for(request.image_prompt, request), "weight": "1"}],
        "generationOptions": {
            "mimeType": "image/jpeg",
            "aspectRatio": {"widthRatio": "1", "heightRatio": "1"},
        },
    }


def build_openai_description_body(request: GenerationRequest) -> dict[str, Any]:
    return {
        "model": request.text_model,
        "messages": [
            {"role": "system", "content": request.system_prompt},
            {"role": "user", "content": render_for(OPENAI_DESCRIPTION_PROMPT, request)},
        ],
        "temperature": request.temperature,
        "max_tokens": OPENAI_MAX_TOKENS,
    }


def build_openai_suggestions_body(request: GenerationRequest) -> dict[str, Any]:
    return {
        "model": request.text_model,
        "messages": [
            {"role": "system", "content": OPENAI_SUGGESTION_SYSTEM_PROMPT},
            {"role": "user", "content": render_for(OPENAI_SUGGESTION_USER_PROMPT, request)},
        ],
        "temperature": SUGGESTION_TEMPERATURE,
        "max_tokens": OPENAI_MAX_TOKENS,
    }


def build_openai_image_body(request: GenerationRequest) -> dict[str, Any]:
    body: dict[str, Any] = {
        "model": request.image_model,
        "prompt": render_for(OPENAI_IMAGE_PROMPT, request),
        "n": 1,
        "size": "1024x1024",
    }
    # quality and style exist only on the high-tier model
    if request.image_model == HIGH_TIER_IMAGE_MODEL:
        body["quality"] = "hd"
        body["style"] = "natural"
    return body
