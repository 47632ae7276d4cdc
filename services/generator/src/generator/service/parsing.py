"""Defensive parsing of provider responses.

Completion models only informally promise structured output: the text may be
wrapped in a markdown code fence or be malformed. Every failure is a
ParseError carrying the offending text.
"""
import json
import re
from typing import Annotated, Any

from pydantic import BaseModel, Field, StrictStr
from pydantic import ValidationError as PydanticValidationError

from shared.errors import ParseError
from generator.api.schemas import Provider

YANDEX_FINAL_STATUS = "ALTERNATIVE_STATUS_FINAL"

_FENCE_RE = re.compile(r"```(?:json)?\n?([\s\S]*?)\n?```")


class SuggestionPayload(BaseModel):
    suggestions: list[Annotated[list[StrictStr], Field(min_length=3, max_length=5)]]


def _dump(envelope: Any) -> str:
    try:
        return json.dumps(envelope, ensure_ascii=False)
    except (TypeError, ValueError):
        return repr(envelope)


def _first(items: Any) -> Any:
    if isinstance(items, list) and items:
        return items[0]
    return None


def extract_completion_text(envelope: Any, provider: Provider) -> str:
    """Generated text from a completion envelope of the given provider."""
    if not isinstance(envelope, dict):
        raise ParseError("Invalid API response: not an object", text=_dump(envelope))

    if provider is Provider.YANDEX:
        result = envelope.get("result")
        if not isinstance(result, dict):
            raise ParseError("Invalid API response: missing result", text=_dump(envelope))
        alternative = _first(result.get("alternatives"))
        if not isinstance(alternative, dict) or alternative.get("status") != YANDEX_FINAL_STATUS:
            raise ParseError("Invalid API response: no valid alternative", text=_dump(envelope))
        message = alternative.get("message")
        text = message.get("text") if isinstance(message, dict) else None
    else:
        choice = _first(envelope.get("choices"))
        message = choice.get("message") if isinstance(choice, dict) else None
        text = message.get("content") if isinstance(message, dict) else None

    if not isinstance(text, str) or not text.strip():
        raise ParseError("Invalid API response: no text in response", text=_dump(envelope))
    return text


def extract_image_url(envelope: Any) -> str:
    """URL of the first generated image in an OpenAI images response."""
    item = _first(envelope.get("data")) if isinstance(envelope, dict) else None
    url = item.get("url") if isinstance(item, dict) else None
    if not url:
        raise ParseError("No image was generated", text=_dump(envelope))
    return url


def strip_code_fence(text: str) -> str:
    """Remove ```json ... ``` or ``` ... ``` fences, keeping their content."""
    return _FENCE_RE.sub(r"\1", text).strip()


def parse_suggestions(raw_text: str | None) -> list[list[str]]:
    """Validated flower combinations, each a list of 3 to 5 names.

    All-or-nothing: one bad combination rejects the whole set. Names are
    returned unchanged.
    """
    if raw_text is None or not raw_text.strip():
        raise ParseError("Failed to parse API response: no text in response", text=raw_text)

    cleaned = strip_code_fence(raw_text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ParseError(f"Failed to parse API response: {e.msg}", text=raw_text) from e
    except RecursionError as e:
        raise ParseError("Failed to parse API response: nesting too deep", text=raw_text) from e

    if not isinstance(data, dict):
        raise ParseError("Failed to parse API response: not an object", text=raw_text)
    if not isinstance(data.get("suggestions"), list):
        raise ParseError(
            "Failed to parse API response: suggestions is not an array", text=raw_text
        )
    try:
        payload = SuggestionPayload.model_validate(data)
    except PydanticValidationError as e:
        raise ParseError(
            "Failed to parse API response: invalid suggestion array format", text=raw_text
        ) from e
    return payload.suggestions
