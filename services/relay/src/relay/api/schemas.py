"""Relay request schemas."""
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2000


class CompletionOptions(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    stream: bool = False
    temperature: float | None = None
    max_tokens: int | str | None = Field(default=None, alias="maxTokens")


class YandexCompletionRequest(BaseModel):
    """Body accepted by /api/yandex/v1/completion.

    Sampling options may come inside ``completionOptions`` or at the top level;
    the nested form wins.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    model_uri: str = Field(..., min_length=1, alias="modelUri")
    messages: list[dict[str, Any]] = Field(..., min_length=1)
    completion_options: CompletionOptions | None = Field(default=None, alias="completionOptions")
    temperature: float | None = None
    max_tokens: int | str | None = Field(default=None, alias="maxTokens")

    def to_upstream(self) -> dict[str, Any]:
        options = self.completion_options or CompletionOptions()
        temperature = _first_set(options.temperature, self.temperature, DEFAULT_TEMPERATURE)
        max_tokens = _first_set(options.max_tokens, self.max_tokens, DEFAULT_MAX_TOKENS)
        return {
            "modelUri": self.model_uri,
            "completionOptions": {
                "stream": False,
                "temperature": temperature,
                "maxTokens": str(max_tokens),
            },
            "messages": self.messages,
        }


def _first_set(*values: Any) -> Any:
    for value in values:
        if value is not None and value != "":
            return value
    return None
