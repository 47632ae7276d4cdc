"""Uniform error envelope returned by both services."""
from typing import Any

from pydantic import BaseModel


class ErrorBody(BaseModel):
    message: str
    type: str = "api_error"
    details: Any = None


class ErrorEnvelope(BaseModel):
    """{"error": {"message", "type", "details"?}}"""

    error: ErrorBody

    @classmethod
    def build(cls, message: str, type: str = "api_error", details: Any = None) -> "ErrorEnvelope":
        return cls(error=ErrorBody(message=message, type=type, details=details))

    def to_content(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)
