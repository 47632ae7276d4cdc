"""Typed errors shared by the relay and the generator."""
from typing import Any


class GenerationError(Exception):
    """Base error: carries a human-readable message and an envelope type."""

    error_type = "generation_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_envelope(self) -> dict[str, Any]:
        return {"error": {"message": self.message, "type": self.error_type}}


class ValidationError(GenerationError):
    """Missing credentials or inputs. Never retried."""

    error_type = "validation_error"


class ApiError(GenerationError):
    """Upstream answered with an error status or could not be reached."""

    error_type = "api_error"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        payload: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload

    def to_envelope(self) -> dict[str, Any]:
        out = super().to_envelope()
        if self.payload is not None:
            out["error"]["details"] = self.payload
        return out


class TransientApiError(ApiError):
    """429, 5xx or network failure; retried within the client budget."""


class PermanentApiError(ApiError):
    """Any other non-2xx status; surfaced immediately."""


class ParseError(GenerationError):
    """Provider payload could not be turned into the expected structure."""

    error_type = "parse_error"

    def __init__(self, message: str, text: str | None = None) -> None:
        super().__init__(message)
        self.text = text

    def to_envelope(self) -> dict[str, Any]:
        out = super().to_envelope()
        if self.text is not None:
            out["error"]["details"] = {"text": self.text}
        return out


class OperationTimeoutError(GenerationError):
    """Async operation did not finish within the attempt ceiling."""

    error_type = "timeout_error"

    def __init__(self, operation_id: str, attempts: int) -> None:
        super().__init__(f"Operation {operation_id} timed out after {attempts} status checks")
        self.operation_id = operation_id
        self.attempts = attempts


def error_message_from_payload(payload: Any, status_code: int) -> str:
    """Message from a conventional {error: {message}} envelope, else a generic one."""
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return f"API Error: {status_code}"
