"""Relay error type and its FastAPI handlers."""
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shared.schemas import ErrorEnvelope

logger = structlog.get_logger(__name__)


class RelayError(Exception):
    """Rendered as {"error": {"message", "type", "details"?}} with status_code."""

    def __init__(
        self,
        status_code: int,
        message: str,
        error_type: str = "api_error",
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.error_type = error_type
        self.details = details


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RelayError)
    async def _relay_error(request: Request, exc: RelayError) -> JSONResponse:
        logger.warning(
            "relay_error",
            path=request.url.path,
            status_code=exc.status_code,
            error_type=exc.error_type,
            message=exc.message,
        )
        envelope = ErrorEnvelope.build(exc.message, exc.error_type, exc.details)
        return JSONResponse(status_code=exc.status_code, content=envelope.to_content())

    @app.exception_handler(RequestValidationError)
    async def _invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        envelope = ErrorEnvelope.build(
            "Invalid request body", "validation_error", jsonable_errors(exc)
        )
        return JSONResponse(status_code=400, content=envelope.to_content())

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("relay_unhandled_error", path=request.url.path)
        envelope = ErrorEnvelope.build(str(exc) or "Internal server error", "api_error")
        return JSONResponse(status_code=500, content=envelope.to_content())


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
