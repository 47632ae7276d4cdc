"""Maps generation errors onto HTTP statuses and the error envelope."""
import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shared.errors import (
    GenerationError,
    OperationTimeoutError,
    ParseError,
    PermanentApiError,
    TransientApiError,
    ValidationError,
)
from shared.schemas import ErrorEnvelope

logger = structlog.get_logger(__name__)


def status_for(exc: GenerationError) -> int:
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, PermanentApiError):
        status = exc.status_code or 502
        return status if 400 <= status < 500 else 502
    if isinstance(exc, (TransientApiError, ParseError)):
        return 502
    if isinstance(exc, OperationTimeoutError):
        return 504
    return 500


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(GenerationError)
    async def _generation_error(request: Request, exc: GenerationError) -> JSONResponse:
        status = status_for(exc)
        logger.warning(
            "generation_error",
            path=request.url.path,
            status_code=status,
            error_type=type(exc).__name__,
            message=exc.message,
        )
        return JSONResponse(status_code=status, content=exc.to_envelope())

    @app.exception_handler(RequestValidationError)
    async def _invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")} for err in exc.errors()
        ]
        envelope = ErrorEnvelope.build("Invalid request body", "validation_error", details)
        return JSONResponse(status_code=400, content=envelope.to_content())

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("generator_unhandled_error", path=request.url.path)
        envelope = ErrorEnvelope.build(str(exc) or "Internal server error", "generation_error")
        return JSONResponse(status_code=500, content=envelope.to_content())
