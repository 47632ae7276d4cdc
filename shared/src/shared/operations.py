"""Long-running operation polling.

An operation is submitted elsewhere and identified by an opaque id. The poller
checks its status once per interval until the payload reports ``done: true``
or the attempt ceiling is reached. Every status check consumes one attempt,
including checks that fail with a non-2xx status or a network error, so the
loop always terminates after ``max_attempts`` checks.
"""
import asyncio
import base64
import binascii
import enum
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable

import structlog

from shared.errors import ApiError
from shared.http_client import HttpRequest, RetryingHttpClient

logger = structlog.get_logger(__name__)

DEFAULT_MAX_ATTEMPTS = 60
DEFAULT_INTERVAL_SECONDS = 1.0


class OperationState(str, enum.Enum):
    PENDING = "pending"
    DONE_SUCCESS = "done-success"
    DONE_ERROR = "done-error"
    TIMED_OUT = "timed-out"


@dataclass(frozen=True)
class OperationStatus:
    operation_id: str
    state: OperationState = OperationState.PENDING
    image: bytes | None = None
    error: Any = None
    attempts: int = 0
    raw: dict[str, Any] | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state is not OperationState.PENDING

    def _advance(self, state: OperationState, **changes: Any) -> "OperationStatus":
        if self.is_terminal:
            raise ValueError(
                f"Operation {self.operation_id} is already {self.state.value}, cannot become {state.value}"
            )
        return replace(self, state=state, **changes)

    def succeed(self, image: bytes, raw: dict[str, Any] | None = None) -> "OperationStatus":
        return self._advance(OperationState.DONE_SUCCESS, image=image, raw=raw)

    def fail(self, error: Any, raw: dict[str, Any] | None = None) -> "OperationStatus":
        return self._advance(OperationState.DONE_ERROR, error=error, raw=raw)

    def expire(self) -> "OperationStatus":
        return self._advance(OperationState.TIMED_OUT)


def decode_image(encoded: str) -> bytes:
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, TypeError, ValueError) as e:
        raise ValueError(f"Operation image is not valid base64: {e}") from e


class OperationPoller:
    """Polls `status_url_template.format(operation_id=...)` until done or out of attempts."""

    def __init__(
        self,
        http: RetryingHttpClient,
        status_url_template: str,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        timeout: float = 30.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._http = http
        self._status_url_template = status_url_template
        self._max_attempts = max_attempts
        self._interval_seconds = interval_seconds
        self._timeout = timeout
        self._sleep = sleep

    async def poll(self, operation_id: str, headers: dict[str, str]) -> OperationStatus:
        status = OperationStatus(operation_id=operation_id)
        url = self._status_url_template.format(operation_id=operation_id)

        for attempt in range(1, self._max_attempts + 1):
            status = replace(status, attempts=attempt)
            logger.debug(
                "operation_status_check",
                operation_id=operation_id,
                attempt=attempt,
                max_attempts=self._max_attempts,
            )
            payload = await self._check(url, headers, operation_id, attempt)
            if payload is not None and payload.get("done"):
                return self._finish(status, payload)
            if attempt < self._max_attempts:
                await self._sleep(self._interval_seconds)

        logger.warning("operation_timed_out", operation_id=operation_id, attempts=status.attempts)
        return status.expire()

    async def _check(
        self,
        url: str,
        headers: dict[str, str],
        operation_id: str,
        attempt: int,
    ) -> dict[str, Any] | None:
        """One status check; failures are logged and yield None."""
        try:
            resp = await self._http.send_once(
                HttpRequest("GET", url, headers=headers, timeout=self._timeout)
            )
            payload = resp.json()
        except (ApiError, ValueError) as e:
            logger.warning(
                "operation_status_check_failed",
                operation_id=operation_id,
                attempt=attempt,
                status_code=getattr(e, "status_code", None),
                error=str(e),
            )
            return None
        if not isinstance(payload, dict):
            logger.warning("operation_status_malformed", operation_id=operation_id, attempt=attempt)
            return None
        return payload

    def _finish(self, status: OperationStatus, payload: dict[str, Any]) -> OperationStatus:
        operation_id = status.operation_id
        if payload.get("error"):
            logger.info("operation_failed", operation_id=operation_id, error=payload["error"])
            return status.fail(payload["error"], raw=payload)

        response = payload.get("response")
        encoded = response.get("image") if isinstance(response, dict) else None
        if not encoded or not isinstance(encoded, str):
            logger.info("operation_finished_without_image", operation_id=operation_id)
            return status.fail({"message": "Operation finished without an image"}, raw=payload)
        try:
            image = decode_image(encoded)
        except ValueError as e:
            return status.fail({"message": str(e)}, raw=payload)

        logger.info("operation_completed", operation_id=operation_id, attempts=status.attempts)
        return status.succeed(image, raw=payload)
