"""HTTP client with bounded fixed-delay retries and typed errors."""
import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from shared.errors import PermanentApiError, TransientApiError, error_message_from_payload
from shared.logging import correlation_headers

logger = structlog.get_logger(__name__)

DEFAULT_RETRIES = 3
DEFAULT_RETRY_DELAY_SECONDS = 2.0


@dataclass
class HttpRequest:
    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    json: Any = None
    timeout: float = 30.0
    # None means the client's default budget
    retries: int | None = None


def create_http_client(
    timeout: float = 30.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create async HTTP client; retries are handled above the transport."""
    if transport is None:
        transport = httpx.AsyncHTTPTransport(retries=0)
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout),
        transport=transport,
    )


def is_transient_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


def response_payload(resp: httpx.Response) -> Any:
    """JSON body when there is one, raw text otherwise."""
    try:
        return resp.json()
    except ValueError:
        return resp.text or None


class RetryingHttpClient:
    """Sends one request with up to `retries` extra attempts on transient failures.

    429, 5xx and transport errors are transient. Any other non-2xx status raises
    PermanentApiError on the first attempt. Attempts are spaced by a fixed delay.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        retries: int = DEFAULT_RETRIES,
        retry_delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._retries = retries
        self._retry_delay_seconds = retry_delay_seconds
        self._sleep = sleep

    async def aclose(self) -> None:
        await self._client.aclose()

    async def send_once(self, request: HttpRequest) -> httpx.Response:
        """Single attempt, no retry."""
        headers = {**correlation_headers(), **request.headers}
        try:
            resp = await self._client.request(
                request.method,
                request.url,
                headers=headers,
                json=request.json,
                timeout=request.timeout,
            )
        except httpx.TransportError as e:
            raise TransientApiError(f"Network error: {e.__class__.__name__}: {e}") from e

        if resp.is_success:
            return resp

        payload = response_payload(resp)
        message = error_message_from_payload(payload, resp.status_code)
        if is_transient_status(resp.status_code):
            raise TransientApiError(message, status_code=resp.status_code, payload=payload)
        raise PermanentApiError(message, status_code=resp.status_code, payload=payload)

    async def send(self, request: HttpRequest) -> httpx.Response:
        retries = self._retries if request.retries is None else request.retries

        def _log_retry(state: RetryCallState) -> None:
            exc = state.outcome.exception() if state.outcome else None
            logger.warning(
                "http_retry",
                method=request.method,
                url=request.url,
                attempt=state.attempt_number,
                max_attempts=retries + 1,
                delay_seconds=self._retry_delay_seconds,
                status_code=getattr(exc, "status_code", None),
                error=str(exc),
            )

        retrying = AsyncRetrying(
            retry=retry_if_exception_type(TransientApiError),
            stop=stop_after_attempt(retries + 1),
            wait=wait_fixed(self._retry_delay_seconds),
            sleep=self._sleep,
            before_sleep=_log_retry,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                resp = await self.send_once(request)
        return resp
