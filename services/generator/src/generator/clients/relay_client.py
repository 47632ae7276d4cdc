"""HTTP client for the relay service."""
from typing import Any

import httpx

from shared.errors import ParseError
from shared.http_client import HttpRequest, RetryingHttpClient, create_http_client
from shared.operations import OperationPoller, OperationStatus
from generator.api.schemas import Credentials


def yandex_headers(credentials: Credentials) -> dict[str, str]:
    return {
        "Authorization": f"Api-Key {credentials.yandex_api_key}",
        "x-folder-id": credentials.yandex_folder_id,
    }


def openai_headers(api_key: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {api_key}"}


def _json(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError as e:
        raise ParseError("Relay returned a non-JSON body", text=resp.text) from e


class RelayClient:
    """Provider calls routed through the relay, with retries and operation polling."""

    def __init__(
        self,
        http: RetryingHttpClient,
        base_url: str,
        poller: OperationPoller,
        completion_timeout: float = 60.0,
        request_timeout: float = 30.0,
    ) -> None:
        self._http = http
        self._base_url = base_url.rstrip("/")
        self._poller = poller
        self.completion_timeout = completion_timeout
        self.request_timeout = request_timeout

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _post(self, path: str, body: dict[str, Any], headers: dict[str, str], timeout: float) -> Any:
        resp = await self._http.send(
            HttpRequest(
                "POST",
                f"{self._base_url}{path}",
                headers={"Content-Type": "application/json", **headers},
                json=body,
                timeout=timeout,
            )
        )
        return _json(resp)

    async def yandex_completion(
        self,
        body: dict[str, Any],
        credentials: Credentials,
        timeout: float | None = None,
    ) -> Any:
        return await self._post(
            "/api/yandex/v1/completion",
            body,
            yandex_headers(credentials),
            timeout or self.completion_timeout,
        )

    async def submit_yandex_image(self, body: dict[str, Any], credentials: Credentials) -> str:
        """Start an async image job; returns the operation id."""
        data = await self._post(
            "/api/yandex/v1/images/generations",
            body,
            yandex_headers(credentials),
            self.request_timeout,
        )
        operation_id = data.get("id") if isinstance(data, dict) else None
        if not operation_id:
            raise ParseError("Invalid response: missing operation ID", text=str(data))
        return str(operation_id)

    async def wait_for_operation(self, operation_id: str, credentials: Credentials) -> OperationStatus:
        return await self._poller.poll(operation_id, yandex_headers(credentials))

    async def openai_chat(
        self,
        body: dict[str, Any],
        api_key: str,
        timeout: float | None = None,
    ) -> Any:
        return await self._post(
            "/api/openai/v1/chat/completions",
            body,
            openai_headers(api_key),
            timeout or self.completion_timeout,
        )

    async def openai_image(self, body: dict[str, Any], api_key: str) -> Any:
        return await self._post(
            "/api/openai/v1/images/generations",
            body,
            openai_headers(api_key),
            self.completion_timeout,
        )


def build_relay_client(
    base_url: str,
    retries: int = 3,
    retry_delay_seconds: float = 2.0,
    poll_timeout_seconds: int = 60,
    poll_interval_seconds: float = 1.0,
    completion_timeout: float = 60.0,
    request_timeout: float = 30.0,
    client: httpx.AsyncClient | None = None,
) -> RelayClient:
    client = client or create_http_client(timeout=completion_timeout)
    http = RetryingHttpClient(client, retries=retries, retry_delay_seconds=retry_delay_seconds)
    poller = OperationPoller(
        http,
        f"{base_url.rstrip('/')}/api/operations/{{operation_id}}",
        max_attempts=poll_timeout_seconds,
        interval_seconds=poll_interval_seconds,
        timeout=request_timeout,
    )
    return RelayClient(
        http,
        base_url,
        poller,
        completion_timeout=completion_timeout,
        request_timeout=request_timeout,
    )
