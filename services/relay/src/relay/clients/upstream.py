"""Single-attempt HTTP forwarding to provider APIs."""
from typing import Any

import httpx
import structlog
from prometheus_client import Counter

from shared.logging import mask_secret
from relay.errors import RelayError

logger = structlog.get_logger(__name__)

UPSTREAM_REQUESTS = Counter(
    "relay_upstream_requests_total",
    "Requests forwarded to provider APIs",
    ["route", "status"],
)


class UpstreamClient:
    """Forwards a request once; status and body are returned to the caller untouched.

    Retrying is the caller's job. Only transport failures are turned into a
    RelayError (500).
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        route: str,
        method: str,
        url: str,
        *,
        headers: dict[str, str],
        json: Any = None,
        params: dict[str, str] | None = None,
        timeout: float = 30.0,
    ) -> httpx.Response:
        logger.debug(
            "upstream_request",
            route=route,
            method=method,
            url=url,
            authorization=mask_secret(headers.get("Authorization")),
        )
        try:
            resp = await self._client.request(
                method, url, headers=headers, json=json, params=params, timeout=timeout
            )
        except httpx.TransportError as e:
            UPSTREAM_REQUESTS.labels(route=route, status="transport_error").inc()
            logger.error("upstream_unreachable", route=route, url=url, error=str(e))
            raise RelayError(500, f"Failed to reach upstream API: {e}", "api_error") from e

        UPSTREAM_REQUESTS.labels(route=route, status=str(resp.status_code)).inc()
        logger.debug("upstream_response", route=route, status_code=resp.status_code)
        return resp
