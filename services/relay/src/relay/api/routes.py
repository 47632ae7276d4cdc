"""Relay routes: Yandex Foundation Models, OpenAI and remote image proxy."""
from typing import Any
from urllib.parse import urlparse

import httpx
import structlog
from fastapi import APIRouter, Body, Request
from fastapi.responses import JSONResponse, Response

from shared.http_client import response_payload
from shared.operations import OperationState
from relay.api.schemas import YandexCompletionRequest
from relay.clients.upstream import UpstreamClient
from relay.config import RelaySettings
from relay.errors import RelayError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api", tags=["relay"])


def _settings(request: Request) -> RelaySettings:
    return request.app.state.settings


def _upstream(request: Request) -> UpstreamClient:
    return request.app.state.upstream


def _yandex_headers(request: Request) -> dict[str, str]:
    authorization = request.headers.get("authorization")
    folder_id = request.headers.get("x-folder-id")
    if not authorization:
        raise RelayError(400, "Missing Authorization header", "validation_error")
    if not folder_id:
        raise RelayError(400, "Missing x-folder-id header", "validation_error")
    return {
        "Content-Type": "application/json",
        "Authorization": authorization,
        "x-folder-id": folder_id,
    }


def _openai_headers(request: Request) -> dict[str, str]:
    authorization = request.headers.get("authorization")
    if not authorization:
        raise RelayError(400, "Missing Authorization header", "validation_error")
    return {"Content-Type": "application/json", "Authorization": authorization}


def _passthrough(resp: httpx.Response) -> JSONResponse:
    """Upstream status and JSON body as-is; non-JSON error bodies get the envelope."""
    payload = response_payload(resp)
    if not resp.is_success and not isinstance(payload, dict):
        raise RelayError(resp.status_code, f"Upstream API error: {resp.status_code}", details=payload)
    return JSONResponse(status_code=resp.status_code, content=payload)


@router.post("/yandex/v1/completion")
async def yandex_completion(body: YandexCompletionRequest, request: Request) -> JSONResponse:
    headers = _yandex_headers(request)
    settings = _settings(request)
    resp = await _upstream(request).request(
        "yandex_completion",
        "POST",
        f"{settings.yandex_llm_url}/completion",
        headers=headers,
        json=body.to_upstream(),
        timeout=settings.completion_timeout_seconds,
    )
    data = response_payload(resp)
    if resp.status_code != 200:
        message = data.get("message") if isinstance(data, dict) else None
        raise RelayError(resp.status_code, message or "YandexGPT API error", "api_error", data)
    if not isinstance(data, dict) or not data.get("result"):
        raise RelayError(500, "Invalid response format from YandexGPT API", "api_error", data)
    return JSONResponse(content=data)


@router.post("/yandex/v1/images/generations")
async def yandex_image_generation(
    request: Request,
    body: dict[str, Any] = Body(...),
    wait: bool = False,
) -> JSONResponse:
    """Submit an async YandexART job. Returns the operation, or with wait=true the finished one."""
    headers = _yandex_headers(request)
    settings = _settings(request)
    resp = await _upstream(request).request(
        "yandex_image_generation",
        "POST",
        f"{settings.yandex_llm_url}/imageGenerationAsync",
        headers=headers,
        json=body,
        timeout=settings.request_timeout_seconds,
    )
    if not resp.is_success:
        return _passthrough(resp)

    data = response_payload(resp)
    operation_id = data.get("id") if isinstance(data, dict) else None
    if not operation_id:
        raise RelayError(500, "Invalid response: missing operation ID", "api_error", data)
    if not wait:
        return JSONResponse(content=data)

    logger.info("operation_wait_started", operation_id=operation_id)
    status = await request.app.state.operation_poller.poll(operation_id, headers)
    if status.state is OperationState.TIMED_OUT:
        raise RelayError(408, "Operation timed out", "timeout_error", {"operation_id": operation_id})
    if status.state is OperationState.DONE_ERROR:
        error = status.error if isinstance(status.error, dict) else {"message": str(status.error)}
        raise RelayError(400, error.get("message") or "Operation failed", "operation_error", error)
    return JSONResponse(content=status.raw)


@router.get("/operations/{operation_id}")
async def operation_status(operation_id: str, request: Request) -> JSONResponse:
    headers = _yandex_headers(request)
    settings = _settings(request)
    resp = await _upstream(request).request(
        "operation_status",
        "GET",
        f"{settings.yandex_operations_url}/{operation_id}",
        headers=headers,
        timeout=settings.request_timeout_seconds,
    )
    return _passthrough(resp)


@router.post("/yandex/v1/test")
async def yandex_test(request: Request) -> JSONResponse:
    """Smoke-test Yandex credentials with a tiny completion."""
    headers = _yandex_headers(request)
    settings = _settings(request)
    test_body = {
        "modelUri": f"gpt://{headers['x-folder-id']}/yandexgpt/rc",
        "completionOptions": {"stream": False, "temperature": 0.7, "maxTokens": "100"},
        "messages": [{"role": "user", "text": "Say 'Hello, World!'"}],
    }
    resp = await _upstream(request).request(
        "yandex_test",
        "POST",
        f"{settings.yandex_llm_url}/completion",
        headers=headers,
        json=test_body,
        timeout=settings.request_timeout_seconds,
    )
    return _passthrough(resp)


@router.post("/openai/v1/chat/completions")
async def openai_chat_completions(
    request: Request, body: dict[str, Any] = Body(...)
) -> JSONResponse:
    settings = _settings(request)
    resp = await _upstream(request).request(
        "openai_chat_completions",
        "POST",
        f"{settings.openai_url}/chat/completions",
        headers=_openai_headers(request),
        json=body,
        timeout=settings.completion_timeout_seconds,
    )
    return _passthrough(resp)


@router.post("/openai/v1/images/generations")
async def openai_image_generation(
    request: Request, body: dict[str, Any] = Body(...)
) -> JSONResponse:
    settings = _settings(request)
    resp = await _upstream(request).request(
        "openai_image_generation",
        "POST",
        f"{settings.openai_url}/images/generations",
        headers=_openai_headers(request),
        json=body,
        timeout=settings.completion_timeout_seconds,
    )
    return _passthrough(resp)


@router.get("/proxy-image")
async def proxy_image(request: Request, url: str | None = None) -> Response:
    """Download a remote image with the caller's credentials forwarded."""
    if not url:
        raise RelayError(400, "Missing url query parameter", "validation_error")
    if urlparse(url).scheme not in ("http", "https"):
        raise RelayError(400, "Only http and https image URLs are supported", "validation_error")

    headers: dict[str, str] = {}
    for name in ("authorization", "x-folder-id"):
        value = request.headers.get(name)
        if value:
            headers[name] = value

    settings = _settings(request)
    resp = await _upstream(request).request(
        "proxy_image", "GET", url, headers=headers, timeout=settings.request_timeout_seconds
    )
    if not resp.is_success:
        raise RelayError(
            resp.status_code, "Failed to download image", "api_error", response_payload(resp)
        )
    content_type = resp.headers.get("content-type", "")
    if not content_type.startswith("image/"):
        raise RelayError(502, "Invalid response: not an image", "api_error", {"content_type": content_type})
    return Response(content=resp.content, media_type=content_type)
