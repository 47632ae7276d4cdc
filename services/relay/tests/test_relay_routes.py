"""Tests for relay routes with a mocked upstream."""
import json
from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi.testclient import TestClient

from shared.http_client import RetryingHttpClient
from shared.operations import OperationPoller
from relay.clients.upstream import UpstreamClient
from relay.config import RelaySettings
from relay.main import create_app

YANDEX_HEADERS = {"Authorization": "Api-Key secret", "x-folder-id": "folder-1"}
OPENAI_HEADERS = {"Authorization": "Bearer sk-test"}

COMPLETION_OK = {
    "result": {
        "alternatives": [
            {"message": {"role": "assistant", "text": "Нежный букет"}, "status": "ALTERNATIVE_STATUS_FINAL"}
        ],
        "modelVersion": "1",
    }
}


class Upstream:
    """Records forwarded requests and answers from a route table."""

    def __init__(self, routes: dict[tuple[str, str], object]) -> None:
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        answer = self.routes[(request.method, request.url.path)]
        if callable(answer):
            return answer(request)
        return answer  # type: ignore[return-value]


def _make_client(upstream: Upstream, poll_attempts: int = 3) -> TestClient:
    settings = RelaySettings(json_logs=False)
    app = create_app(settings)
    http = httpx.AsyncClient(transport=httpx.MockTransport(upstream))
    app.state.upstream = UpstreamClient(http)
    app.state.operation_poller = OperationPoller(
        RetryingHttpClient(http, retries=0),
        f"{settings.yandex_operations_url}/{{operation_id}}",
        max_attempts=poll_attempts,
        sleep=AsyncMock(),
    )
    return TestClient(app)


COMPLETION_PATH = ("POST", "/foundationModels/v1/completion")
IMAGE_PATH = ("POST", "/foundationModels/v1/imageGenerationAsync")


@pytest.mark.parametrize(
    "headers, message",
    [
        ({}, "Missing Authorization header"),
        ({"Authorization": "Api-Key secret"}, "Missing x-folder-id header"),
    ],
)
def test_completion_requires_credentials(headers: dict[str, str], message: str) -> None:
    upstream = Upstream({})
    client = _make_client(upstream)
    resp = client.post(
        "/api/yandex/v1/completion",
        json={"modelUri": "gpt://folder-1/yandexgpt/latest", "messages": [{"role": "user", "text": "hi"}]},
        headers=headers,
    )
    assert resp.status_code == 400
    assert resp.json() == {"error": {"message": message, "type": "validation_error"}}
    assert upstream.requests == []


def test_completion_normalizes_options_and_forwards() -> None:
    upstream = Upstream({COMPLETION_PATH: httpx.Response(200, json=COMPLETION_OK)})
    client = _make_client(upstream)
    resp = client.post(
        "/api/yandex/v1/completion",
        json={
            "modelUri": "gpt://folder-1/yandexgpt/latest",
            "messages": [{"role": "user", "text": "hi"}],
            "temperature": 0.3,
            "maxTokens": 500,
        },
        headers=YANDEX_HEADERS,
    )
    assert resp.status_code == 200
    assert resp.json() == COMPLETION_OK

    forwarded = upstream.requests[0]
    assert forwarded.headers["Authorization"] == "Api-Key secret"
    assert forwarded.headers["x-folder-id"] == "folder-1"
    body = json.loads(forwarded.content)
    assert body["completionOptions"] == {"stream": False, "temperature": 0.3, "maxTokens": "500"}
    assert body["modelUri"] == "gpt://folder-1/yandexgpt/latest"


def test_completion_nested_options_win_and_defaults_apply() -> None:
    upstream = Upstream({COMPLETION_PATH: httpx.Response(200, json=COMPLETION_OK)})
    client = _make_client(upstream)
    client.post(
        "/api/yandex/v1/completion",
        json={
            "modelUri": "gpt://f/yandexgpt/latest",
            "messages": [{"role": "user", "text": "hi"}],
            "completionOptions": {"temperature": 0.0},
            "temperature": 0.9,
        },
        headers=YANDEX_HEADERS,
    )
    body = json.loads(upstream.requests[0].content)
    assert body["completionOptions"] == {"stream": False, "temperature": 0.0, "maxTokens": "2000"}


def test_completion_upstream_error_keeps_status() -> None:
    upstream = Upstream({COMPLETION_PATH: httpx.Response(401, json={"message": "Unknown api key"})})
    client = _make_client(upstream)
    resp = client.post(
        "/api/yandex/v1/completion",
        json={"modelUri": "gpt://f/yandexgpt/latest", "messages": [{"role": "user", "text": "hi"}]},
        headers=YANDEX_HEADERS,
    )
    assert resp.status_code == 401
    error = resp.json()["error"]
    assert error["message"] == "Unknown api key"
    assert error["type"] == "api_error"
    assert error["details"] == {"message": "Unknown api key"}


def test_completion_without_result_is_500() -> None:
    upstream = Upstream({COMPLETION_PATH: httpx.Response(200, json={"unexpected": True})})
    client = _make_client(upstream)
    resp = client.post(
        "/api/yandex/v1/completion",
        json={"modelUri": "gpt://f/yandexgpt/latest", "messages": [{"role": "user", "text": "hi"}]},
        headers=YANDEX_HEADERS,
    )
    assert resp.status_code == 500
    assert resp.json()["error"]["message"] == "Invalid response format from YandexGPT API"


def test_completion_invalid_body_is_400() -> None:
    client = _make_client(Upstream({}))
    resp = client.post("/api/yandex/v1/completion", json={"messages": []}, headers=YANDEX_HEADERS)
    assert resp.status_code == 400
    assert resp.json()["error"]["type"] == "validation_error"


def test_upstream_unreachable_is_500() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = _make_client(Upstream({COMPLETION_PATH: refuse}))
    resp = client.post(
        "/api/yandex/v1/completion",
        json={"modelUri": "gpt://f/yandexgpt/latest", "messages": [{"role": "user", "text": "hi"}]},
        headers=YANDEX_HEADERS,
    )
    assert resp.status_code == 500
    assert resp.json()["error"]["type"] == "api_error"


def test_image_submission_returns_operation() -> None:
    upstream = Upstream({IMAGE_PATH: httpx.Response(200, json={"id": "op-1", "done": False})})
    client = _make_client(upstream)
    resp = client.post(
        "/api/yandex/v1/images/generations",
        json={"modelUri": "art://folder-1/yandex-art/latest", "messages": [{"text": "roses", "weight": "1"}]},
        headers=YANDEX_HEADERS,
    )
    assert resp.status_code == 200
    assert resp.json() == {"id": "op-1", "done": False}
    assert json.loads(upstream.requests[0].content)["modelUri"] == "art://folder-1/yandex-art/latest"


def test_image_submission_without_id_is_500() -> None:
    client = _make_client(Upstream({IMAGE_PATH: httpx.Response(200, json={"done": False})}))
    resp = client.post("/api/yandex/v1/images/generations", json={}, headers=YANDEX_HEADERS)
    assert resp.status_code == 500
    assert resp.json()["error"]["message"] == "Invalid response: missing operation ID"


def test_image_submission_error_passes_through() -> None:
    error = {"error": {"message": "quota exceeded", "code": 8}}
    client = _make_client(Upstream({IMAGE_PATH: httpx.Response(429, json=error)}))
    resp = client.post("/api/yandex/v1/images/generations", json={}, headers=YANDEX_HEADERS)
    assert resp.status_code == 429
    assert resp.json() == error


def test_image_wait_polls_until_done() -> None:
    checks = {"n": 0}

    def operation(request: httpx.Request) -> httpx.Response:
        checks["n"] += 1
        if checks["n"] == 1:
            return httpx.Response(200, json={"id": "op-1", "done": False})
        return httpx.Response(200, json={"id": "op-1", "done": True, "response": {"image": "QQ=="}})

    upstream = Upstream(
        {
            IMAGE_PATH: httpx.Response(200, json={"id": "op-1", "done": False}),
            ("GET", "/operations/op-1"): operation,
        }
    )
    client = _make_client(upstream)
    resp = client.post(
        "/api/yandex/v1/images/generations?wait=true", json={}, headers=YANDEX_HEADERS
    )
    assert resp.status_code == 200
    assert resp.json()["response"]["image"] == "QQ=="
    assert checks["n"] == 2


def test_image_wait_timeout_is_408() -> None:
    upstream = Upstream(
        {
            IMAGE_PATH: httpx.Response(200, json={"id": "op-1"}),
            ("GET", "/operations/op-1"): httpx.Response(200, json={"id": "op-1", "done": False}),
        }
    )
    client = _make_client(upstream, poll_attempts=3)
    resp = client.post(
        "/api/yandex/v1/images/generations?wait=true", json={}, headers=YANDEX_HEADERS
    )
    assert resp.status_code == 408
    assert resp.json()["error"]["message"] == "Operation timed out"
    assert len([r for r in upstream.requests if r.method == "GET"]) == 3


def test_image_wait_operation_error_is_400() -> None:
    upstream = Upstream(
        {
            IMAGE_PATH: httpx.Response(200, json={"id": "op-1"}),
            ("GET", "/operations/op-1"): httpx.Response(
                200, json={"done": True, "error": {"code": 3, "message": "bad prompt"}}
            ),
        }
    )
    client = _make_client(upstream)
    resp = client.post(
        "/api/yandex/v1/images/generations?wait=true", json={}, headers=YANDEX_HEADERS
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "bad prompt"


def test_operation_status_passthrough() -> None:
    body = {"id": "op-9", "done": False}
    upstream = Upstream({("GET", "/operations/op-9"): httpx.Response(200, json=body)})
    client = _make_client(upstream)
    resp = client.get("/api/operations/op-9", headers=YANDEX_HEADERS)
    assert resp.status_code == 200
    assert resp.json() == body
    assert upstream.requests[0].headers["x-folder-id"] == "folder-1"


def test_operation_status_error_status_is_kept() -> None:
    error = {"code": 5, "message": "Operation not found"}
    client = _make_client(Upstream({("GET", "/operations/nope"): httpx.Response(404, json=error)}))
    resp = client.get("/api/operations/nope", headers=YANDEX_HEADERS)
    assert resp.status_code == 404
    assert resp.json() == error


def test_openai_chat_requires_authorization() -> None:
    client = _make_client(Upstream({}))
    resp = client.post("/api/openai/v1/chat/completions", json={"model": "gpt-4"})
    assert resp.status_code == 400
    assert resp.json()["error"]["type"] == "validation_error"


def test_openai_routes_pass_through() -> None:
    chat = {"choices": [{"message": {"content": "Lovely"}}]}
    images = {"data": [{"url": "https://img.test/1.png"}]}
    upstream = Upstream(
        {
            ("POST", "/v1/chat/completions"): httpx.Response(200, json=chat),
            ("POST", "/v1/images/generations"): httpx.Response(200, json=images),
        }
    )
    client = _make_client(upstream)

    resp = client.post("/api/openai/v1/chat/completions", json={"model": "gpt-4"}, headers=OPENAI_HEADERS)
    assert resp.json() == chat
    resp = client.post("/api/openai/v1/images/generations", json={"model": "dall-e-3"}, headers=OPENAI_HEADERS)
    assert resp.json() == images
    assert all(r.headers["Authorization"] == "Bearer sk-test" for r in upstream.requests)


def test_openai_rate_limit_status_is_kept() -> None:
    error = {"error": {"message": "Rate limit reached", "type": "requests"}}
    client = _make_client(Upstream({("POST", "/v1/chat/completions"): httpx.Response(429, json=error)}))
    resp = client.post("/api/openai/v1/chat/completions", json={}, headers=OPENAI_HEADERS)
    assert resp.status_code == 429
    assert resp.json() == error


def test_yandex_test_endpoint_uses_folder_model() -> None:
    upstream = Upstream({COMPLETION_PATH: httpx.Response(200, json=COMPLETION_OK)})
    client = _make_client(upstream)
    resp = client.post("/api/yandex/v1/test", headers=YANDEX_HEADERS)
    assert resp.status_code == 200
    body = json.loads(upstream.requests[0].content)
    assert body["modelUri"] == "gpt://folder-1/yandexgpt/rc"


def test_proxy_image_returns_bytes() -> None:
    upstream = Upstream(
        {("GET", "/img/1.png"): httpx.Response(200, content=b"\x89PNG", headers={"content-type": "image/png"})}
    )
    client = _make_client(upstream)
    resp = client.get(
        "/api/proxy-image", params={"url": "https://img.test/img/1.png"}, headers=OPENAI_HEADERS
    )
    assert resp.status_code == 200
    assert resp.content == b"\x89PNG"
    assert resp.headers["content-type"] == "image/png"
    assert upstream.requests[0].headers["authorization"] == "Bearer sk-test"


@pytest.mark.parametrize("url", [None, "file:///etc/passwd"])
def test_proxy_image_rejects_bad_url(url: str | None) -> None:
    client = _make_client(Upstream({}))
    params = {"url": url} if url else {}
    resp = client.get("/api/proxy-image", params=params)
    assert resp.status_code == 400


def test_proxy_image_rejects_non_image() -> None:
    upstream = Upstream(
        {("GET", "/page"): httpx.Response(200, text="<html/>", headers={"content-type": "text/html"})}
    )
    client = _make_client(upstream)
    resp = client.get("/api/proxy-image", params={"url": "https://img.test/page"})
    assert resp.status_code == 502
    assert resp.json()["error"]["message"] == "Invalid response: not an image"


def test_healthz() -> None:
    client = _make_client(Upstream({}))
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json()["service"] == "relay"
