"""Relay service entrypoint - forwards browser calls to provider APIs."""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_client import make_asgi_app

from shared.http_client import RetryingHttpClient, create_http_client
from shared.logging import configure_logging
from shared.middleware import RequestIdMiddleware
from shared.operations import OperationPoller
from shared.schemas import HealthResponse

from relay.api.routes import router
from relay.clients.upstream import UpstreamClient
from relay.config import RelaySettings
from relay.errors import register_error_handlers

_settings: RelaySettings | None = None


def get_settings() -> RelaySettings:
    global _settings
    if _settings is None:
        _settings = RelaySettings()
    return _settings


def build_operation_poller(settings: RelaySettings, http: RetryingHttpClient) -> OperationPoller:
    return OperationPoller(
        http,
        f"{settings.yandex_operations_url}/{{operation_id}}",
        max_attempts=settings.poll_max_attempts,
        interval_seconds=settings.poll_interval_seconds,
        timeout=settings.request_timeout_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: RelaySettings = app.state.settings
    client = create_http_client(timeout=settings.completion_timeout_seconds)
    app.state.upstream = UpstreamClient(client)
    # server-side waiting issues single-attempt checks against the same client
    app.state.operation_poller = build_operation_poller(
        settings, RetryingHttpClient(client, retries=0)
    )
    yield
    await client.aclose()


def create_app(settings: RelaySettings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(json_logs=settings.json_logs, level=settings.log_level)
    app = FastAPI(title="Bouquet Relay", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.add_middleware(RequestIdMiddleware)
    register_error_handlers(app)

    app.include_router(router)

    metrics_app = make_asgi_app()
    app.mount("/metrics", metrics_app)

    @app.get("/healthz", response_model=HealthResponse)
    async def healthz() -> HealthResponse:
        return HealthResponse(status="ok", service="relay", version=app.version)

    @app.get("/readyz", response_model=HealthResponse)
    async def readyz() -> HealthResponse:
        ready = getattr(app.state, "upstream", None) is not None
        return HealthResponse(status="ok" if ready else "unhealthy", service="relay", version=app.version)

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "relay.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
    )
