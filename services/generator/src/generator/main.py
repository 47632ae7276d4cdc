"""Generator service entrypoint."""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_client import make_asgi_app

from shared.logging import configure_logging
from shared.middleware import RequestIdMiddleware
from shared.schemas import HealthResponse

from generator.api.routes import router
from generator.clients import build_relay_client
from generator.config import GeneratorSettings
from generator.errors import register_error_handlers
from generator.service.bouquet_service import BouquetService

_settings: GeneratorSettings | None = None


def get_settings() -> GeneratorSettings:
    global _settings
    if _settings is None:
        _settings = GeneratorSettings()
    return _settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: GeneratorSettings = app.state.settings
    relay_client = build_relay_client(
        settings.relay_url,
        retries=settings.retries,
        retry_delay_seconds=settings.retry_delay_seconds,
        poll_timeout_seconds=settings.poll_timeout_seconds,
        poll_interval_seconds=settings.poll_interval_seconds,
        completion_timeout=settings.completion_timeout_seconds,
        request_timeout=settings.request_timeout_seconds,
    )
    app.state.bouquet_service = BouquetService(
        relay_client, openai_enabled=settings.openai_enabled
    )
    yield
    await relay_client.aclose()


def create_app(settings: GeneratorSettings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(json_logs=settings.json_logs, level=settings.log_level)
    app = FastAPI(title="Bouquet Generator", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.add_middleware(RequestIdMiddleware)
    register_error_handlers(app)

    app.include_router(router)

    metrics_app = make_asgi_app()
    app.mount("/metrics", metrics_app)

    @app.get("/healthz", response_model=HealthResponse)
    async def healthz() -> HealthResponse:
        return HealthResponse(status="ok", service="generator", version=app.version)

    @app.get("/readyz", response_model=HealthResponse)
    async def readyz() -> HealthResponse:
        ready = getattr(app.state, "bouquet_service", None) is not None
        return HealthResponse(
            status="ok" if ready else "unhealthy", service="generator", version=app.version
        )

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "generator.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
    )
