"""Generator API routes."""
from fastapi import APIRouter, Request

from generator.api.schemas import (
    GeneratedBouquet,
    GenerationRequest,
    ModelCatalog,
    SuggestionsResponse,
)
from generator.service.catalog import list_models

router = APIRouter(prefix="/api/v1", tags=["generator"])


@router.post("/bouquets", response_model=GeneratedBouquet)
async def create_bouquet(body: GenerationRequest, request: Request) -> GeneratedBouquet:
    service = request.app.state.bouquet_service
    return await service.generate_bouquet(body)


@router.post("/suggestions", response_model=SuggestionsResponse)
async def create_suggestions(body: GenerationRequest, request: Request) -> SuggestionsResponse:
    service = request.app.state.bouquet_service
    suggestions = await service.get_suggestions(body)
    return SuggestionsResponse(suggestions=suggestions)


@router.get("/models", response_model=ModelCatalog)
async def models(request: Request) -> ModelCatalog:
    return list_models(request.app.state.settings.openai_enabled)
