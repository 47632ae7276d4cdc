"""Bouquet service: pathway selection, provider calls, result assembly."""
import structlog
from prometheus_client import Counter

from shared.errors import (
    GenerationError,
    OperationTimeoutError,
    PermanentApiError,
    ValidationError,
)
from shared.operations import OperationState
from generator.api.schemas import GeneratedBouquet, GenerationRequest, Provider
from generator.clients import RelayClient
from generator.service import prompts
from generator.service.parsing import (
    extract_completion_text,
    extract_image_url,
    parse_suggestions,
)

logger = structlog.get_logger(__name__)

GENERATIONS = Counter(
    "bouquet_generations_total",
    "Bouquet generations by provider and outcome",
    ["provider", "outcome"],
)


class BouquetService:
    """Runs one generation per call; holds no per-request state, so re-invoking is safe.

    Pathway A (OpenAI): description, then 1 or 3 image URLs; any failure aborts.
    Pathway B (Yandex): base description, then an enhanced rewrite and 2 polled
    image jobs. A failure after the base description degrades the result to the
    base description plus the images collected so far.
    """

    def __init__(self, relay: RelayClient, openai_enabled: bool = True) -> None:
        self._relay = relay
        self._openai_enabled = openai_enabled

    def validate(self, request: GenerationRequest) -> None:
        """Credential and model checks for the request's pathway."""
        credentials = request.credentials
        if request.provider is Provider.YANDEX:
            if not credentials.yandex_api_key or not credentials.yandex_folder_id:
                raise ValidationError("YandexGPT API key and Folder ID are required")
            prompts.yandex_model_uri(credentials.yandex_folder_id, request.text_model)
            return
        if not self._openai_enabled:
            raise ValidationError(f"OpenAI models are disabled: {request.text_model}")
        if not credentials.openai_api_key:
            raise ValidationError("OpenAI API key is required")

    async def generate_bouquet(self, request: GenerationRequest) -> GeneratedBouquet:
        if not request.flowers:
            raise ValidationError("At least one flower must be selected")
        self.validate(request)

        provider = request.provider
        logger.info(
            "bouquet_generation_started",
            provider=provider.value,
            text_model=request.text_model,
            image_model=request.image_model,
            flowers=len(request.flowers),
        )
        try:
            if provider is Provider.YANDEX:
                result = await self._generate_with_yandex(request)
            else:
                result = await self._generate_with_openai(request)
        except GenerationError as e:
            GENERATIONS.labels(provider=provider.value, outcome="error").inc()
            logger.error(
                "bouquet_generation_failed",
                provider=provider.value,
                error_type=type(e).__name__,
                error=e.message,
            )
            raise

        outcome = "degraded" if result.degraded else "ok"
        GENERATIONS.labels(provider=provider.value, outcome=outcome).inc()
        logger.info(
            "bouquet_generation_finished",
            provider=provider.value,
            outcome=outcome,
            images=len(result.images),
        )
        return result

    async def get_suggestions(self, request: GenerationRequest) -> list[list[str]]:
        self.validate(request)
        credentials = request.credentials
        if request.provider is Provider.YANDEX:
            model_uri = prompts.yandex_model_uri(credentials.yandex_folder_id, request.text_model)
            data = await self._relay.yandex_completion(
                prompts.build_yandex_suggestions_body(request, model_uri), credentials
            )
        else:
            data = await self._relay.openai_chat(
                prompts.build_openai_suggestions_body(request), credentials.openai_api_key
            )
        text = extract_completion_text(data, request.provider)
        suggestions = parse_suggestions(text)
        logger.info("suggestions_generated", provider=request.provider.value, count=len(suggestions))
        return suggestions

    async def _generate_with_openai(self, request: GenerationRequest) -> GeneratedBouquet:
        credentials = request.credentials
        data = await self._relay.openai_chat(
            prompts.build_openai_description_body(request), credentials.openai_api_key
        )
        description = extract_completion_text(data, Provider.OPENAI)

        image_body = prompts.build_openai_image_body(request)
        images: list[str] = []
        for _ in range(prompts.openai_image_count(request.image_model)):
            data = await self._relay.openai_image(image_body, credentials.image_api_key)
            images.append(extract_image_url(data))

        return GeneratedBouquet(
            flowers=tuple(request.flowers),
            description=description,
            images=tuple(images),
        )

    async def _generate_with_yandex(self, request: GenerationRequest) -> GeneratedBouquet:
        credentials = request.credentials
        model_uri = prompts.yandex_model_uri(credentials.yandex_folder_id, request.text_model)
        data = await self._relay.yandex_completion(
            prompts.build_yandex_description_body(request, model_uri), credentials
        )
        base_description = extract_completion_text(data, Provider.YANDEX)

        images: list[str] = []
        try:
            data = await self._relay.yandex_completion(
                prompts.build_yandex_enhance_body(model_uri, base_description),
                credentials,
                timeout=self._relay.request_timeout,
            )
            description = extract_completion_text(data, Provider.YANDEX)

            image_body = prompts.build_yandex_image_body(request)
            for _ in range(prompts.YANDEX_IMAGE_COUNT):
                images.append(await self._generate_yandex_image(image_body, request))
        except GenerationError as e:
            logger.warning(
                "bouquet_enrichment_failed",
                error_type=type(e).__name__,
                error=e.message,
                images_collected=len(images),
            )
            return GeneratedBouquet(
                flowers=tuple(request.flowers),
                description=base_description,
                images=tuple(images),
                degraded=True,
            )

        return GeneratedBouquet(
            flowers=tuple(request.flowers),
            description=description,
            images=tuple(images),
        )

    async def _generate_yandex_image(self, body: dict, request: GenerationRequest) -> str:
        operation_id = await self._relay.submit_yandex_image(body, request.credentials)
        status = await self._relay.wait_for_operation(operation_id, request.credentials)
        if status.state is OperationState.TIMED_OUT:
            raise OperationTimeoutError(operation_id, status.attempts)
        if status.state is not OperationState.DONE_SUCCESS or status.image is None:
            error = status.error if isinstance(status.error, dict) else {"message": str(status.error)}
            raise PermanentApiError(
                error.get("message") or f"Operation {operation_id} failed", payload=error
            )
        return prompts.image_data_uri(status.image)
