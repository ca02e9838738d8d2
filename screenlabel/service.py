"""Caller-facing classification service.

Wires settings, repositories, OCR and the default provider chain together:
1. Settings -> provider context and provider order
2. Optional OCR of the screenshot (failures mean "no text")
3. Router walk over the ordered providers
"""

import logging

import httpx

from screenlabel.config import AiSettings
from screenlabel.llm.openrouter_client import OpenRouterClient
from screenlabel.models.model_provider import (
    AiMode,
    ClassificationDecision,
    ClassificationInput,
    ConnectionTestResult,
    ProviderAvailability,
    ScreenContext,
)
from screenlabel.ocr import OcrEngine, recognize_text_safely
from screenlabel.policy import build_provider_context, build_provider_order
from screenlabel.providers.base import ClassificationProvider
from screenlabel.providers.cloud_text import CloudTextProvider
from screenlabel.providers.cloud_vision import CloudVisionProvider
from screenlabel.providers.local_baseline import LocalBaselineProvider
from screenlabel.providers.local_http import LocalHttpProvider, test_local_connection
from screenlabel.providers.local_retrieval import LocalRetrievalProvider
from screenlabel.repositories.base import EventRepository, MemoryRepository
from screenlabel.repositories.file_repository import InMemoryRepository
from screenlabel.router import AiRouter

logger = logging.getLogger(__name__)


def build_default_providers(
    memory_repository: MemoryRepository,
    event_repository: EventRepository,
    openrouter_client: OpenRouterClient,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[ClassificationProvider]:
    """Create one instance of every built-in provider."""
    return [
        LocalRetrievalProvider(event_repository, memory_repository),
        LocalHttpProvider(memory_repository, transport=transport),
        CloudTextProvider(openrouter_client, memory_repository),
        CloudVisionProvider(openrouter_client, memory_repository),
        LocalBaselineProvider(),
    ]


class ClassificationService:
    """Classifies captures according to the current AI settings."""

    def __init__(
        self,
        settings: AiSettings | None = None,
        memory_repository: MemoryRepository | None = None,
        event_repository: EventRepository | None = None,
        ocr_engine: OcrEngine | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        providers: list[ClassificationProvider] | None = None,
    ):
        """Initialize service.

        Args:
            settings: AI settings. Defaults to AiSettings().
            memory_repository: Source of user memories. Defaults to empty.
            event_repository: Source of earlier captures. Defaults to empty.
            ocr_engine: OCR engine used by classify_image.
            transport: Optional httpx transport shared by network providers.
            providers: Override the built-in provider set.
        """
        self.settings = settings or AiSettings()
        empty = InMemoryRepository()
        self.memory_repository = memory_repository if memory_repository is not None else empty
        self.event_repository = event_repository if event_repository is not None else empty
        self.ocr_engine = ocr_engine
        self._transport = transport
        self.openrouter_client = OpenRouterClient(transport=transport)

        if providers is None:
            providers = build_default_providers(
                self.memory_repository,
                self.event_repository,
                self.openrouter_client,
                transport=transport,
            )
        self.router = AiRouter(providers)

    def provider_order(self) -> list[str]:
        return build_provider_order(build_provider_context(self.settings))

    async def classify(self, input: ClassificationInput) -> ClassificationDecision:
        """Classify a prepared input with the current settings."""
        ctx = build_provider_context(self.settings)
        order = build_provider_order(ctx)
        logger.debug(f"Classifying with order {order}")
        return await self.router.classify(input, ctx, order)

    async def classify_image(
        self, image_base64: str, context: ScreenContext | None = None
    ) -> ClassificationDecision | None:
        """OCR a screenshot, then classify it.

        Args:
            image_base64: Base64-encoded screenshot.
            context: Screen context of the capture.

        Returns:
            The decision, or None when AI classification is disabled.
        """
        ctx = build_provider_context(self.settings)
        if ctx.mode == AiMode.OFF:
            logger.info("LLM disabled, skipping classification")
            return None

        ocr_text = await recognize_text_safely(self.ocr_engine, image_base64)
        input = ClassificationInput(image_base64=image_base64, ocr_text=ocr_text, context=context)
        return await self.router.classify(input, ctx, build_provider_order(ctx))

    async def get_availability(self) -> dict[str, ProviderAvailability]:
        """Availability of every provider in the current order."""
        ctx = build_provider_context(self.settings)
        return await self.router.get_availability(build_provider_order(ctx), ctx)

    async def test_local_connection(self) -> ConnectionTestResult:
        """Check the configured local model server."""
        if not self.settings.local_llm_enabled:
            return ConnectionTestResult(success=False, error="Local LLM is disabled")

        base_url = self.settings.local_llm_base_url.strip()
        model = self.settings.local_llm_model.strip()
        if not base_url or not model:
            return ConnectionTestResult(
                success=False, error="Local base URL or model not configured"
            )
        return await test_local_connection(base_url, model, transport=self._transport)

    async def test_cloud_connection(self) -> ConnectionTestResult:
        """Check the configured cloud API key and model."""
        return await self.openrouter_client.test_connection(
            self.settings.api_key, self.settings.cloud_llm_model
        )
