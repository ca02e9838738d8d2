"""Text-only cloud provider (OpenRouter)."""

import logging

from screenlabel.consts import CLOUD_TEXT_PROVIDER_ID
from screenlabel.llm.openrouter_client import OpenRouterClient
from screenlabel.llm.prompts import build_addiction_options
from screenlabel.models.model_classification import ClassificationResult, ClassificationStage1
from screenlabel.models.model_provider import (
    AiMode,
    ClassificationInput,
    ClassificationProviderContext,
    ProviderAvailability,
)
from screenlabel.providers.base import ClassificationProvider
from screenlabel.providers.mapping import (
    CLASSIFY_MAX_TOKENS,
    CLASSIFY_TEMPERATURE,
    FALLBACK_CONFIDENCE_THRESHOLD,
    build_text_only_messages,
    stage1_to_result,
    truncate_ocr,
)
from screenlabel.repositories.base import MemoryRepository

logger = logging.getLogger(__name__)


def should_defer_to_vision(
    stage1: ClassificationStage1, image_base64: str | None, allow_vision_uploads: bool
) -> bool:
    """Whether the vision provider should take over from a text-only answer.

    Only possible when a screenshot may be uploaded. Then a low-confidence
    answer, or any addiction candidate (which needs pixels to verify), defers.
    """
    if not allow_vision_uploads or not image_base64:
        return False
    if stage1.confidence < FALLBACK_CONFIDENCE_THRESHOLD:
        return True
    triage = stage1.addiction_triage
    return triage.tracking_enabled and len(triage.candidates) > 0


class CloudTextProvider(ClassificationProvider):
    """Classifies screen context and OCR text with a hosted model."""

    def __init__(
        self,
        client: OpenRouterClient,
        memory_repository: MemoryRepository | None = None,
    ):
        self.client = client
        self.memory_repository = memory_repository

    @property
    def id(self) -> str:
        return CLOUD_TEXT_PROVIDER_ID

    async def is_available(self, ctx: ClassificationProviderContext) -> ProviderAvailability:
        if ctx.mode == AiMode.OFF:
            return ProviderAvailability.unavailable("AI is disabled")
        if ctx.mode == AiMode.LOCAL:
            return ProviderAvailability.unavailable("Cloud providers disabled")
        if not ctx.api_key:
            return ProviderAvailability.unavailable("No API key configured")
        return ProviderAvailability.ok()

    async def classify(
        self, input: ClassificationInput, ctx: ClassificationProviderContext
    ) -> ClassificationResult | None:
        memories = self.memory_repository.get_memories() if self.memory_repository else []
        addictions = build_addiction_options(memories)

        ocr_text = truncate_ocr(input.ocr_text)
        if input.context is None and ocr_text is None:
            return None

        stage1 = await self.client.call_json(
            build_text_only_messages(memories, addictions, input.context, ocr_text),
            ClassificationStage1,
            api_key=ctx.api_key,
            model=ctx.cloud_model,
            max_tokens=CLASSIFY_MAX_TOKENS,
            temperature=CLASSIFY_TEMPERATURE,
        )

        if should_defer_to_vision(stage1, input.image_base64, ctx.allow_vision_uploads):
            logger.info("Text-only answer deferred to vision provider")
            return None

        return stage1_to_result(stage1)
