"""Vision cloud provider with two-stage addiction verification.

Stage 1 labels the screenshot and triages tracked addictions. When the
triage names plausible candidates, stage 2 asks a stricter verifier to
confirm one, or to explain what the user should add to its definition.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Final

from screenlabel.consts import CLOUD_VISION_PROVIDER_ID
from screenlabel.llm.openrouter_client import OpenRouterClient
from screenlabel.llm.prompts import (
    build_addiction_options,
    build_stage1_system_prompt,
    build_stage2_system_prompt,
    is_self_app,
)
from screenlabel.models.model_classification import (
    AddictionTriage,
    ClassificationResult,
    ClassificationStage1,
    ClassificationStage2,
    TrackedAddiction,
    VerifierDecision,
)
from screenlabel.models.model_memory import AddictionOption, Memory
from screenlabel.models.model_provider import (
    AiMode,
    ClassificationInput,
    ClassificationProviderContext,
    ProviderAvailability,
    ScreenContext,
)
from screenlabel.providers.base import ClassificationProvider
from screenlabel.providers.mapping import normalize_project_progress
from screenlabel.repositories.base import MemoryRepository

logger = logging.getLogger(__name__)

MAX_VERIFY_CANDIDATES: Final[int] = 5
CONFIRM_CONFIDENCE_THRESHOLD: Final[float] = 0.75


@dataclass
class AddictionVerdict:
    """Resolved stage 2 decision."""

    confirmed: AddictionOption | None = None
    candidate: AddictionOption | None = None
    candidate_confidence: float | None = None
    candidate_prompt: str | None = None


def _image_part(image_base64: str) -> dict[str, Any]:
    return {"type": "image_url", "image_url": {"url": f"data:image/webp;base64,{image_base64}"}}


def select_candidates(
    triage: AddictionTriage, addictions: list[AddictionOption]
) -> list[AddictionOption]:
    """Known triage candidates, most likely first, capped at MAX_VERIFY_CANDIDATES."""
    by_id = {a.id: a for a in addictions}
    ranked = sorted(
        (c for c in triage.candidates if c.addiction_id in by_id),
        key=lambda c: c.likelihood,
        reverse=True,
    )
    return [by_id[c.addiction_id] for c in ranked[:MAX_VERIFY_CANDIDATES]]


def resolve_verdict(
    candidates: list[AddictionOption], stage2: ClassificationStage2
) -> AddictionVerdict:
    """Map a verifier reply onto one of the candidates, if any."""
    option = next((c for c in candidates if c.id == stage2.addiction_id), None)
    if option is None:
        return AddictionVerdict()
    if (
        stage2.decision == VerifierDecision.CONFIRMED
        and stage2.confidence >= CONFIRM_CONFIDENCE_THRESHOLD
    ):
        return AddictionVerdict(confirmed=option)
    if stage2.decision == VerifierDecision.CANDIDATE:
        return AddictionVerdict(
            candidate=option,
            candidate_confidence=stage2.confidence,
            candidate_prompt=stage2.manual_prompt,
        )
    return AddictionVerdict()


async def classify_screenshot(
    client: OpenRouterClient,
    api_key: str | None,
    image_base64: str,
    context: ScreenContext | None,
    memories: list[Memory],
    model: str | None = None,
) -> ClassificationResult:
    """Classify a screenshot image, verifying addiction candidates if needed.

    Args:
        client: OpenRouter client.
        api_key: OpenRouter API key.
        image_base64: Base64-encoded WebP screenshot.
        context: Screen context of the capture.
        memories: User memories for the prompt.
        model: Cloud model id. Defaults to the client default.

    Returns:
        The classification result.
    """
    addictions = build_addiction_options(memories)
    logger.debug(f"Vision classification: context={context is not None}, addictions={len(addictions)}")

    stage1 = await client.call_json(
        [
            {
                "role": "system",
                "content": build_stage1_system_prompt(memories, addictions, context),
            },
            {
                "role": "user",
                "content": [
                    _image_part(image_base64),
                    {"type": "text", "text": "Classify this screenshot."},
                ],
            },
        ],
        ClassificationStage1,
        api_key=api_key,
        model=model,
    )

    tracking_enabled = (
        bool(addictions)
        and stage1.addiction_triage.tracking_enabled
        and not is_self_app(context)
    )
    candidates = select_candidates(stage1.addiction_triage, addictions) if tracking_enabled else []

    verdict = AddictionVerdict()
    if candidates:
        payload = {
            "candidates": [{"id": c.id, "definition": c.definition} for c in candidates],
            "triage": stage1.addiction_triage.model_dump(),
        }
        stage2 = await client.call_json(
            [
                {"role": "system", "content": build_stage2_system_prompt(candidates, context)},
                {
                    "role": "user",
                    "content": [
                        _image_part(image_base64),
                        {"type": "text", "text": json.dumps(payload, indent=2, ensure_ascii=False)},
                    ],
                },
            ],
            ClassificationStage2,
            api_key=api_key,
            model=model,
        )
        verdict = resolve_verdict(candidates, stage2)
        logger.info(
            f"Addiction verification: decision={stage2.decision.value}, "
            f"confirmed={verdict.confirmed is not None}"
        )

    return ClassificationResult(
        category=stage1.category,
        subcategories=stage1.subcategories,
        project=stage1.project,
        project_progress=normalize_project_progress(stage1.project, stage1.project_progress),
        tags=stage1.tags,
        confidence=stage1.confidence,
        caption=stage1.caption,
        tracked_addiction=TrackedAddiction(
            detected=verdict.confirmed is not None,
            name=verdict.confirmed.name if verdict.confirmed else None,
        ),
        addiction_candidate=verdict.candidate.name if verdict.candidate else None,
        addiction_confidence=verdict.candidate_confidence,
        addiction_prompt=verdict.candidate_prompt,
    )


class CloudVisionProvider(ClassificationProvider):
    """Uploads the screenshot to a hosted vision model."""

    def __init__(
        self,
        client: OpenRouterClient,
        memory_repository: MemoryRepository | None = None,
    ):
        self.client = client
        self.memory_repository = memory_repository

    @property
    def id(self) -> str:
        return CLOUD_VISION_PROVIDER_ID

    async def is_available(self, ctx: ClassificationProviderContext) -> ProviderAvailability:
        if ctx.mode == AiMode.OFF:
            return ProviderAvailability.unavailable("AI is disabled")
        if ctx.mode == AiMode.LOCAL:
            return ProviderAvailability.unavailable("Cloud providers disabled")
        if not ctx.allow_vision_uploads:
            return ProviderAvailability.unavailable("Vision uploads disabled")
        if not ctx.api_key:
            return ProviderAvailability.unavailable("No API key configured")
        return ProviderAvailability.ok()

    async def classify(
        self, input: ClassificationInput, ctx: ClassificationProviderContext
    ) -> ClassificationResult | None:
        if ctx.mode in (AiMode.OFF, AiMode.LOCAL):
            return None
        if not ctx.allow_vision_uploads or not input.image_base64:
            return None

        memories = self.memory_repository.get_memories() if self.memory_repository else []
        return await classify_screenshot(
            self.client,
            ctx.api_key,
            input.image_base64,
            input.context,
            memories,
            model=ctx.cloud_model,
        )
