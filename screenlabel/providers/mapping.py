"""Helpers shared by the concrete providers."""

import json
from typing import Any, Final

from screenlabel.llm.prompts import build_stage1_system_prompt
from screenlabel.models.model_classification import (
    ClassificationResult,
    ClassificationStage1,
    ProjectProgress,
)
from screenlabel.models.model_memory import AddictionOption, Memory
from screenlabel.models.model_provider import ScreenContext

OCR_MAX_CHARS: Final[int] = 12_000
FALLBACK_CONFIDENCE_THRESHOLD: Final[float] = 0.55
CLASSIFY_MAX_TOKENS: Final[int] = 900
CLASSIFY_TEMPERATURE: Final[float] = 0.0
DEFAULT_CAPTION: Final[str] = "Screenshot captured"


def truncate_ocr(ocr_text: str | None) -> str | None:
    """Strip OCR text and cap it at OCR_MAX_CHARS. Empty text becomes None."""
    text = (ocr_text or "").strip()[:OCR_MAX_CHARS]
    return text or None


def normalize_project_progress(
    project: str | None, progress: ProjectProgress
) -> ProjectProgress:
    """Only keep a progress flag (and its confidence) when a project is set."""
    if not project or not progress.shown:
        return ProjectProgress(shown=False, confidence=0.0)
    return ProjectProgress(shown=True, confidence=progress.confidence)


def stage1_to_result(stage1: ClassificationStage1) -> ClassificationResult:
    """Map a stage 1 reply onto a result with no addiction signal."""
    return ClassificationResult(
        category=stage1.category,
        subcategories=stage1.subcategories,
        project=stage1.project,
        project_progress=normalize_project_progress(stage1.project, stage1.project_progress),
        tags=stage1.tags,
        confidence=stage1.confidence,
        caption=stage1.caption,
    )


def build_text_only_messages(
    memories: list[Memory],
    addictions: list[AddictionOption],
    context: ScreenContext | None,
    ocr_text: str | None,
) -> list[dict[str, Any]]:
    """Build system and user messages for a text-only stage 1 call."""
    return [
        {
            "role": "system",
            "content": build_stage1_system_prompt(memories, addictions, context, text_only=True),
        },
        {"role": "user", "content": json.dumps({"ocr_text": ocr_text}, indent=2, ensure_ascii=False)},
    ]


def build_caption(context: ScreenContext | None) -> str:
    """First non-empty of content title, window title, app name and site."""
    if context is not None:
        for value in (
            context.content_title,
            context.window_title,
            context.app_name,
            context.url_host,
        ):
            stripped = (value or "").strip()
            if stripped:
                return stripped
    return DEFAULT_CAPTION
