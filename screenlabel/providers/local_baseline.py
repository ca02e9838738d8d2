"""Network-free provider that always answers.

Matches a small keyword table against the app, window, site, content kind
and OCR text. Falls back to Unknown when nothing matches, so a fallback
chain ending here never comes back empty.
"""

import logging
from dataclasses import dataclass
from typing import Final

from screenlabel.consts import LOCAL_BASELINE_PROVIDER_ID
from screenlabel.models.model_classification import Category, ClassificationResult
from screenlabel.models.model_provider import (
    ClassificationInput,
    ClassificationProviderContext,
    ProviderAvailability,
)
from screenlabel.providers.base import ClassificationProvider
from screenlabel.providers.mapping import build_caption

logger = logging.getLogger(__name__)

MATCH_CONFIDENCE: Final[float] = 0.35
FALLBACK_CONFIDENCE: Final[float] = 0.1
OCR_SCAN_CHARS: Final[int] = 2_000

CATEGORY_KEYWORDS: Final[dict[Category, tuple[str, ...]]] = {
    Category.WORK: (
        "code", "xcode", "terminal", "iterm", "github", "gitlab", "jira", "linear",
        "figma", "notion", "slack", "outlook", "docs.google", "excel",
        "powerpoint", "keynote", "zoom", "meet.google",
    ),
    Category.STUDY: (
        "coursera", "udemy", "khan", "edx", "wikipedia", "arxiv", "duolingo",
        "anki", "scholar", "lecture", "course", "tutorial",
    ),
    Category.LEISURE: (
        "youtube", "netflix", "twitch", "spotify", "reddit", "tiktok", "instagram",
        "steam", "game", "hulu", "disney", "primevideo", "twitter",
    ),
    Category.SOCIAL: (
        "messages", "whatsapp", "telegram", "discord", "signal", "messenger",
        "facetime", "imessage",
    ),
    Category.CHORES: (
        "amazon", "bank", "calendar", "invoice", "paypal", "booking", "checkout",
        "grocery", "tax",
    ),
}


@dataclass
class KeywordMatch:
    """A keyword found in one of the capture's text fields."""

    keyword: str
    category: Category
    field: str


def match_keywords(fields: dict[str, str]) -> list[KeywordMatch]:
    """Find category keywords in the given fields.

    Args:
        fields: Field name to lowercase text.

    Returns:
        One match per (category, field), in table order.
    """
    matches: list[KeywordMatch] = []
    for category, keywords in CATEGORY_KEYWORDS.items():
        for name, text in fields.items():
            keyword = next((k for k in keywords if k in text), None)
            if keyword:
                matches.append(KeywordMatch(keyword=keyword, category=category, field=name))
    return matches


class LocalBaselineProvider(ClassificationProvider):
    """Keyword heuristic that labels every capture."""

    @property
    def id(self) -> str:
        return LOCAL_BASELINE_PROVIDER_ID

    async def is_available(self, ctx: ClassificationProviderContext) -> ProviderAvailability:
        return ProviderAvailability.ok()

    async def classify(
        self, input: ClassificationInput, ctx: ClassificationProviderContext
    ) -> ClassificationResult:
        screen = input.context
        fields: dict[str, str] = {}
        if screen is not None:
            for name in ("app_name", "app_bundle_id", "window_title", "url_host", "content_kind"):
                value = getattr(screen, name)
                if value:
                    fields[name] = value.lower()
        if input.ocr_text:
            fields["ocr_text"] = input.ocr_text[:OCR_SCAN_CHARS].lower()

        matches = match_keywords(fields)
        if not matches:
            logger.debug("Baseline found no keyword match")
            return ClassificationResult(
                category=Category.UNKNOWN,
                confidence=FALLBACK_CONFIDENCE,
                caption=build_caption(screen),
            )

        votes: dict[Category, int] = {}
        for match in matches:
            votes[match.category] = votes.get(match.category, 0) + 1
        category = max(votes, key=lambda c: votes[c])
        tags = list(dict.fromkeys(m.keyword for m in matches if m.category == category))

        logger.debug(f"Baseline matched {category.value} via {tags}")
        return ClassificationResult(
            category=category,
            tags=tags,
            confidence=MATCH_CONFIDENCE,
            caption=build_caption(screen),
        )
