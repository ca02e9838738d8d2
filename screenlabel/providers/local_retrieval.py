"""Zero-cost provider that reuses labels of earlier captures.

Looks up completed captures from the same site (or, without a site, the
same app) and answers only when their labels agree strongly enough.
"""

import logging
import re
from collections import Counter
from typing import Final

from screenlabel.consts import LOCAL_RETRIEVAL_PROVIDER_ID
from screenlabel.models.model_classification import Category, ClassificationResult
from screenlabel.models.model_memory import CapturedEvent, EventStatus, MemoryType
from screenlabel.models.model_provider import (
    ClassificationInput,
    ClassificationProviderContext,
    ProviderAvailability,
)
from screenlabel.providers.base import ClassificationProvider
from screenlabel.providers.mapping import build_caption
from screenlabel.repositories.base import EventRepository, MemoryRepository

logger = logging.getLogger(__name__)

MAX_CANDIDATES: Final[int] = 250
MIN_CATEGORY_SAMPLES: Final[int] = 25
MIN_CATEGORY_RATIO: Final[float] = 0.75
MAX_CATEGORY_CONFIDENCE: Final[float] = 0.95
MIN_PROJECT_SAMPLES: Final[int] = 10
MIN_PROJECT_RATIO: Final[float] = 0.75
MIN_PROJECT_NAME_LENGTH: Final[int] = 3
MIN_TAG_EVENTS: Final[int] = 10
MIN_TAG_RATIO: Final[float] = 0.15
MAX_TAGS: Final[int] = 8

_WHITESPACE = re.compile(r"\s+")


def _compact(value: str | None) -> str | None:
    stripped = (value or "").strip()
    return stripped or None


def _normalize(value: str) -> str:
    return _WHITESPACE.sub(" ", value).strip().lower()


def _completed(events: list[CapturedEvent]) -> list[CapturedEvent]:
    return [e for e in events if e.status == EventStatus.COMPLETED]


def _majority(values: list[str]) -> tuple[str, float] | None:
    """Most common value and its share; first seen wins ties."""
    if not values:
        return None
    value, count = Counter(values).most_common(1)[0]
    return value, count / len(values)


def _as_category(value: str | None) -> Category | None:
    try:
        return Category(value) if value else None
    except ValueError:
        return None


def pick_category(events: list[CapturedEvent]) -> tuple[Category, float] | None:
    """Majority category of completed captures, with its confidence.

    Unknown labels are ignored when enough known labels remain.
    """
    labels = [c for c in (_as_category(e.category) for e in _completed(events)) if c]
    known = [c for c in labels if c != Category.UNKNOWN]
    base = known if len(known) >= MIN_CATEGORY_SAMPLES else labels
    if len(base) < MIN_CATEGORY_SAMPLES:
        return None

    majority = _majority([c.value for c in base])
    if majority is None:
        return None
    value, ratio = majority
    if ratio < MIN_CATEGORY_RATIO:
        return None
    return Category(value), min(MAX_CATEGORY_CONFIDENCE, max(0.0, ratio))


def _match_project_from_text(project_counts: Counter[str], text: str | None) -> str | None:
    haystack = _normalize(text or "")
    if not haystack:
        return None

    best: tuple[int, int, str] | None = None
    for project, count in project_counts.items():
        needle = _normalize(project)
        if len(needle) < MIN_PROJECT_NAME_LENGTH or needle not in haystack:
            continue
        candidate = (count, len(needle), project)
        if best is None or candidate[:2] > best[:2]:
            best = candidate
    return best[2] if best else None


def pick_project(events: list[CapturedEvent], text_hints: list[str | None]) -> str | None:
    """Project named in the text hints, else the dominant project of the captures."""
    projects = [p for p in (_compact(e.project) for e in _completed(events)) if p]
    if len(projects) < MIN_PROJECT_SAMPLES:
        return None

    project_counts = Counter(projects)
    for hint in text_hints:
        matched = _match_project_from_text(project_counts, hint)
        if matched:
            return matched

    majority = _majority(projects)
    if majority is None or majority[1] < MIN_PROJECT_RATIO:
        return None
    return majority[0]


def pick_tags(events: list[CapturedEvent], project: str | None) -> list[str]:
    """Tags shared by enough captures, in their most common spelling."""
    base = _completed(events)
    if project is not None:
        base = [e for e in base if _compact(e.project) == project]

    total = len(base)
    if total < MIN_TAG_EVENTS:
        return []

    counts: Counter[str] = Counter()
    spellings: dict[str, Counter[str]] = {}
    for event in base:
        per_event: dict[str, str] = {}
        for tag in event.tags:
            per_event.setdefault(tag.lower(), tag)
        for norm, spelling in per_event.items():
            counts[norm] += 1
            spellings.setdefault(norm, Counter())[spelling] += 1

    picked = [norm for norm, count in counts.most_common() if count / total >= MIN_TAG_RATIO]
    return [spellings[norm].most_common(1)[0][0] for norm in picked[:MAX_TAGS]]


class LocalRetrievalProvider(ClassificationProvider):
    """Labels a capture from the consensus of earlier captures.

    Declines when the user tracks addictions (detection needs a model) or
    when any candidate capture was assigned to a project.
    """

    def __init__(
        self,
        event_repository: EventRepository,
        memory_repository: MemoryRepository | None = None,
    ):
        self.event_repository = event_repository
        self.memory_repository = memory_repository

    @property
    def id(self) -> str:
        return LOCAL_RETRIEVAL_PROVIDER_ID

    async def is_available(self, ctx: ClassificationProviderContext) -> ProviderAvailability:
        return ProviderAvailability.ok()

    def _candidate_events(self, input: ClassificationInput) -> list[CapturedEvent]:
        ctx = input.context
        if ctx is None:
            return []
        if ctx.url_host:
            return self.event_repository.get_events(url_host=ctx.url_host, limit=MAX_CANDIDATES)
        if ctx.app_bundle_id:
            return self.event_repository.get_events(
                app_bundle_id=ctx.app_bundle_id, limit=MAX_CANDIDATES
            )
        return []

    async def classify(
        self, input: ClassificationInput, ctx: ClassificationProviderContext
    ) -> ClassificationResult | None:
        memories = self.memory_repository.get_memories() if self.memory_repository else []
        addiction_count = sum(1 for m in memories if m.type == MemoryType.ADDICTION)
        if addiction_count:
            logger.info(
                f"Skipping local retrieval: {addiction_count} addictions tracked, need LLM for detection"
            )
            return None

        candidates = self._candidate_events(input)
        if any(_compact(e.project) for e in _completed(candidates)):
            return None

        picked = pick_category(candidates)
        if picked is None:
            return None
        category, confidence = picked

        screen = input.context
        project = pick_project(
            candidates,
            [
                screen.content_title if screen else None,
                screen.window_title if screen else None,
                screen.user_caption if screen else None,
                input.ocr_text,
            ],
        )
        tags = pick_tags(candidates, project)

        logger.info(
            f"Local retrieval succeeded: category={category.value}, "
            f"confidence={confidence:.2f}, project={project}"
        )
        return ClassificationResult(
            category=category,
            project=project,
            tags=tags,
            confidence=confidence,
            caption=build_caption(screen),
        )
