"""Classification result models and LLM structured-output schemas."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

# === Enums ===


class Category(str, Enum):
    """Top-level activity category of a screenshot."""

    STUDY = "Study"
    WORK = "Work"
    LEISURE = "Leisure"
    CHORES = "Chores"
    SOCIAL = "Social"
    UNKNOWN = "Unknown"


class VerifierDecision(str, Enum):
    """Outcome of the addiction verification stage."""

    NONE = "none"
    CONFIRMED = "confirmed"
    CANDIDATE = "candidate"


# === Result shape ===


class ProjectProgress(BaseModel):
    """Whether the screenshot shows stakeholder-visible progress on a project."""

    shown: bool
    confidence: float = Field(ge=0.0, le=1.0)


class TrackedAddiction(BaseModel):
    """A confirmed match against one of the user's tracked addictions."""

    detected: bool = False
    name: str | None = None


class ClassificationResult(BaseModel):
    """Complete label for one screenshot.

    Providers without an addiction signal leave the addiction fields at their
    "not detected" defaults, so the shape is always complete.
    """

    category: Category
    subcategories: list[str] = Field(default_factory=list)
    project: str | None = None
    project_progress: ProjectProgress = Field(
        default_factory=lambda: ProjectProgress(shown=False, confidence=0.0)
    )
    tags: list[str] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=1.0)
    caption: str
    tracked_addiction: TrackedAddiction = Field(default_factory=TrackedAddiction)
    addiction_candidate: str | None = None
    addiction_confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    addiction_prompt: str | None = None


# === LLM structured output ===


class AddictionTriageCandidate(BaseModel):
    """One tracked addiction the model thinks may be on screen."""

    addiction_id: str
    likelihood: float = Field(ge=0.0, le=1.0)
    evidence: list[str]
    rationale: str


class AddictionTriage(BaseModel):
    """First-pass addiction signal emitted alongside the stage 1 label."""

    tracking_enabled: bool
    potentially_addictive: bool
    candidates: list[AddictionTriageCandidate]


class ClassificationStage1(BaseModel):
    """Structured output of the first classification pass.

    Every field is required; nullable fields must still be present.
    """

    category: Category
    subcategories: list[str]
    project: str | None
    project_progress: ProjectProgress
    potential_progress: bool
    tags: list[str]
    confidence: float = Field(ge=0.0, le=1.0)
    caption: str
    addiction_triage: AddictionTriage


class ClassificationStage2(BaseModel):
    """Structured output of the addiction verifier."""

    decision: VerifierDecision
    addiction_id: str | None
    confidence: float = Field(ge=0.0, le=1.0)
    evidence: list[str]
    manual_prompt: str | None


class PingResponse(BaseModel):
    """Reply expected from a connection test."""

    ok: Literal[True]
