"""Pydantic models for screenlabel."""

from screenlabel.models.model_classification import (
    AddictionTriage,
    AddictionTriageCandidate,
    Category,
    ClassificationResult,
    ClassificationStage1,
    ClassificationStage2,
    PingResponse,
    ProjectProgress,
    TrackedAddiction,
    VerifierDecision,
)
from screenlabel.models.model_memory import (
    AddictionOption,
    CapturedEvent,
    EventStatus,
    Memory,
    MemoryType,
)
from screenlabel.models.model_provider import (
    AiMode,
    ClassificationDecision,
    ClassificationInput,
    ClassificationProviderContext,
    ConnectionTestResult,
    ProviderAttempt,
    ProviderAvailability,
    ScreenContext,
)

__all__ = [
    # Classification
    "AddictionTriage",
    "AddictionTriageCandidate",
    "Category",
    "ClassificationResult",
    "ClassificationStage1",
    "ClassificationStage2",
    "PingResponse",
    "ProjectProgress",
    "TrackedAddiction",
    "VerifierDecision",
    # Memory
    "AddictionOption",
    "CapturedEvent",
    "EventStatus",
    "Memory",
    "MemoryType",
    # Provider
    "AiMode",
    "ClassificationDecision",
    "ClassificationInput",
    "ClassificationProviderContext",
    "ConnectionTestResult",
    "ProviderAttempt",
    "ProviderAvailability",
    "ScreenContext",
]
