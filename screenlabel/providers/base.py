"""Provider contract and the three-way outcome of a classify call."""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from screenlabel.models.model_classification import ClassificationResult
from screenlabel.models.model_provider import (
    ClassificationInput,
    ClassificationProviderContext,
    ProviderAvailability,
)


class ClassificationProvider(ABC):
    """Abstract base class for classification backends.

    Providers must not keep mutable per-call state: one instance may serve
    concurrent classify calls.
    """

    @property
    @abstractmethod
    def id(self) -> str:
        """Return the stable provider id (e.g. 'local.http')."""
        ...

    @abstractmethod
    async def is_available(self, ctx: ClassificationProviderContext) -> ProviderAvailability:
        """Check cheaply whether this provider can run under ctx.

        Args:
            ctx: Provider settings for this call.

        Returns:
            Availability, with a reason when unavailable.
        """
        ...

    @abstractmethod
    async def classify(
        self, input: ClassificationInput, ctx: ClassificationProviderContext
    ) -> ClassificationResult | None:
        """Classify one capture.

        Args:
            input: Image, OCR text and screen context.
            ctx: Provider settings for this call.

        Returns:
            A result, or None to let the next provider try (soft rejection).

        Raises:
            Exception: On genuine failures (network, malformed reply, timeout).
        """
        ...


class OutcomeKind(str, Enum):
    """How a provider's classify call ended."""

    SUCCESS = "success"
    EMPTY = "empty"
    ERROR = "error"


@dataclass
class ProviderOutcome:
    """Result of running one provider's classify, with measured latency."""

    kind: OutcomeKind
    latency_ms: int
    result: ClassificationResult | None = None
    error: Exception | None = None

    @classmethod
    async def capture(
        cls,
        provider: ClassificationProvider,
        input: ClassificationInput,
        ctx: ClassificationProviderContext,
    ) -> "ProviderOutcome":
        """Await provider.classify and fold its return or raise into an outcome.

        asyncio.CancelledError is a BaseException and is not captured.
        """
        start = time.perf_counter()
        try:
            result = await provider.classify(input, ctx)
        except Exception as e:
            return cls(OutcomeKind.ERROR, _elapsed_ms(start), error=e)
        if result is None:
            return cls(OutcomeKind.EMPTY, _elapsed_ms(start))
        return cls(OutcomeKind.SUCCESS, _elapsed_ms(start), result=result)


def _elapsed_ms(start: float) -> int:
    return round((time.perf_counter() - start) * 1000)
