"""Router that walks an ordered provider chain until one answers.

Providers are tried strictly in the caller's order, one at a time. Every
entry in the order produces exactly one attempt record, repeats included, so
the trail explains why each provider did or did not answer.
"""

import logging
from collections.abc import Iterable, Mapping
from types import MappingProxyType

from screenlabel.errors import ProviderConfigurationError
from screenlabel.models.model_provider import (
    AiMode,
    ClassificationDecision,
    ClassificationInput,
    ClassificationProviderContext,
    ProviderAttempt,
    ProviderAvailability,
)
from screenlabel.providers.base import ClassificationProvider, OutcomeKind, ProviderOutcome

logger = logging.getLogger(__name__)

NOT_REGISTERED = "Provider not registered"
NULL_RESULT = "Null result"


class AiRouter:
    """Registry of providers keyed by id, plus the fallback walk."""

    def __init__(self, providers: Iterable[ClassificationProvider]):
        """Register providers.

        Args:
            providers: Providers to register. Ids must be unique.

        Raises:
            ProviderConfigurationError: If two providers share an id.
        """
        registry: dict[str, ClassificationProvider] = {}
        for provider in providers:
            if provider.id in registry:
                raise ProviderConfigurationError(f"Duplicate provider id: {provider.id}")
            registry[provider.id] = provider
        self._providers: Mapping[str, ClassificationProvider] = MappingProxyType(registry)

    @property
    def provider_ids(self) -> list[str]:
        return list(self._providers)

    async def _check_availability(
        self, provider: ClassificationProvider, ctx: ClassificationProviderContext
    ) -> ProviderAvailability:
        try:
            return await provider.is_available(ctx)
        except Exception as e:
            logger.warning(f"Availability check for {provider.id} raised: {e}")
            return ProviderAvailability.unavailable(str(e))

    async def get_availability(
        self, order: list[str], ctx: ClassificationProviderContext
    ) -> dict[str, ProviderAvailability]:
        """Report availability of each id in order, for diagnostics.

        Args:
            order: Provider ids to check.
            ctx: Provider settings.

        Returns:
            Mapping of id to availability.
        """
        availability: dict[str, ProviderAvailability] = {}
        for provider_id in order:
            provider = self._providers.get(provider_id)
            if provider is None:
                availability[provider_id] = ProviderAvailability.unavailable(NOT_REGISTERED)
                continue
            availability[provider_id] = await self._check_availability(provider, ctx)
        return availability

    async def classify(
        self,
        input: ClassificationInput,
        ctx: ClassificationProviderContext,
        order: list[str],
    ) -> ClassificationDecision:
        """Try providers in order and return the first accepted result.

        Provider failures never escape: they become attempt records and the
        walk continues. Only caller cancellation propagates.

        Args:
            input: Capture to classify.
            ctx: Provider settings. Mode OFF touches no provider.
            order: Provider ids, most preferred first.

        Returns:
            The decision with the full attempt trail.
        """
        if ctx.mode == AiMode.OFF:
            logger.debug("AI disabled, skipping classification")
            return ClassificationDecision(ok=False)

        attempts: list[ProviderAttempt] = []
        for provider_id in order:
            provider = self._providers.get(provider_id)
            if provider is None:
                logger.info(f"Provider {provider_id} not registered")
                attempts.append(
                    ProviderAttempt(provider_id=provider_id, available=False, error=NOT_REGISTERED)
                )
                continue

            availability = await self._check_availability(provider, ctx)
            if not availability.available:
                logger.info(f"Provider {provider_id} unavailable: {availability.reason}")
                attempts.append(
                    ProviderAttempt(
                        provider_id=provider_id, available=False, error=availability.reason
                    )
                )
                continue

            outcome = await ProviderOutcome.capture(provider, input, ctx)
            if outcome.kind == OutcomeKind.SUCCESS:
                attempts.append(
                    ProviderAttempt(
                        provider_id=provider_id, available=True, latency_ms=outcome.latency_ms
                    )
                )
                logger.info(f"Classified by {provider_id} in {outcome.latency_ms}ms")
                return ClassificationDecision(
                    ok=True, provider_id=provider_id, result=outcome.result, attempts=attempts
                )

            if outcome.kind == OutcomeKind.EMPTY:
                logger.info(f"Provider {provider_id} returned no result")
                error = NULL_RESULT
            else:
                logger.warning(f"Provider {provider_id} failed: {outcome.error}")
                error = str(outcome.error)
            attempts.append(
                ProviderAttempt(
                    provider_id=provider_id,
                    available=True,
                    latency_ms=outcome.latency_ms,
                    error=error,
                )
            )

        logger.warning(f"No provider produced a result ({len(attempts)} attempts)")
        return ClassificationDecision(ok=False, attempts=attempts)
