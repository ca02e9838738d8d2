"""Pure functions turning settings into a provider context and order."""

from screenlabel.config import AiSettings
from screenlabel.consts import (
    CLOUD_TEXT_PROVIDER_ID,
    CLOUD_VISION_PROVIDER_ID,
    LOCAL_BASELINE_PROVIDER_ID,
    LOCAL_HTTP_PROVIDER_ID,
    LOCAL_RETRIEVAL_PROVIDER_ID,
)
from screenlabel.models.model_provider import AiMode, ClassificationProviderContext


def _non_empty(value: str | None) -> str | None:
    stripped = (value or "").strip()
    return stripped or None


def build_provider_context(settings: AiSettings) -> ClassificationProviderContext:
    """Derive per-call provider settings.

    Mode is OFF when the LLM is disabled and HYBRID otherwise; local and
    cloud restrictions are enforced by each provider's availability check.
    Local server settings only apply when the local LLM is enabled.
    """
    local_enabled = settings.local_llm_enabled
    return ClassificationProviderContext(
        mode=AiMode.HYBRID if settings.llm_enabled else AiMode.OFF,
        api_key=_non_empty(settings.api_key),
        allow_vision_uploads=settings.allow_vision_uploads,
        cloud_model=_non_empty(settings.cloud_llm_model),
        local_base_url=_non_empty(settings.local_llm_base_url) if local_enabled else None,
        local_model=_non_empty(settings.local_llm_model) if local_enabled else None,
    )


def build_provider_order(ctx: ClassificationProviderContext) -> list[str]:
    """Order provider ids from free and local to paid and remote.

    Always starts with local retrieval and ends with the baseline, which
    answers every capture.

    Args:
        ctx: Provider settings.

    Returns:
        Provider ids, most preferred first.
    """
    order = [LOCAL_RETRIEVAL_PROVIDER_ID]
    if ctx.local_base_url and ctx.local_model:
        order.append(LOCAL_HTTP_PROVIDER_ID)
    if ctx.api_key:
        order.append(CLOUD_TEXT_PROVIDER_ID)
        if ctx.allow_vision_uploads:
            order.append(CLOUD_VISION_PROVIDER_ID)
    order.append(LOCAL_BASELINE_PROVIDER_ID)
    return order
