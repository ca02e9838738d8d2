"""Provider backed by a locally hosted OpenAI-compatible model server."""

import logging
from typing import Final

import httpx

from screenlabel.consts import LOCAL_HTTP_PROVIDER_ID
from screenlabel.llm.chat_client import (
    ChatCompletionClient,
    build_chat_body,
    build_chat_completions_url,
)
from screenlabel.llm.prompts import build_addiction_options
from screenlabel.models.model_classification import (
    ClassificationResult,
    ClassificationStage1,
    PingResponse,
)
from screenlabel.models.model_provider import (
    AiMode,
    ClassificationInput,
    ClassificationProviderContext,
    ConnectionTestResult,
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

DEFAULT_TIMEOUT_MS: Final[int] = 180_000
DEFAULT_TEST_TIMEOUT_MS: Final[int] = 15_000
PING_SYSTEM_PROMPT: Final[str] = 'Return ONLY valid JSON: {"ok": true}'


def _local_client(
    base_url: str, transport: httpx.AsyncBaseTransport | None
) -> ChatCompletionClient:
    return ChatCompletionClient(
        build_chat_completions_url(base_url),
        error_label="Local OpenAI",
        empty_message="No response from local model",
        transport=transport,
    )


class LocalHttpProvider(ClassificationProvider):
    """Text-only classification through a local chat-completion server.

    Sends screen context and OCR text (never pixels) and maps the stage 1
    reply onto a result. Answers below FALLBACK_CONFIDENCE_THRESHOLD are
    dropped so a later provider can try.
    """

    def __init__(
        self,
        memory_repository: MemoryRepository | None = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize provider.

        Args:
            memory_repository: Source of user memories for the prompt.
            timeout_ms: Per-request timeout in milliseconds.
            transport: Optional httpx transport, used by tests to mock the server.
        """
        self.memory_repository = memory_repository
        self.timeout_ms = timeout_ms
        self._transport = transport

    @property
    def id(self) -> str:
        return LOCAL_HTTP_PROVIDER_ID

    async def is_available(self, ctx: ClassificationProviderContext) -> ProviderAvailability:
        if ctx.mode == AiMode.OFF:
            return ProviderAvailability.unavailable("AI is disabled")
        if ctx.mode == AiMode.CLOUD:
            return ProviderAvailability.unavailable("Local providers disabled")
        if not ctx.local_base_url:
            return ProviderAvailability.unavailable("No local base URL configured")
        if not ctx.local_model:
            return ProviderAvailability.unavailable("No local model configured")
        return ProviderAvailability.ok()

    async def classify(
        self, input: ClassificationInput, ctx: ClassificationProviderContext
    ) -> ClassificationResult | None:
        if not ctx.local_base_url or not ctx.local_model:
            return None

        memories = self.memory_repository.get_memories() if self.memory_repository else []
        addictions = build_addiction_options(memories)

        ocr_text = truncate_ocr(input.ocr_text)
        if input.context is None and ocr_text is None:
            logger.debug("Local model skipped: no context and no OCR text")
            return None

        body = build_chat_body(
            ctx.local_model,
            build_text_only_messages(memories, addictions, input.context, ocr_text),
            max_tokens=CLASSIFY_MAX_TOKENS,
            temperature=CLASSIFY_TEMPERATURE,
        )
        client = _local_client(ctx.local_base_url, self._transport)
        stage1 = await client.complete_json(body, ClassificationStage1, self.timeout_ms)

        if stage1.confidence < FALLBACK_CONFIDENCE_THRESHOLD:
            logger.info(
                f"Local model confidence {stage1.confidence:.2f} below "
                f"{FALLBACK_CONFIDENCE_THRESHOLD}, deferring"
            )
            return None

        return stage1_to_result(stage1)


async def test_local_connection(
    base_url: str,
    model: str,
    transport: httpx.AsyncBaseTransport | None = None,
    timeout_ms: int = DEFAULT_TEST_TIMEOUT_MS,
) -> ConnectionTestResult:
    """Ping a local chat-completion server. Never raises.

    Args:
        base_url: Server base URL (with or without /chat/completions).
        model: Model name to ping.
        transport: Optional httpx transport, used by tests to mock the server.
        timeout_ms: Request timeout in milliseconds.

    Returns:
        success=True when the server answered {"ok": true}, else the error text.
    """
    try:
        body = build_chat_body(
            model,
            [
                {"role": "system", "content": PING_SYSTEM_PROMPT},
                {"role": "user", "content": "ping"},
            ],
            max_tokens=20,
            temperature=0,
        )
        client = _local_client(base_url, transport)
        await client.complete_json(body, PingResponse, timeout_ms)
        return ConnectionTestResult(success=True)
    except Exception as e:
        logger.warning(f"Local connection test failed: {e}")
        return ConnectionTestResult(success=False, error=str(e))
