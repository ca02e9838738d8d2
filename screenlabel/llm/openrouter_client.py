"""OpenRouter chat-completion client with a bounded call log."""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Final

import httpx

from screenlabel.consts import (
    DEFAULT_CLOUD_MODEL,
    OPENROUTER_REFERER,
    OPENROUTER_TITLE,
    OPENROUTER_URL,
)
from screenlabel.errors import MissingApiKeyError
from screenlabel.llm.chat_client import (
    ChatCompletionClient,
    build_chat_body,
    extract_message_content,
)
from screenlabel.llm.extraction import ModelT, parse_structured_reply
from screenlabel.models.common import _utc_now
from screenlabel.models.model_provider import ConnectionTestResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS: Final[int] = 90_000
DEFAULT_TEST_TIMEOUT_MS: Final[int] = 15_000
MAX_CALL_RECORDS: Final[int] = 5000
REASONING_EFFORT: Final[str] = "low"


class CallKind(str, Enum):
    """Which client entry point issued a request."""

    JSON = "json"
    TEST = "test"


@dataclass
class OpenRouterCallRecord:
    """One request sent to OpenRouter. Status 0 means no HTTP response."""

    kind: CallKind
    model: str
    status: int
    timestamp: datetime = field(default_factory=_utc_now)


def resolve_model(model: str | None) -> str:
    """Return the stripped model name, or the default when blank."""
    return (model or "").strip() or DEFAULT_CLOUD_MODEL


class OpenRouterClient:
    """Sends chat completions to OpenRouter and records every call.

    The call log is append-only and capped at MAX_CALL_RECORDS entries.
    """

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ):
        """Initialize the client.

        Args:
            transport: Optional httpx transport, used by tests to mock the API.
            timeout_ms: Timeout for classification calls.
        """
        self.timeout_ms = timeout_ms
        self._transport = transport
        self._records: deque[OpenRouterCallRecord] = deque(maxlen=MAX_CALL_RECORDS)

    @property
    def call_records(self) -> list[OpenRouterCallRecord]:
        """Snapshot of recorded calls, oldest first."""
        return list(self._records)

    def reset_call_records(self) -> None:
        self._records.clear()

    def _client(self, api_key: str | None) -> ChatCompletionClient:
        api_key = (api_key or "").strip()
        if not api_key:
            raise MissingApiKeyError("API key not configured")
        return ChatCompletionClient(
            OPENROUTER_URL,
            error_label="OpenRouter API",
            empty_message="No response from LLM",
            headers={
                "Authorization": f"Bearer {api_key}",
                "HTTP-Referer": OPENROUTER_REFERER,
                "X-Title": OPENROUTER_TITLE,
            },
            transport=self._transport,
        )

    async def _send(
        self,
        kind: CallKind,
        api_key: str | None,
        messages: list[dict[str, Any]],
        model: str | None,
        max_tokens: int | None,
        temperature: float | None,
        timeout_ms: int | None,
    ) -> str:
        client = self._client(api_key)
        selected = resolve_model(model)
        body = build_chat_body(
            selected,
            messages,
            max_tokens=max_tokens,
            temperature=temperature,
            reasoning_effort=REASONING_EFFORT,
        )

        try:
            response = await client.post(body, timeout_ms or self.timeout_ms)
        except Exception:
            self._records.append(OpenRouterCallRecord(kind=kind, model=selected, status=0))
            raise

        self._records.append(
            OpenRouterCallRecord(kind=kind, model=selected, status=response.status_code)
        )
        client.raise_for_status(response)
        return extract_message_content(response.json(), client.empty_message)

    async def call_json(
        self,
        messages: list[dict[str, Any]],
        schema: type[ModelT],
        api_key: str | None,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        timeout_ms: int | None = None,
    ) -> ModelT:
        """Send messages and validate the JSON object in the reply.

        Args:
            messages: Chat messages (content may be multimodal parts).
            schema: Expected reply shape.
            api_key: OpenRouter API key.
            model: Model id. Defaults to DEFAULT_CLOUD_MODEL.
            max_tokens: Optional completion token cap.
            temperature: Optional sampling temperature.
            timeout_ms: Override for the client timeout.

        Returns:
            Validated schema instance.
        """
        content = await self._send(
            CallKind.JSON, api_key, messages, model, max_tokens, temperature, timeout_ms
        )
        return parse_structured_reply(content, schema)

    async def test_connection(
        self, api_key: str | None, model: str | None = None
    ) -> ConnectionTestResult:
        """Send a trivial message to check the key and model. Never raises."""
        if not (api_key or "").strip():
            return ConnectionTestResult(success=False, error="API key not configured")

        selected = resolve_model(model)
        client = self._client(api_key)
        body = build_chat_body(selected, [{"role": "user", "content": "Hello"}])
        try:
            response = await client.post(body, DEFAULT_TEST_TIMEOUT_MS)
        except Exception as e:
            logger.warning(f"OpenRouter connection test failed: {e}")
            return ConnectionTestResult(success=False, error=str(e))

        self._records.append(
            OpenRouterCallRecord(kind=CallKind.TEST, model=selected, status=response.status_code)
        )
        if response.is_success:
            return ConnectionTestResult(success=True)
        return ConnectionTestResult(success=False, error=response.text)
