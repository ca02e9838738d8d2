"""Minimal client for OpenAI-compatible chat-completion endpoints.

Each request runs inside its own asyncio.timeout scope and its own
httpx.AsyncClient context, so the connection is closed on every exit path:
success, HTTP error, timeout or caller cancellation.
"""

import asyncio
import logging
from typing import Any

import httpx

from screenlabel.errors import EmptyLLMResponseError, LLMHTTPError, LLMTimeoutError
from screenlabel.llm.extraction import ModelT, parse_structured_reply

logger = logging.getLogger(__name__)

CHAT_COMPLETIONS_PATH = "/chat/completions"


def build_chat_completions_url(base_url: str) -> str:
    """Normalize a base URL into a chat-completions endpoint.

    Trailing slashes are stripped; a URL already ending in /chat/completions
    is used as-is.
    """
    base = base_url.strip().rstrip("/")
    if base.endswith(CHAT_COMPLETIONS_PATH):
        return base
    return f"{base}{CHAT_COMPLETIONS_PATH}"


def build_chat_body(
    model: str,
    messages: list[dict[str, Any]],
    max_tokens: int | None = None,
    temperature: float | None = None,
    **extra: Any,
) -> dict[str, Any]:
    """Build a chat-completion request body, omitting unset sampling options."""
    body: dict[str, Any] = {"model": model, "messages": messages, **extra}
    if max_tokens is not None:
        body["max_tokens"] = max_tokens
    if temperature is not None:
        body["temperature"] = temperature
    return body


def extract_message_content(data: Any, empty_message: str) -> str:
    """Return choices[0].message.content or raise EmptyLLMResponseError."""
    content = None
    if isinstance(data, dict):
        choices = data.get("choices") or []
        if choices and isinstance(choices[0], dict):
            message = choices[0].get("message") or {}
            if isinstance(message, dict):
                content = message.get("content")
    if not content or not isinstance(content, str):
        raise EmptyLLMResponseError(empty_message)
    return content


class ChatCompletionClient:
    """Posts chat-completion requests to a single endpoint."""

    def __init__(
        self,
        url: str,
        error_label: str,
        empty_message: str,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            url: Full chat-completions URL.
            error_label: Prefix used in HTTP error messages (e.g. "Local OpenAI").
            empty_message: Error message when the reply has no content.
            headers: Extra request headers (auth, attribution).
            transport: Optional httpx transport, used by tests to mock the server.
        """
        self.url = url
        self.error_label = error_label
        self.empty_message = empty_message
        self.headers = {"Content-Type": "application/json", **(headers or {})}
        self._transport = transport

    async def post(self, body: dict[str, Any], timeout_ms: int) -> httpx.Response:
        """POST body and return the raw response, whatever its status.

        Raises:
            LLMTimeoutError: If the request does not finish within timeout_ms.
            httpx.HTTPError: On connection-level failures.
        """
        try:
            async with asyncio.timeout(timeout_ms / 1000):
                async with httpx.AsyncClient(transport=self._transport, timeout=None) as client:
                    return await client.post(self.url, json=body, headers=self.headers)
        except TimeoutError as e:
            raise LLMTimeoutError(
                f"{self.error_label} request timed out after {timeout_ms}ms", timeout_ms
            ) from e

    def raise_for_status(self, response: httpx.Response) -> None:
        """Raise LLMHTTPError embedding status and body for non-2xx responses."""
        if response.is_success:
            return
        body = response.text
        logger.warning(f"{self.error_label} error: HTTP {response.status_code}")
        raise LLMHTTPError(
            f"{self.error_label} error: {response.status_code} - {body}",
            status_code=response.status_code,
            body=body,
        )

    async def complete(self, body: dict[str, Any], timeout_ms: int) -> str:
        """Send a request and return the first choice's message content."""
        response = await self.post(body, timeout_ms)
        self.raise_for_status(response)
        return extract_message_content(response.json(), self.empty_message)

    async def complete_json(
        self, body: dict[str, Any], schema: type[ModelT], timeout_ms: int
    ) -> ModelT:
        """Send a request and parse the JSON object embedded in the reply."""
        content = await self.complete(body, timeout_ms)
        return parse_structured_reply(content, schema)
