"""Pytest configuration and fixtures."""

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from screenlabel.models.model_classification import Category, ClassificationResult
from screenlabel.models.model_memory import Memory, MemoryType
from screenlabel.models.model_provider import (
    AiMode,
    ClassificationInput,
    ClassificationProviderContext,
    ProviderAvailability,
    ScreenContext,
)
from screenlabel.providers.base import ClassificationProvider


class StubProvider(ClassificationProvider):
    """Provider with scripted behaviour and call counters."""

    def __init__(
        self,
        provider_id: str,
        result: ClassificationResult | None = None,
        error: Exception | None = None,
        available: bool = True,
        reason: str | None = None,
        availability_error: Exception | None = None,
    ):
        self._id = provider_id
        self.result = result
        self.error = error
        self.available = available
        self.reason = reason
        self.availability_error = availability_error
        self.availability_calls = 0
        self.classify_calls = 0

    @property
    def id(self) -> str:
        return self._id

    async def is_available(self, ctx: ClassificationProviderContext) -> ProviderAvailability:
        self.availability_calls += 1
        if self.availability_error is not None:
            raise self.availability_error
        if not self.available:
            return ProviderAvailability.unavailable(self.reason or "unavailable")
        return ProviderAvailability.ok()

    async def classify(
        self, input: ClassificationInput, ctx: ClassificationProviderContext
    ) -> ClassificationResult | None:
        self.classify_calls += 1
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def stub_provider() -> type[StubProvider]:
    """Factory for scripted providers."""
    return StubProvider


@pytest.fixture
def fixed_result() -> ClassificationResult:
    """A complete result as a provider would return it."""
    return ClassificationResult(
        category=Category.WORK,
        subcategories=["coding"],
        tags=["python"],
        confidence=0.9,
        caption="Editing router module",
    )


@pytest.fixture
def hybrid_ctx() -> ClassificationProviderContext:
    """Context with nothing configured beyond mode."""
    return ClassificationProviderContext(mode=AiMode.HYBRID)


@pytest.fixture
def local_ctx() -> ClassificationProviderContext:
    """Context pointing at a local model server."""
    return ClassificationProviderContext(
        mode=AiMode.HYBRID,
        local_base_url="http://localhost:11434/v1",
        local_model="llama3.2",
    )


@pytest.fixture
def cloud_ctx() -> ClassificationProviderContext:
    """Context with an API key and vision uploads allowed."""
    return ClassificationProviderContext(
        mode=AiMode.HYBRID,
        api_key="sk-test",
        allow_vision_uploads=True,
        cloud_model="openai/gpt-5",
    )


@pytest.fixture
def editor_context() -> ScreenContext:
    """Screen context of a code editor window."""
    return ScreenContext(
        app_bundle_id="com.microsoft.VSCode",
        app_name="Code",
        window_title="router.py - screenlabel",
    )


@pytest.fixture
def stage1_payload() -> Callable[..., dict[str, Any]]:
    """Factory for valid stage 1 replies with overridable fields."""

    def _make(**overrides: Any) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "category": "Work",
            "subcategories": ["coding"],
            "project": None,
            "project_progress": {"shown": False, "confidence": 0},
            "potential_progress": False,
            "tags": ["python", "editor"],
            "confidence": 0.8,
            "caption": "Editing router module",
            "addiction_triage": {
                "tracking_enabled": False,
                "potentially_addictive": False,
                "candidates": [],
            },
        }
        payload.update(overrides)
        return payload

    return _make


@pytest.fixture
def chat_server() -> Callable[..., tuple[httpx.MockTransport, list[httpx.Request]]]:
    """Factory for a mocked chat-completion server.

    Each entry of replies is either message content (str), a ready
    httpx.Response, or an exception to raise. Replies are served in order.
    """

    def _make(*replies: str | httpx.Response | Exception) -> tuple[httpx.MockTransport, list[httpx.Request]]:
        requests: list[httpx.Request] = []
        queue = list(replies)

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            reply = queue.pop(0) if len(queue) > 1 else queue[0]
            if isinstance(reply, Exception):
                raise reply
            if isinstance(reply, httpx.Response):
                return reply
            return httpx.Response(200, json={"choices": [{"message": {"content": reply}}]})

        return httpx.MockTransport(handler), requests

    return _make


@pytest.fixture
def request_json() -> Callable[[httpx.Request], dict[str, Any]]:
    """Decode the JSON body of a captured request."""

    def _decode(request: httpx.Request) -> dict[str, Any]:
        return json.loads(request.content)

    return _decode


@pytest.fixture
def memories() -> list[Memory]:
    """One memory of each type."""
    return [
        Memory(id="p1", type=MemoryType.PROJECT, content="Screenlabel"),
        Memory(id="pref1", type=MemoryType.PREFERENCE, content="Count code review as Work"),
        Memory(
            id="a1",
            type=MemoryType.ADDICTION,
            content="Doomscrolling",
            description="Endless scrolling of short-form video feeds",
        ),
    ]
