"""Tests for the OpenRouter client and the cloud providers."""

import json

import httpx
import pytest

from screenlabel.consts import OPENROUTER_REFERER, OPENROUTER_TITLE, OPENROUTER_URL, SELF_APP_BUNDLE_ID
from screenlabel.errors import LLMHTTPError, MissingApiKeyError
from screenlabel.llm.openrouter_client import CallKind, OpenRouterClient, resolve_model
from screenlabel.models.model_classification import (
    AddictionTriage,
    ClassificationStage1,
    ClassificationStage2,
    PingResponse,
    VerifierDecision,
)
from screenlabel.models.model_memory import AddictionOption
from screenlabel.models.model_provider import (
    AiMode,
    ClassificationInput,
    ClassificationProviderContext,
    ScreenContext,
)
from screenlabel.providers.cloud_text import CloudTextProvider, should_defer_to_vision
from screenlabel.providers.cloud_vision import (
    MAX_VERIFY_CANDIDATES,
    CloudVisionProvider,
    resolve_verdict,
    select_candidates,
)
from screenlabel.repositories.file_repository import InMemoryRepository

PING_MESSAGES = [{"role": "user", "content": "ping"}]


def _triage(*candidates: tuple[str, float]) -> dict:
    return {
        "tracking_enabled": True,
        "potentially_addictive": True,
        "candidates": [
            {"addiction_id": aid, "likelihood": likelihood, "evidence": ["feed"], "rationale": "video feed"}
            for aid, likelihood in candidates
        ],
    }


def _stage2(decision: str, addiction_id: str | None = "a1", confidence: float = 0.9, prompt: str | None = None) -> str:
    return json.dumps(
        {
            "decision": decision,
            "addiction_id": addiction_id,
            "confidence": confidence,
            "evidence": ["infinite feed visible"],
            "manual_prompt": prompt,
        }
    )


@pytest.fixture
def feed_context() -> ScreenContext:
    return ScreenContext(app_name="Safari", url_host="www.tiktok.com", window_title="For You")


class TestOpenRouterClient:
    """Tests for request shape and the call log."""

    @pytest.mark.asyncio
    async def test_headers_and_body(self, chat_server, request_json) -> None:
        transport, requests = chat_server('{"ok": true}')
        client = OpenRouterClient(transport=transport)

        await client.call_json(PING_MESSAGES, PingResponse, api_key=" sk-test ", max_tokens=10)

        request = requests[0]
        assert str(request.url) == OPENROUTER_URL
        assert request.headers["authorization"] == "Bearer sk-test"
        assert request.headers["http-referer"] == OPENROUTER_REFERER
        assert request.headers["x-title"] == OPENROUTER_TITLE
        body = request_json(request)
        assert body["model"] == "openai/gpt-5"
        assert body["reasoning_effort"] == "low"
        assert body["max_tokens"] == 10
        assert "temperature" not in body

    @pytest.mark.asyncio
    async def test_missing_key_raises_without_request(self, chat_server) -> None:
        transport, requests = chat_server('{"ok": true}')
        client = OpenRouterClient(transport=transport)

        with pytest.raises(MissingApiKeyError, match="API key not configured"):
            await client.call_json(PING_MESSAGES, PingResponse, api_key="  ")

        assert requests == []
        assert client.call_records == []

    @pytest.mark.asyncio
    async def test_records_every_call(self, chat_server) -> None:
        transport, _ = chat_server(
            '{"ok": true}',
            httpx.Response(429, text="rate limited"),
            httpx.ConnectError("unreachable"),
        )
        client = OpenRouterClient(transport=transport)

        await client.call_json(PING_MESSAGES, PingResponse, api_key="sk", model="anthropic/claude")
        with pytest.raises(LLMHTTPError, match="OpenRouter API error: 429 - rate limited"):
            await client.call_json(PING_MESSAGES, PingResponse, api_key="sk")
        with pytest.raises(httpx.ConnectError):
            await client.call_json(PING_MESSAGES, PingResponse, api_key="sk")

        records = client.call_records
        assert [(r.kind, r.model, r.status) for r in records] == [
            (CallKind.JSON, "anthropic/claude", 200),
            (CallKind.JSON, "openai/gpt-5", 429),
            (CallKind.JSON, "openai/gpt-5", 0),
        ]

        client.reset_call_records()
        assert client.call_records == []

    def test_resolve_model(self) -> None:
        assert resolve_model(None) == "openai/gpt-5"
        assert resolve_model("   ") == "openai/gpt-5"
        assert resolve_model(" google/gemini ") == "google/gemini"

    @pytest.mark.asyncio
    async def test_connection_success(self, chat_server, request_json) -> None:
        transport, requests = chat_server("Hi there!")
        client = OpenRouterClient(transport=transport)

        result = await client.test_connection("sk-test")

        assert result.success is True
        assert request_json(requests[0])["messages"] == [{"role": "user", "content": "Hello"}]
        assert client.call_records[0].kind == CallKind.TEST

    @pytest.mark.asyncio
    async def test_connection_failures_never_raise(self, chat_server) -> None:
        transport, _ = chat_server(httpx.Response(401, text="invalid key"), httpx.ConnectError("down"))
        client = OpenRouterClient(transport=transport)

        no_key = await client.test_connection(None)
        rejected = await client.test_connection("sk-bad")
        unreachable = await client.test_connection("sk-bad")

        assert (no_key.success, no_key.error) == (False, "API key not configured")
        assert (rejected.success, rejected.error) == (False, "invalid key")
        assert unreachable.success is False
        assert "down" in unreachable.error


class TestShouldDeferToVision:
    """Tests for the text-to-vision handoff rule."""

    def _stage1(self, stage1_payload, **overrides) -> ClassificationStage1:
        return ClassificationStage1.model_validate(stage1_payload(**overrides))

    def test_never_without_image_or_permission(self, stage1_payload) -> None:
        stage1 = self._stage1(stage1_payload, confidence=0.1)
        assert should_defer_to_vision(stage1, None, True) is False
        assert should_defer_to_vision(stage1, "aW1n", False) is False

    def test_low_confidence_defers(self, stage1_payload) -> None:
        assert should_defer_to_vision(self._stage1(stage1_payload, confidence=0.5), "aW1n", True) is True
        assert should_defer_to_vision(self._stage1(stage1_payload, confidence=0.55), "aW1n", True) is False

    def test_addiction_candidates_defer(self, stage1_payload) -> None:
        stage1 = self._stage1(stage1_payload, confidence=0.95, addiction_triage=_triage(("a1", 0.6)))
        assert should_defer_to_vision(stage1, "aW1n", True) is True

    def test_tracking_without_candidates_keeps_answer(self, stage1_payload) -> None:
        triage = {"tracking_enabled": True, "potentially_addictive": False, "candidates": []}
        stage1 = self._stage1(stage1_payload, addiction_triage=triage)
        assert should_defer_to_vision(stage1, "aW1n", True) is False


class TestCloudTextProvider:
    """Tests for the text-only cloud provider."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "ctx,reason",
        [
            (ClassificationProviderContext(mode=AiMode.OFF, api_key="sk"), "AI is disabled"),
            (ClassificationProviderContext(mode=AiMode.LOCAL, api_key="sk"), "Cloud providers disabled"),
            (ClassificationProviderContext(mode=AiMode.HYBRID), "No API key configured"),
        ],
    )
    async def test_unavailable_reasons(self, ctx, reason) -> None:
        availability = await CloudTextProvider(OpenRouterClient()).is_available(ctx)
        assert (availability.available, availability.reason) == (False, reason)

    @pytest.mark.asyncio
    async def test_classifies_text_only(
        self, chat_server, stage1_payload, request_json, cloud_ctx, editor_context
    ) -> None:
        transport, requests = chat_server(json.dumps(stage1_payload()))
        provider = CloudTextProvider(OpenRouterClient(transport=transport))

        result = await provider.classify(
            ClassificationInput(ocr_text="import httpx", context=editor_context), cloud_ctx
        )

        assert result is not None
        assert result.caption == "Editing router module"
        assert result.tracked_addiction.detected is False
        body = request_json(requests[0])
        assert body["max_tokens"] == 900
        assert body["temperature"] == 0
        assert json.loads(body["messages"][1]["content"]) == {"ocr_text": "import httpx"}

    @pytest.mark.asyncio
    async def test_low_confidence_without_image_is_kept(
        self, chat_server, stage1_payload, cloud_ctx
    ) -> None:
        transport, _ = chat_server(json.dumps(stage1_payload(confidence=0.3)))
        provider = CloudTextProvider(OpenRouterClient(transport=transport))

        result = await provider.classify(ClassificationInput(ocr_text="hello"), cloud_ctx)

        assert result is not None
        assert result.confidence == 0.3

    @pytest.mark.asyncio
    async def test_defers_to_vision(self, chat_server, stage1_payload, cloud_ctx) -> None:
        transport, requests = chat_server(json.dumps(stage1_payload(confidence=0.3)))
        provider = CloudTextProvider(OpenRouterClient(transport=transport))

        result = await provider.classify(
            ClassificationInput(ocr_text="hello", image_base64="aW1n"), cloud_ctx
        )

        assert result is None
        assert len(requests) == 1

    @pytest.mark.asyncio
    async def test_nothing_to_send(self, chat_server, cloud_ctx) -> None:
        transport, requests = chat_server("{}")
        provider = CloudTextProvider(OpenRouterClient(transport=transport))

        assert await provider.classify(ClassificationInput(image_base64="aW1n"), cloud_ctx) is None
        assert requests == []


class TestCandidateSelection:
    """Tests for picking and resolving verifier candidates."""

    def test_unknown_ids_dropped_and_ranked(self) -> None:
        options = [AddictionOption(id=f"a{i}", name=f"A{i}", definition=f"A{i}") for i in range(7)]
        triage = AddictionTriage.model_validate(
            _triage(("a1", 0.2), ("ghost", 0.99), ("a2", 0.8), ("a3", 0.5), ("a4", 0.4), ("a5", 0.3), ("a6", 0.1))
        )

        selected = select_candidates(triage, options)

        assert len(selected) == MAX_VERIFY_CANDIDATES
        assert [o.id for o in selected] == ["a2", "a3", "a4", "a5", "a1"]

    def test_verdicts(self) -> None:
        options = [AddictionOption(id="a1", name="Doomscrolling", definition="Doomscrolling")]

        def stage2(**kwargs) -> ClassificationStage2:
            return ClassificationStage2.model_validate_json(_stage2(**kwargs))

        assert resolve_verdict(options, stage2(decision="confirmed", confidence=0.75)).confirmed == options[0]
        assert resolve_verdict(options, stage2(decision="confirmed", confidence=0.74)).confirmed is None
        assert resolve_verdict(options, stage2(decision="confirmed", addiction_id="zz")).confirmed is None
        assert resolve_verdict(options, stage2(decision="none")).candidate is None

        verdict = resolve_verdict(options, stage2(decision="candidate", confidence=0.5, prompt="Name the apps"))
        assert verdict.candidate == options[0]
        assert verdict.candidate_confidence == 0.5
        assert verdict.candidate_prompt == "Name the apps"

    def test_decision_enum_values(self) -> None:
        assert [d.value for d in VerifierDecision] == ["none", "confirmed", "candidate"]


class TestCloudVisionProvider:
    """Tests for the two-stage vision provider."""

    @pytest.mark.asyncio
    async def test_unavailable_without_vision_uploads(self) -> None:
        ctx = ClassificationProviderContext(mode=AiMode.HYBRID, api_key="sk", allow_vision_uploads=False)
        availability = await CloudVisionProvider(OpenRouterClient()).is_available(ctx)
        assert (availability.available, availability.reason) == (False, "Vision uploads disabled")

    @pytest.mark.asyncio
    async def test_no_image_returns_none(self, chat_server, cloud_ctx) -> None:
        transport, requests = chat_server("{}")
        provider = CloudVisionProvider(OpenRouterClient(transport=transport))

        assert await provider.classify(ClassificationInput(ocr_text="text only"), cloud_ctx) is None
        assert requests == []

    @pytest.mark.asyncio
    async def test_single_stage_without_addictions(
        self, chat_server, stage1_payload, request_json, cloud_ctx
    ) -> None:
        transport, requests = chat_server(json.dumps(stage1_payload(addiction_triage=_triage(("a1", 0.9)))))
        provider = CloudVisionProvider(OpenRouterClient(transport=transport))

        result = await provider.classify(ClassificationInput(image_base64="aW1n"), cloud_ctx)

        assert len(requests) == 1
        assert result.tracked_addiction.detected is False
        user_parts = request_json(requests[0])["messages"][1]["content"]
        assert user_parts[0] == {"type": "image_url", "image_url": {"url": "data:image/webp;base64,aW1n"}}
        assert user_parts[1] == {"type": "text", "text": "Classify this screenshot."}

    @pytest.mark.asyncio
    async def test_confirmed_addiction(
        self, chat_server, stage1_payload, request_json, cloud_ctx, memories, feed_context
    ) -> None:
        transport, requests = chat_server(
            json.dumps(stage1_payload(category="Leisure", addiction_triage=_triage(("a1", 0.9)))),
            _stage2("confirmed", confidence=0.9),
        )
        provider = CloudVisionProvider(OpenRouterClient(transport=transport), InMemoryRepository(memories=memories))

        result = await provider.classify(
            ClassificationInput(image_base64="aW1n", context=feed_context), cloud_ctx
        )

        assert len(requests) == 2
        assert result.category.value == "Leisure"
        assert result.tracked_addiction.detected is True
        assert result.tracked_addiction.name == "Doomscrolling"
        assert result.addiction_candidate is None
        stage2_body = request_json(requests[1])
        assert "You are an addiction verifier" in stage2_body["messages"][0]["content"]
        payload = json.loads(stage2_body["messages"][1]["content"][1]["text"])
        assert payload["candidates"][0]["id"] == "a1"
        assert payload["candidates"][0]["definition"].startswith("Doomscrolling\nAbout:")

    @pytest.mark.asyncio
    async def test_candidate_addiction(
        self, chat_server, stage1_payload, cloud_ctx, memories, feed_context
    ) -> None:
        transport, _ = chat_server(
            json.dumps(stage1_payload(addiction_triage=_triage(("a1", 0.6)))),
            _stage2("candidate", confidence=0.4, prompt="List which feeds count"),
        )
        provider = CloudVisionProvider(OpenRouterClient(transport=transport), InMemoryRepository(memories=memories))

        result = await provider.classify(
            ClassificationInput(image_base64="aW1n", context=feed_context), cloud_ctx
        )

        assert result.tracked_addiction.detected is False
        assert result.addiction_candidate == "Doomscrolling"
        assert result.addiction_confidence == 0.4
        assert result.addiction_prompt == "List which feeds count"

    @pytest.mark.asyncio
    async def test_self_app_skips_verification(
        self, chat_server, stage1_payload, cloud_ctx, memories
    ) -> None:
        transport, requests = chat_server(json.dumps(stage1_payload(addiction_triage=_triage(("a1", 0.9)))))
        provider = CloudVisionProvider(OpenRouterClient(transport=transport), InMemoryRepository(memories=memories))
        context = ScreenContext(app_bundle_id=SELF_APP_BUNDLE_ID, app_name="Screenlabel")

        result = await provider.classify(ClassificationInput(image_base64="aW1n", context=context), cloud_ctx)

        assert len(requests) == 1
        assert result.tracked_addiction.detected is False
        assert result.addiction_candidate is None

    @pytest.mark.asyncio
    async def test_unknown_candidate_skips_verification(
        self, chat_server, stage1_payload, cloud_ctx, memories
    ) -> None:
        transport, requests = chat_server(json.dumps(stage1_payload(addiction_triage=_triage(("ghost", 0.9)))))
        provider = CloudVisionProvider(OpenRouterClient(transport=transport), InMemoryRepository(memories=memories))

        await provider.classify(ClassificationInput(image_base64="aW1n"), cloud_ctx)

        assert len(requests) == 1
