"""Tests for the LLM provider manager."""

import asyncio
from typing import Any, Dict, List

import pytest

from assessment_engine.services.llm_manager import (
    ANSWER_EVALUATION,
    QUESTION_GENERATION,
    CircuitState,
    LLMProvider,
    LLMProviderManager,
    LLMRequest,
    extract_json_payload,
)
from assessment_engine.utils.exceptions import LLMProviderError


class ScriptedProvider(LLMProvider):
    """Provider whose behaviour is set per test."""

    def __init__(self, name="scripted", delay=0.0, error=None, timeout=30):
        super().__init__({"name": name, "timeout": timeout, "model": "scripted-1"})
        self.delay = delay
        self.error = error
        self.calls = 0

    async def initialize(self) -> None:
        return None

    async def cleanup(self) -> None:
        return None

    async def generate_text(self, prompt: str, **kwargs) -> str:
        return prompt

    async def _respond(self, value):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return value

    async def generate_questions(self, context: Dict[str, Any]) -> List[Dict[str, Any]]:
        return await self._respond([{"content": f"Question for {context['role']}"}])

    async def evaluate_answer(self, context: Dict[str, Any]) -> Dict[str, Any]:
        return await self._respond({"score": 88, "feedback": "Good"})


def manager_with(*providers, **kwargs) -> LLMProviderManager:
    manager = LLMProviderManager(**kwargs)
    for provider in providers:
        manager.register_provider(provider)
    return manager


class TestMakeRequest:
    async def test_question_generation(self):
        manager = manager_with(ScriptedProvider())

        response = await manager.make_request(LLMRequest(type=QUESTION_GENERATION, context={"role": "SRE"}))

        assert response.metadata["questions"] == [{"content": "Question for SRE"}]
        assert response.provider == "scripted"
        assert response.model == "scripted-1"

    async def test_answer_evaluation(self):
        manager = manager_with(ScriptedProvider())

        response = await manager.make_request(LLMRequest(type=ANSWER_EVALUATION, context={}))

        assert response.metadata["evaluation_data"]["score"] == 88

    async def test_timeout_raises_provider_error(self):
        manager = manager_with(ScriptedProvider(delay=1.0))

        with pytest.raises(LLMProviderError):
            await manager.make_request(LLMRequest(type=ANSWER_EVALUATION, timeout=0.01))

    async def test_unexpected_errors_are_wrapped(self):
        manager = manager_with(ScriptedProvider(error=RuntimeError("boom")))

        with pytest.raises(LLMProviderError):
            await manager.make_request(LLMRequest(type=ANSWER_EVALUATION))

    async def test_no_providers(self):
        manager = LLMProviderManager()

        assert not manager.is_available
        with pytest.raises(LLMProviderError):
            await manager.make_request(LLMRequest(type=ANSWER_EVALUATION))

    async def test_unknown_request_type(self):
        manager = manager_with(ScriptedProvider())

        with pytest.raises(LLMProviderError):
            await manager.make_request(LLMRequest(type="summarize"))


class TestCircuitBreaker:
    async def test_opens_after_repeated_failures(self):
        provider = ScriptedProvider(error=LLMProviderError("down"))
        manager = manager_with(provider, failure_threshold=3)

        for _ in range(3):
            with pytest.raises(LLMProviderError):
                await manager.make_request(LLMRequest(type=ANSWER_EVALUATION))

        assert manager.circuit_breakers["scripted"].get_state() == CircuitState.OPEN
        assert not manager.is_available
        with pytest.raises(LLMProviderError):
            await manager.make_request(LLMRequest(type=ANSWER_EVALUATION))
        assert provider.calls == 3

    async def test_half_open_recovers(self):
        provider = ScriptedProvider(error=LLMProviderError("down"))
        manager = manager_with(provider, failure_threshold=1, recovery_timeout=0)

        with pytest.raises(LLMProviderError):
            await manager.make_request(LLMRequest(type=ANSWER_EVALUATION))

        provider.error = None
        await manager.make_request(LLMRequest(type=ANSWER_EVALUATION))

        assert manager.circuit_breakers["scripted"].get_state() == CircuitState.CLOSED

    async def test_routes_around_open_circuit(self):
        broken = ScriptedProvider(name="broken", error=LLMProviderError("down"))
        healthy = ScriptedProvider(name="healthy")
        manager = manager_with(broken, healthy, failure_threshold=1)
        manager.circuit_breakers["broken"].on_failure()

        response = await manager.make_request(LLMRequest(type=ANSWER_EVALUATION))

        assert response.provider == "healthy"
        assert broken.calls == 0


class TestExtractJsonPayload:
    def test_fenced_json(self):
        assert extract_json_payload('```json\n{"score": 80}\n```') == {"score": 80}

    def test_json_embedded_in_prose(self):
        assert extract_json_payload('Here you go: {"questions": []} hope it helps') == {"questions": []}

    @pytest.mark.parametrize("text", ["", "no json here", "[1, 2, 3]", "{broken"])
    def test_unusable_text(self, text):
        with pytest.raises(LLMProviderError):
            extract_json_payload(text)
