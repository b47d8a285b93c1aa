"""Tests for the DeepSeek provider that do not touch the network."""

import pytest

from assessment_engine.providers.deepseek_provider import DeepSeekProvider, DeepSeekResponse
from assessment_engine.utils.exceptions import AuthenticationError, LLMProviderError, RateLimitError


def make_provider(**overrides):
    config = {"name": "deepseek", "api_key": "test-key", "model": "deepseek-chat", "retries": 1}
    config.update(overrides)
    return DeepSeekProvider(config)


def reply_with(provider, monkeypatch, text):
    prompts = []

    async def fake_generate_text(prompt, **kwargs):
        prompts.append((prompt, kwargs))
        return text

    monkeypatch.setattr(provider, "generate_text", fake_generate_text)
    return prompts


async def test_initialize_requires_api_key():
    provider = make_provider(api_key=None)

    with pytest.raises(AuthenticationError):
        await provider.initialize()


async def test_generate_text_requires_initialization():
    provider = make_provider(retries=0)

    with pytest.raises(LLMProviderError):
        await provider.generate_text("hello")


async def test_generate_questions_parses_fenced_json(monkeypatch):
    provider = make_provider()
    prompts = reply_with(provider, monkeypatch, """```json
{"questions": [{"content": "How would you shard orders?", "type": "technical"}, "stray"]}
```""")

    questions = await provider.generate_questions(
        {"company": "Acme Corp", "role": "Backend Engineer", "difficulty": "hard", "count": 3}
    )

    assert questions == [{"content": "How would you shard orders?", "type": "technical"}]
    prompt, kwargs = prompts[0]
    assert "Acme Corp" in prompt and "Backend Engineer" in prompt
    assert "Generate 3 realistic hard level" in prompt
    assert kwargs["system_prompt"]


async def test_generate_questions_without_list(monkeypatch):
    provider = make_provider()
    reply_with(provider, monkeypatch, '{"items": []}')

    with pytest.raises(LLMProviderError):
        await provider.generate_questions({"company": "Acme Corp", "role": "SRE"})


async def test_evaluate_answer_returns_payload(monkeypatch):
    provider = make_provider()
    prompts = reply_with(provider, monkeypatch, 'Sure! {"score": 82, "feedback": "Solid"}')

    result = await provider.evaluate_answer({"question": "Explain CAP", "answer": "Pick two", "question_type": "technical"})

    assert result == {"score": 82, "feedback": "Solid"}
    assert "USER ANSWER: Pick two" in prompts[0][0]


async def test_retries_transient_failures(monkeypatch):
    provider = make_provider(retries=1)
    calls = []

    async def flaky(request):
        calls.append(request)
        if len(calls) == 1:
            raise LLMProviderError("temporary", provider_name="deepseek")
        return DeepSeekResponse(choices=[{"message": {"content": "ok"}}])

    monkeypatch.setattr(provider, "_make_request", flaky)

    assert await provider.generate_text("ping", system_prompt="be brief") == "ok"
    assert len(calls) == 2
    assert calls[0].messages[0] == {"role": "system", "content": "be brief"}


async def test_rate_limit_is_not_retried(monkeypatch):
    provider = make_provider(retries=3)
    calls = []

    async def limited(request):
        calls.append(request)
        raise RateLimitError("slow down", provider_name="deepseek")

    monkeypatch.setattr(provider, "_make_request", limited)

    with pytest.raises(RateLimitError):
        await provider.generate_text("ping")
    assert len(calls) == 1
