from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from voiceswap.providers.llm import AnthropicProvider, LLMMessage, canonical_provider_name, get_llm_provider
from voiceswap.providers.llm.base import LLMProviderError


def _provider() -> AnthropicProvider:
    provider = AnthropicProvider(api_key="test-key", model="claude-test")
    provider.client = MagicMock()
    provider.client.messages.create = AsyncMock()
    return provider


@pytest.mark.asyncio
async def test_system_prompt_is_sent_separately():
    provider = _provider()
    provider.client.messages.create.return_value = SimpleNamespace(
        content=[SimpleNamespace(type="text", text='{"action":"help"}')],
        usage=SimpleNamespace(output_tokens=7),
        stop_reason="end_turn",
    )

    response = await provider.generate_response(
        [LLMMessage(role="system", content="Parse intents"), LLMMessage(role="user", content="help me")],
        max_tokens=200,
        temperature=0.1,
        model="claude-override",
    )

    assert response.content == '{"action":"help"}'
    assert response.tokens_used == 7
    assert response.model == "claude-override"
    kwargs = provider.client.messages.create.call_args.kwargs
    assert kwargs["system"] == "Parse intents"
    assert kwargs["messages"] == [{"role": "user", "content": "help me"}]
    assert kwargs["model"] == "claude-override"
    assert kwargs["temperature"] == 0.1


@pytest.mark.asyncio
async def test_unexpected_errors_are_wrapped():
    provider = _provider()
    provider.client.messages.create.side_effect = RuntimeError("socket closed")

    with pytest.raises(LLMProviderError):
        await provider.generate_response([LLMMessage(role="user", content="hi")])


def test_provider_aliases():
    assert canonical_provider_name("Claude") == "anthropic"
    assert canonical_provider_name("anthropic") == "anthropic"


def test_get_llm_provider_requires_key(monkeypatch):
    from voiceswap.config import settings

    monkeypatch.setattr(settings, "anthropic_api_key", "")

    with pytest.raises(ValueError):
        get_llm_provider("anthropic", "claude-test")


def test_get_llm_provider_rejects_unknown():
    with pytest.raises(ValueError):
        get_llm_provider("nonexistent")


def test_get_llm_provider_builds_anthropic(monkeypatch):
    from voiceswap.config import settings

    monkeypatch.setattr(settings, "anthropic_api_key", "test-key")

    provider = get_llm_provider("claude", "claude-test")

    assert isinstance(provider, AnthropicProvider)
    assert provider.model == "claude-test"
