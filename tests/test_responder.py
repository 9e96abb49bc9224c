"""Tests for the generative responder variants and their factory."""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from config.settings import LLMConfig
from core.responder import (
    DEEPSEEK_BASE_URL, AnthropicResponder, OpenAIResponder, ResponderError,
    create_responder,
)


TRANSCRIPT = [
    {"role": "system", "content": "Je bent Sofia."},
    {"role": "user", "content": "Hallo"},
    {"role": "assistant", "content": "Hoi! Ik ben Sofia."},
    {"role": "user", "content": "Waar zit jullie kantoor?"},
]


def openai_client(content):
    client = MagicMock()
    choices = [SimpleNamespace(message=SimpleNamespace(content=content))] if content is not None else []
    client.chat.completions.create = AsyncMock(return_value=SimpleNamespace(choices=choices))
    return client


def anthropic_client(*texts):
    client = MagicMock()
    blocks = [SimpleNamespace(type="text", text=t) for t in texts]
    client.messages.create = AsyncMock(return_value=SimpleNamespace(content=blocks))
    return client


class TestOpenAIResponder:
    @pytest.mark.asyncio
    async def test_generate_passes_transcript_and_config(self):
        client = openai_client("  In Amsterdam.  ")
        config = LLMConfig(provider="openai", model="gpt-4o-mini", temperature=0.3, max_tokens=200)
        responder = OpenAIResponder(config, client)

        assert await responder.generate(TRANSCRIPT) == "In Amsterdam."
        kwargs = client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["max_tokens"] == 200
        assert kwargs["temperature"] == 0.3
        assert kwargs["messages"] == TRANSCRIPT

    @pytest.mark.asyncio
    async def test_empty_completion_raises(self):
        responder = OpenAIResponder(LLMConfig(provider="openai"), openai_client("   "))
        with pytest.raises(ResponderError):
            await responder.generate(TRANSCRIPT)

    @pytest.mark.asyncio
    async def test_no_choices_raises(self):
        responder = OpenAIResponder(LLMConfig(provider="openai"), openai_client(None))
        with pytest.raises(ResponderError):
            await responder.generate(TRANSCRIPT)

    @pytest.mark.asyncio
    async def test_client_errors_propagate(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(side_effect=TimeoutError("slow"))
        responder = OpenAIResponder(LLMConfig(provider="openai"), client)
        with pytest.raises(TimeoutError):
            await responder.generate(TRANSCRIPT)


class TestAnthropicResponder:
    @pytest.mark.asyncio
    async def test_system_prompt_is_lifted(self):
        client = anthropic_client("In ", "Amsterdam.")
        responder = AnthropicResponder(LLMConfig(provider="anthropic", model="claude-3-5-haiku-latest"), client)

        assert await responder.generate(TRANSCRIPT) == "In Amsterdam."
        kwargs = client.messages.create.await_args.kwargs
        assert kwargs["system"] == "Je bent Sofia."
        assert [m["role"] for m in kwargs["messages"]] == ["user", "assistant", "user"]


class TestCreateResponder:
    def test_deepseek_uses_openai_compatible_endpoint(self):
        config = LLMConfig(provider="deepseek", model="deepseek-chat")
        responder = create_responder(config, client=MagicMock())
        assert isinstance(responder, OpenAIResponder)
        assert responder.provider == "deepseek"
        assert responder.config.base_url == DEEPSEEK_BASE_URL
        assert config.base_url == ""

    def test_deepseek_keeps_explicit_base_url(self):
        responder = create_responder(LLMConfig(provider="deepseek", base_url="http://proxy.local/v1"))
        assert responder.config.base_url == "http://proxy.local/v1"

    def test_openai(self):
        responder = create_responder(LLMConfig(provider="OpenAI"))
        assert type(responder) is OpenAIResponder
        assert responder.provider == "openai"

    def test_anthropic(self):
        assert isinstance(create_responder(LLMConfig(provider="anthropic")), AnthropicResponder)

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            create_responder(LLMConfig(provider="palm"))
