"""
Generative Responder — free-form replies from an LLM.

One capability, `generate(transcript) -> text`, with a variant per backend:
  - OpenAIResponder     OpenAI chat completions; also DeepSeek and any other
                        OpenAI-compatible endpoint through `base_url`
  - AnthropicResponder  Anthropic messages API (system prompt as a parameter)

The variant is chosen once by create_responder(). Errors propagate to the
caller, which owns the fallback.
"""
from __future__ import annotations

import abc
import dataclasses
import structlog
from typing import Any, Optional

from config.settings import LLMConfig

logger = structlog.get_logger()

DEEPSEEK_BASE_URL = "https://api.deepseek.com"


class ResponderError(Exception):
    """The backend answered, but not with usable text."""


class BaseResponder(abc.ABC):
    provider: str = ""

    def __init__(self, config: LLMConfig, client: Any = None):
        self.config = config
        self._client = client

    @abc.abstractmethod
    async def generate(self, transcript: list[dict[str, str]]) -> str:
        """transcript: ordered [{role, content}], roles system | user | assistant."""
        ...

    @staticmethod
    def _clean(text: Optional[str]) -> str:
        text = (text or "").strip()
        if not text:
            raise ResponderError("empty completion")
        return text


class OpenAIResponder(BaseResponder):
    provider = "openai"

    def _get_client(self):
        if self._client is None:
            from openai import AsyncOpenAI
            self._client = AsyncOpenAI(
                api_key=self.config.api_key,
                base_url=self.config.base_url or None,
            )
            logger.info("llm_client_initialized", provider=self.provider,
                        model=self.config.model, base_url=self.config.base_url or None)
        return self._client

    async def generate(self, transcript: list[dict[str, str]]) -> str:
        client = self._get_client()
        response = await client.chat.completions.create(
            model=self.config.model,
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
            messages=transcript,
        )
        if not response.choices:
            raise ResponderError("no choices in completion")
        return self._clean(response.choices[0].message.content)


class AnthropicResponder(BaseResponder):
    provider = "anthropic"

    def _get_client(self):
        if self._client is None:
            import anthropic
            self._client = anthropic.AsyncAnthropic(api_key=self.config.api_key)
            logger.info("llm_client_initialized", provider=self.provider, model=self.config.model)
        return self._client

    async def generate(self, transcript: list[dict[str, str]]) -> str:
        client = self._get_client()
        # Anthropic: system prompt is a separate parameter
        system = "\n\n".join(m["content"] for m in transcript if m["role"] == "system")
        messages = [m for m in transcript if m["role"] != "system"]
        response = await client.messages.create(
            model=self.config.model,
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
            system=system,
            messages=messages,
        )
        text = "".join(
            getattr(block, "text", "") for block in response.content
            if getattr(block, "type", "text") == "text"
        )
        return self._clean(text)


def create_responder(config: LLMConfig, client: Any = None) -> BaseResponder:
    """Pick the backend variant for the configured provider."""
    provider = (config.provider or "").lower()
    if provider == "anthropic":
        responder: BaseResponder = AnthropicResponder(config, client)
    elif provider == "deepseek":
        if not config.base_url:
            config = dataclasses.replace(config, base_url=DEEPSEEK_BASE_URL)
        responder = OpenAIResponder(config, client)
        responder.provider = "deepseek"
    elif provider == "openai":
        responder = OpenAIResponder(config, client)
    else:
        raise ValueError(f"Unknown LLM provider: {config.provider}")
    logger.info("responder_created", provider=responder.provider, model=config.model)
    return responder
