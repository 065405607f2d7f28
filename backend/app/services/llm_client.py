"""Unified LLM client — tries OpenAI first, falls back to Anthropic."""

import json
import logging
import re
from dataclasses import dataclass

from openai import AsyncOpenAI
import anthropic

from app.config import settings
from app.services.errors import LLMError

logger = logging.getLogger(__name__)


@dataclass
class LLMCompletion:
    """Raw completion text plus the engine that produced it (e.g. ``llm:gpt-4o-mini``)."""

    text: str
    engine: str


class LLMClient:
    """Unified async LLM client with OpenAI primary + Anthropic fallback."""

    def __init__(self):
        self._openai = None
        self._anthropic = None

        if settings.openai_api_key:
            self._openai = AsyncOpenAI(api_key=settings.openai_api_key)
        if settings.anthropic_api_key:
            self._anthropic = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)

    @property
    def available(self) -> bool:
        return self._openai is not None or self._anthropic is not None

    async def generate(
        self,
        system: str,
        user: str,
        *,
        messages: list[dict] | None = None,
        max_tokens: int = 1000,
        temperature: float = 0,
        json_mode: bool = False,
    ) -> LLMCompletion:
        """Get a completion from the best available LLM.

        Args:
            system: System prompt
            user: User message (ignored if messages is provided)
            messages: Full message list (for multi-turn). Should NOT include system.
            max_tokens: Max output tokens
            temperature: Sampling temperature
            json_mode: If True, force JSON output (OpenAI response_format)

        Returns:
            LLMCompletion with the stripped text and the engine identifier.

        Raises:
            LLMError if no provider is configured or every provider fails.
        """
        errors = []

        if messages:
            chat_messages = list(messages)
        else:
            chat_messages = [{"role": "user", "content": user}]

        # Try OpenAI first
        if self._openai:
            try:
                openai_messages = [{"role": "system", "content": system}] + chat_messages
                kwargs: dict = {
                    "model": settings.llm_model_primary,
                    "max_tokens": max_tokens,
                    "temperature": temperature,
                    "messages": openai_messages,
                }
                if json_mode:
                    kwargs["response_format"] = {"type": "json_object"}
                response = await self._openai.chat.completions.create(**kwargs)
                return LLMCompletion(
                    text=(response.choices[0].message.content or "").strip(),
                    engine=f"llm:{settings.llm_model_primary}",
                )
            except Exception as e:
                errors.append(f"OpenAI: {e}")
                logger.warning(f"OpenAI failed, trying Anthropic: {e}")

        # Fallback to Anthropic
        if self._anthropic:
            try:
                response = await self._anthropic.messages.create(
                    model=settings.llm_model_fallback,
                    max_tokens=max_tokens,
                    temperature=temperature,
                    system=system,
                    messages=chat_messages,
                )
                return LLMCompletion(
                    text=response.content[0].text.strip(),
                    engine=f"llm:{settings.llm_model_fallback}",
                )
            except Exception as e:
                errors.append(f"Anthropic: {e}")
                logger.warning(f"Anthropic also failed: {e}")

        if not errors:
            raise LLMError("No LLM provider configured")
        raise LLMError(f"All LLM providers failed: {'; '.join(errors)}")

    async def complete(self, system: str, user: str, **kwargs) -> str:
        """Same as ``generate`` but returns only the text."""
        completion = await self.generate(system, user, **kwargs)
        return completion.text


_THINK_BLOCK = re.compile(r"<think>.*?</think>", re.DOTALL | re.IGNORECASE)


def parse_json_response(raw: str) -> dict:
    """Parse an LLM reply into a JSON object, tolerating markdown fences and think blocks.

    Raises LLMError when the reply is not a JSON object.
    """
    text = _THINK_BLOCK.sub("", raw or "").strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else text[3:]
        if text.endswith("```"):
            text = text[:-3]
        text = text.strip()
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise LLMError(f"LLM returned invalid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise LLMError("LLM response is not a JSON object")
    return parsed


# Singleton
llm_client = LLMClient()
