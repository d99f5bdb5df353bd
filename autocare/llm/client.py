"""
OpenAI chat LLM client.
"""

from __future__ import annotations

from typing import Any, Dict, List

from openai import AsyncOpenAI

from autocare.config import Settings, settings

DEFAULT_LLM_MODEL = settings.llm_model_name
DEFAULT_TEMPERATURE = 0.2


class LLMClient:
    def __init__(
        self,
        model: str = DEFAULT_LLM_MODEL,
        temperature: float = DEFAULT_TEMPERATURE,
        api_key: str | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self.model = model
        self.temperature = temperature
        self.client = client or AsyncOpenAI(api_key=api_key)

    @classmethod
    def from_settings(cls, settings_: Settings | None = None) -> "LLMClient | None":
        """None when no API key is configured; callers then answer without a model."""
        cfg = settings_ or settings
        if not cfg.openai_api_key:
            return None
        return cls(model=cfg.llm_model_name, api_key=cfg.openai_api_key.get_secret_value())

    async def chat(self, messages: List[Dict[str, Any]]) -> str:
        response = await self.client.chat.completions.create(
            model=self.model,
            temperature=self.temperature,
            messages=messages,
        )
        choice = response.choices[0].message
        return choice.content or ""


__all__ = ["LLMClient", "DEFAULT_LLM_MODEL", "DEFAULT_TEMPERATURE"]
