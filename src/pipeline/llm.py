"""Claude completion client shared by the cleaning and summarization stages."""

from __future__ import annotations

from typing import Any

from anthropic import AsyncAnthropic

from src.config import Settings
from src.pipeline.errors import ConfigurationError


class CompletionClient:
    """Narrow async wrapper: ``(system, user, max_tokens) -> text``.

    Raises:
        ConfigurationError: At construction when no Anthropic key is set.
    """

    def __init__(self, settings: Settings, client: AsyncAnthropic | None = None) -> None:
        if not settings.anthropic_api_key and client is None:
            raise ConfigurationError("Anthropic API key not configured")
        self.model = settings.llm_model
        self._client = client or AsyncAnthropic(api_key=settings.anthropic_api_key)

    async def complete(self, system: str, user: str, max_tokens: int) -> str:
        """Run one completion and return the first text block ("" if none)."""
        response = await self._client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            system=system,
            messages=[{"role": "user", "content": user}],
        )
        return _first_text(response)


def _first_text(response: Any) -> str:
    # response.content is a union of block types; only text blocks carry prose.
    for block in response.content:
        if block.type == "text":
            return str(block.text)
    return ""
