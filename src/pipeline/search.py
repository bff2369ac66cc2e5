"""Best-effort web search for speaker names (Tavily)."""

from __future__ import annotations

import logging

import httpx

from src.config import Settings

logger = logging.getLogger(__name__)

TAVILY_SEARCH_URL = "https://api.tavily.com/search"
MAX_RESULTS = 3


class SpeakerSearch:
    """Look up who is likely speaking in a video.

    Never raises: a missing key or any provider failure yields ``""``.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient | None = None) -> None:
        self.api_key = settings.tavily_api_key
        self.timeout = settings.http_timeout_seconds
        self._http_client = http_client

    async def search(self, video_title: str, channel_name: str) -> str:
        if not self.api_key:
            return ""

        query = (
            f'Who are the speakers in "{video_title}" by {channel_name}? '
            "podcast guests host names"
        )
        try:
            data = await self._post(
                {
                    "api_key": self.api_key,
                    "query": query,
                    "search_depth": "basic",
                    "max_results": MAX_RESULTS,
                }
            )
        except Exception as exc:
            logger.warning("Speaker search failed for %r: %s", video_title, exc)
            return ""

        results = (data.get("results") if isinstance(data, dict) else None) or []
        return "\n\n".join(
            r["content"] for r in results[:MAX_RESULTS] if isinstance(r, dict) and r.get("content")
        )

    async def _post(self, payload: dict[str, object]) -> object:
        if self._http_client is not None:
            response = await self._http_client.post(TAVILY_SEARCH_URL, json=payload)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(TAVILY_SEARCH_URL, json=payload)
        response.raise_for_status()
        return response.json()
