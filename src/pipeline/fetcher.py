"""Fetch raw YouTube transcripts from youtube-transcript.io."""

from __future__ import annotations

import logging
import re
from typing import Any

import httpx

from src.config import Settings, get_settings
from src.pipeline.errors import ConfigurationError, TranscriptFetchError, error_message
from src.pipeline.models import Result
from src.pipeline.retry import retry
from src.pipeline_config import PipelineConfig

logger = logging.getLogger(__name__)

CONNECT_ERROR_MESSAGE = "Could not connect to transcript service. Please try again."

# Provider status -> user-facing message. Anything else reports the raw body/reason.
STATUS_MESSAGES: dict[int, str] = {
    404: "No transcript available for this video. The video may not have captions enabled.",
    403: "Cannot access transcript. The video may be private or restricted.",
    429: "Rate limit exceeded. Please try again in a few minutes.",
}

_WHITESPACE = re.compile(r"\s+")


def status_error_message(response: httpx.Response) -> str:
    """Map a non-2xx provider response to a user-facing message."""
    if response.status_code in STATUS_MESSAGES:
        return STATUS_MESSAGES[response.status_code]
    detail = response.text.strip() or response.reason_phrase
    return f"Failed to fetch transcript: {detail}"


def extract_segments(data: Any) -> list[Any]:
    """Pull the ordered transcript segments out of a provider payload.

    Accepted shapes:

    - ``{"content": [segment, ...]}``
    - ``{"text": "pre-joined transcript"}``
    - ``[segment, ...]``
    - ``[{"tracks": [{"transcript": [segment, ...]}]}]`` (batch shape)
    """
    if isinstance(data, dict):
        if isinstance(data.get("content"), list):
            return list(data["content"])
        if isinstance(data.get("text"), str):
            return [data["text"]]
        if isinstance(data.get("tracks"), list):
            return extract_segments([data])
        return []

    if isinstance(data, list):
        if data and isinstance(data[0], dict) and "tracks" in data[0]:
            tracks = data[0].get("tracks") or []
            if tracks and isinstance(tracks[0], dict):
                return list(tracks[0].get("transcript") or [])
            return []
        return data

    return []


def join_segments(segments: list[Any]) -> str:
    """Trim each segment, join with single spaces and collapse whitespace."""
    texts: list[str] = []
    for segment in segments:
        if isinstance(segment, dict):
            texts.append(str(segment.get("text") or "").strip())
        elif isinstance(segment, str):
            texts.append(segment.strip())
    return _WHITESPACE.sub(" ", " ".join(texts)).strip()


class TranscriptFetcher:
    """Retrieve a flat transcript for a YouTube video id.

    Raises:
        ConfigurationError: At construction when no provider key is set.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
        config: PipelineConfig | None = None,
    ) -> None:
        if not settings.youtube_transcript_api_key:
            raise ConfigurationError("YouTube Transcript API key not configured")
        self.api_key = settings.youtube_transcript_api_key
        self.url = settings.transcript_api_url
        self.timeout = settings.http_timeout_seconds
        self.config = config or PipelineConfig.from_settings(settings)
        self._http_client = http_client

    async def fetch(self, video_id: str) -> Result[str]:
        try:
            data = await retry(
                lambda: self._request(video_id),
                self.config.retry_max_attempts,
                self.config.retry_base_delay_ms,
            )
        except httpx.TransportError as exc:
            logger.warning("Transcript service unreachable for %s: %s", video_id, exc)
            return Result.failure(CONNECT_ERROR_MESSAGE)
        except Exception as exc:
            return Result.failure(error_message(exc))

        segments = extract_segments(data)
        if not segments:
            return Result.failure("No transcript content found for this video.")

        text = join_segments(segments)
        if not text:
            return Result.failure("Transcript is empty.")

        logger.info("Fetched transcript for %s (%d chars)", video_id, len(text))
        return Result.success(text)

    async def _request(self, video_id: str) -> Any:
        headers = {
            "Authorization": f"Basic {self.api_key}",
            "Content-Type": "application/json",
        }
        params = {"video_id": video_id}
        if self._http_client is not None:
            response = await self._http_client.get(self.url, params=params, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self.url, params=params, headers=headers)

        if response.is_error:
            raise TranscriptFetchError(status_error_message(response))
        return response.json()


async def fetch_transcript(
    video_id: str,
    settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> Result[str]:
    """Fetch a transcript, reporting a missing key as a failed Result."""
    try:
        fetcher = TranscriptFetcher(settings or get_settings(), http_client=http_client)
    except ConfigurationError as exc:
        return Result.failure(str(exc))
    return await fetcher.fetch(video_id)
