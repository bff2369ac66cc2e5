"""YouTube URL parsing and oEmbed metadata lookup."""

from __future__ import annotations

import logging
import re

import httpx

from src.pipeline.models import VideoMetadata

logger = logging.getLogger(__name__)

OEMBED_URL = "https://www.youtube.com/oembed"

# youtube.com/watch?v=, youtube.com/embed/, youtu.be/, m.youtube.com/watch?v=
_URL_RE = re.compile(
    r"(?:youtube\.com/(?:watch\?v=|embed/)|youtu\.be/|m\.youtube\.com/watch\?v=)"
    r"([a-zA-Z0-9_-]{11})"
)
# v= anywhere in the query string (e.g. ?t=120&v=...)
_PARAM_RE = re.compile(r"[?&]v=([a-zA-Z0-9_-]{11})")
_ID_RE = re.compile(r"^[a-zA-Z0-9_-]{11}$")


def extract_youtube_id(url: str) -> str | None:
    """Return the 11-character video id from a URL or bare id, else ``None``."""
    trimmed = url.strip()

    match = _URL_RE.search(trimmed) or _PARAM_RE.search(trimmed)
    if match:
        return match.group(1)
    if _ID_RE.match(trimmed):
        return trimmed
    return None


async def fetch_video_metadata(
    video_id: str,
    http_client: httpx.AsyncClient | None = None,
    timeout: float = 10.0,
) -> VideoMetadata | None:
    """Look up title, channel and thumbnail via YouTube's public oEmbed API.

    Returns ``None`` when the video is unavailable or the lookup fails.
    """
    params = {"url": f"https://www.youtube.com/watch?v={video_id}", "format": "json"}
    try:
        if http_client is not None:
            response = await http_client.get(OEMBED_URL, params=params)
        else:
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await client.get(OEMBED_URL, params=params)
        if response.is_error:
            return None
        data = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("oEmbed lookup failed for %s: %s", video_id, exc)
        return None

    return VideoMetadata(
        id=video_id,
        title=data.get("title") or "Unknown Title",
        channel=data.get("author_name") or "Unknown Channel",
        thumbnail_url=data.get("thumbnail_url")
        or f"https://i.ytimg.com/vi/{video_id}/hqdefault.jpg",
    )
