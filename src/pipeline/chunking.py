"""Token estimation and sentence-aligned chunking for long transcripts."""

from __future__ import annotations

import math
import re

# A sentence ends at ".", "!" or "?" followed by whitespace.
_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")

CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """Rough token estimate: ~4 characters per token for English text."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def chunk_text(text: str, max_tokens: int, overlap_tokens: int = 500) -> list[str]:
    """Split text into chunks of approximately *max_tokens* each.

    Chunks break on sentence boundaries.  Each chunk after the first starts
    with the last ``overlap_tokens * 4`` characters of the previous chunk so
    the processed output of neighbouring chunks can be de-duplicated later.

    A sentence longer than *max_tokens* is never split; it gets a chunk of
    its own, which may exceed the budget.

    Args:
        text: Text to split.
        max_tokens: Estimated token budget per chunk.
        overlap_tokens: Estimated tokens of trailing context carried forward.

    Returns:
        Ordered list of stripped chunk strings (empty for blank input).
    """
    chunks: list[str] = []
    overlap_chars = max(0, overlap_tokens) * CHARS_PER_TOKEN

    current = ""
    current_tokens = 0

    for sentence in _SENTENCE_BOUNDARY.split(text):
        sentence_tokens = estimate_tokens(sentence)

        if current_tokens + sentence_tokens > max_tokens and current.strip():
            chunks.append(current.strip())

            overlap = current[-overlap_chars:] if overlap_chars else ""
            current = f"{overlap} {sentence}"
            current_tokens = estimate_tokens(current)
        else:
            current += f" {sentence}"
            current_tokens += sentence_tokens

    if current.strip():
        chunks.append(current.strip())

    return chunks
