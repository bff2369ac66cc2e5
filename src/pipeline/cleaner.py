"""Claude-powered transcript cleaning: speaker labels, fixes, paragraphs."""

from __future__ import annotations

import inspect
import logging
import re
from collections.abc import Awaitable, Callable

from src.config import Settings, get_settings
from src.pipeline.chunking import chunk_text, estimate_tokens
from src.pipeline.errors import ConfigurationError, EmptyCompletionError, error_message
from src.pipeline.llm import CompletionClient
from src.pipeline.models import CleanedTranscript, Result, VideoMetadata
from src.pipeline.retry import retry
from src.pipeline.search import SpeakerSearch
from src.pipeline_config import ChunkFailurePolicy, PipelineConfig

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], Awaitable[None] | None]

CLEAN_MAX_OUTPUT_TOKENS = 16000

# Overlap search: tail of the merged text looked up near the start of the next chunk.
MERGE_TAIL_CHARS = 200
MERGE_SEARCH_WINDOW = 500

_SPEAKER_LABEL = re.compile(r"\[([^\]]+)\]:")


def build_system_prompt(video_metadata: VideoMetadata, speaker_context: str) -> str:
    context_block = (
        f"Additional context about the speakers:\n{speaker_context}\n" if speaker_context else ""
    )
    return (
        "You are formatting a podcast transcript. Your job is to:\n"
        "1. Add speaker labels in the format [Speaker Name]:\n"
        "2. Fix obvious transcription errors\n"
        "3. Add paragraph breaks for readability\n"
        "4. Preserve the EXACT wording - do not summarize or paraphrase\n\n"
        f'The podcast is: "{video_metadata.title}" from channel "{video_metadata.channel}"\n\n'
        f"{context_block}\n"
        "Rules:\n"
        "- If you can identify speakers from the title, channel name, or context, "
        "use their actual names\n"
        '- If you cannot identify a speaker, use "Speaker 1", "Speaker 2", etc. '
        "and be consistent\n"
        "- Start each speaker's turn on a new line with their name in brackets\n"
        "- Group related sentences into paragraphs\n"
        "- Do NOT add any commentary or notes - just format the transcript"
    )


def build_user_prompt(chunk: str, is_first_chunk: bool) -> str:
    if is_first_chunk:
        return f"Format this podcast transcript:\n\n{chunk}"
    return (
        "Continue formatting this podcast transcript "
        f"(maintain the same speaker labels as before):\n\n{chunk}"
    )


def extract_speakers(text: str) -> list[str]:
    """Distinct ``[Name]:`` labels in order of first appearance."""
    return list(dict.fromkeys(m for m in _SPEAKER_LABEL.findall(text) if m))


def merge_chunks(chunks: list[str]) -> str:
    """Concatenate cleaned chunks, dropping text repeated across boundaries.

    The last 200 characters of the merged text's final two paragraphs are
    looked up in each following chunk.  A hit inside the first 500
    characters (but not at position 0) means the chunk re-states the
    overlap, so only what follows the hit is appended.  Otherwise the chunk
    is appended whole.  This is a heuristic: repetitive speech can cause a
    false hit, and reworded model output can hide a real overlap.
    """
    if not chunks:
        return ""
    if len(chunks) == 1:
        return chunks[0]

    merged = chunks[0]
    for chunk in chunks[1:]:
        if not chunk:
            continue

        last_paragraphs = "\n\n".join(merged.split("\n\n")[-2:])
        tail = last_paragraphs[-MERGE_TAIL_CHARS:]
        overlap_index = chunk.find(tail)

        if 0 < overlap_index < MERGE_SEARCH_WINDOW:
            merged += "\n\n" + chunk[overlap_index + len(tail) :].strip()
        else:
            merged += "\n\n" + chunk

    return merged.strip()


async def _report(on_progress: ProgressCallback | None, current: int, total: int) -> None:
    if on_progress is None:
        return
    outcome = on_progress(current, total)
    if inspect.isawaitable(outcome):
        await outcome


class TranscriptCleaner:
    """Turns a raw transcript into speaker-labelled, paragraphed text.

    Raises:
        ConfigurationError: At construction when no Anthropic key is set.
    """

    def __init__(
        self,
        settings: Settings,
        completion: CompletionClient | None = None,
        speaker_search: SpeakerSearch | None = None,
        config: PipelineConfig | None = None,
    ) -> None:
        self.completion = completion or CompletionClient(settings)
        self.speaker_search = speaker_search or SpeakerSearch(settings)
        self.config = config or PipelineConfig.from_settings(settings)

    async def clean(
        self,
        raw_text: str,
        video_metadata: VideoMetadata,
        on_progress: ProgressCallback | None = None,
    ) -> Result[CleanedTranscript]:
        try:
            # Looked up once and shared by every chunk.
            speaker_context = await self.speaker_search.search(
                video_metadata.title, video_metadata.channel
            )

            if estimate_tokens(raw_text) <= self.config.clean_max_tokens_per_chunk:
                chunks = [raw_text]
            else:
                chunks = chunk_text(
                    raw_text,
                    self.config.clean_max_tokens_per_chunk,
                    self.config.clean_overlap_tokens,
                )
                logger.info("Cleaning transcript in %d chunks", len(chunks))

            cleaned_chunks = await self._clean_chunks(
                chunks, video_metadata, speaker_context, on_progress
            )
        except Exception as exc:
            logger.warning("Transcript cleaning failed: %s", exc)
            return Result.failure(error_message(exc))

        cleaned_text = merge_chunks(cleaned_chunks)
        return Result.success(
            CleanedTranscript(cleaned_text=cleaned_text, speakers=extract_speakers(cleaned_text))
        )

    async def _clean_chunks(
        self,
        chunks: list[str],
        video_metadata: VideoMetadata,
        speaker_context: str,
        on_progress: ProgressCallback | None,
    ) -> list[str]:
        system_prompt = build_system_prompt(video_metadata, speaker_context)
        cleaned_chunks: list[str] = []

        for i, chunk in enumerate(chunks):
            # Progress is reported before the chunk's request goes out.
            await _report(on_progress, i + 1, len(chunks))
            if not chunk:
                continue

            try:
                cleaned = await self._clean_chunk(system_prompt, chunk, is_first_chunk=i == 0)
            except Exception as exc:
                if self.config.chunk_failure_policy is ChunkFailurePolicy.FAIL_FAST:
                    raise
                logger.warning("Skipping chunk %d/%d: %s", i + 1, len(chunks), exc)
                continue
            cleaned_chunks.append(cleaned)

        if not cleaned_chunks:
            raise EmptyCompletionError("Transcript cleaning produced no text")
        return cleaned_chunks

    async def _clean_chunk(self, system_prompt: str, chunk: str, is_first_chunk: bool) -> str:
        user_prompt = build_user_prompt(chunk, is_first_chunk)
        cleaned = await retry(
            lambda: self.completion.complete(system_prompt, user_prompt, CLEAN_MAX_OUTPUT_TOKENS),
            self.config.retry_max_attempts,
            self.config.retry_base_delay_ms,
        )
        if not cleaned.strip():
            raise EmptyCompletionError("Transcript cleaning returned no text")
        return cleaned


async def clean_transcript(
    raw_text: str,
    video_metadata: VideoMetadata,
    on_progress: ProgressCallback | None = None,
    settings: Settings | None = None,
) -> Result[CleanedTranscript]:
    """Clean a transcript, reporting a missing key as a failed Result."""
    try:
        cleaner = TranscriptCleaner(settings or get_settings())
    except ConfigurationError as exc:
        return Result.failure(str(exc))
    return await cleaner.clean(raw_text, video_metadata, on_progress)
