"""Claude-powered markdown summaries: direct or map-reduce for long transcripts."""

from __future__ import annotations

import logging

from src.config import Settings, get_settings
from src.pipeline.chunking import chunk_text, estimate_tokens
from src.pipeline.errors import ConfigurationError, error_message
from src.pipeline.llm import CompletionClient
from src.pipeline.models import Result, VideoMetadata
from src.pipeline.retry import retry
from src.pipeline_config import PipelineConfig, SummaryStrategy

logger = logging.getLogger(__name__)

# Increment when making significant prompt changes; stored with every summary.
PROMPT_VERSION = "v2-claude"

SUMMARY_MAX_OUTPUT_TOKENS = 8000
SECTION_MAX_OUTPUT_TOKENS = 4000
SECTION_SEPARATOR = "\n\n---\n\n"

DIRECT_SYSTEM_PROMPT = """You are an expert at summarizing podcasts. Create a comprehensive summary that captures the key information.

Format your summary as follows:

## Overview
A 2-3 sentence overview of what this podcast episode is about.

## Key Topics
- Topic 1
- Topic 2
- etc.

## Key Insights & Takeaways
- Insight 1 (with any relevant quotes or attributions)
- Insight 2
- etc.

## Notable Quotes
> "Quote 1" — Speaker Name
> "Quote 2" — Speaker Name

## Action Items / Recommendations
(If any were mentioned in the podcast)
- Item 1
- Item 2

Guidelines:
- Be thorough but concise
- Attribute quotes and insights to speakers when known
- Focus on information that would be valuable to someone who hasn't listened
- Use bullet points for easy scanning
- Include 3-5 notable quotes that capture key ideas"""

SYNTHESIS_SYSTEM_PROMPT = """You have section summaries from a long podcast. Create a cohesive final summary that:
1. Synthesizes all sections into a unified overview
2. Identifies the main themes across all sections
3. Highlights the most important insights
4. Includes the best quotes from across the podcast

Use this format:
## Overview
## Key Topics
## Key Insights & Takeaways
## Notable Quotes
## Action Items / Recommendations (if any)"""


def section_system_prompt(part: int, total: int) -> str:
    return (
        "Summarize this section of a podcast transcript. Focus on key points, "
        f"insights, and notable quotes. This is part {part} of {total}."
    )


class Summarizer:
    """Produces the structured markdown summary of a cleaned transcript.

    Raises:
        ConfigurationError: At construction when no Anthropic key is set.
    """

    def __init__(
        self,
        settings: Settings,
        completion: CompletionClient | None = None,
        config: PipelineConfig | None = None,
    ) -> None:
        self.completion = completion or CompletionClient(settings)
        self.config = config or PipelineConfig.from_settings(settings)

    async def summarize(self, cleaned_text: str, video_metadata: VideoMetadata) -> Result[str]:
        total_tokens = estimate_tokens(cleaned_text)
        strategy = self.config.summary_strategy_for(total_tokens)

        try:
            if strategy is SummaryStrategy.MAP_REDUCE:
                logger.info(
                    "Long transcript (%d tokens) - using chunked summarization", total_tokens
                )
                return await self._summarize_in_chunks(cleaned_text, video_metadata)
            return await self._summarize_direct(cleaned_text, video_metadata)
        except Exception as exc:
            logger.warning("Summarization failed: %s", exc)
            return Result.failure(error_message(exc))

    async def _complete(self, system: str, user: str, max_tokens: int) -> str:
        return await retry(
            lambda: self.completion.complete(system, user, max_tokens),
            self.config.retry_max_attempts,
            self.config.retry_base_delay_ms,
        )

    async def _summarize_direct(
        self, cleaned_text: str, video_metadata: VideoMetadata
    ) -> Result[str]:
        user_prompt = (
            "Summarize this podcast:\n\n"
            f"Title: {video_metadata.title}\n"
            f"Channel: {video_metadata.channel}\n\n"
            f"Transcript:\n{cleaned_text}"
        )
        summary = await self._complete(
            DIRECT_SYSTEM_PROMPT, user_prompt, SUMMARY_MAX_OUTPUT_TOKENS
        )
        if not summary.strip():
            return Result.failure("Failed to generate summary")
        return Result.success(summary)

    async def _summarize_in_chunks(
        self, cleaned_text: str, video_metadata: VideoMetadata
    ) -> Result[str]:
        chunks = chunk_text(
            cleaned_text,
            self.config.summary_chunk_tokens,
            self.config.summary_overlap_tokens,
        )

        section_summaries: list[str] = []
        for i, chunk in enumerate(chunks):
            part = i + 1
            section = await self._complete(
                section_system_prompt(part, len(chunks)),
                f"Podcast: {video_metadata.title}\n\nSection {part}:\n{chunk}",
                SECTION_MAX_OUTPUT_TOKENS,
            )
            if not section.strip():
                logger.warning("Empty summary for section %d/%d; skipping", part, len(chunks))
                continue
            section_summaries.append(f"### Part {part}\n{section}")

        combined_sections = SECTION_SEPARATOR.join(section_summaries)
        final_summary = await self._complete(
            SYNTHESIS_SYSTEM_PROMPT,
            (
                f"Podcast: {video_metadata.title} by {video_metadata.channel}\n\n"
                f"Section summaries to synthesize:\n{combined_sections}"
            ),
            SUMMARY_MAX_OUTPUT_TOKENS,
        )
        if not final_summary.strip():
            return Result.failure("Failed to generate final summary")
        return Result.success(final_summary)


async def summarize(
    cleaned_text: str,
    video_metadata: VideoMetadata,
    settings: Settings | None = None,
) -> Result[str]:
    """Summarize a cleaned transcript, reporting a missing key as a failed Result."""
    try:
        summarizer = Summarizer(settings or get_settings())
    except ConfigurationError as exc:
        return Result.failure(str(exc))
    return await summarizer.summarize(cleaned_text, video_metadata)
