"""Pipeline configuration: strategy enums and PipelineConfig dataclass."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from src.pipeline.errors import ConfigurationError

if TYPE_CHECKING:
    from src.config import Settings


class ChunkFailurePolicy(str, Enum):
    """What the cleaning stage does when a single chunk cannot be cleaned."""

    FAIL_FAST = "fail_fast"
    BEST_EFFORT = "best_effort"


class SummaryStrategy(str, Enum):
    """How a cleaned transcript is summarized."""

    DIRECT = "direct"
    MAP_REDUCE = "map_reduce"


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable configuration for the fetch → clean → summarize pipeline.

    Token budgets are estimates (see ``estimate_tokens``).  Defaults mirror
    the values the service runs with in production.

    Raises:
        ConfigurationError: If an overlap is not smaller than its chunk budget.
    """

    clean_max_tokens_per_chunk: int = 30000
    clean_overlap_tokens: int = 500
    summary_chunked_threshold: int = 80000
    summary_chunk_tokens: int = 40000
    summary_overlap_tokens: int = 500
    retry_max_attempts: int = 3
    retry_base_delay_ms: int = 2000
    chunk_failure_policy: ChunkFailurePolicy = ChunkFailurePolicy.FAIL_FAST

    def __post_init__(self) -> None:
        # An overlap as large as the budget seeds each chunk with the whole previous one.
        if self.clean_overlap_tokens >= self.clean_max_tokens_per_chunk:
            raise ConfigurationError(
                "clean_overlap_tokens must be smaller than clean_max_tokens_per_chunk"
            )
        if self.summary_overlap_tokens >= self.summary_chunk_tokens:
            raise ConfigurationError(
                "summary_overlap_tokens must be smaller than summary_chunk_tokens"
            )

    @classmethod
    def from_settings(cls, settings: Settings) -> PipelineConfig:
        return cls(
            clean_max_tokens_per_chunk=settings.clean_max_tokens_per_chunk,
            clean_overlap_tokens=settings.clean_overlap_tokens,
            summary_chunked_threshold=settings.summary_chunked_threshold,
            summary_chunk_tokens=settings.summary_chunk_tokens,
            summary_overlap_tokens=settings.summary_overlap_tokens,
            retry_max_attempts=settings.retry_max_attempts,
            retry_base_delay_ms=settings.retry_base_delay_ms,
            chunk_failure_policy=settings.chunk_failure_policy,
        )

    def summary_strategy_for(self, estimated_tokens: int) -> SummaryStrategy:
        """Pick map-reduce only when the text exceeds the chunked threshold."""
        if estimated_tokens > self.summary_chunked_threshold:
            return SummaryStrategy.MAP_REDUCE
        return SummaryStrategy.DIRECT
