"""End-to-end integration test for the fetch -> clean -> summarize pipeline.

# MANUAL RUN REQUIRED: these tests call the live transcript provider and Claude.
# Run manually with: pytest -m expensive tests/test_pipeline_integration.py -v
# Ensure .env has YOUTUBE_TRANSCRIPT_API_KEY and ANTHROPIC_API_KEY set.
# TAVILY_API_KEY is optional (speaker names are guessed without it).
#
# These tests are NOT run in CI (marked @pytest.mark.expensive).
# Jobs are kept in the in-memory stores from conftest, so Supabase is not touched.
"""

from __future__ import annotations

import pytest

from src.config import Settings
from src.pipeline.models import Job, JobStatus
from src.pipeline.orchestrator import JobProcessor
from src.pipeline.storage import PipelineStore
from src.pipeline.youtube import fetch_video_metadata

# A short, long-lived talk with English captions.
VIDEO_ID = "arj7oStGLkU"


@pytest.fixture
def live_settings() -> Settings:
    settings = Settings()
    if not settings.anthropic_api_key or not settings.youtube_transcript_api_key:
        pytest.skip("ANTHROPIC_API_KEY and YOUTUBE_TRANSCRIPT_API_KEY are required")
    return settings.model_copy(update={"resend_api_key": ""})


@pytest.mark.expensive
@pytest.mark.asyncio
async def test_full_pipeline_produces_summary(
    live_settings: Settings, store: PipelineStore
) -> None:
    """Golden path: real metadata, transcript, cleaning and summary for one video."""
    metadata = await fetch_video_metadata(VIDEO_ID)
    assert metadata is not None, "oEmbed lookup failed; is the video still public?"

    job = Job(
        id="integration1",
        youtube_url=f"https://www.youtube.com/watch?v={VIDEO_ID}",
        youtube_id=VIDEO_ID,
        video_metadata=metadata,
    )
    store.jobs.insert(job)

    await JobProcessor(store, live_settings).process_job(job.id)

    finished = store.jobs.get(job.id)
    assert finished is not None
    assert finished.status is JobStatus.COMPLETED, f"Job failed: {finished.error}"

    transcript = store.transcripts.get(job.id)
    assert transcript is not None
    assert transcript.raw_text.strip()
    assert transcript.cleaned_text and transcript.cleaned_text.strip()
    assert transcript.speakers, "Cleaned transcript should carry [Speaker]: labels"

    summary = store.summaries.get(job.id)
    assert summary is not None
    assert "## Overview" in summary.content


@pytest.mark.expensive
@pytest.mark.asyncio
async def test_unknown_video_fails_cleanly(live_settings: Settings, store: PipelineStore) -> None:
    """A video id with no captions ends in ``failed`` with a readable error."""
    job = Job(
        id="integration2",
        youtube_url="https://www.youtube.com/watch?v=zzzzzzzzzzz",
        youtube_id="zzzzzzzzzzz",
    )
    store.jobs.insert(job)

    await JobProcessor(store, live_settings).process_job(job.id)

    finished = store.jobs.get(job.id)
    assert finished is not None
    assert finished.status is JobStatus.FAILED
    assert finished.error
    assert store.summaries.get(job.id) is None
