"""Shared fixtures: test settings and in-memory stores standing in for Supabase."""

from __future__ import annotations

import threading
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.config import Settings
from src.pipeline.models import Job, JobStatus, Summary, Transcript, VideoMetadata
from src.pipeline.storage import PipelineStore


class InMemoryJobStore:
    def __init__(self) -> None:
        self.rows: dict[str, dict[str, Any]] = {}
        self.updates: list[tuple[str, dict[str, Any]]] = []
        self._lock = threading.Lock()

    def get(self, job_id: str) -> Job | None:
        row = self.rows.get(job_id)
        return Job.from_row(row) if row else None

    def insert(self, job: Job) -> None:
        self.rows[job.id] = job.to_row()

    def update(self, job_id: str, fields: dict[str, Any]) -> None:
        self.updates.append((job_id, dict(fields)))
        self.rows[job_id].update(fields)

    def claim(self, job_id: str, fields: dict[str, Any]) -> bool:
        """Conditional update: applies *fields* only while the job is pending."""
        with self._lock:
            row = self.rows.get(job_id)
            if row is None or row["status"] != JobStatus.PENDING.value:
                return False
            self.updates.append((job_id, dict(fields)))
            row.update(fields)
            return True

    def statuses(self, job_id: str) -> list[str]:
        """Status values written for *job_id*, in order."""
        return [f["status"] for jid, f in self.updates if jid == job_id and "status" in f]


class InMemoryTranscriptStore:
    def __init__(self) -> None:
        self.rows: dict[str, Transcript] = {}

    def get(self, job_id: str) -> Transcript | None:
        return self.rows.get(job_id)

    def insert(self, job_id: str, raw_text: str) -> None:
        self.rows[job_id] = Transcript(job_id=job_id, raw_text=raw_text)

    def update(self, job_id: str, cleaned_text: str, speakers: list[str]) -> None:
        self.rows[job_id].cleaned_text = cleaned_text
        self.rows[job_id].speakers = speakers


class InMemorySummaryStore:
    def __init__(self) -> None:
        self.rows: dict[str, Summary] = {}

    def get(self, job_id: str) -> Summary | None:
        return self.rows.get(job_id)

    def insert(self, job_id: str, content: str, prompt_version: str) -> None:
        self.rows[job_id] = Summary(job_id=job_id, content=content, prompt_version=prompt_version)


@pytest.fixture
def settings() -> Settings:
    """Fully configured settings with no backoff delay and no optional providers."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        anthropic_api_key="test-anthropic-key",
        youtube_transcript_api_key="test-transcript-key",
        tavily_api_key="",
        resend_api_key="",
        supabase_url="",
        supabase_key="",
        retry_base_delay_ms=0,
    )


@pytest.fixture
def store() -> PipelineStore:
    return PipelineStore(
        jobs=InMemoryJobStore(),
        transcripts=InMemoryTranscriptStore(),
        summaries=InMemorySummaryStore(),
    )


@pytest.fixture
def pending_job(store: PipelineStore) -> Job:
    job = Job(
        id="job123abc456",
        youtube_url="https://www.youtube.com/watch?v=dQw4w9WgXcQ",
        youtube_id="dQw4w9WgXcQ",
        video_metadata=VideoMetadata(
            id="dQw4w9WgXcQ",
            title="The Deep Dive Podcast #42",
            channel="Deep Dive",
            thumbnail_url="https://i.ytimg.com/vi/dQw4w9WgXcQ/hqdefault.jpg",
        ),
        created_at="2026-10-19T12:00:00+00:00",
    )
    store.jobs.insert(job)
    return job


@pytest.fixture
def completion() -> MagicMock:
    """A CompletionClient double whose ``complete`` is an AsyncMock."""
    client = MagicMock()
    client.complete = AsyncMock(return_value="")
    return client


@pytest.fixture
def no_search() -> MagicMock:
    search = MagicMock()
    search.search = AsyncMock(return_value="")
    return search
