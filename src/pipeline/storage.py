"""Supabase-backed stores for jobs, transcripts and summaries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, cast

from supabase import Client, create_client

from src.config import Settings, get_settings
from src.pipeline.errors import ConfigurationError
from src.pipeline.models import Job, JobStatus, Summary, Transcript


def get_supabase_client(settings: Settings | None = None) -> Client:
    """Create a Supabase client with the service role key from settings."""
    settings = settings or get_settings()
    if not settings.supabase_url or not settings.supabase_key:
        raise ConfigurationError("Missing Supabase environment variables")
    return create_client(settings.supabase_url, settings.supabase_key)


class JobStore(Protocol):
    def get(self, job_id: str) -> Job | None: ...

    def insert(self, job: Job) -> None: ...

    def update(self, job_id: str, fields: dict[str, Any]) -> None: ...

    def claim(self, job_id: str, fields: dict[str, Any]) -> bool: ...


class TranscriptStore(Protocol):
    def get(self, job_id: str) -> Transcript | None: ...

    def insert(self, job_id: str, raw_text: str) -> None: ...

    def update(self, job_id: str, cleaned_text: str, speakers: list[str]) -> None: ...


class SummaryStore(Protocol):
    def get(self, job_id: str) -> Summary | None: ...

    def insert(self, job_id: str, content: str, prompt_version: str) -> None: ...


def _first_row(result: Any) -> dict[str, Any] | None:
    # Supabase .data is typed as JSON (broad union); cast to concrete type.
    rows = cast(list[dict[str, Any]], result.data or [])
    return rows[0] if rows else None


class SupabaseJobStore:
    def __init__(self, client: Client) -> None:
        self.client = client

    def get(self, job_id: str) -> Job | None:
        row = _first_row(self.client.table("jobs").select("*").eq("id", job_id).execute())
        return Job.from_row(row) if row else None

    def insert(self, job: Job) -> None:
        self.client.table("jobs").insert(job.to_row()).execute()

    def update(self, job_id: str, fields: dict[str, Any]) -> None:
        """Apply a partial update; a single call is atomic on the row."""
        self.client.table("jobs").update(fields).eq("id", job_id).execute()

    def claim(self, job_id: str, fields: dict[str, Any]) -> bool:
        """Apply *fields* only while the job is still pending.

        Returns ``True`` if this call moved the job; ``False`` if it was
        missing or another run got to it first.
        """
        result = (
            self.client.table("jobs")
            .update(fields)
            .eq("id", job_id)
            .eq("status", JobStatus.PENDING.value)
            .execute()
        )
        return _first_row(result) is not None


class SupabaseTranscriptStore:
    def __init__(self, client: Client) -> None:
        self.client = client

    def get(self, job_id: str) -> Transcript | None:
        row = _first_row(
            self.client.table("transcripts").select("*").eq("job_id", job_id).execute()
        )
        if not row:
            return None
        return Transcript(
            job_id=row["job_id"],
            raw_text=row["raw_text"],
            cleaned_text=row.get("cleaned_text"),
            speakers=row.get("speakers"),
        )

    def insert(self, job_id: str, raw_text: str) -> None:
        self.client.table("transcripts").insert({"job_id": job_id, "raw_text": raw_text}).execute()

    def update(self, job_id: str, cleaned_text: str, speakers: list[str]) -> None:
        (
            self.client.table("transcripts")
            .update({"cleaned_text": cleaned_text, "speakers": speakers})
            .eq("job_id", job_id)
            .execute()
        )


class SupabaseSummaryStore:
    def __init__(self, client: Client) -> None:
        self.client = client

    def get(self, job_id: str) -> Summary | None:
        row = _first_row(self.client.table("summaries").select("*").eq("job_id", job_id).execute())
        if not row:
            return None
        return Summary(
            job_id=row["job_id"],
            content=row["content"],
            prompt_version=row["prompt_version"],
        )

    def insert(self, job_id: str, content: str, prompt_version: str) -> None:
        (
            self.client.table("summaries")
            .insert({"job_id": job_id, "content": content, "prompt_version": prompt_version})
            .execute()
        )


@dataclass
class PipelineStore:
    """The three stores a job touches, keyed by job id."""

    jobs: JobStore
    transcripts: TranscriptStore
    summaries: SummaryStore


def get_pipeline_store(settings: Settings | None = None) -> PipelineStore:
    client = get_supabase_client(settings)
    return PipelineStore(
        jobs=SupabaseJobStore(client),
        transcripts=SupabaseTranscriptStore(client),
        summaries=SupabaseSummaryStore(client),
    )
