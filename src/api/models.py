"""Pydantic request/response schemas for the Podcast Summarizer API."""

from __future__ import annotations

from pydantic import BaseModel, EmailStr, field_validator

from src.pipeline.models import Job, JobStatus, Summary, Transcript
from src.pipeline.youtube import extract_youtube_id


class CreateJobRequest(BaseModel):
    """Request body for the POST /api/jobs endpoint."""

    youtube_url: str
    notification_email: EmailStr | None = None

    @field_validator("youtube_url")
    @classmethod
    def _valid_youtube_url(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("YouTube URL is required")
        if extract_youtube_id(value) is None:
            raise ValueError("Invalid YouTube URL. Please enter a valid YouTube video URL.")
        return value

    @field_validator("notification_email", mode="before")
    @classmethod
    def _blank_email_is_none(cls, value: object) -> object:
        # Forms submit an empty string when the e-mail box is left blank.
        return None if value == "" else value


class CreateJobResponse(BaseModel):
    job_id: str
    shareable_url: str


class JobProgressModel(BaseModel):
    stage: JobStatus
    message: str | None = None
    current: int | None = None
    total: int | None = None


class VideoMetadataModel(BaseModel):
    id: str
    title: str
    channel: str
    thumbnail_url: str


class JobResponse(BaseModel):
    """Job state as seen by a polling client."""

    id: str
    status: JobStatus
    progress: JobProgressModel
    youtube_url: str
    youtube_id: str
    video_metadata: VideoMetadataModel | None = None
    error: str | None = None
    notification_email: str | None = None
    created_at: str | None = None
    completed_at: str | None = None

    @classmethod
    def from_job(cls, job: Job) -> JobResponse:
        meta = job.video_metadata
        return cls(
            id=job.id,
            status=job.status,
            progress=JobProgressModel(
                stage=job.progress.stage,
                message=job.progress.message,
                current=job.progress.current,
                total=job.progress.total,
            ),
            youtube_url=job.youtube_url,
            youtube_id=job.youtube_id,
            video_metadata=(
                VideoMetadataModel(
                    id=meta.id,
                    title=meta.title,
                    channel=meta.channel,
                    thumbnail_url=meta.thumbnail_url,
                )
                if meta
                else None
            ),
            error=job.error,
            notification_email=job.notification_email,
            created_at=job.created_at,
            completed_at=job.completed_at,
        )


class TranscriptResponse(BaseModel):
    job_id: str
    raw_text: str
    cleaned_text: str | None = None
    speakers: list[str] | None = None

    @classmethod
    def from_transcript(cls, transcript: Transcript) -> TranscriptResponse:
        return cls(
            job_id=transcript.job_id,
            raw_text=transcript.raw_text,
            cleaned_text=transcript.cleaned_text,
            speakers=transcript.speakers,
        )


class SummaryResponse(BaseModel):
    job_id: str
    content: str  # markdown
    prompt_version: str

    @classmethod
    def from_summary(cls, summary: Summary) -> SummaryResponse:
        return cls(
            job_id=summary.job_id,
            content=summary.content,
            prompt_version=summary.prompt_version,
        )


class JobResultResponse(BaseModel):
    """Response body for GET /api/jobs/{job_id}.

    ``transcript`` and ``summary`` are only populated once the job is completed.
    """

    job: JobResponse
    transcript: TranscriptResponse | None = None
    summary: SummaryResponse | None = None


class StartJobResponse(BaseModel):
    completed: bool
