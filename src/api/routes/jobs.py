"""Job endpoints: create, poll, and start processing."""

from __future__ import annotations

import asyncio
import logging
import secrets

from fastapi import APIRouter, HTTPException

from src.api.models import (
    CreateJobRequest,
    CreateJobResponse,
    JobResponse,
    JobResultResponse,
    StartJobResponse,
    SummaryResponse,
    TranscriptResponse,
)
from src.config import get_settings
from src.pipeline.models import Job, JobStatus
from src.pipeline.orchestrator import JobProcessor
from src.pipeline.storage import get_pipeline_store
from src.pipeline.youtube import extract_youtube_id, fetch_video_metadata

logger = logging.getLogger(__name__)

router = APIRouter()

# 9 random bytes -> 12 URL-safe characters
JOB_ID_BYTES = 9


def new_job_id() -> str:
    return secrets.token_urlsafe(JOB_ID_BYTES)


@router.post("/api/jobs", response_model=CreateJobResponse)
async def create_job(request: CreateJobRequest) -> CreateJobResponse:
    """Create a pending job for a YouTube video.

    The client is expected to call ``/api/jobs/{job_id}/start`` next and
    poll ``/api/jobs/{job_id}`` for progress.
    """
    youtube_id = extract_youtube_id(request.youtube_url)
    if youtube_id is None:
        raise HTTPException(status_code=400, detail="Could not extract video ID from URL")

    metadata = await fetch_video_metadata(youtube_id)
    if metadata is None:
        raise HTTPException(
            status_code=400,
            detail="Could not fetch video information. The video may be private or unavailable.",
        )

    job = Job(
        id=new_job_id(),
        youtube_url=request.youtube_url,
        youtube_id=youtube_id,
        video_metadata=metadata,
        notification_email=request.notification_email,
    )

    try:
        store = get_pipeline_store()
        await asyncio.to_thread(store.jobs.insert, job)
    except Exception as exc:
        logger.exception("Failed to create job for %s", youtube_id)
        raise HTTPException(status_code=500, detail="Failed to create job") from exc

    app_url = get_settings().app_url.rstrip("/")
    return CreateJobResponse(job_id=job.id, shareable_url=f"{app_url}/job/{job.id}")


@router.get("/api/jobs/{job_id}", response_model=JobResultResponse)
async def get_job(job_id: str) -> JobResultResponse:
    """Return job status; transcript and summary are included once completed."""
    store = get_pipeline_store()
    job = await asyncio.to_thread(store.jobs.get, job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")

    if job.status is not JobStatus.COMPLETED:
        return JobResultResponse(job=JobResponse.from_job(job))

    transcript, summary = await asyncio.gather(
        asyncio.to_thread(store.transcripts.get, job_id),
        asyncio.to_thread(store.summaries.get, job_id),
    )
    return JobResultResponse(
        job=JobResponse.from_job(job),
        transcript=TranscriptResponse.from_transcript(transcript) if transcript else None,
        summary=SummaryResponse.from_summary(summary) if summary else None,
    )


@router.post("/api/jobs/{job_id}/start", response_model=StartJobResponse)
async def start_job(job_id: str) -> StartJobResponse:
    """Run the pipeline for a pending job; the request stays open until it ends.

    Completed and failed jobs are never reprocessed.  If processing exceeds
    ``job_timeout_seconds`` the request returns 504 and the job keeps its
    last persisted status.
    """
    settings = get_settings()
    store = get_pipeline_store(settings)

    job = await asyncio.to_thread(store.jobs.get, job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")

    if job.status.is_terminal:
        return StartJobResponse(completed=job.status is JobStatus.COMPLETED)
    if job.status is not JobStatus.PENDING:
        raise HTTPException(status_code=409, detail="Job is already being processed")

    processor = JobProcessor(store, settings)
    try:
        ran = await asyncio.wait_for(
            processor.process_job(job_id), timeout=settings.job_timeout_seconds
        )
    except asyncio.TimeoutError as exc:
        logger.warning("Job %s timed out after %.0fs", job_id, settings.job_timeout_seconds)
        raise HTTPException(status_code=504, detail="Job processing timed out") from exc

    finished = await asyncio.to_thread(store.jobs.get, job_id)
    if finished is None:
        raise HTTPException(status_code=404, detail="Job not found")
    # Lost the claim to a concurrent start that is still running.
    if not ran and not finished.status.is_terminal:
        raise HTTPException(status_code=409, detail="Job is already being processed")
    return StartJobResponse(completed=finished.status is JobStatus.COMPLETED)
