"""Job orchestration: fetch -> clean -> summarize, with persisted progress."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from functools import partial
from typing import Any

from src.config import Settings, get_settings
from src.pipeline.cleaner import ProgressCallback, clean_transcript
from src.pipeline.errors import ConfigurationError, InvalidTransitionError, error_message
from src.pipeline.fetcher import fetch_transcript
from src.pipeline.models import CleanedTranscript, Job, JobProgress, JobStatus, Result, VideoMetadata
from src.pipeline.notifications import EmailNotifier
from src.pipeline.storage import PipelineStore, get_pipeline_store
from src.pipeline.summarizer import PROMPT_VERSION
from src.pipeline.summarizer import summarize as summarize_transcript

logger = logging.getLogger(__name__)

FetchStage = Callable[[str], Awaitable[Result[str]]]
CleanStage = Callable[
    [str, VideoMetadata, ProgressCallback | None], Awaitable[Result[CleanedTranscript]]
]
SummarizeStage = Callable[[str, VideoMetadata], Awaitable[Result[str]]]


class _JobRun:
    """Status bookkeeping for one job while it is processed.

    Every write goes through the job store, keyed by the job id; nothing is
    shared between runs.
    """

    def __init__(self, store: PipelineStore, job: Job) -> None:
        self.store = store
        self.job_id = job.id
        self.status = job.status

    async def advance(
        self,
        status: JobStatus,
        message: str,
        current: int | None = None,
        total: int | None = None,
        **extra: Any,
    ) -> None:
        if not self.status.can_transition_to(status):
            raise InvalidTransitionError(
                f"Job {self.job_id} cannot move from {self.status.value} to {status.value}"
            )
        progress = JobProgress(stage=status, message=message, current=current, total=total)
        fields = {"status": status.value, "progress": progress.to_dict(), **extra}
        await asyncio.to_thread(self.store.jobs.update, self.job_id, fields)
        self.status = status

    async def claim(self, message: str) -> bool:
        """Move a pending job to ``fetching`` unless another run already did."""
        progress = JobProgress(stage=JobStatus.FETCHING, message=message)
        fields = {"status": JobStatus.FETCHING.value, "progress": progress.to_dict()}
        claimed = await asyncio.to_thread(self.store.jobs.claim, self.job_id, fields)
        if claimed:
            self.status = JobStatus.FETCHING
        return claimed

    async def report(self, message: str, current: int, total: int) -> None:
        """Persist progress within the current stage (status unchanged)."""
        progress = JobProgress(stage=self.status, message=message, current=current, total=total)
        await asyncio.to_thread(self.store.jobs.update, self.job_id, {"progress": progress.to_dict()})

    async def fail(self, error: str) -> None:
        await self.advance(JobStatus.FAILED, error, error=error)


class JobProcessor:
    """Runs the three pipeline stages for a job and records every transition.

    Stage callables default to :func:`fetch_transcript`,
    :func:`clean_transcript` and :func:`summarize` bound to *settings*;
    they can be swapped out (e.g. in tests) as long as they return a
    :class:`Result`.
    """

    def __init__(
        self,
        store: PipelineStore,
        settings: Settings | None = None,
        *,
        fetch: FetchStage | None = None,
        clean: CleanStage | None = None,
        summarize: SummarizeStage | None = None,
        notifier: EmailNotifier | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.store = store
        self._fetch = fetch or partial(fetch_transcript, settings=self.settings)
        self._clean = clean or partial(clean_transcript, settings=self.settings)
        self._summarize = summarize or partial(summarize_transcript, settings=self.settings)
        self.notifier = notifier or EmailNotifier(self.settings)

    async def process_job(self, job_id: str) -> bool:
        """Process a pending job to ``completed`` or ``failed``.

        Outcomes are only observable through the job store.  Jobs that are
        not ``pending`` are left alone: there is no resume of a run that
        stopped mid-stage.  The job is claimed with a conditional update, so
        of two concurrent calls for one job only one runs the stages.

        Returns:
            ``True`` if this call claimed and ran the job, ``False`` if it
            was missing, not pending, or claimed by another run.
        """
        run: _JobRun | None = None
        try:
            job = await asyncio.to_thread(self.store.jobs.get, job_id)
            if job is None:
                logger.error("Job %s not found", job_id)
                return False
            if job.status is not JobStatus.PENDING:
                logger.warning("Job %s is %s; not processing", job_id, job.status.value)
                return False

            run = _JobRun(self.store, job)
            if not await run.claim("Fetching transcript from YouTube..."):
                logger.warning("Job %s was claimed by another run", job_id)
                return False
            completed = await self._run_stages(run, job)
        except Exception as exc:
            logger.exception("Job %s failed with error", job_id)
            claimed = run is not None and run.status is not JobStatus.PENDING
            await self._persist_failure(job_id, run, error_message(exc))
            return claimed

        if completed:
            logger.info("Job %s completed successfully", job_id)
            if job.notification_email:
                await self._notify(job)
        return True

    async def _run_stages(self, run: _JobRun, job: Job) -> bool:
        metadata = job.metadata_or_default()

        # Stage 1: fetch (job already claimed as fetching)
        fetched = await self._fetch(job.youtube_id)
        if not fetched.ok or fetched.data is None:
            await run.fail(fetched.error or "Failed to fetch transcript")
            return False
        raw_text = fetched.data
        await asyncio.to_thread(self.store.transcripts.insert, job.id, raw_text)

        # Stage 2: clean
        await run.advance(JobStatus.CLEANING, "Formatting transcript...", current=0, total=1)
        cleaned = await self._clean(
            raw_text,
            metadata,
            lambda current, total: run.report(
                f"Cleaning transcript: {current}/{total} chunks", current, total
            ),
        )
        if not cleaned.ok or cleaned.data is None:
            await run.fail(cleaned.error or "Failed to clean transcript")
            return False
        await asyncio.to_thread(
            self.store.transcripts.update,
            job.id,
            cleaned.data.cleaned_text,
            cleaned.data.speakers,
        )

        # Stage 3: summarize
        await run.advance(JobStatus.SUMMARIZING, "Generating summary...")
        summary = await self._summarize(cleaned.data.cleaned_text, metadata)
        if not summary.ok or summary.data is None:
            await run.fail(summary.error or "Failed to generate summary")
            return False
        await asyncio.to_thread(self.store.summaries.insert, job.id, summary.data, PROMPT_VERSION)

        await run.advance(
            JobStatus.COMPLETED,
            "Summary ready!",
            completed_at=datetime.now(timezone.utc).isoformat(),
        )
        return True

    async def _persist_failure(self, job_id: str, run: _JobRun | None, error: str) -> None:
        try:
            if run is not None:
                await run.fail(error)
            else:
                progress = JobProgress(stage=JobStatus.FAILED, message=error)
                fields = {
                    "status": JobStatus.FAILED.value,
                    "progress": progress.to_dict(),
                    "error": error,
                }
                await asyncio.to_thread(self.store.jobs.update, job_id, fields)
        except Exception:
            logger.exception("Could not record failure for job %s", job_id)

    async def _notify(self, job: Job) -> None:
        # The job stays completed whatever happens here.
        try:
            await self.notifier.send_completion_email(
                job.notification_email or "",
                job.id,
                job.metadata_or_default().title,
            )
        except Exception:
            logger.exception("Failed to send notification email for %s", job.id)


async def process_job(job_id: str, settings: Settings | None = None) -> None:
    """Fire-and-forget entry point backed by the Supabase stores."""
    settings = settings or get_settings()
    try:
        store = get_pipeline_store(settings)
    except ConfigurationError:
        logger.exception("Cannot process job %s", job_id)
        return
    await JobProcessor(store, settings).process_job(job_id)
