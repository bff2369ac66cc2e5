"""Tests for job orchestration: status transitions, artifacts, failures, notifications."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from src.config import Settings
from src.pipeline.cleaner import TranscriptCleaner
from src.pipeline.fetcher import TranscriptFetcher
from src.pipeline.models import CleanedTranscript, Job, JobStatus, Result, VideoMetadata
from src.pipeline.orchestrator import JobProcessor
from src.pipeline.storage import PipelineStore
from src.pipeline.summarizer import PROMPT_VERSION, Summarizer

JOB_ID = "job123abc456"


def ok_fetch(text: str = "hello and welcome to the show") -> AsyncMock:
    return AsyncMock(return_value=Result.success(text))


def ok_clean(progress_calls: int = 0) -> AsyncMock:
    async def clean(raw_text, metadata, on_progress=None):  # type: ignore[no-untyped-def]
        for i in range(progress_calls):
            await on_progress(i + 1, progress_calls)
        return Result.success(
            CleanedTranscript(cleaned_text="[Host]: Hello and welcome.", speakers=["Host"])
        )

    return AsyncMock(side_effect=clean)


def ok_summarize(text: str = "## Overview\nGreat show.") -> AsyncMock:
    return AsyncMock(return_value=Result.success(text))


def quiet_notifier() -> MagicMock:
    notifier = MagicMock()
    notifier.send_completion_email = AsyncMock(return_value=True)
    return notifier


def make_processor(
    store: PipelineStore,
    settings: Settings,
    *,
    fetch: AsyncMock | None = None,
    clean: AsyncMock | None = None,
    summarize: AsyncMock | None = None,
    notifier: MagicMock | None = None,
) -> JobProcessor:
    return JobProcessor(
        store,
        settings,
        fetch=fetch or ok_fetch(),
        clean=clean or ok_clean(),
        summarize=summarize or ok_summarize(),
        notifier=notifier or quiet_notifier(),
    )


class TestSuccessfulRun:
    @pytest.mark.asyncio
    async def test_statuses_and_artifacts(
        self, store: PipelineStore, settings: Settings, pending_job: Job
    ) -> None:
        await make_processor(store, settings).process_job(JOB_ID)

        assert store.jobs.statuses(JOB_ID) == [  # type: ignore[attr-defined]
            "fetching",
            "cleaning",
            "summarizing",
            "completed",
        ]
        job = store.jobs.get(JOB_ID)
        assert job is not None
        assert job.status is JobStatus.COMPLETED
        assert job.progress.message == "Summary ready!"
        assert job.completed_at is not None
        assert job.error is None

        transcript = store.transcripts.get(JOB_ID)
        assert transcript is not None
        assert transcript.raw_text == "hello and welcome to the show"
        assert transcript.cleaned_text == "[Host]: Hello and welcome."
        assert transcript.speakers == ["Host"]

        summary = store.summaries.get(JOB_ID)
        assert summary is not None
        assert summary.content == "## Overview\nGreat show."
        assert summary.prompt_version == PROMPT_VERSION

    @pytest.mark.asyncio
    async def test_stages_receive_job_inputs(
        self, store: PipelineStore, settings: Settings, pending_job: Job
    ) -> None:
        fetch, clean, summarize = ok_fetch(), ok_clean(), ok_summarize()

        await make_processor(
            store, settings, fetch=fetch, clean=clean, summarize=summarize
        ).process_job(JOB_ID)

        fetch.assert_awaited_once_with("dQw4w9WgXcQ")
        raw_text, metadata, _ = clean.await_args.args
        assert raw_text == "hello and welcome to the show"
        assert metadata.title == "The Deep Dive Podcast #42"
        summarize.assert_awaited_once_with("[Host]: Hello and welcome.", metadata)

    @pytest.mark.asyncio
    async def test_cleaning_progress_is_persisted(
        self, store: PipelineStore, settings: Settings, pending_job: Job
    ) -> None:
        await make_processor(store, settings, clean=ok_clean(progress_calls=3)).process_job(JOB_ID)

        progress_updates = [
            fields["progress"]
            for jid, fields in store.jobs.updates  # type: ignore[attr-defined]
            if "status" not in fields
        ]
        assert progress_updates == [
            {"stage": "cleaning", "message": f"Cleaning transcript: {i}/3 chunks", "current": i, "total": 3}
            for i in (1, 2, 3)
        ]

    @pytest.mark.asyncio
    async def test_missing_metadata_uses_unknown(
        self, store: PipelineStore, settings: Settings
    ) -> None:
        store.jobs.insert(
            Job(id="nometa000000", youtube_url="https://youtu.be/dQw4w9WgXcQ", youtube_id="dQw4w9WgXcQ")
        )
        clean = ok_clean()

        await make_processor(store, settings, clean=clean).process_job("nometa000000")

        metadata = clean.await_args.args[1]
        assert metadata == VideoMetadata(id="dQw4w9WgXcQ", title="Unknown", channel="Unknown")


class TestFailures:
    @pytest.mark.asyncio
    async def test_fetch_failure_stops_pipeline(
        self, store: PipelineStore, settings: Settings, pending_job: Job
    ) -> None:
        clean, summarize = ok_clean(), ok_summarize()
        fetch = AsyncMock(
            return_value=Result.failure(
                "No transcript available for this video. The video may not have captions enabled."
            )
        )

        await make_processor(
            store, settings, fetch=fetch, clean=clean, summarize=summarize
        ).process_job(JOB_ID)

        job = store.jobs.get(JOB_ID)
        assert job is not None
        assert job.status is JobStatus.FAILED
        assert "captions" in (job.error or "")
        assert job.progress.message == job.error
        assert store.jobs.statuses(JOB_ID) == ["fetching", "failed"]  # type: ignore[attr-defined]
        assert store.transcripts.get(JOB_ID) is None
        assert store.summaries.get(JOB_ID) is None
        clean.assert_not_awaited()
        summarize.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_clean_failure_keeps_raw_transcript(
        self, store: PipelineStore, settings: Settings, pending_job: Job
    ) -> None:
        clean = AsyncMock(return_value=Result.failure("Transcript cleaning returned no text"))

        await make_processor(store, settings, clean=clean).process_job(JOB_ID)

        job = store.jobs.get(JOB_ID)
        assert job is not None and job.status is JobStatus.FAILED
        transcript = store.transcripts.get(JOB_ID)
        assert transcript is not None
        assert transcript.cleaned_text is None
        assert store.summaries.get(JOB_ID) is None

    @pytest.mark.asyncio
    async def test_summary_failure(
        self, store: PipelineStore, settings: Settings, pending_job: Job
    ) -> None:
        summarize = AsyncMock(return_value=Result.failure("Failed to generate summary"))

        await make_processor(store, settings, summarize=summarize).process_job(JOB_ID)

        job = store.jobs.get(JOB_ID)
        assert job is not None
        assert job.status is JobStatus.FAILED
        assert job.error == "Failed to generate summary"
        assert store.jobs.statuses(JOB_ID)[-2:] == ["summarizing", "failed"]  # type: ignore[attr-defined]

    @pytest.mark.asyncio
    async def test_unexpected_exception_marks_failed(
        self, store: PipelineStore, settings: Settings, pending_job: Job
    ) -> None:
        summarize = AsyncMock(side_effect=RuntimeError("kaboom"))

        await make_processor(store, settings, summarize=summarize).process_job(JOB_ID)

        job = store.jobs.get(JOB_ID)
        assert job is not None
        assert job.status is JobStatus.FAILED
        assert job.error == "kaboom"

    @pytest.mark.asyncio
    async def test_store_write_failure_marks_failed(
        self, store: PipelineStore, settings: Settings, pending_job: Job
    ) -> None:
        store.summaries.insert = MagicMock(side_effect=ConnectionError("db down"))  # type: ignore[method-assign]

        await make_processor(store, settings).process_job(JOB_ID)

        job = store.jobs.get(JOB_ID)
        assert job is not None
        assert job.status is JobStatus.FAILED
        assert job.error == "db down"

    @pytest.mark.asyncio
    async def test_missing_job_writes_nothing(
        self, store: PipelineStore, settings: Settings
    ) -> None:
        fetch = ok_fetch()

        await make_processor(store, settings, fetch=fetch).process_job("doesnotexist")

        assert store.jobs.updates == []  # type: ignore[attr-defined]
        fetch.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [JobStatus.CLEANING, JobStatus.COMPLETED, JobStatus.FAILED])
    async def test_non_pending_job_is_left_alone(
        self, store: PipelineStore, settings: Settings, pending_job: Job, status: JobStatus
    ) -> None:
        store.jobs.rows[JOB_ID]["status"] = status.value  # type: ignore[attr-defined]
        fetch = ok_fetch()

        await make_processor(store, settings, fetch=fetch).process_job(JOB_ID)

        assert store.jobs.updates == []  # type: ignore[attr-defined]
        fetch.assert_not_awaited()


class TestClaim:
    @pytest.mark.asyncio
    async def test_concurrent_runs_process_job_once(
        self, store: PipelineStore, settings: Settings, pending_job: Job
    ) -> None:
        fetch = ok_fetch()
        first = make_processor(store, settings, fetch=fetch)
        second = make_processor(store, settings, fetch=fetch)

        results = await asyncio.gather(first.process_job(JOB_ID), second.process_job(JOB_ID))

        assert sorted(results) == [False, True]
        fetch.assert_awaited_once()
        assert store.jobs.statuses(JOB_ID) == [  # type: ignore[attr-defined]
            "fetching",
            "cleaning",
            "summarizing",
            "completed",
        ]

    @pytest.mark.asyncio
    async def test_lost_claim_leaves_job_alone(
        self, store: PipelineStore, settings: Settings, pending_job: Job
    ) -> None:
        store.jobs.claim = MagicMock(return_value=False)  # type: ignore[method-assign]
        fetch = ok_fetch()

        ran = await make_processor(store, settings, fetch=fetch).process_job(JOB_ID)

        assert ran is False
        fetch.assert_not_awaited()
        assert store.jobs.updates == []  # type: ignore[attr-defined]

    @pytest.mark.asyncio
    async def test_claim_is_a_pending_only_update(
        self, store: PipelineStore, settings: Settings, pending_job: Job
    ) -> None:
        claim = MagicMock(side_effect=store.jobs.claim)
        store.jobs.claim = claim  # type: ignore[method-assign]

        assert await make_processor(store, settings).process_job(JOB_ID) is True

        job_id, fields = claim.call_args.args
        assert job_id == JOB_ID
        assert fields == {
            "status": "fetching",
            "progress": {"stage": "fetching", "message": "Fetching transcript from YouTube..."},
        }


class TestNotification:
    @pytest.mark.asyncio
    async def test_sent_when_address_present(
        self, store: PipelineStore, settings: Settings, pending_job: Job
    ) -> None:
        store.jobs.rows[JOB_ID]["notification_email"] = "listener@example.com"  # type: ignore[attr-defined]
        notifier = quiet_notifier()

        await make_processor(store, settings, notifier=notifier).process_job(JOB_ID)

        notifier.send_completion_email.assert_awaited_once_with(
            "listener@example.com", JOB_ID, "The Deep Dive Podcast #42"
        )

    @pytest.mark.asyncio
    async def test_not_sent_without_address(
        self, store: PipelineStore, settings: Settings, pending_job: Job
    ) -> None:
        notifier = quiet_notifier()

        await make_processor(store, settings, notifier=notifier).process_job(JOB_ID)

        notifier.send_completion_email.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_not_sent_on_failure(
        self, store: PipelineStore, settings: Settings, pending_job: Job
    ) -> None:
        store.jobs.rows[JOB_ID]["notification_email"] = "listener@example.com"  # type: ignore[attr-defined]
        notifier = quiet_notifier()
        fetch = AsyncMock(return_value=Result.failure("Transcript is empty."))

        await make_processor(store, settings, fetch=fetch, notifier=notifier).process_job(JOB_ID)

        notifier.send_completion_email.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_email_failure_keeps_job_completed(
        self, store: PipelineStore, settings: Settings, pending_job: Job
    ) -> None:
        store.jobs.rows[JOB_ID]["notification_email"] = "listener@example.com"  # type: ignore[attr-defined]
        notifier = MagicMock()
        notifier.send_completion_email = AsyncMock(side_effect=httpx.ConnectError("refused"))

        await make_processor(store, settings, notifier=notifier).process_job(JOB_ID)

        job = store.jobs.get(JOB_ID)
        assert job is not None
        assert job.status is JobStatus.COMPLETED
        assert job.error is None


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_real_stages_with_fake_providers(
        self, store: PipelineStore, settings: Settings, pending_job: Job, completion: MagicMock, no_search: MagicMock
    ) -> None:
        """Real fetch/clean/summarize components wired to a mock transport and a fake model."""

        def transcript_api(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={"content": [{"text": "so welcome back"}, {"text": "today we talk about sleep"}]},
            )

        async def fake_complete(system: str, user: str, max_tokens: int) -> str:
            if user.startswith("Format this podcast transcript:"):
                return "[Host]: So welcome back.\n\n[Guest]: Today we talk about sleep."
            return "## Overview\nAn episode about sleep."

        completion.complete.side_effect = fake_complete
        fetcher = TranscriptFetcher(
            settings, http_client=httpx.AsyncClient(transport=httpx.MockTransport(transcript_api))
        )
        cleaner = TranscriptCleaner(settings, completion=completion, speaker_search=no_search)
        summarizer = Summarizer(settings, completion=completion)

        processor = JobProcessor(
            store,
            settings,
            fetch=fetcher.fetch,
            clean=cleaner.clean,
            summarize=summarizer.summarize,
            notifier=quiet_notifier(),
        )
        await processor.process_job(JOB_ID)

        job = store.jobs.get(JOB_ID)
        assert job is not None
        assert job.status is JobStatus.COMPLETED

        transcript = store.transcripts.get(JOB_ID)
        assert transcript is not None
        assert transcript.raw_text == "so welcome back today we talk about sleep"
        assert transcript.speakers == ["Host", "Guest"]

        summary = store.summaries.get(JOB_ID)
        assert summary is not None
        assert summary.content == "## Overview\nAn episode about sleep."
