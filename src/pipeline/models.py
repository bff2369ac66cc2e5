"""Data models for the summarization pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class JobStatus(str, Enum):
    """Processing stages of a job, in pipeline order."""

    PENDING = "pending"
    FETCHING = "fetching"
    CLEANING = "cleaning"
    SUMMARIZING = "summarizing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)

    def can_transition_to(self, target: JobStatus) -> bool:
        """Forward moves only; ``failed`` is reachable from any non-terminal state."""
        if self.is_terminal:
            return False
        if target is JobStatus.FAILED:
            return True
        return _ORDER.index(target) > _ORDER.index(self)


_ORDER = [
    JobStatus.PENDING,
    JobStatus.FETCHING,
    JobStatus.CLEANING,
    JobStatus.SUMMARIZING,
    JobStatus.COMPLETED,
]


@dataclass
class JobProgress:
    """Progress information exposed to polling clients."""

    stage: JobStatus
    message: str | None = None
    current: int | None = None
    total: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"stage": self.stage.value}
        if self.message is not None:
            data["message"] = self.message
        if self.current is not None:
            data["current"] = self.current
        if self.total is not None:
            data["total"] = self.total
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None, fallback: JobStatus) -> JobProgress:
        if not data:
            return cls(stage=fallback)
        return cls(
            stage=JobStatus(data.get("stage", fallback.value)),
            message=data.get("message"),
            current=data.get("current"),
            total=data.get("total"),
        )


@dataclass
class VideoMetadata:
    """Video details used to steer prompts (speaker names, show title)."""

    id: str
    title: str = "Unknown"
    channel: str = "Unknown"
    thumbnail_url: str = ""


_METADATA_COLUMNS = ("video_title", "video_channel", "video_thumbnail_url")


@dataclass
class Job:
    """A unit of work for one video."""

    id: str
    youtube_url: str
    youtube_id: str
    status: JobStatus = JobStatus.PENDING
    progress: JobProgress = field(
        default_factory=lambda: JobProgress(stage=JobStatus.PENDING, message="Job created")
    )
    video_metadata: VideoMetadata | None = None
    error: str | None = None
    notification_email: str | None = None
    created_at: str | None = None
    completed_at: str | None = None

    def metadata_or_default(self) -> VideoMetadata:
        """Metadata for prompting; unknown fields fall back to ``"Unknown"``."""
        if self.video_metadata is None:
            return VideoMetadata(id=self.youtube_id)
        return self.video_metadata

    def to_row(self) -> dict[str, Any]:
        meta = self.video_metadata
        row: dict[str, Any] = {
            "id": self.id,
            "status": self.status.value,
            "progress": self.progress.to_dict(),
            "youtube_url": self.youtube_url,
            "youtube_id": self.youtube_id,
            "video_title": meta.title if meta else None,
            "video_channel": meta.channel if meta else None,
            "video_thumbnail_url": meta.thumbnail_url if meta else None,
            "notification_email": self.notification_email,
        }
        if self.error is not None:
            row["error"] = self.error
        if self.created_at is not None:
            row["created_at"] = self.created_at
        if self.completed_at is not None:
            row["completed_at"] = self.completed_at
        return row

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Job:
        status = JobStatus(row["status"])
        metadata = None
        # Each video_* column is nullable on its own.
        if any(row.get(column) for column in _METADATA_COLUMNS):
            metadata = VideoMetadata(
                id=row["youtube_id"],
                title=row.get("video_title") or "Unknown",
                channel=row.get("video_channel") or "Unknown",
                thumbnail_url=row.get("video_thumbnail_url") or "",
            )
        return cls(
            id=row["id"],
            youtube_url=row["youtube_url"],
            youtube_id=row["youtube_id"],
            status=status,
            progress=JobProgress.from_dict(row.get("progress"), fallback=status),
            video_metadata=metadata,
            error=row.get("error"),
            notification_email=row.get("notification_email"),
            created_at=row.get("created_at"),
            completed_at=row.get("completed_at"),
        )


@dataclass
class Transcript:
    """Transcript artifact of a job; ``raw_text`` never changes once stored."""

    job_id: str
    raw_text: str
    cleaned_text: str | None = None
    speakers: list[str] | None = None


@dataclass
class Summary:
    """Markdown summary of a job, tagged with the prompt version that produced it."""

    job_id: str
    content: str
    prompt_version: str


@dataclass
class CleanedTranscript:
    """Output of the cleaning stage."""

    cleaned_text: str
    speakers: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a pipeline stage: ``data`` when ``ok``, else ``error``."""

    ok: bool
    data: T | None = None
    error: str | None = None

    @classmethod
    def success(cls, data: T) -> Result[T]:
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error: str) -> Result[T]:
        return cls(ok=False, error=error)
