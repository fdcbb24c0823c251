from __future__ import annotations

"""Job domain models and enums."""

import re
from dataclasses import dataclass
from enum import Enum


__all__ = [
    "AssetReference",
    "GenerationJob",
    "JobStatus",
    "MediaKind",
    "MediaReference",
    "Pipeline",
    "TERMINAL_JOB_STATUSES",
    "infer_media_kind",
]


class Pipeline(str, Enum):
    IMAGE = "image"
    VIDEO = "video"

    @property
    def path(self) -> str:
        return f"/{self.value}-gen"


class JobStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


TERMINAL_JOB_STATUSES = frozenset(
    {
        JobStatus.COMPLETED,
        JobStatus.FAILED,
        JobStatus.TIMED_OUT,
    }
)


class MediaKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


_VIDEO_SUFFIX = re.compile(r"\.(mp4|webm)(\?.*)?$", re.IGNORECASE)


def infer_media_kind(url: str) -> MediaKind:
    if _VIDEO_SUFFIX.search(url or ""):
        return MediaKind.VIDEO
    return MediaKind.IMAGE


@dataclass(frozen=True)
class AssetReference:
    """Locator of an asset already stored on the content host."""

    url: str

    def __str__(self) -> str:
        return self.url


@dataclass(frozen=True)
class MediaReference:
    url: str
    kind: MediaKind

    @classmethod
    def from_url(cls, url: str) -> "MediaReference":
        return cls(url=url, kind=infer_media_kind(url))

    @property
    def is_video(self) -> bool:
        return self.kind is MediaKind.VIDEO


@dataclass
class GenerationJob:
    """A remote generation request tracked until it reaches a terminal state.

    Only the submitter creates jobs and only the poller moves ``status``.
    """

    job_id: str
    asset: AssetReference
    pipeline: Pipeline = Pipeline.IMAGE
    status: JobStatus = JobStatus.QUEUED
    failure_reason: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_JOB_STATUSES

    def transition(self, status: JobStatus, *, reason: str | None = None) -> None:
        if self.is_terminal:
            raise ValueError(f"Job {self.job_id} is already {self.status.value}")
        self.status = status
        if reason is not None:
            self.failure_reason = reason
