"""Repository records and the store interface consumed by services."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from transcribe_api.schemas.job import JobStatus

DEFAULT_JOB_LIST_LIMIT = 50


class StoreError(Exception):
    """Any failure reading from or writing to the backing store."""


@dataclass(slots=True)
class JobRecord:
    id: str
    user_id: str
    status: JobStatus
    created_at: datetime
    job_type: str = "transcription"
    priority: int = 0
    payload: dict[str, Any] = field(default_factory=dict)
    result: dict[str, Any] | None = None
    error_message: str | None = None
    updated_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    attempts: int = 0
    max_attempts: int = 3

    @property
    def transcription_id(self) -> str | None:
        value = (self.payload or {}).get("transcription_id")
        return str(value) if value else None


@dataclass(slots=True)
class JobLogRecord:
    id: str
    job_id: str
    message: str
    level: str
    created_at: datetime


@dataclass(slots=True)
class AudioFileRecord:
    id: str
    user_id: str


@dataclass(slots=True)
class TranscriptionRecord:
    id: str
    file_id: str
    status: str
    language: str | None = "en"
    language_probability: float | None = None
    raw_text: str | None = None
    model_id: str | None = None
    error_message: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    # Populated from the owning audio file on reads.
    owner_id: str | None = None


@dataclass(slots=True)
class SegmentRecord:
    id: str
    transcription_id: str
    sequence_number: int
    start_time: float
    end_time: float
    text: str
    speaker_id: str | None = None
    original_text: str | None = None
    type: str | None = "word"


class JobStore(ABC):
    """Operations the API performs against the job and transcription tables.

    Implementations raise ``StoreError`` for every backend failure.
    """

    @abstractmethod
    def get_job(self, job_id: str) -> JobRecord | None:
        """Return the job row, or ``None`` when it does not exist."""

    @abstractmethod
    def list_jobs_for_user(
        self,
        *,
        user_id: str,
        transcription_id: str | None = None,
        limit: int = DEFAULT_JOB_LIST_LIMIT,
    ) -> list[JobRecord]:
        """Return the user's jobs newest first."""

    @abstractmethod
    def list_job_logs(self, job_id: str) -> list[JobLogRecord]:
        """Return the job's logs oldest first."""

    @abstractmethod
    def update_job(self, *, job_id: str, changes: dict[str, Any]) -> JobRecord | None:
        """Apply column changes and return the updated row, or ``None`` if absent."""

    @abstractmethod
    def list_stuck_jobs(self, *, started_before: datetime) -> list[JobRecord]:
        """Return ``processing`` jobs whose ``started_at`` precedes the cutoff."""

    @abstractmethod
    def list_pending_jobs(self, *, limit: int) -> list[JobRecord]:
        """Return ``pending`` jobs by ``priority`` descending, then ``created_at`` ascending."""

    @abstractmethod
    def update_transcription(self, *, transcription_id: str, changes: dict[str, Any]) -> None:
        """Apply column changes to a transcription row."""

    @abstractmethod
    def get_transcription(self, transcription_id: str) -> TranscriptionRecord | None:
        """Return the transcription joined with its audio file owner."""

    @abstractmethod
    def list_segments(self, transcription_id: str) -> list[SegmentRecord]:
        """Return segments ordered by ``sequence_number`` ascending."""

    @abstractmethod
    def find_latest_job_for_transcription(self, transcription_id: str) -> JobRecord | None:
        """Return the newest job whose payload references the transcription."""

    def close(self) -> None:
        """Release backend resources."""
