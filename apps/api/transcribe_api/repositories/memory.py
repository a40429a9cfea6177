"""In-memory store used for local development and tests."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from transcribe_api.repositories.base import (
    DEFAULT_JOB_LIST_LIMIT,
    AudioFileRecord,
    JobLogRecord,
    JobRecord,
    JobStore,
    SegmentRecord,
    StoreError,
    TranscriptionRecord,
)
from transcribe_api.schemas.job import JobStatus

_JOB_COLUMNS = frozenset(
    {
        "status",
        "priority",
        "payload",
        "result",
        "error_message",
        "started_at",
        "completed_at",
        "attempts",
        "max_attempts",
    }
)
_TRANSCRIPTION_COLUMNS = frozenset({"status", "error_message", "language", "raw_text", "model_id"})


@dataclass(slots=True)
class InMemoryStore(JobStore):
    """Simple, deterministic persistence layer for scaffolding and tests.

    ``fail_next`` maps an operation name (e.g. ``"update_transcription"``) to
    an error message; the next call of that operation raises ``StoreError``
    once and the entry is cleared.
    """

    jobs: dict[str, JobRecord] = field(default_factory=dict)
    job_logs: list[JobLogRecord] = field(default_factory=list)
    audio_files: dict[str, AudioFileRecord] = field(default_factory=dict)
    transcriptions: dict[str, TranscriptionRecord] = field(default_factory=dict)
    segments: list[SegmentRecord] = field(default_factory=list)
    fail_next: dict[str, str] = field(default_factory=dict)
    job_write_count: int = 0
    transcription_write_count: int = 0

    # Seeding helpers; rows are created externally in production.

    def add_job(
        self,
        *,
        user_id: str,
        status: JobStatus = JobStatus.PENDING,
        payload: dict[str, Any] | None = None,
        job_type: str = "transcription",
        job_id: str | None = None,
        created_at: datetime | None = None,
        started_at: datetime | None = None,
        completed_at: datetime | None = None,
        priority: int = 0,
    ) -> JobRecord:
        now = created_at or datetime.now(UTC)
        job = JobRecord(
            id=job_id or str(uuid4()),
            user_id=user_id,
            status=status,
            created_at=now,
            updated_at=now,
            job_type=job_type,
            payload=dict(payload or {}),
            started_at=started_at,
            completed_at=completed_at,
            priority=priority,
        )
        self.jobs[job.id] = job
        return job

    def add_job_log(self, *, job_id: str, message: str, level: str = "info") -> JobLogRecord:
        log = JobLogRecord(
            id=str(uuid4()),
            job_id=job_id,
            message=message,
            level=level,
            created_at=datetime.now(UTC),
        )
        self.job_logs.append(log)
        return log

    def add_audio_file(self, *, user_id: str, file_id: str | None = None) -> AudioFileRecord:
        audio_file = AudioFileRecord(id=file_id or str(uuid4()), user_id=user_id)
        self.audio_files[audio_file.id] = audio_file
        return audio_file

    def add_transcription(
        self,
        *,
        file_id: str,
        status: str = "pending",
        transcription_id: str | None = None,
    ) -> TranscriptionRecord:
        now = datetime.now(UTC)
        transcription = TranscriptionRecord(
            id=transcription_id or str(uuid4()),
            file_id=file_id,
            status=status,
            created_at=now,
            updated_at=now,
        )
        self.transcriptions[transcription.id] = transcription
        return transcription

    def add_segment(
        self,
        *,
        transcription_id: str,
        sequence_number: int,
        text: str,
        start_time: float = 0.0,
        end_time: float = 1.0,
        speaker_id: str | None = None,
    ) -> SegmentRecord:
        segment = SegmentRecord(
            id=str(uuid4()),
            transcription_id=transcription_id,
            sequence_number=sequence_number,
            start_time=start_time,
            end_time=end_time,
            text=text,
            speaker_id=speaker_id,
        )
        self.segments.append(segment)
        return segment

    # JobStore

    def get_job(self, job_id: str) -> JobRecord | None:
        self._maybe_fail("get_job")
        return self.jobs.get(job_id)

    def list_jobs_for_user(
        self,
        *,
        user_id: str,
        transcription_id: str | None = None,
        limit: int = DEFAULT_JOB_LIST_LIMIT,
    ) -> list[JobRecord]:
        self._maybe_fail("list_jobs_for_user")
        jobs = [job for job in self.jobs.values() if job.user_id == user_id]
        if transcription_id is not None:
            jobs = [
                job
                for job in jobs
                if job.job_type == "transcription" and job.transcription_id == transcription_id
            ]
        jobs.sort(key=lambda job: job.created_at, reverse=True)
        return jobs[:limit]

    def list_job_logs(self, job_id: str) -> list[JobLogRecord]:
        self._maybe_fail("list_job_logs")
        logs = [log for log in self.job_logs if log.job_id == job_id]
        logs.sort(key=lambda log: log.created_at)
        return logs

    def update_job(self, *, job_id: str, changes: dict[str, Any]) -> JobRecord | None:
        self._maybe_fail("update_job")
        unknown = set(changes) - _JOB_COLUMNS
        if unknown:
            raise StoreError(f"Unknown job_queue columns: {sorted(unknown)}")

        job = self.jobs.get(job_id)
        if job is None:
            return None

        for column, value in changes.items():
            if column == "status":
                value = JobStatus(value)
            setattr(job, column, value)
        job.updated_at = datetime.now(UTC)
        self.job_write_count += 1
        return job

    def list_stuck_jobs(self, *, started_before: datetime) -> list[JobRecord]:
        self._maybe_fail("list_stuck_jobs")
        return [
            job
            for job in self.jobs.values()
            if job.status is JobStatus.PROCESSING and job.started_at is not None and job.started_at < started_before
        ]

    def list_pending_jobs(self, *, limit: int) -> list[JobRecord]:
        self._maybe_fail("list_pending_jobs")
        jobs = [job for job in self.jobs.values() if job.status is JobStatus.PENDING]
        jobs.sort(key=lambda job: (-job.priority, job.created_at))
        return jobs[:limit]

    def update_transcription(self, *, transcription_id: str, changes: dict[str, Any]) -> None:
        self._maybe_fail("update_transcription")
        unknown = set(changes) - _TRANSCRIPTION_COLUMNS
        if unknown:
            raise StoreError(f"Unknown transcriptions columns: {sorted(unknown)}")

        transcription = self.transcriptions.get(transcription_id)
        if transcription is None:
            return

        for column, value in changes.items():
            if isinstance(value, JobStatus):
                value = value.value
            setattr(transcription, column, value)
        transcription.updated_at = datetime.now(UTC)
        self.transcription_write_count += 1

    def get_transcription(self, transcription_id: str) -> TranscriptionRecord | None:
        self._maybe_fail("get_transcription")
        transcription = self.transcriptions.get(transcription_id)
        if transcription is None:
            return None
        audio_file = self.audio_files.get(transcription.file_id)
        return replace(transcription, owner_id=audio_file.user_id if audio_file else None)

    def list_segments(self, transcription_id: str) -> list[SegmentRecord]:
        self._maybe_fail("list_segments")
        segments = [segment for segment in self.segments if segment.transcription_id == transcription_id]
        segments.sort(key=lambda segment: segment.sequence_number)
        return segments

    def find_latest_job_for_transcription(self, transcription_id: str) -> JobRecord | None:
        self._maybe_fail("find_latest_job_for_transcription")
        jobs = [job for job in self.jobs.values() if job.transcription_id == transcription_id]
        if not jobs:
            return None
        return max(jobs, key=lambda job: job.created_at)

    def _maybe_fail(self, operation: str) -> None:
        message = self.fail_next.pop(operation, None)
        if message is not None:
            raise StoreError(message)
