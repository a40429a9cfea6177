"""Job read service layer."""

import logging

from transcribe_api.core.logging_setup import safe_log_identifier
from transcribe_api.errors import NotFound, OwnershipDenied, StoreFailure, ValidationFailure
from transcribe_api.repositories.base import JobLogRecord, JobRecord, JobStore, StoreError
from transcribe_api.schemas.job import Job, JobListResponse, JobLog, JobStatusResponse, WorkerBatchResponse

logger = logging.getLogger(__name__)


class JobService:
    def __init__(self, store: JobStore) -> None:
        self._store = store

    def get_job_status(self, *, user_id: str, job_id: str, include_logs: bool = False) -> JobStatusResponse:
        try:
            record = self._store.get_job(job_id)
        except StoreError:
            logger.error("job.fetch_failed job_id=%s", job_id, exc_info=True)
            raise StoreFailure("Failed to fetch job data")

        if record is None:
            raise NotFound("Job not found")
        if record.user_id != user_id:
            logger.warning(
                "job.access_denied job_id=%s principal_id=%s",
                job_id,
                safe_log_identifier(user_id, prefix="pid"),
            )
            raise OwnershipDenied("Unauthorized")

        if not include_logs:
            return JobStatusResponse(job=to_job(record))

        try:
            logs = self._store.list_job_logs(job_id)
        except StoreError:
            logger.error("job.logs_fetch_failed job_id=%s", job_id, exc_info=True)
            raise StoreFailure("Failed to fetch job data")

        return JobStatusResponse(job=to_job(record), logs=[_to_job_log(log) for log in logs])

    def list_jobs(self, *, user_id: str, transcription_id: str | None = None) -> JobListResponse:
        try:
            records = self._store.list_jobs_for_user(user_id=user_id, transcription_id=transcription_id)
        except StoreError:
            logger.error(
                "job.list_failed principal_id=%s transcription_id=%s",
                safe_log_identifier(user_id, prefix="pid"),
                transcription_id,
                exc_info=True,
            )
            raise StoreFailure("Failed to fetch jobs")

        return JobListResponse(jobs=[to_job(record) for record in records])

    def list_pending_jobs(self, *, mode: str, max_jobs: int) -> WorkerBatchResponse:
        """Return the next pending jobs for a polling worker (``batch`` mode only)."""
        if mode != "batch":
            raise ValidationFailure("Invalid mode specified")

        try:
            records = self._store.list_pending_jobs(limit=max_jobs)
        except StoreError:
            logger.error("job.pending_list_failed max_jobs=%s", max_jobs, exc_info=True)
            raise StoreFailure("Failed to fetch jobs")

        if not records:
            return WorkerBatchResponse(jobs=[], message="No pending jobs found")
        return WorkerBatchResponse(jobs=[to_job(record) for record in records])


def to_job(record: JobRecord) -> Job:
    return Job(
        id=record.id,
        job_type=record.job_type,
        status=record.status,
        priority=record.priority,
        payload=record.payload,
        result=record.result,
        error_message=record.error_message,
        created_at=record.created_at,
        updated_at=record.updated_at,
        started_at=record.started_at,
        completed_at=record.completed_at,
        attempts=record.attempts,
        max_attempts=record.max_attempts,
        user_id=record.user_id,
    )


def _to_job_log(record: JobLogRecord) -> JobLog:
    return JobLog(
        id=record.id,
        job_id=record.job_id,
        message=record.message,
        level=record.level,
        created_at=record.created_at,
    )
