"""Worker-driven job transitions.

Every transition is a primary write to the job row followed, when the job's
payload names a ``transcription_id``, by a secondary write that mirrors the
status onto that transcription. The primary write is authoritative: once it
succeeds the request succeeds. A failed mirror write is logged and dropped;
it never rolls back the job row or changes the response. The two writes are
independent, so a transcription may briefly lag its job.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
import logging
from typing import Any

from transcribe_api.domain.job_fsm import ensure_transition, parse_status, reset_changes, status_changes
from transcribe_api.errors import StoreFailure, ValidationFailure
from transcribe_api.repositories.base import JobRecord, JobStore, StoreError
from transcribe_api.schemas.job import JobStatus, JobTransitionResponse, ResetStuckJobsResponse
from transcribe_api.services.jobs import to_job

logger = logging.getLogger(__name__)


class JobTransitionService:
    def __init__(
        self,
        store: JobStore,
        *,
        enforce_transitions: bool = False,
        stuck_job_max_minutes: int = 30,
    ) -> None:
        self._store = store
        self._enforce_transitions = enforce_transitions
        self._stuck_job_max_minutes = stuck_job_max_minutes

    def update_job(
        self,
        *,
        job_id: str | None,
        status: str | None,
        error_message: str | None = None,
        result: dict[str, Any] | None = None,
    ) -> JobTransitionResponse:
        if not job_id:
            raise ValidationFailure("Job ID is required")
        new_status = parse_status(status)

        if self._enforce_transitions:
            current = self._fetch_job(job_id, failure_message="Failed to update job")
            if current is None:
                logger.warning("job.update_no_match job_id=%s", job_id)
                return JobTransitionResponse(message="Job updated successfully", job=None)
            ensure_transition(current.status, new_status)

        changes = status_changes(new_status, datetime.now(UTC))
        if error_message is not None:
            changes["error_message"] = error_message
        if result is not None:
            changes["result"] = result

        record = self._write_job(job_id, changes, failure_message="Failed to update job")
        if record is None:
            logger.warning("job.update_no_match job_id=%s", job_id)
            return JobTransitionResponse(message="Job updated successfully", job=None)
        logger.info("job.updated job_id=%s status=%s", job_id, new_status.value)

        self._mirror_to_transcription(record, {"status": new_status})
        return JobTransitionResponse(message="Job updated successfully", job=to_job(record))

    def reset_job(self, *, job_id: str | None) -> JobTransitionResponse:
        if not job_id:
            raise ValidationFailure("Job ID is required")

        record = self._write_job(job_id, reset_changes(), failure_message="Failed to reset job")
        if record is None:
            logger.warning("job.reset_no_match job_id=%s", job_id)
            return JobTransitionResponse(message="Job reset successfully", job=None)
        logger.info("job.reset job_id=%s", job_id)

        self._mirror_to_transcription(record, {"status": JobStatus.PENDING})
        return JobTransitionResponse(message="Job reset successfully", job=to_job(record))

    def reset_stuck_jobs(self, *, max_time_minutes: int | None = None) -> ResetStuckJobsResponse:
        """Return ``processing`` jobs older than the cutoff to ``pending``.

        Each job is handled independently; a failed job write is counted in
        ``failed_resets`` and the sweep continues.
        """
        minutes = max_time_minutes or self._stuck_job_max_minutes
        cutoff = datetime.now(UTC) - timedelta(minutes=minutes)

        try:
            stuck_jobs = self._store.list_stuck_jobs(started_before=cutoff)
        except StoreError:
            logger.error("job.stuck_lookup_failed cutoff=%s", cutoff.isoformat(), exc_info=True)
            raise StoreFailure("Failed to find stuck jobs")

        reset_count = 0
        for job in stuck_jobs:
            changes = {
                "status": JobStatus.PENDING,
                "started_at": None,
                "completed_at": None,
                "error_message": (
                    f"Job was stuck in processing state for more than {minutes} minutes "
                    "and was automatically reset"
                ),
                "attempts": job.attempts + 1,
            }
            try:
                record = self._store.update_job(job_id=job.id, changes=changes)
            except StoreError:
                logger.warning("job.stuck_reset_failed job_id=%s", job.id, exc_info=True)
                continue
            if record is None:
                logger.warning("job.stuck_reset_failed job_id=%s reason=missing", job.id)
                continue

            reset_count += 1
            if record.job_type == "transcription":
                self._mirror_to_transcription(
                    record,
                    {
                        "status": JobStatus.PENDING,
                        "error_message": f"Reset due to stuck job after {minutes} minutes",
                    },
                )

        logger.info(
            "job.stuck_reset total_found=%s reset=%s max_minutes=%s",
            len(stuck_jobs),
            reset_count,
            minutes,
        )
        return ResetStuckJobsResponse(
            reset_count=reset_count,
            total_found=len(stuck_jobs),
            failed_resets=len(stuck_jobs) - reset_count,
        )

    def _fetch_job(self, job_id: str, *, failure_message: str) -> JobRecord | None:
        try:
            return self._store.get_job(job_id)
        except StoreError:
            logger.error("job.fetch_failed job_id=%s", job_id, exc_info=True)
            raise StoreFailure(failure_message)

    def _write_job(self, job_id: str, changes: dict[str, Any], *, failure_message: str) -> JobRecord | None:
        """Primary write; ``None`` means no job row matched ``job_id``."""
        try:
            return self._store.update_job(job_id=job_id, changes=changes)
        except StoreError:
            logger.error("job.write_failed job_id=%s", job_id, exc_info=True)
            raise StoreFailure(failure_message)

    def _mirror_to_transcription(self, job: JobRecord, changes: dict[str, Any]) -> None:
        """Best-effort secondary write onto the job's transcription."""
        transcription_id = job.transcription_id
        if transcription_id is None:
            return

        try:
            self._store.update_transcription(transcription_id=transcription_id, changes=changes)
        except StoreError as exc:
            logger.warning(
                "job.mirror_failed job_id=%s transcription_id=%s reason=%s",
                job.id,
                transcription_id,
                exc,
            )
            return

        logger.debug("job.mirrored job_id=%s transcription_id=%s", job.id, transcription_id)
