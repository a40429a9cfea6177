"""Transcription read service layer."""

import logging

from transcribe_api.core.logging_setup import safe_log_identifier
from transcribe_api.errors import NotFound, OwnershipDenied, StoreFailure
from transcribe_api.repositories.base import JobStore, SegmentRecord, StoreError, TranscriptionRecord
from transcribe_api.schemas.transcription import (
    Transcription,
    TranscriptionDetail,
    TranscriptionJobResponse,
    TranscriptionSegment,
)

logger = logging.getLogger(__name__)


class TranscriptionService:
    def __init__(self, store: JobStore) -> None:
        self._store = store

    def get_transcription(self, *, user_id: str, transcription_id: str) -> TranscriptionDetail:
        record = self._get_owned_transcription(user_id=user_id, transcription_id=transcription_id)

        # Segments are optional in the response; a failed read degrades to none.
        try:
            segments = self._store.list_segments(transcription_id)
        except StoreError:
            logger.error("transcription.segments_fetch_failed transcription_id=%s", transcription_id, exc_info=True)
            segments = []

        return TranscriptionDetail(
            transcription=_to_transcription(record),
            segments=[_to_segment(segment) for segment in segments],
        )

    def get_transcription_job(self, *, user_id: str, transcription_id: str) -> TranscriptionJobResponse:
        self._get_owned_transcription(user_id=user_id, transcription_id=transcription_id)

        try:
            job = self._store.find_latest_job_for_transcription(transcription_id)
        except StoreError:
            logger.error("transcription.job_lookup_failed transcription_id=%s", transcription_id, exc_info=True)
            raise StoreFailure("Internal server error")

        return TranscriptionJobResponse(job_id=job.id if job else None)

    def _get_owned_transcription(self, *, user_id: str, transcription_id: str) -> TranscriptionRecord:
        try:
            record = self._store.get_transcription(transcription_id)
        except StoreError:
            logger.error("transcription.fetch_failed transcription_id=%s", transcription_id, exc_info=True)
            raise StoreFailure("Internal server error")

        if record is None:
            raise NotFound("Transcription not found")
        if record.owner_id != user_id:
            logger.warning(
                "transcription.access_denied transcription_id=%s principal_id=%s",
                transcription_id,
                safe_log_identifier(user_id, prefix="pid"),
            )
            raise OwnershipDenied("Access denied")
        return record


def _to_transcription(record: TranscriptionRecord) -> Transcription:
    return Transcription(
        id=record.id,
        file_id=record.file_id,
        status=record.status,
        language=record.language,
        language_probability=record.language_probability,
        raw_text=record.raw_text,
        model_id=record.model_id,
        error_message=record.error_message,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _to_segment(record: SegmentRecord) -> TranscriptionSegment:
    return TranscriptionSegment(
        id=record.id,
        transcription_id=record.transcription_id,
        sequence_number=record.sequence_number,
        start_time=record.start_time,
        end_time=record.end_time,
        text=record.text,
        speaker_id=record.speaker_id,
        original_text=record.original_text,
        type=record.type,
    )
