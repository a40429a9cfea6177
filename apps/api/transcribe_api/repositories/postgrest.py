"""PostgREST-backed store for the hosted Postgres tables."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
import logging
from typing import Any

import httpx
from pydantic import TypeAdapter, ValidationError

from transcribe_api.repositories.base import (
    DEFAULT_JOB_LIST_LIMIT,
    JobLogRecord,
    JobRecord,
    JobStore,
    SegmentRecord,
    StoreError,
    TranscriptionRecord,
)
from transcribe_api.schemas.job import JobStatus

logger = logging.getLogger(__name__)

_DATETIME = TypeAdapter(datetime)
_RETURN_REPRESENTATION = {"Prefer": "return=representation"}


class PostgrestStore(JobStore):
    """Talks to ``<url>/rest/v1`` with the service-role key.

    Pass ``transport`` to substitute the network layer (e.g. ``httpx.MockTransport``).
    """

    def __init__(
        self,
        *,
        base_url: str,
        service_key: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=f"{base_url.rstrip('/')}/rest/v1",
            headers={
                "apikey": service_key,
                "Authorization": f"Bearer {service_key}",
                "Accept": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def get_job(self, job_id: str) -> JobRecord | None:
        rows = self._get("job_queue", {"select": "*", "id": f"eq.{job_id}", "limit": "1"})
        return _job_from_row(rows[0]) if rows else None

    def list_jobs_for_user(
        self,
        *,
        user_id: str,
        transcription_id: str | None = None,
        limit: int = DEFAULT_JOB_LIST_LIMIT,
    ) -> list[JobRecord]:
        params = {
            "select": "*",
            "user_id": f"eq.{user_id}",
            "order": "created_at.desc",
            "limit": str(limit),
        }
        if transcription_id is not None:
            params["job_type"] = "eq.transcription"
            params["payload->>transcription_id"] = f"eq.{transcription_id}"
        return [_job_from_row(row) for row in self._get("job_queue", params)]

    def list_job_logs(self, job_id: str) -> list[JobLogRecord]:
        rows = self._get("job_logs", {"select": "*", "job_id": f"eq.{job_id}", "order": "created_at.asc"})
        return [
            JobLogRecord(
                id=str(row["id"]),
                job_id=str(row["job_id"]),
                message=row["message"],
                level=row.get("level") or "info",
                created_at=_parse_datetime(row.get("created_at")),
            )
            for row in rows
        ]

    def update_job(self, *, job_id: str, changes: dict[str, Any]) -> JobRecord | None:
        rows = self._patch("job_queue", {"id": f"eq.{job_id}", "select": "*"}, changes)
        return _job_from_row(rows[0]) if rows else None

    def list_stuck_jobs(self, *, started_before: datetime) -> list[JobRecord]:
        params = {
            "select": "*",
            "status": f"eq.{JobStatus.PROCESSING.value}",
            "started_at": f"lt.{started_before.isoformat()}",
        }
        return [_job_from_row(row) for row in self._get("job_queue", params)]

    def list_pending_jobs(self, *, limit: int) -> list[JobRecord]:
        params = {
            "select": "*",
            "status": f"eq.{JobStatus.PENDING.value}",
            "order": "priority.desc,created_at.asc",
            "limit": str(limit),
        }
        return [_job_from_row(row) for row in self._get("job_queue", params)]

    def update_transcription(self, *, transcription_id: str, changes: dict[str, Any]) -> None:
        self._patch("transcriptions", {"id": f"eq.{transcription_id}"}, changes)

    def get_transcription(self, transcription_id: str) -> TranscriptionRecord | None:
        params = {
            "select": "*,audio_file:file_id(user_id)",
            "id": f"eq.{transcription_id}",
            "limit": "1",
        }
        rows = self._get("transcriptions", params)
        if not rows:
            return None
        row = rows[0]
        audio_file = row.get("audio_file") or {}
        return TranscriptionRecord(
            id=str(row["id"]),
            file_id=str(row["file_id"]),
            status=row["status"],
            language=row.get("language"),
            language_probability=_optional_float(row.get("language_probability")),
            raw_text=row.get("raw_text"),
            model_id=row.get("model_id"),
            error_message=row.get("error_message"),
            created_at=_parse_optional_datetime(row.get("created_at")),
            updated_at=_parse_optional_datetime(row.get("updated_at")),
            owner_id=str(audio_file["user_id"]) if audio_file.get("user_id") else None,
        )

    def list_segments(self, transcription_id: str) -> list[SegmentRecord]:
        params = {
            "select": "*",
            "transcription_id": f"eq.{transcription_id}",
            "order": "sequence_number.asc",
        }
        return [
            SegmentRecord(
                id=str(row["id"]),
                transcription_id=str(row["transcription_id"]),
                sequence_number=int(row["sequence_number"]),
                start_time=float(row["start_time"]),
                end_time=float(row["end_time"]),
                text=row["text"],
                speaker_id=row.get("speaker_id"),
                original_text=row.get("original_text"),
                type=row.get("type"),
            )
            for row in self._get("transcription_segments", params)
        ]

    def find_latest_job_for_transcription(self, transcription_id: str) -> JobRecord | None:
        params = {
            "select": "*",
            "payload->>transcription_id": f"eq.{transcription_id}",
            "order": "created_at.desc",
            "limit": "1",
        }
        rows = self._get("job_queue", params)
        return _job_from_row(rows[0]) if rows else None

    def _get(self, table: str, params: dict[str, str]) -> list[dict[str, Any]]:
        return self._request("GET", table, params=params)

    def _patch(self, table: str, params: dict[str, str], changes: dict[str, Any]) -> list[dict[str, Any]]:
        body = {column: _encode(value) for column, value in changes.items()}
        return self._request("PATCH", table, params=params, json=body, headers=_RETURN_REPRESENTATION)

    def _request(self, method: str, table: str, **kwargs: Any) -> list[dict[str, Any]]:
        try:
            response = self._client.request(method, f"/{table}", **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "store.request_failed method=%s table=%s status=%s body=%s",
                method,
                table,
                exc.response.status_code,
                exc.response.text[:500],
            )
            raise StoreError(f"{method} {table} returned HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            logger.error("store.request_failed method=%s table=%s reason=%s", method, table, type(exc).__name__)
            raise StoreError(f"{method} {table} failed: {exc}") from exc

        if not response.content:
            return []
        try:
            data = response.json()
        except ValueError as exc:
            raise StoreError(f"{method} {table} returned invalid JSON") from exc
        if not isinstance(data, list):
            raise StoreError(f"{method} {table} returned unexpected payload")
        return data


def _encode(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _parse_datetime(value: Any) -> datetime:
    try:
        return _DATETIME.validate_python(value)
    except ValidationError as exc:
        raise StoreError(f"Invalid timestamp from store: {value!r}") from exc


def _parse_optional_datetime(value: Any) -> datetime | None:
    return None if value is None else _parse_datetime(value)


def _optional_float(value: Any) -> float | None:
    return None if value is None else float(value)


def _job_from_row(row: dict[str, Any]) -> JobRecord:
    try:
        status = JobStatus(row["status"])
    except ValueError as exc:
        raise StoreError(f"Unexpected job status from store: {row['status']!r}") from exc

    return JobRecord(
        id=str(row["id"]),
        user_id=str(row.get("user_id") or ""),
        status=status,
        created_at=_parse_datetime(row.get("created_at")),
        job_type=row.get("job_type") or "transcription",
        priority=int(row.get("priority") or 0),
        payload=row.get("payload") or {},
        result=row.get("result"),
        error_message=row.get("error_message"),
        updated_at=_parse_optional_datetime(row.get("updated_at")),
        started_at=_parse_optional_datetime(row.get("started_at")),
        completed_at=_parse_optional_datetime(row.get("completed_at")),
        attempts=int(row.get("attempts") or 0),
        max_attempts=int(row.get("max_attempts") if row.get("max_attempts") is not None else 3),
    )
