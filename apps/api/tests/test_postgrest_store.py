"""PostgREST store tests against a mocked transport."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime
import json
import threading
import unittest

import httpx
from fastapi.testclient import TestClient

from transcribe_api.core.config import Settings
from transcribe_api.main import build_store, create_app
from transcribe_api.repositories.base import StoreError
from transcribe_api.repositories.postgrest import PostgrestStore
from transcribe_api.schemas.job import JobStatus

JOB_ROW = {
    "id": "job-1",
    "job_type": "transcription",
    "status": "processing",
    "priority": 0,
    "payload": {"transcription_id": "t-1"},
    "result": None,
    "error_message": None,
    "created_at": "2026-03-01T12:00:00+00:00",
    "updated_at": "2026-03-01T12:01:00+00:00",
    "started_at": "2026-03-01T12:01:00+00:00",
    "completed_at": None,
    "attempts": 0,
    "max_attempts": 3,
    "user_id": "owner-1",
}


class _RecordingTransport:
    def __init__(self, responses: list[httpx.Response]) -> None:
        self.requests: list[httpx.Request] = []
        self._responses = list(responses)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._responses.pop(0)


def _store(*responses: httpx.Response) -> tuple[PostgrestStore, _RecordingTransport]:
    handler = _RecordingTransport(list(responses))
    store = PostgrestStore(
        base_url="https://db.example.test/",
        service_key="service-key",
        transport=httpx.MockTransport(handler),
    )
    return store, handler


class PostgrestReadTests(unittest.TestCase):
    def test_get_job_queries_by_id_with_service_credentials(self) -> None:
        store, transport = _store(httpx.Response(200, json=[JOB_ROW]))

        record = store.get_job("job-1")

        request = transport.requests[0]
        self.assertEqual(request.method, "GET")
        self.assertEqual(request.url.path, "/rest/v1/job_queue")
        self.assertEqual(request.url.params["id"], "eq.job-1")
        self.assertEqual(request.headers["apikey"], "service-key")
        self.assertEqual(request.headers["Authorization"], "Bearer service-key")

        self.assertIs(record.status, JobStatus.PROCESSING)
        self.assertEqual(record.transcription_id, "t-1")
        self.assertEqual(record.started_at, datetime(2026, 3, 1, 12, 1, tzinfo=UTC))
        self.assertIsNone(record.completed_at)

    def test_get_job_returns_none_for_empty_result(self) -> None:
        store, _ = _store(httpx.Response(200, json=[]))

        self.assertIsNone(store.get_job("missing"))

    def test_list_jobs_filters_by_transcription_reference(self) -> None:
        store, transport = _store(httpx.Response(200, json=[JOB_ROW]))

        records = store.list_jobs_for_user(user_id="owner-1", transcription_id="t-1")

        params = transport.requests[0].url.params
        self.assertEqual(params["user_id"], "eq.owner-1")
        self.assertEqual(params["order"], "created_at.desc")
        self.assertEqual(params["limit"], "50")
        self.assertEqual(params["job_type"], "eq.transcription")
        self.assertEqual(params["payload->>transcription_id"], "eq.t-1")
        self.assertEqual([record.id for record in records], ["job-1"])

    def test_list_stuck_jobs_uses_cutoff(self) -> None:
        store, transport = _store(httpx.Response(200, json=[]))
        cutoff = datetime(2026, 3, 1, 11, 30, tzinfo=UTC)

        store.list_stuck_jobs(started_before=cutoff)

        params = transport.requests[0].url.params
        self.assertEqual(params["status"], "eq.processing")
        self.assertEqual(params["started_at"], f"lt.{cutoff.isoformat()}")

    def test_list_pending_jobs_orders_by_priority_then_age(self) -> None:
        store, transport = _store(httpx.Response(200, json=[{**JOB_ROW, "status": "pending"}]))

        records = store.list_pending_jobs(limit=5)

        params = transport.requests[0].url.params
        self.assertEqual(params["status"], "eq.pending")
        self.assertEqual(params["order"], "priority.desc,created_at.asc")
        self.assertEqual(params["limit"], "5")
        self.assertIs(records[0].status, JobStatus.PENDING)

    def test_get_transcription_joins_audio_file_owner(self) -> None:
        row = {
            "id": "t-1",
            "file_id": "file-1",
            "status": "completed",
            "language": "en",
            "language_probability": "0.98",
            "raw_text": "hello there",
            "model_id": "large-v3",
            "error_message": None,
            "created_at": "2026-03-01T12:00:00Z",
            "updated_at": None,
            "audio_file": {"user_id": "owner-1"},
        }
        store, transport = _store(httpx.Response(200, json=[row]))

        record = store.get_transcription("t-1")

        self.assertEqual(transport.requests[0].url.params["select"], "*,audio_file:file_id(user_id)")
        self.assertEqual(record.owner_id, "owner-1")
        self.assertEqual(record.language_probability, 0.98)
        self.assertIsNone(record.updated_at)

    def test_list_segments_orders_by_sequence(self) -> None:
        row = {
            "id": "s-1",
            "transcription_id": "t-1",
            "sequence_number": 0,
            "start_time": 0,
            "end_time": "0.42",
            "text": "hello",
        }
        store, transport = _store(httpx.Response(200, json=[row]))

        segments = store.list_segments("t-1")

        self.assertEqual(transport.requests[0].url.path, "/rest/v1/transcription_segments")
        self.assertEqual(transport.requests[0].url.params["order"], "sequence_number.asc")
        self.assertEqual(segments[0].end_time, 0.42)
        self.assertIsNone(segments[0].speaker_id)


class PostgrestWriteTests(unittest.TestCase):
    def test_update_job_encodes_changes_and_requests_representation(self) -> None:
        updated = {**JOB_ROW, "status": "completed", "completed_at": "2026-03-01T12:05:00+00:00"}
        store, transport = _store(httpx.Response(200, json=[updated]))
        completed_at = datetime(2026, 3, 1, 12, 5, tzinfo=UTC)

        record = store.update_job(
            job_id="job-1",
            changes={"status": JobStatus.COMPLETED, "completed_at": completed_at, "started_at": None},
        )

        request = transport.requests[0]
        self.assertEqual(request.method, "PATCH")
        self.assertEqual(request.url.params["id"], "eq.job-1")
        self.assertEqual(request.headers["Prefer"], "return=representation")
        self.assertEqual(
            json.loads(request.content),
            {"status": "completed", "completed_at": completed_at.isoformat(), "started_at": None},
        )
        self.assertIs(record.status, JobStatus.COMPLETED)

    def test_update_job_returns_none_when_no_row_matched(self) -> None:
        store, _ = _store(httpx.Response(200, json=[]))

        self.assertIsNone(store.update_job(job_id="missing", changes={"status": JobStatus.PENDING}))

    def test_update_transcription_patches_by_id(self) -> None:
        store, transport = _store(httpx.Response(204))

        store.update_transcription(transcription_id="t-1", changes={"status": JobStatus.PENDING})

        request = transport.requests[0]
        self.assertEqual(request.url.path, "/rest/v1/transcriptions")
        self.assertEqual(json.loads(request.content), {"status": "pending"})


class PostgrestErrorTests(unittest.TestCase):
    def test_http_error_status_becomes_store_error(self) -> None:
        store, _ = _store(httpx.Response(503, json={"message": "upstream down"}))

        with self.assertLogs("transcribe_api.repositories.postgrest", level="ERROR"):
            with self.assertRaises(StoreError):
                store.get_job("job-1")

    def test_transport_error_becomes_store_error(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        store = PostgrestStore(
            base_url="https://db.example.test",
            service_key="service-key",
            transport=httpx.MockTransport(refuse),
        )

        with self.assertLogs("transcribe_api.repositories.postgrest", level="ERROR"):
            with self.assertRaises(StoreError):
                store.list_job_logs("job-1")

    def test_unexpected_payloads_become_store_errors(self) -> None:
        for response in (
            httpx.Response(200, json={"id": "job-1"}),
            httpx.Response(200, content=b"<html>"),
            httpx.Response(200, json=[{**JOB_ROW, "status": "retrying"}]),
            httpx.Response(200, json=[{**JOB_ROW, "created_at": "yesterday"}]),
        ):
            with self.subTest(body=response.content[:40]):
                store, _ = _store(response)
                with self.assertRaises(StoreError):
                    store.get_job("job-1")


class StoreLifecycleTests(unittest.TestCase):
    def test_build_store_selects_postgrest_backend(self) -> None:
        settings = Settings(
            worker_api_key="key",
            store_backend="postgrest",
            postgrest_url="https://db.example.test",
            postgrest_service_key="service-key",
        )

        store = build_store(settings)
        try:
            self.assertIsInstance(store, PostgrestStore)
        finally:
            store.close()

    def test_app_shutdown_closes_store(self) -> None:
        store, transport = _store(httpx.Response(200, json=[JOB_ROW]))
        app = create_app(
            Settings(auth_provider="mock", worker_api_key="key", store_backend="memory"),
            store=store,
        )

        with TestClient(app) as client:
            client.cookies = {"session": "test:owner-1"}
            response = client.get("/api/jobs/job-1")
            self.assertEqual(response.status_code, 200)

        self.assertEqual(len(transport.requests), 1)
        self.assertTrue(store._client.is_closed)


class ConcurrentRequestTests(unittest.TestCase):
    def test_store_round_trips_run_in_parallel(self) -> None:
        # Every store call waits until all requests are in flight at once.
        in_flight = threading.Barrier(4, timeout=5)

        def handler(request: httpx.Request) -> httpx.Response:
            in_flight.wait()
            job_id = request.url.params["id"].removeprefix("eq.")
            return httpx.Response(200, json=[{**JOB_ROW, "id": job_id}])

        store = PostgrestStore(
            base_url="https://db.example.test",
            service_key="service-key",
            transport=httpx.MockTransport(handler),
        )
        app = create_app(
            Settings(auth_provider="mock", worker_api_key="key", store_backend="memory"),
            store=store,
        )

        with TestClient(app) as client:
            client.cookies = {"session": "test:owner-1"}
            with ThreadPoolExecutor(max_workers=4) as pool:
                responses = list(pool.map(lambda index: client.get(f"/api/jobs/J{index}"), range(4)))

        self.assertEqual([response.status_code for response in responses], [200] * 4)
        self.assertEqual(sorted(response.json()["job"]["id"] for response in responses), ["J0", "J1", "J2", "J3"])


if __name__ == "__main__":
    unittest.main()
