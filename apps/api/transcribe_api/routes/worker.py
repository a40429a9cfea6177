"""Worker routes (shared-secret auth)."""

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from transcribe_api.routes.dependencies import (
    get_job_service,
    get_job_transition_service,
    require_worker_key,
    worker_json_body,
)
from transcribe_api.schemas.error import ErrorResponse
from transcribe_api.schemas.job import (
    JobTransitionResponse,
    ResetJobRequest,
    ResetStuckJobsRequest,
    ResetStuckJobsResponse,
    UpdateJobRequest,
    WorkerBatchRequest,
    WorkerBatchResponse,
    WorkerHealthResponse,
)
from transcribe_api.services.job_transitions import JobTransitionService
from transcribe_api.services.jobs import JobService

router = APIRouter(prefix="/jobs", tags=["Worker"], dependencies=[Depends(require_worker_key)])

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@router.post(
    "/update",
    response_model=JobTransitionResponse,
    responses={**_ERROR_RESPONSES, 409: {"model": ErrorResponse}},
)
def update_job(
    payload: Annotated[UpdateJobRequest, Depends(worker_json_body(UpdateJobRequest))],
    service: Annotated[JobTransitionService, Depends(get_job_transition_service)],
) -> JobTransitionResponse:
    return service.update_job(
        job_id=payload.job_id,
        status=payload.status,
        error_message=payload.error_message,
        result=payload.result,
    )


@router.post("/reset", response_model=JobTransitionResponse, responses=_ERROR_RESPONSES)
def reset_job(
    payload: Annotated[ResetJobRequest, Depends(worker_json_body(ResetJobRequest))],
    service: Annotated[JobTransitionService, Depends(get_job_transition_service)],
) -> JobTransitionResponse:
    return service.reset_job(job_id=payload.job_id)


@router.post("/reset-stuck", response_model=ResetStuckJobsResponse, responses=_ERROR_RESPONSES)
def reset_stuck_jobs(
    payload: Annotated[
        ResetStuckJobsRequest | None,
        Depends(worker_json_body(ResetStuckJobsRequest, optional=True)),
    ],
    service: Annotated[JobTransitionService, Depends(get_job_transition_service)],
) -> ResetStuckJobsResponse:
    return service.reset_stuck_jobs(max_time_minutes=payload.max_time_minutes if payload else None)


@router.get("/worker", response_model=WorkerHealthResponse, responses={401: {"model": ErrorResponse}})
def worker_health() -> WorkerHealthResponse:
    return WorkerHealthResponse(status="healthy")


@router.post("/worker", response_model=WorkerBatchResponse, responses=_ERROR_RESPONSES)
def get_worker_batch(
    payload: Annotated[WorkerBatchRequest, Depends(worker_json_body(WorkerBatchRequest))],
    service: Annotated[JobService, Depends(get_job_service)],
) -> JSONResponse:
    result = service.list_pending_jobs(mode=payload.mode, max_jobs=payload.max_jobs)
    # "message" is only present when the queue is empty.
    exclude = {"message"} if result.message is None else None
    return JSONResponse(content=result.model_dump(mode="json", exclude=exclude))
