"""Job read routes (session auth).

Handlers are plain functions: the store does blocking I/O, so FastAPI runs
them in its threadpool.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query
from fastapi.responses import JSONResponse

from transcribe_api.routes.dependencies import get_job_service, get_session_principal
from transcribe_api.schemas.auth import AuthPrincipal
from transcribe_api.schemas.error import ErrorResponse
from transcribe_api.schemas.job import JobListResponse, JobStatusResponse
from transcribe_api.services.jobs import JobService

router = APIRouter(prefix="/jobs", tags=["Jobs"])


@router.get(
    "",
    response_model=JobListResponse,
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def list_jobs(
    principal: Annotated[AuthPrincipal, Depends(get_session_principal)],
    service: Annotated[JobService, Depends(get_job_service)],
    transcription_id: Annotated[str | None, Query()] = None,
) -> JobListResponse:
    return service.list_jobs(user_id=principal.user_id, transcription_id=transcription_id)


@router.get(
    "/{jobId}",
    response_model=JobStatusResponse,
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
def get_job(
    job_id: Annotated[str, Path(alias="jobId")],
    principal: Annotated[AuthPrincipal, Depends(get_session_principal)],
    service: Annotated[JobService, Depends(get_job_service)],
    logs: Annotated[str | None, Query()] = None,
) -> JSONResponse:
    result = service.get_job_status(user_id=principal.user_id, job_id=job_id, include_logs=logs == "true")
    # "logs" is only present in the body when it was requested.
    exclude = {"logs"} if result.logs is None else None
    return JSONResponse(content=result.model_dump(mode="json", exclude=exclude))
