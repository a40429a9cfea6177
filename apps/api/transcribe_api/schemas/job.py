"""Job API schemas."""

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Job(BaseModel):
    id: str
    job_type: str
    status: JobStatus
    priority: int = 0
    payload: dict[str, Any]
    result: dict[str, Any] | None = None
    error_message: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    attempts: int = 0
    max_attempts: int = 3
    user_id: str


class JobLog(BaseModel):
    id: str
    job_id: str
    message: str
    level: Literal["info", "warning", "error"] = "info"
    created_at: datetime


class JobStatusResponse(BaseModel):
    job: Job
    logs: list[JobLog] | None = None


class JobListResponse(BaseModel):
    jobs: list[Job]


class UpdateJobRequest(BaseModel):
    """Worker status update.

    ``status`` is kept as a plain string so unknown literals are reported as
    ``Invalid status`` rather than a schema error.
    """

    model_config = ConfigDict(populate_by_name=True)

    job_id: str | None = Field(default=None, alias="jobId")
    status: str | None = None
    error_message: str | None = Field(default=None, alias="errorMessage")
    result: dict[str, Any] | None = None


class ResetJobRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    job_id: str | None = Field(default=None, alias="jobId")


class ResetStuckJobsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    max_time_minutes: int | None = Field(default=None, alias="maxTimeMinutes", ge=1)


class JobTransitionResponse(BaseModel):
    message: str
    job: Job | None = None


class ResetStuckJobsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    reset_count: int = Field(serialization_alias="resetCount")
    total_found: int = Field(serialization_alias="totalFound")
    failed_resets: int = Field(serialization_alias="failedResets")


class WorkerHealthResponse(BaseModel):
    status: Literal["healthy"]


class WorkerBatchRequest(BaseModel):
    """Worker polling request; only ``batch`` mode is served here."""

    model_config = ConfigDict(populate_by_name=True)

    mode: str = "single"
    max_jobs: int = Field(default=1, alias="maxJobs", ge=1)
    job_id: str | None = Field(default=None, alias="jobId")


class WorkerBatchResponse(BaseModel):
    jobs: list[Job]
    message: str | None = None
