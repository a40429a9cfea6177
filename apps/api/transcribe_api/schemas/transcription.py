"""Transcription API schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class Transcription(BaseModel):
    id: str
    file_id: str
    status: str
    language: str | None = None
    language_probability: float | None = None
    raw_text: str | None = None
    model_id: str | None = None
    error_message: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TranscriptionSegment(BaseModel):
    id: str
    transcription_id: str
    sequence_number: int
    start_time: float
    end_time: float
    text: str
    speaker_id: str | None = None
    original_text: str | None = None
    type: str | None = "word"


class TranscriptionDetail(BaseModel):
    transcription: Transcription
    segments: list[TranscriptionSegment]


class TranscriptionJobResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    job_id: str | None = Field(serialization_alias="jobId")
