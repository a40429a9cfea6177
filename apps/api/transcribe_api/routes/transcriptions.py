"""Transcription read routes (session auth)."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path

from transcribe_api.routes.dependencies import get_session_principal, get_transcription_service
from transcribe_api.schemas.auth import AuthPrincipal
from transcribe_api.schemas.error import ErrorResponse
from transcribe_api.schemas.transcription import TranscriptionDetail, TranscriptionJobResponse
from transcribe_api.services.transcriptions import TranscriptionService

router = APIRouter(prefix="/transcriptions", tags=["Transcriptions"])

_ERROR_RESPONSES = {
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@router.get("/{transcriptionId}", response_model=TranscriptionDetail, responses=_ERROR_RESPONSES)
def get_transcription(
    transcription_id: Annotated[str, Path(alias="transcriptionId")],
    principal: Annotated[AuthPrincipal, Depends(get_session_principal)],
    service: Annotated[TranscriptionService, Depends(get_transcription_service)],
) -> TranscriptionDetail:
    return service.get_transcription(user_id=principal.user_id, transcription_id=transcription_id)


@router.get("/{transcriptionId}/job", response_model=TranscriptionJobResponse, responses=_ERROR_RESPONSES)
def get_transcription_job(
    transcription_id: Annotated[str, Path(alias="transcriptionId")],
    principal: Annotated[AuthPrincipal, Depends(get_session_principal)],
    service: Annotated[TranscriptionService, Depends(get_transcription_service)],
) -> TranscriptionJobResponse:
    return service.get_transcription_job(user_id=principal.user_id, transcription_id=transcription_id)
