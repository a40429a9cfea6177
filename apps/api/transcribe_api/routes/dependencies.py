"""Dependency wiring for routes.

Session auth and worker auth are separate dependencies; each route declares
exactly one of them.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Annotated
from uuid import uuid4

from fastapi import Depends, Request, Security
from fastapi.security import APIKeyCookie, HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, ValidationError

from transcribe_api.adapters.auth import (
    AuthServiceError,
    AuthVerificationError,
    FirebaseSessionVerifier,
    MockSessionVerifier,
    SessionVerifier,
    SharedSecretVerifier,
)
from transcribe_api.core.config import Settings
from transcribe_api.core.logging_setup import safe_log_identifier
from transcribe_api.errors import ApiError, AuthFailure, ValidationFailure
from transcribe_api.repositories.base import JobStore
from transcribe_api.schemas.auth import AuthPrincipal
from transcribe_api.services.job_transitions import JobTransitionService
from transcribe_api.services.jobs import JobService
from transcribe_api.services.transcriptions import TranscriptionService

SESSION_COOKIE_NAME = "session"

session_cookie_scheme = APIKeyCookie(name=SESSION_COOKIE_NAME, auto_error=False, scheme_name="sessionCookie")
worker_bearer_scheme = HTTPBearer(auto_error=False, scheme_name="workerApiKey")
logger = logging.getLogger(__name__)


def _request_correlation_id(request: Request) -> str:
    existing = getattr(request.state, "correlation_id", None)
    if isinstance(existing, str) and existing:
        return existing

    correlation_id = request.headers.get("X-Correlation-Id") or f"req-{uuid4()}"
    request.state.correlation_id = correlation_id
    return correlation_id


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_session_verifier(settings: Annotated[Settings, Depends(get_app_settings)]) -> SessionVerifier:
    """Resolve provider adapter from configuration."""
    if settings.auth_provider == "firebase":
        return FirebaseSessionVerifier(project_id=settings.firebase_project_id)
    return MockSessionVerifier()


def get_worker_verifier(settings: Annotated[Settings, Depends(get_app_settings)]) -> SharedSecretVerifier:
    return SharedSecretVerifier(settings.worker_api_key)


def get_session_principal(
    request: Request,
    session_cookie: Annotated[str | None, Security(session_cookie_scheme)],
    verifier: Annotated[SessionVerifier, Depends(get_session_verifier)],
) -> AuthPrincipal:
    """Validate the session cookie and attach the principal to request context.

    Sync so provider verification, which may hit the network, runs in the threadpool.
    """
    safe_correlation_id = safe_log_identifier(_request_correlation_id(request), prefix="cid")
    if not session_cookie:
        logger.warning(
            "auth.rejected correlation_id=%s method=%s path=%s reason=missing_session",
            safe_correlation_id,
            request.method,
            request.url.path,
        )
        raise AuthFailure("No valid session found")

    try:
        principal = verifier.verify_session(session_cookie)
    except AuthVerificationError as exc:
        logger.warning(
            "auth.rejected correlation_id=%s method=%s path=%s reason=session_verification_failed",
            safe_correlation_id,
            request.method,
            request.url.path,
        )
        raise AuthFailure("No valid session found") from exc
    except AuthServiceError as exc:
        logger.error(
            "auth.error correlation_id=%s method=%s path=%s reason=%s",
            safe_correlation_id,
            request.method,
            request.url.path,
            exc,
        )
        raise ApiError("Server authentication error", status_code=500) from exc

    logger.info(
        "auth.accepted correlation_id=%s method=%s path=%s principal_id=%s",
        safe_correlation_id,
        request.method,
        request.url.path,
        safe_log_identifier(principal.user_id, prefix="pid"),
    )
    request.state.auth_principal = principal
    return principal


async def require_worker_key(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(worker_bearer_scheme)],
    verifier: Annotated[SharedSecretVerifier, Depends(get_worker_verifier)],
) -> None:
    """Validate the worker's shared bearer secret for internal endpoints."""
    token = credentials.credentials if credentials is not None and credentials.scheme.lower() == "bearer" else None
    try:
        verifier.verify(token)
    except AuthVerificationError as exc:
        logger.warning(
            "worker.auth_rejected correlation_id=%s method=%s path=%s reason=invalid_worker_key",
            safe_log_identifier(_request_correlation_id(request), prefix="cid"),
            request.method,
            request.url.path,
        )
        raise AuthFailure("Unauthorized") from exc


def worker_json_body(
    model: type[BaseModel],
    *,
    optional: bool = False,
) -> Callable[..., Awaitable[BaseModel | None]]:
    """Build a dependency that parses a worker request body after the worker key is accepted.

    Routes using it declare no body parameter, so FastAPI never decodes the
    payload ahead of authentication. Any decoding or schema failure is a flat
    400 ``Invalid request body``. With ``optional``, an empty body yields ``None``.
    """

    async def parse_body(
        request: Request,
        _: Annotated[None, Depends(require_worker_key)],
    ) -> BaseModel | None:
        raw = await request.body()
        if optional and not raw.strip():
            return None
        try:
            return model.model_validate_json(raw)
        except ValidationError as exc:
            logger.info(
                "worker.body_rejected correlation_id=%s path=%s errors=%s",
                safe_log_identifier(_request_correlation_id(request), prefix="cid"),
                request.url.path,
                exc.error_count(),
            )
            raise ValidationFailure("Invalid request body") from exc

    return parse_body


def get_store(request: Request) -> JobStore:
    return request.app.state.store


def get_job_service(store: Annotated[JobStore, Depends(get_store)]) -> JobService:
    return JobService(store)


def get_job_transition_service(
    store: Annotated[JobStore, Depends(get_store)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> JobTransitionService:
    return JobTransitionService(
        store,
        enforce_transitions=settings.enforce_transitions,
        stuck_job_max_minutes=settings.stuck_job_max_minutes,
    )


def get_transcription_service(store: Annotated[JobStore, Depends(get_store)]) -> TranscriptionService:
    return TranscriptionService(store)
