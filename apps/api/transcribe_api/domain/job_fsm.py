"""Job lifecycle rules.

Workers drive transitions; by default any of the four literals is accepted
from any state. ``ensure_transition`` is the opt-in strict guard.
"""

from datetime import datetime
from typing import Any

from transcribe_api.errors import TransitionConflict, ValidationFailure
from transcribe_api.schemas.job import JobStatus

TERMINAL_STATES: frozenset[JobStatus] = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})

_ALLOWED_TRANSITIONS: dict[JobStatus, set[JobStatus]] = {
    JobStatus.PENDING: {JobStatus.PROCESSING, JobStatus.FAILED},
    JobStatus.PROCESSING: {JobStatus.COMPLETED, JobStatus.FAILED},
    JobStatus.COMPLETED: set(),
    JobStatus.FAILED: set(),
}


def parse_status(value: str | None) -> JobStatus:
    """Accept only the four status literals."""
    if not value:
        raise ValidationFailure("Status is required")
    try:
        return JobStatus(value)
    except ValueError as exc:
        raise ValidationFailure("Invalid status") from exc


def allowed_next_statuses(status: JobStatus) -> list[JobStatus]:
    """Return deterministically ordered allowed successors for a status."""
    return sorted(_ALLOWED_TRANSITIONS.get(status, set()), key=lambda s: s.value)


def ensure_transition(old_status: JobStatus, new_status: JobStatus) -> None:
    """Validate a worker-directed transition when strict mode is enabled."""
    if old_status in TERMINAL_STATES:
        raise TransitionConflict(f"Job is {old_status.value} and cannot move to {new_status.value}")

    if new_status not in _ALLOWED_TRANSITIONS.get(old_status, set()):
        allowed = ", ".join(status.value for status in allowed_next_statuses(old_status))
        raise TransitionConflict(
            f"Invalid status transition {old_status.value} -> {new_status.value} (allowed: {allowed})"
        )


def status_changes(new_status: JobStatus, now: datetime) -> dict[str, Any]:
    """Column changes for a status write.

    ``processing`` stamps ``started_at`` and a terminal status stamps
    ``completed_at``. Neither timestamp is ever cleared here.
    """
    changes: dict[str, Any] = {"status": new_status}
    if new_status is JobStatus.PROCESSING:
        changes["started_at"] = now
    elif new_status in TERMINAL_STATES:
        changes["completed_at"] = now
    return changes


def reset_changes() -> dict[str, Any]:
    """Column changes that force a job back to ``pending``."""
    return {"status": JobStatus.PENDING, "started_at": None}
