"""Authentication provider interfaces."""

from abc import ABC, abstractmethod

from transcribe_api.schemas.auth import AuthPrincipal


class AuthVerificationError(Exception):
    """Raised when a credential is missing, invalid, expired or revoked."""


class AuthServiceError(Exception):
    """Raised when the auth provider itself cannot be reached or used."""


class SessionVerifier(ABC):
    """Provider-neutral session cookie verification interface."""

    @abstractmethod
    def verify_session(self, session_cookie: str) -> AuthPrincipal:
        """Verify a session cookie and return the session's principal."""


__all__ = ["AuthServiceError", "AuthVerificationError", "SessionVerifier"]
