"""Mock session verifier for local development and tests."""

from transcribe_api.adapters.auth.base import AuthVerificationError, SessionVerifier
from transcribe_api.schemas.auth import AuthPrincipal


class MockSessionVerifier(SessionVerifier):
    """Accepts deterministic test cookies only.

    Expected cookie format: ``test:<user_id>``
    """

    def verify_session(self, session_cookie: str) -> AuthPrincipal:
        parts = session_cookie.split(":")
        if len(parts) != 2 or parts[0] != "test":
            raise AuthVerificationError("No valid session found")

        user_id = parts[1].strip()
        if not user_id:
            raise AuthVerificationError("Session missing user identity")

        return AuthPrincipal(user_id=user_id)


__all__ = ["MockSessionVerifier"]
