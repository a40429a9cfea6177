"""Firebase Auth session cookie verifier adapter."""

from __future__ import annotations

from transcribe_api.adapters.auth.base import AuthServiceError, AuthVerificationError, SessionVerifier
from transcribe_api.schemas.auth import AuthPrincipal


class FirebaseSessionVerifier(SessionVerifier):
    """Verifies Firebase session cookies against the managed session store.

    Rejected cookies raise ``AuthVerificationError``. Every other failure,
    including app initialisation, credential discovery and the revocation
    lookup, raises ``AuthServiceError``.
    """

    def __init__(self, project_id: str | None) -> None:
        self._project_id = project_id

    def verify_session(self, session_cookie: str) -> AuthPrincipal:
        try:
            import firebase_admin
            from firebase_admin import auth as firebase_auth
            from firebase_admin import exceptions as firebase_exceptions
        except ImportError as exc:  # pragma: no cover - depends on installed package
            raise AuthServiceError("Firebase session verifier is unavailable") from exc

        try:
            if not firebase_admin._apps:
                options = {"projectId": self._project_id} if self._project_id else None
                firebase_admin.initialize_app(options=options)
        except Exception as exc:
            raise AuthServiceError("Firebase app initialisation failed") from exc

        try:
            decoded = firebase_auth.verify_session_cookie(session_cookie, check_revoked=True)
        except (ValueError, firebase_auth.InvalidSessionCookieError, firebase_auth.UserDisabledError) as exc:
            # Expired and revoked cookie errors subclass InvalidSessionCookieError.
            raise AuthVerificationError("No valid session found") from exc
        except firebase_auth.CertificateFetchError as exc:
            raise AuthServiceError("Unable to fetch session signing certificates") from exc
        except firebase_exceptions.FirebaseError as exc:
            raise AuthServiceError(f"Session provider request failed: {exc.__class__.__name__}") from exc
        except Exception as exc:
            raise AuthServiceError(f"Unexpected session verification failure: {exc.__class__.__name__}") from exc

        user_id = str(decoded.get("uid") or decoded.get("sub") or "").strip()
        if not user_id:
            raise AuthVerificationError("Session missing user identity")

        return AuthPrincipal(user_id=user_id)


__all__ = ["FirebaseSessionVerifier"]
