"""Auth verifier adapters."""

from .base import AuthServiceError, AuthVerificationError, SessionVerifier
from .firebase_auth import FirebaseSessionVerifier
from .mock_auth import MockSessionVerifier
from .shared_secret import SharedSecretVerifier

__all__ = [
    "AuthServiceError",
    "AuthVerificationError",
    "FirebaseSessionVerifier",
    "MockSessionVerifier",
    "SessionVerifier",
    "SharedSecretVerifier",
]
