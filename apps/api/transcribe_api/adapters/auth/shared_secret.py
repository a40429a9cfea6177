"""Static shared-secret verifier for trusted internal callers."""

from secrets import compare_digest

from transcribe_api.adapters.auth.base import AuthVerificationError


class SharedSecretVerifier:
    """Compares a presented bearer token against the configured worker secret."""

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ValueError("shared secret must not be empty")
        self._secret = secret

    def verify(self, token: str | None) -> None:
        if not token or not compare_digest(token.encode("utf-8"), self._secret.encode("utf-8")):
            raise AuthVerificationError("Unauthorized")


__all__ = ["SharedSecretVerifier"]
