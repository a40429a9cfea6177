"""Application configuration."""

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables.

    Loaded and validated once when the application is created, then handed to
    route dependencies through ``app.state.settings``.
    """

    auth_provider: Literal["mock", "firebase"] = "firebase"
    firebase_project_id: str | None = None
    worker_api_key: str = Field(
        min_length=1,
        validation_alias=AliasChoices("TRANSCRIBE_WORKER_API_KEY", "WORKER_API_KEY", "worker_api_key"),
    )
    store_backend: Literal["memory", "postgrest"] = "postgrest"
    postgrest_url: str | None = None
    postgrest_service_key: str | None = None
    store_timeout_seconds: float = 10.0
    stuck_job_max_minutes: int = Field(default=30, ge=1)
    enforce_transitions: bool = False
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="TRANSCRIBE_", extra="ignore", populate_by_name=True)

    @model_validator(mode="after")
    def _check_store_credentials(self) -> "Settings":
        if self.store_backend == "postgrest" and not (self.postgrest_url and self.postgrest_service_key):
            raise ValueError("postgrest store requires postgrest_url and postgrest_service_key")
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
