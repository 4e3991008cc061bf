from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from pathlib import Path
from typing import Optional


DEFAULT_DIRECTORY_PATH = str(Path(__file__).resolve().parent.parent / "data" / "directory.yaml")


class Settings(BaseSettings):
    # App
    app_name: str = "AccessGate"
    debug: bool = False

    # CORS
    cors_origins: str = "http://localhost:3000"

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # Storage
    store_backend: str = "memory"  # memory | sql
    database_url: str = "sqlite://"

    # Directory of users, projects and assignments
    directory_path: str = DEFAULT_DIRECTORY_PATH

    # Policy
    fallback_approver_id: str = "admin-001"
    developer_admin_requires_approval: bool = True
    max_message_length: int = 120

    # Escalations
    escalation_scheduler: str = "thread"  # thread | celery | disabled
    escalation_auto_resolve_seconds: float = 2.0

    # Celery
    celery_broker_url: Optional[str] = None
    celery_result_backend: Optional[str] = None
    redis_url: str = "redis://localhost:6379/0"

    @property
    def celery_broker(self) -> str:
        return self.celery_broker_url or self.redis_url

    @property
    def celery_backend(self) -> str:
        return self.celery_result_backend or self.redis_url

    # Logging
    log_level: str = "INFO"
    log_dir: str = "/var/log/accessgate"
    log_to_file: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"  # Allow extra env vars without raising validation errors
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
