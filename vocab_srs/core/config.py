# Fichier: vocab_srs/core/config.py
from pydantic_settings import BaseSettings
from typing import List
from pydantic import ValidationError, field_validator
import sys

class Settings(BaseSettings):
    DATABASE_URL: str
    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]

    ENVIRONMENT: str = "development"

    # Performance instrumentation
    SQLALCHEMY_SLOW_QUERY_THRESHOLD_MS: int = 300
    REQUEST_SLOW_THRESHOLD_MS: int = 400

    # Connexion à la base
    DATABASE_CONNECTION_MAX_RETRIES: int = 3
    DATABASE_CONNECTION_RETRY_BACKOFF_SECONDS: float = 1.0

    # --- Sessions de révision (SRS) ---
    SRS_DEFAULT_SESSION_LIMIT: int = 20
    SRS_MAX_SESSION_LIMIT: int = 100

    class Config:
        env_file = ".env"

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def _normalize_database_url(cls, value: str) -> str:
        """Ensure Postgres URLs always use the psycopg driver.

        Managed Postgres providers still expose database URLs using the legacy
        ``postgres://`` scheme, which SQLAlchemy no longer understands. Those
        URLs (and ``postgresql://`` / ``psycopg2`` variants) are upgraded to
        ``postgresql+psycopg://``. Async SQLite URLs left over from older
        ``.env`` files are downgraded to the synchronous ``sqlite`` driver.
        """

        if not isinstance(value, str):
            return value

        if "+psycopg://" in value:
            return value

        replacements = {
            "postgres://": "postgresql+psycopg://",
            "postgresql://": "postgresql+psycopg://",
            "postgresql+psycopg2://": "postgresql+psycopg://",
            "postgresql+asyncpg://": "postgresql+psycopg://",
            "sqlite+aiosqlite://": "sqlite://",
        }

        for prefix, target in replacements.items():
            if value.startswith(prefix):
                return target + value[len(prefix) :]

        return value

    @field_validator("SRS_DEFAULT_SESSION_LIMIT", "SRS_MAX_SESSION_LIMIT")
    @classmethod
    def _positive_limit(cls, value: int) -> int:
        if value < 1:
            raise ValueError("session limits must be positive")
        return value


def _log_settings_validation_error(exc: ValidationError) -> None:
    """Pretty-print missing or invalid environment variables.

    When the Settings model fails to instantiate, Pydantic raises a
    ValidationError during module import, which makes it hard to spot which
    variable is responsible. The structured payload is printed to stderr before
    the exception is re-raised.
    """

    header = "Configuration error while loading environment variables:"
    print(header, file=sys.stderr)

    details = exc.errors()

    if details:
        for error in details:
            location = ".".join(str(part) for part in error.get("loc", ()))
            message = error.get("msg", "Unknown validation error")
            type_name = error.get("type")
            hint_parts = [message]
            if type_name:
                hint_parts.append(f"(type={type_name})")
            hint = " ".join(hint_parts)
            print(f"  - {location}: {hint}", file=sys.stderr)
    else:
        print(exc, file=sys.stderr)


try:
    settings = Settings()
except ValidationError as exc:  # pragma: no cover - exercised at runtime
    _log_settings_validation_error(exc)
    raise
