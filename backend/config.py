"""
Recipe sync configuration — all environment variables in one place.

Read from environment at runtime. Never hardcode secrets.
"""

from __future__ import annotations

import os

STORAGE_BACKENDS = ("file", "postgres", "memory")


class Settings:
    """Application settings from environment variables."""

    # Storage
    STORAGE_BACKEND: str = os.environ.get("STORAGE_BACKEND", "file").lower()
    DATA_FILE: str = os.environ.get("DATA_FILE", "data.json")
    DATABASE_URL: str = os.environ.get("DATABASE_URL", "")

    # Server
    HOST: str = os.environ.get("HOST", "0.0.0.0")
    PORT: int = int(os.environ.get("PORT", "8000"))
    MAX_BODY_BYTES: int = int(os.environ.get("MAX_BODY_BYTES", str(10 * 1024 * 1024)))

    # Logging
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO").upper()

    # Application
    ENVIRONMENT: str = os.environ.get("ENVIRONMENT", "development")

    @property
    def CORS_ORIGINS(self) -> list[str]:
        raw = os.environ.get("CORS_ORIGINS", "*")
        return [origin.strip() for origin in raw.split(",") if origin.strip()]


# Singleton instance
settings = Settings()


def validate_settings() -> None:
    """Fail fast on settings the selected backend cannot run without."""
    if settings.STORAGE_BACKEND not in STORAGE_BACKENDS:
        raise RuntimeError(
            f"STORAGE_BACKEND must be one of {', '.join(STORAGE_BACKENDS)}, got {settings.STORAGE_BACKEND!r}"
        )
    if settings.STORAGE_BACKEND == "postgres" and not settings.DATABASE_URL:
        raise RuntimeError("DATABASE_URL environment variable is required for the postgres backend")
