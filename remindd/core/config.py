# remindd/core/config.py

import pathlib
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

# Project root is 3 levels up from this file (remindd/core/config.py).
_PROJECT_ROOT = pathlib.Path(__file__).resolve().parent.parent.parent
_ENV_PATH_FILE = _PROJECT_ROOT / ".env.path"


def _resolve_env_file() -> str | None:
    """
    Returns the .env file named inside .env.path, or None when .env.path is absent.
    Serverless deployments have no .env.path and rely on the environment alone.
    """
    if not _ENV_PATH_FILE.exists():
        return None

    env_file = pathlib.Path(_ENV_PATH_FILE.read_text().strip())
    if not env_file.exists():
        raise FileNotFoundError(
            f".env file not found at '{env_file}' (read from {_ENV_PATH_FILE}). "
            "Check that the path in .env.path is correct."
        )
    return str(env_file)


class Settings(BaseSettings):
    """
    Manages all application settings.
    Loads variables from the environment, plus the .env file whose path is in .env.path.
    """

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8", extra="ignore"
    )

    # Record store backend, selected once at startup
    DATABASE_BACKEND: Literal["memory", "file", "sql"] = "memory"

    # SQL backend: a full URL wins over the individual DB_* parts
    DATABASE_URL: str | None = None
    DB_DRIVER: str = "postgresql+asyncpg"
    DB_USER: str | None = None
    DB_PASSWORD: str | None = None
    DB_HOST: str | None = None
    DB_PORT: int = 5432  # Default to 5432 if not specified
    DB_NAME: str | None = None

    # File backend
    STORE_FILE_PATH: str = ".notification-tokens.json"

    # Cooldown length after a vote (24 hours)
    COOLDOWN_SECONDS: int = 86400

    # Push notifications
    APP_URL: str = "http://localhost:3000"
    PUSH_TIMEOUT_SECONDS: float = 10.0

    # Protected operational endpoints
    API_KEY: str | None = None
    ENVIRONMENT: Literal["development", "production"] = "production"

    # Web server
    WEB_HOST: str = "0.0.0.0"
    WEB_PORT: int = 8080

    # Periodic reconciliation (0 disables; boot-time reconciliation always runs)
    RECONCILE_INTERVAL_MINUTES: float = 0.0

    # Observability (optional)
    SENTRY_DSN: str | None = None
    LOGS_WEBHOOK_URL: str | None = None


# Create a single, importable instance of our settings.
# This instance will be created only once when the module is first imported.
settings = Settings(_env_file=_resolve_env_file())
