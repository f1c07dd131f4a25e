"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with TASKTRACK_ prefix.
No YAML files, no file-based config — just env vars (12-factor app style).

Learn: Settings is frozen. One instance is built at startup and handed to
create_app(), which passes it on to the token service, the authentication
gate, the stores and the engine. Nothing mutates it after that, so there is
no process-wide state that requests could race on.
"""

from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "change-me-in-production"


class Settings(BaseSettings):
    """All app configuration. Set via TASKTRACK_* env vars."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./tasktrack.db"
    store_timeout_seconds: float = 10.0  # per store operation

    # Redis (rate limiting only; the app runs without it)
    redis_url: str = "redis://localhost:6379/0"

    # Auth
    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    token_expire_minutes: int = 60 * 24 * 7  # 7 days
    bcrypt_rounds: int = 12

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000
    public_base_url: str = "http://localhost:8000"

    # CORS
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    # Rate limiting
    rate_limit_rpm: int = 100  # requests per minute per IP
    rate_limit_auth_rpm: int = 10  # stricter limit for login/register

    # Uploads (local blob store)
    upload_dir: str = "uploads"
    upload_max_bytes: int = 5 * 1024 * 1024
    max_request_bytes: int = 6 * 1024 * 1024  # whole body, multipart overhead included

    model_config = SettingsConfigDict(env_prefix="TASKTRACK_", frozen=True)

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Ensure sensitive defaults are changed in non-development environments."""
        if (
            self.environment not in ("development", "test")
            and self.jwt_secret == DEFAULT_JWT_SECRET
        ):
            raise ValueError(
                "TASKTRACK_JWT_SECRET must be set to a secure value in "
                "non-development environments. Generate one with: "
                'python -c "import secrets; print(secrets.token_urlsafe(32))"'
            )
        if not 4 <= self.bcrypt_rounds <= 31:
            raise ValueError("TASKTRACK_BCRYPT_ROUNDS must be between 4 and 31")
        return self


@lru_cache
def get_settings() -> Settings:
    """Settings built from the environment, cached for the process."""
    return Settings()
