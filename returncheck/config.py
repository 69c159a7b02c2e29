from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_ENVS = {"dev", "development", "local", "test"}

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./returncheck.db"
    DB_TIMEOUT_SECONDS: int = 5
    AUTO_CREATE_TABLES: bool = False   # dev convenience; use alembic otherwise

    PHONE_HASH_SALT: str
    PHONE_HASH_SCHEME: str = "sha256"   # sha256 | argon2id
    ARGON2_TIME_COST: int = 2
    ARGON2_MEMORY_COST: int = 19456     # KiB
    ARGON2_PARALLELISM: int = 1

    REDIS_URL: str | None = None
    RATE_LIMIT_BACKEND: str = "memory"  # memory | redis
    CHECK_RATE_LIMIT_WINDOW_MS: int = 60 * 60 * 1000
    CHECK_RATE_LIMIT_MAX: int = 100
    REPORT_RATE_LIMIT_WINDOW_MS: int = 60 * 60 * 1000
    REPORT_RATE_LIMIT_MAX: int = 3
    REPORT_RATE_LIMIT_PER_PHONE: bool = False

    DUPLICATE_WINDOW_HOURS: int = 24

    GEOLOCATION_ENABLED: bool = True
    GEOLOCATION_TIMEOUT: float = 5.0

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("PHONE_HASH_SALT")
    @classmethod
    def _salt_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("PHONE_HASH_SALT must not be empty")
        return v

    @field_validator("PHONE_HASH_SCHEME")
    @classmethod
    def _known_scheme(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in {"sha256", "argon2id"}:
            raise ValueError(f"Unknown PHONE_HASH_SCHEME: {v!r}")
        return v

    @field_validator("RATE_LIMIT_BACKEND")
    @classmethod
    def _known_backend(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in {"memory", "redis"}:
            raise ValueError(f"Unknown RATE_LIMIT_BACKEND: {v!r}")
        return v

    @property
    def is_dev(self) -> bool:
        return self.ENV.strip().lower() in DEV_ENVS

@lru_cache
def get_settings() -> Settings:
    return Settings()
