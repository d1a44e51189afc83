from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from fastapi import Depends
from typing_extensions import Annotated


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    env: str = "development"
    log_level: str = "INFO"

    database_url: str = "sqlite+aiosqlite:///./tasks.db"
    create_tables: bool = True

    cache_backend: str = "redis"  # "redis" or "memory"
    redis_dsn: str = "redis://localhost:6379/0"
    redis_pool_size: int = 5
    redis_tls_insecure: bool = False  # skip cert verification for rediss://
    cache_namespace: str = ""
    cache_ttl_seconds: int = 600  # 10 minutes
    memory_cache_maxsize: int = 2048

    session_ttl_seconds: int = 600

    # per-request deadlines
    request_timeout_seconds: float = 5
    update_timeout_seconds: float = 8
    auth_timeout_seconds: float = 10

    allowed_origins: str = ""

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()


SettingsDep = Annotated[Settings, Depends(get_settings)]
