from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Client-side cache
    api_base_url: str = "http://localhost:8000/api"
    enable_persistence: bool = True
    storage_dir: str = "./data/cache"
    cache_ttl_seconds: float = 300.0
    request_timeout_seconds: float = 10.0
    fetch_retry_attempts: int = 3

    # Reference backend
    database_path: str = "./data/dashcache.db"
    api_port: int = 8000
    frontend_url: str = "http://localhost:5173"

    @property
    def resolved_storage_dir(self) -> Path:
        path = Path(self.storage_dir)
        if path.is_absolute():
            return path
        return BASE_DIR / path

    @property
    def resolved_database_path(self) -> Path:
        path = Path(self.database_path)
        if path.is_absolute():
            return path
        return BASE_DIR / path


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
