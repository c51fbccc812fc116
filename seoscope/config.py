from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )
    # MongoDB (empty URI → in-memory report store)
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db_name: str = "seoscope"
    mongo_tls: bool = False
    mongo_timeout_ms: int = 3000
    # App
    app_secret_key: str = "change_me_in_production"
    environment: str = "development"
    log_level: str = "INFO"
    # Comma-separated CORS origins on top of the built-in list
    extra_allowed_origins: str = ""
    # Fetcher
    fetch_timeout_seconds: float = 15.0
    max_content_bytes: int = 5 * 1024 * 1024
    # Discovery
    robots_max_chars: int = 5000
    # Refuse private / loopback targets at the API boundary
    block_private_hosts: bool = True

    def fetch_options(self):
        from .services.fetcher import FetchOptions
        return FetchOptions(timeout=self.fetch_timeout_seconds, max_bytes=self.max_content_bytes)


@lru_cache()
def get_settings() -> Settings:
    return Settings()
