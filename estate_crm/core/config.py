from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Estate CRM Core"
    app_env: str = "local"
    app_version: str = "0.1.0"
    log_level: str = "INFO"
    database_url: str = "sqlite+pysqlite:///:memory:"
    metrics_enabled: bool = False
    otel_enabled: bool = False
    otel_console_exporter: bool = False
    transition_conflict_retries: int = 1
    default_country_code: str = "+91"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)


@lru_cache
def get_settings() -> Settings:
    return Settings()
