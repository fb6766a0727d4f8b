"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache), single instance per process
    - pg_function_schema is a bare SQL identifier (it is interpolated into SQL text)

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for all non-secret settings: works out-of-the-box with docker-compose
"""

import re
from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_SQL_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]{0,62}")


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = "postgresql+asyncpg://fhir:fhir@db:5432/fhir"

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosting platforms hand out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Document engine
    # table: stored_resources via the ORM; pg_functions: fhir_put/get/search/count extension
    document_engine: Literal["table", "pg_functions"] = "table"
    pg_function_schema: str = "fhir_ext"

    @field_validator("pg_function_schema")
    @classmethod
    def schema_is_identifier(cls, v: str) -> str:
        if not _SQL_IDENTIFIER.fullmatch(v):
            raise ValueError(f"pg_function_schema must be a SQL identifier, got {v!r}")
        return v

    # API
    fhir_base_path: str = "/fhir"
    public_base_url: str = ""
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
