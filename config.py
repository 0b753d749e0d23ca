"""Application configuration using pydantic-settings with grouped env prefixes."""

from __future__ import annotations

import os
import re
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class DatabaseConfig(BaseSettings):
    """MySQL student store configuration."""

    model_config = {"env_prefix": "STUDENTS_DB_", "env_file": ".env", "extra": "ignore"}

    host: str = "localhost"
    port: int = 3306
    user: str = "root"
    password: str = ""
    database: str = "students"
    table: str = "studentsdata"
    pool_name: str = "students_pool"
    pool_size: int = 5
    connect_timeout: int = 10
    ssl_disabled: bool = False
    ssl_verify_cert: bool = False

    @field_validator("table")
    @classmethod
    def _check_table_name(cls, value: str) -> str:
        # Interpolated into SQL, so only plain identifiers are accepted
        if not _IDENTIFIER.match(value):
            raise ValueError(f"Invalid table name: {value!r}")
        return value


class AppSettings(BaseSettings):
    """Root application settings."""

    model_config = {"env_prefix": "STUDENTS_", "env_file": ".env", "extra": "ignore"}

    environment: Literal["development", "production"] = "development"
    log_level: str = "INFO"
    log_dir: str = os.path.join(BASE_DIR, "logs")
    upload_dir: str = os.path.join(BASE_DIR, "uploads")
    host: str = "0.0.0.0"
    port: int = 8000

    db: DatabaseConfig = Field(default_factory=DatabaseConfig)
