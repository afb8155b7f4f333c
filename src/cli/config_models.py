"""Pydantic configuration models for lifelog-sync."""

import os
from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator


class ApiConfig(BaseModel):
    """Remote store connection."""

    base_url: str = "http://localhost:5000/api/lifelog"
    timeout: float = 10.0
    login_timeout: float = 30.0

    @field_validator("timeout", "login_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Timeout must be positive, got {v}")
        return v


class PathsConfig(BaseModel):
    """File paths configuration."""

    data_dir: Path = Path("~/.lifelog")
    db_path: Path = Path("~/.lifelog/snapshots.db")
    credentials_file: Path = Path("~/.lifelog/credentials.json")
    log_file: Path = Path("~/.lifelog/lifelog.log")

    @model_validator(mode="after")
    def expand_paths(self):
        """Expand ~ in all paths."""
        self.data_dir = self.data_dir.expanduser()
        self.db_path = self.db_path.expanduser()
        self.credentials_file = self.credentials_file.expanduser()
        self.log_file = self.log_file.expanduser()
        return self


class SyncConfig(BaseModel):
    """Reconciliation behaviour."""

    discard_stale_confirmations: bool = True
    page_size: int = 10

    @field_validator("page_size")
    @classmethod
    def validate_page_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"page_size must be >= 1, got {v}")
        return v


VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "WARNING"
    json_mode: bool = Field(False, alias="json")

    model_config = {"populate_by_name": True}

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v_upper = v.upper()
        if v_upper not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Must be one of {VALID_LOG_LEVELS}")
        return v_upper


class LifelogConfig(BaseModel):
    """Main configuration model."""

    api: ApiConfig = Field(default_factory=ApiConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def expand_env_vars(self):
        """Expand a ${VAR} base_url from the environment."""
        url = self.api.base_url
        if url.startswith("${") and url.endswith("}"):
            self.api.base_url = os.getenv(url[2:-1], "")
        return self

    @classmethod
    def from_dict(cls, data: dict) -> "LifelogConfig":
        return cls.model_validate(data or {})

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
