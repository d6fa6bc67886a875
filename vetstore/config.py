"""Application settings using Pydantic BaseSettings."""

import os
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_CONFLICT_POLICIES = {"skip", "overwrite", "raise"}


def _get_default_data_dir() -> str:
    """Get absolute path to the default data directory."""
    return os.path.join(os.path.expanduser("~"), ".vetstore")


class Settings(BaseSettings):
    """Vetstore configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="VETSTORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: str = Field(default="development")

    # Storage
    data_dir: str = Field(default_factory=_get_default_data_dir)
    # Empty means "index.db inside data_dir"
    database_url: str = Field(default="")

    # The local operator's peer. The URL is the natural key other stores see;
    # empty means a unique local://<uuid> is generated when the store is created.
    root_peer_alias: str = Field(default="root")
    root_peer_url: str = Field(default="")

    # Logging
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False)
    log_file: Optional[str] = Field(default=None)

    # Ecosystem extensions
    extensions_enabled: str = Field(
        default="js",
        description="Comma-separated extension names to load.",
    )
    default_extension: str = Field(default="js")
    registry_timeout_seconds: float = Field(default=30.0)

    # Merge
    merge_conflict_policy: str = Field(default="skip")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = (v or "").strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {sorted(_LOG_LEVELS)}; got: {v!r}")
        return level

    @field_validator("merge_conflict_policy")
    @classmethod
    def validate_merge_conflict_policy(cls, v: str) -> str:
        policy = (v or "").strip().lower()
        if policy not in _CONFLICT_POLICIES:
            raise ValueError(
                f"MERGE_CONFLICT_POLICY must be one of {sorted(_CONFLICT_POLICIES)}; got: {v!r}"
            )
        return policy

    @field_validator("registry_timeout_seconds")
    @classmethod
    def validate_registry_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("REGISTRY_TIMEOUT_SECONDS must be positive")
        return v

    @property
    def effective_database_url(self) -> str:
        """Get the effective database URL (explicit URL takes precedence)."""
        if self.database_url:
            return self.database_url
        db_path = os.path.join(os.path.abspath(self.data_dir), "index.db")
        return f"sqlite:///{db_path}"

    @property
    def extensions_enabled_list(self) -> List[str]:
        return [e.strip().lower() for e in self.extensions_enabled.split(",") if e.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
