"""
Teamwork Configuration — Load and validate teamwork.yaml at startup.

Usage:
    from teamwork.engine.config import load_config, get_config
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from teamwork.engine.errors import TeamworkConfigError

CONFIG_FILE_NAME = "teamwork.yaml"


# ---------------------------------------------------------------------------
# Pydantic models for teamwork.yaml
# ---------------------------------------------------------------------------

class StorageConfig(BaseModel):
    url: str = "sqlite:///.teamwork/teamwork.db"
    quota_bytes: int = Field(default=5 * 1024 * 1024, gt=0)
    key_prefix: str = "teamwork:"

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(("sqlite:", "redis://", "rediss://")):
            raise ValueError(f"storage.url must be a sqlite:// or redis:// URL, got '{v}'")
        return v


class DocumentsConfig(BaseModel):
    max_upload_kib: int = Field(default=300, gt=0)

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_kib * 1024


class QuotesConfig(BaseModel):
    enabled: bool = True
    api_url: str = "https://korean-advice-open-api.vercel.app/api/advice"
    timeout_seconds: float = 5.0
    failure_threshold: int = 3
    recovery_timeout: float = 60.0


class LogAsyncQueueConfig(BaseModel):
    flush_interval_ms: int = 100
    flush_batch_size: int = 50
    max_queue_size: int = 10000


class LoggingConfig(BaseModel):
    level: str = "INFO"
    directory: str = ".teamwork/logs"
    activity_log: bool = True
    async_queue: LogAsyncQueueConfig = LogAsyncQueueConfig()

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"logging.level must be a standard level name, got '{v}'")
        return v


class TeamworkConfig(BaseModel):
    """Root model for teamwork.yaml."""
    team_name: str = "Teamwork"
    environment: str = "dev"

    storage: StorageConfig = StorageConfig()
    documents: DocumentsConfig = DocumentsConfig()
    quotes: QuotesConfig = QuotesConfig()
    logging: LoggingConfig = LoggingConfig()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        if v not in ("dev", "staging", "prod"):
            raise ValueError(f"environment must be dev/staging/prod, got '{v}'")
        return v


# ---------------------------------------------------------------------------
# Config Loading Functions
# ---------------------------------------------------------------------------

_config: Optional[TeamworkConfig] = None


def _find_project_root() -> Path:
    """Find the project root by looking for teamwork.yaml."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        if (parent / CONFIG_FILE_NAME).exists():
            return parent
    return current


def load_config(config_path: Optional[str] = None) -> TeamworkConfig:
    """
    Load and validate teamwork.yaml.

    Args:
        config_path: Explicit path to teamwork.yaml. If None, auto-discovers.

    Returns:
        Validated TeamworkConfig instance (defaults if the file is absent).

    Raises:
        TeamworkConfigError: The file exists but is not valid YAML or fails validation.
    """
    global _config

    if config_path is None:
        config_path = str(_find_project_root() / CONFIG_FILE_NAME)

    path = Path(config_path)
    if not path.exists():
        _config = TeamworkConfig()
        return _config

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise TeamworkConfigError(f"Could not parse {path}: {e}", path=str(path)) from e

    if not isinstance(raw, dict):
        raise TeamworkConfigError(f"{path} must contain a mapping", path=str(path))

    # Accept both a flat file and one nested under a top-level "team" key
    team_data: Dict[str, Any] = raw.get("team", {}) or {}
    config_data = {
        "team_name": team_data.get("name", raw.get("team_name", "Teamwork")),
        "environment": team_data.get("environment", raw.get("environment", "dev")),
        "storage": raw.get("storage", {}) or {},
        "documents": raw.get("documents", {}) or {},
        "quotes": raw.get("quotes", {}) or {},
        "logging": raw.get("logging", {}) or {},
    }

    try:
        _config = TeamworkConfig(**config_data)
    except ValidationError as e:
        raise TeamworkConfigError(
            f"Invalid configuration in {path}",
            path=str(path),
            validation_errors=e.errors(),
        ) from e
    return _config


def get_config() -> TeamworkConfig:
    """Get the currently loaded config, loading if necessary."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def get_environment() -> str:
    return get_config().environment
