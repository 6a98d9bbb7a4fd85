"""
TaskPulse Configuration — Load and validate taskpulse.yaml at startup.

Usage:
    from taskpulse.engine.config import load_config, get_config
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from taskpulse.analytics.time_range import RANGE_DURATIONS
from taskpulse.engine.errors import ConfigError


# ---------------------------------------------------------------------------
# Pydantic models for taskpulse.yaml
# ---------------------------------------------------------------------------

class AnalyticsConfig(BaseModel):
    default_range: str = "7d"
    active_window_days: int = Field(default=7, ge=1)
    max_concurrent_queries: int = Field(default=16, ge=1)
    refresh_interval_seconds: int = Field(default=300, ge=1)

    @field_validator("default_range")
    @classmethod
    def validate_default_range(cls, v: str) -> str:
        if v not in RANGE_DURATIONS:
            raise ValueError(
                f"default_range must be one of {'/'.join(RANGE_DURATIONS)}, got '{v}'"
            )
        return v


class DatabaseConfig(BaseModel):
    url: str = "sqlite:///taskpulse.db"
    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: int = 30
    pool_recycle: int = 1800
    pool_pre_ping: bool = True


class RedisConfig(BaseModel):
    enabled: bool = False
    url: str = "redis://localhost:6379/0"
    prefix: str = "taskpulse:"
    snapshot_ttl: int = 600


class TelemetryConfig(BaseModel):
    endpoint: Optional[str] = None
    timeout: int = 10
    uptime: float = Field(default=99.9, ge=0, le=100)
    average_response_time_ms: float = Field(default=150.0, ge=0)
    error_count: int = Field(default=0, ge=0)
    component_health: Dict[str, float] = Field(
        default_factory=lambda: {
            "database": 98.5,
            "api": 99.2,
            "storage": 97.8,
            "notifications": 99.5,
        }
    )


class LoggingConfig(BaseModel):
    level: str = "INFO"
    directory: str = ".taskpulse/logs"
    flush_interval_ms: int = 100
    flush_batch_size: int = 50
    max_queue_size: int = 10000


class TaskPulseConfig(BaseModel):
    """Root model for taskpulse.yaml."""
    name: str = "TaskPulse"
    environment: str = "dev"

    analytics: AnalyticsConfig = AnalyticsConfig()
    database: DatabaseConfig = DatabaseConfig()
    redis: RedisConfig = RedisConfig()
    telemetry: TelemetryConfig = TelemetryConfig()
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

_config: Optional[TaskPulseConfig] = None


def _find_config_file() -> Path:
    """Walk up from CWD looking for taskpulse.yaml."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        candidate = parent / "taskpulse.yaml"
        if candidate.exists():
            return candidate
    return current / "taskpulse.yaml"


def load_config(config_path: Optional[str] = None) -> TaskPulseConfig:
    """
    Load and validate taskpulse.yaml.

    Args:
        config_path: Explicit path to taskpulse.yaml. If None, auto-discovers.

    Returns:
        Validated TaskPulseConfig instance. Defaults when the file is missing.

    Raises:
        ConfigError: the file exists but is not valid YAML or fails validation.
    """
    global _config

    path = Path(config_path) if config_path else _find_config_file()
    if not path.exists():
        _config = TaskPulseConfig()
        return _config

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}", path=str(path)) from e

    # The top-level "taskpulse" key holds name/environment; sections sit beside it
    header = raw.get("taskpulse", {}) or {}
    config_data = {
        "name": header.get("name", raw.get("name", "TaskPulse")),
        "environment": header.get("environment", raw.get("environment", "dev")),
        "analytics": raw.get("analytics", {}) or {},
        "database": raw.get("database", {}) or {},
        "redis": raw.get("redis", {}) or {},
        "telemetry": raw.get("telemetry", {}) or {},
        "logging": raw.get("logging", {}) or {},
    }

    try:
        _config = TaskPulseConfig(**config_data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}", path=str(path)) from e
    return _config


def get_config() -> TaskPulseConfig:
    """Get the currently loaded config, loading if necessary."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def get_environment() -> str:
    """Get the current environment."""
    return get_config().environment
