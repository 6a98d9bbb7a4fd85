"""TaskPulse Engine — Errors, configuration, logging, snapshot cache, reporting."""

from taskpulse.engine.errors import (  # noqa: F401
    ComputationFailure,
    ConfigError,
    ReadFailure,
    ScoreError,
    TaskPulseError,
)

__all__ = [
    "TaskPulseError",
    "ReadFailure",
    "ComputationFailure",
    "ScoreError",
    "ConfigError",
]
