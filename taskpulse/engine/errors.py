"""
TaskPulse Error Hierarchy — Structured exceptions for category-level reporting.

Every error carries the context tag of the category that raised it (e.g.
"task_metrics") so failures can be attributed without stopping a refresh.
All context is serializable to JSON for the structured log pipeline.

Hierarchy:
    TaskPulseError
    ├── ReadFailure          — Record source or telemetry feed unavailable
    ├── ComputationFailure   — Malformed record data / unexpected branch
    │   └── ScoreError       — Invalid composite score inputs
    └── ConfigError          — Invalid taskpulse.yaml
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class TaskPulseError(Exception):
    """
    Base error for all TaskPulse engine failures.
    Structured for reporting — all context serializable to JSON.
    """

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.category: Optional[str] = context.get("category")
        self.entity: Optional[str] = context.get("entity")
        self.error_type: str = self.__class__.__name__
        self.context: Dict[str, Any] = context
        self.timestamp: str = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize error to a JSON-compatible dict for logging."""
        return {
            "error_type": self.error_type,
            "message": self.message,
            "category": self.category,
            "entity": self.entity,
            "timestamp": self.timestamp,
            "context": {
                k: str(v) for k, v in self.context.items()
                if k not in ("category", "entity")
            },
        }

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), default=str)

    def __repr__(self) -> str:
        parts = [f"{self.error_type}: {self.message}"]
        if self.category:
            parts.append(f"category={self.category}")
        if self.entity:
            parts.append(f"entity={self.entity}")
        return " | ".join(parts)


class ReadFailure(TaskPulseError):
    """
    The record source could not be queried (network/storage unavailable).
    Includes the filters that were sent so the failing query can be replayed.
    """

    def __init__(self, message: str, **context: Any):
        self.filters: Optional[Dict[str, Any]] = context.get("filters")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["filters"] = {k: str(v) for k, v in (self.filters or {}).items()}
        return d


class ComputationFailure(TaskPulseError):
    """Malformed record data caused an unexpected branch during aggregation."""

    def __init__(self, message: str, **context: Any):
        self.record_id: Optional[str] = context.get("record_id")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["record_id"] = self.record_id
        return d


class ScoreError(ComputationFailure):
    """Composite score inputs are invalid (negative weights, no positive weight)."""
    pass


class ConfigError(TaskPulseError):
    """Configuration error — invalid taskpulse.yaml."""
    pass
