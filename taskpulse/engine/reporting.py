"""
TaskPulse Error Reporting — Where collectors send category failures.

LoggingErrorReporter writes each failure to the standard logger and to the
structured JSON pipeline (analytics/errors), and keeps a bounded list of
recent failures for inspection.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional, Protocol

from taskpulse.engine.errors import TaskPulseError
from taskpulse.engine.logging import log, log_category_failure

logger = logging.getLogger("taskpulse.engine.reporting")


class ErrorReporter(Protocol):
    def report(self, error: TaskPulseError, context: str) -> None:
        """Record a failure raised while computing the category named by ``context``."""
        ...


@dataclass
class ReportedFailure:
    context: str
    error: TaskPulseError
    reported_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "context": self.context,
            "reported_at": self.reported_at.isoformat(),
            "error": self.error.to_dict(),
        }


class LoggingErrorReporter:
    """Default reporter: logging + async JSON log queue + bounded history."""

    def __init__(self, max_history: int = 100):
        self._history: Deque[ReportedFailure] = deque(maxlen=max_history)

    def report(self, error: TaskPulseError, context: str) -> None:
        if error.category is None:
            error.category = context
        failure = ReportedFailure(context=context, error=error)
        self._history.append(failure)
        logger.error(f"[{context}] {error!r}")
        log(log_category_failure(context, error.to_dict()))

    def recent(self, context: Optional[str] = None) -> List[ReportedFailure]:
        """Recent failures, oldest first, optionally for one category."""
        if context is None:
            return list(self._history)
        return [f for f in self._history if f.context == context]

    def clear(self) -> None:
        self._history.clear()

    def __len__(self) -> int:
        return len(self._history)
