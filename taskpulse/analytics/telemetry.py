"""
TaskPulse Telemetry — Operational figures for the System category.

Feeds:
    - StaticTelemetryFeed: figures from taskpulse.yaml plus a synthetic weekly
      performance curve (95 ± 2.5), used when no telemetry service exists.
    - HttpTelemetryFeed: GET {endpoint}?start=..&end=.. against a telemetry
      service returning the same figures as JSON.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

import httpx
from pydantic import BaseModel, Field, ValidationError

from taskpulse.analytics.time_range import TimeRange
from taskpulse.engine.config import TelemetryConfig
from taskpulse.engine.errors import ComputationFailure, ReadFailure

logger = logging.getLogger("taskpulse.analytics.telemetry")


@dataclass(frozen=True)
class TelemetryReading:
    uptime: float
    average_response_time_ms: float
    error_count: int
    component_health: Dict[str, float] = field(default_factory=dict)
    # One figure per calendar day of the requested range
    performance: List[float] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uptime": self.uptime,
            "average_response_time_ms": self.average_response_time_ms,
            "error_count": self.error_count,
            "component_health": dict(self.component_health),
            "performance": list(self.performance),
        }


class TelemetryFeed(Protocol):
    async def snapshot(self, time_range: TimeRange) -> TelemetryReading:
        ...


def synthetic_performance(day_index: int) -> float:
    """Weekly sawtooth between 92.5 and 97.5."""
    return 95 + 5 * (0.5 - (day_index % 7) / 14)


class StaticTelemetryFeed:
    """Configured figures; never fails."""

    def __init__(self, config: Optional[TelemetryConfig] = None):
        self._config = config or TelemetryConfig()

    async def snapshot(self, time_range: TimeRange) -> TelemetryReading:
        cfg = self._config
        return TelemetryReading(
            uptime=cfg.uptime,
            average_response_time_ms=cfg.average_response_time_ms,
            error_count=cfg.error_count,
            component_health=dict(cfg.component_health),
            performance=[synthetic_performance(i) for i in range(time_range.days + 1)],
        )


class _TelemetryPayload(BaseModel):
    uptime: float = Field(ge=0, le=100)
    average_response_time_ms: float = Field(ge=0)
    error_count: int = Field(ge=0)
    component_health: Dict[str, float] = Field(default_factory=dict)
    performance: List[float] = Field(default_factory=list)


class HttpTelemetryFeed:
    """
    Telemetry from an HTTP service.

    Usage:
        feed = HttpTelemetryFeed("https://telemetry.internal/api/summary", timeout=10)
        reading = await feed.snapshot(time_range)

    The service answers with the TelemetryReading fields as JSON. A missing
    ``performance`` list becomes a flat series at the reported uptime.
    """

    def __init__(
        self,
        endpoint: str,
        timeout: float = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._endpoint = endpoint
        self._timeout = timeout
        self._transport = transport

    async def snapshot(self, time_range: TimeRange) -> TelemetryReading:
        params = {"start": time_range.start.isoformat(), "end": time_range.end.isoformat()}
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.get(self._endpoint, params=params)
                resp.raise_for_status()
                body = resp.json()
        except httpx.HTTPError as e:
            raise ReadFailure(
                f"Telemetry request failed: {e}",
                entity="telemetry",
                filters=params,
                endpoint=self._endpoint,
            ) from e
        except ValueError as e:
            raise ComputationFailure(
                f"Telemetry response is not JSON: {e}",
                entity="telemetry",
                endpoint=self._endpoint,
            ) from e

        try:
            payload = _TelemetryPayload.model_validate(body)
        except ValidationError as e:
            raise ComputationFailure(
                f"Telemetry response is malformed: {e.errors()[0].get('msg', e)}",
                entity="telemetry",
                endpoint=self._endpoint,
            ) from e

        expected = time_range.days + 1
        performance = payload.performance or [payload.uptime] * expected
        if len(performance) != expected:
            raise ComputationFailure(
                f"Telemetry returned {len(performance)} performance points, expected {expected}",
                entity="telemetry",
                endpoint=self._endpoint,
            )

        logger.debug(f"Telemetry reading from {self._endpoint}: uptime={payload.uptime}")
        return TelemetryReading(
            uptime=payload.uptime,
            average_response_time_ms=payload.average_response_time_ms,
            error_count=payload.error_count,
            component_health=payload.component_health,
            performance=performance,
        )


def create_telemetry_feed(config: Optional[TelemetryConfig] = None) -> TelemetryFeed:
    """HttpTelemetryFeed when an endpoint is configured, otherwise StaticTelemetryFeed."""
    config = config or TelemetryConfig()
    if config.endpoint:
        return HttpTelemetryFeed(config.endpoint, timeout=config.timeout)
    return StaticTelemetryFeed(config)
