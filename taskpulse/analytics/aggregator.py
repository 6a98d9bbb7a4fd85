"""
TaskPulse Dashboard Aggregator — Orchestrates one refresh end to end.

    refresh(range_key)
      → resolve the TimeRange once
      → run the five collectors concurrently (single join)
      → team collaboration score + system health score
      → DashboardSnapshot → SnapshotCache.publish

States: idle → computing → ready | ready_with_partial_data. A refresh always
produces a snapshot; failed categories appear as empty placeholders.
"""

from __future__ import annotations

import asyncio
import dataclasses
import itertools
import logging
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional

from taskpulse.analytics.collectors import CategoryCollector, build_collectors
from taskpulse.analytics.metrics import (
    DashboardSnapshot,
    ProjectMetrics,
    SnapshotStatus,
    SystemMetrics,
    TaskMetrics,
    TeamMetrics,
    UserMetrics,
)
from taskpulse.analytics.reader import RecordReader
from taskpulse.analytics.scoring import CompositeScoreCalculator
from taskpulse.analytics.telemetry import TelemetryFeed, create_telemetry_feed
from taskpulse.analytics.time_range import TimeRange, normalize_range_key, resolve_time_range
from taskpulse.analytics.trend import TrendSeriesBuilder
from taskpulse.engine.cache import SnapshotCache
from taskpulse.engine.config import TaskPulseConfig, get_config
from taskpulse.engine.errors import TaskPulseError
from taskpulse.engine.logging import log, log_refresh_event
from taskpulse.engine.reporting import ErrorReporter, LoggingErrorReporter

logger = logging.getLogger("taskpulse.analytics.aggregator")

Clock = Callable[[], datetime]


class AggregatorState(str, Enum):
    IDLE = "idle"
    COMPUTING = "computing"
    READY = "ready"
    READY_WITH_PARTIAL_DATA = "ready_with_partial_data"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DashboardAggregator:
    """
    Builds and publishes dashboard snapshots.

    Usage:
        aggregator = DashboardAggregator(reader)
        snapshot = await aggregator.refresh("30d")
        aggregator.latest()  # same snapshot, from the cache
    """

    def __init__(
        self,
        reader: RecordReader,
        cache: Optional[SnapshotCache] = None,
        telemetry: Optional[TelemetryFeed] = None,
        reporter: Optional[ErrorReporter] = None,
        config: Optional[TaskPulseConfig] = None,
        collectors: Optional[List[CategoryCollector]] = None,
        clock: Optional[Clock] = None,
    ):
        self._config = config or get_config()
        analytics = self._config.analytics
        self._cache = cache if cache is not None else SnapshotCache()
        self._reporter = reporter if reporter is not None else LoggingErrorReporter()
        self._clock = clock or _utcnow
        self._scores = CompositeScoreCalculator()
        self._collectors = collectors or build_collectors(
            reader,
            trend_builder=TrendSeriesBuilder(analytics.max_concurrent_queries),
            reporter=self._reporter,
            telemetry=telemetry if telemetry is not None else create_telemetry_feed(self._config.telemetry),
            active_window_days=analytics.active_window_days,
        )
        if len(self._collectors) != 5:
            raise ValueError(f"Expected 5 collectors, got {len(self._collectors)}")

        self._sequence = itertools.count(1)
        self._in_flight = 0
        self._periodic_task: Optional[asyncio.Task] = None

    # ── Refresh ──

    async def refresh(self, range_key: Optional[str] = None) -> DashboardSnapshot:
        """
        Recompute every category for ``range_key`` (config default when None).

        Returns the snapshot built by this call. It is published unless a
        newer refresh has already published; ``latest()`` is authoritative.
        """
        sequence = next(self._sequence)
        key = normalize_range_key(range_key or self._config.analytics.default_range)
        now = self._clock()
        time_range = resolve_time_range(key, now=now)

        self._in_flight += 1
        started = time.monotonic()
        logger.info(f"Refresh #{sequence} started (range={key})")
        log(log_refresh_event("refresh_started", sequence, key))
        try:
            results = await asyncio.gather(
                *(collector.collect(time_range, now) for collector in self._collectors)
            )
            task_m, user_m, team_m, project_m, system_m = results
            snapshot = self._assemble(
                sequence, key, time_range, now, task_m, user_m, team_m, project_m, system_m
            )
            await self._cache.publish(snapshot)
        finally:
            self._in_flight -= 1

        duration_ms = (time.monotonic() - started) * 1000
        failed = snapshot.failed_categories
        logger.info(
            f"Refresh #{sequence} finished in {duration_ms:.1f}ms "
            f"(status={snapshot.status.value}, failed={failed or 'none'})"
        )
        log(log_refresh_event("refresh_completed", sequence, key, duration_ms, failed))
        return snapshot

    def _assemble(
        self,
        sequence: int,
        range_key: str,
        time_range: TimeRange,
        now: datetime,
        task_m: TaskMetrics,
        user_m: UserMetrics,
        team_m: TeamMetrics,
        project_m: ProjectMetrics,
        system_m: SystemMetrics,
    ) -> DashboardSnapshot:
        if not team_m.failed:
            try:
                collaboration = self._scores.team_collaboration_score(
                    team_m.team_productivity, team_m.team_task_distribution, team_m.team_sizes
                )
                team_m = dataclasses.replace(team_m, team_collaboration_score=collaboration)
            except TaskPulseError as e:
                self._reporter.report(e, "team_metrics")
                team_m = TeamMetrics.empty(error=e.message)

        factors = self._scores.system_health_factors(
            active_users=user_m.active_users,
            total_users=user_m.total_users,
            active_teams=team_m.active_teams,
            total_teams=team_m.total_teams,
            completed_tasks=task_m.completed,
            total_tasks=task_m.total,
            active_projects=project_m.active_projects,
            total_projects=project_m.total_projects,
        )
        try:
            health_score = self._scores.score(factors)
        except TaskPulseError as e:
            self._reporter.report(e, "system_health")
            health_score = 0.0
        logger.debug(f"System health factors: {self._scores.explain(factors)}")

        return DashboardSnapshot(
            task_metrics=task_m,
            user_metrics=user_m,
            team_metrics=team_m,
            project_metrics=project_m,
            system_metrics=system_m,
            system_health_score=health_score,
            system_health_status=self._scores.health_status(health_score).value,
            generated_at=now,
            time_range=time_range,
            range_key=range_key,
            sequence=sequence,
        )

    # ── Read side ──

    def latest(self) -> Optional[DashboardSnapshot]:
        return self._cache.latest()

    @property
    def cache(self) -> SnapshotCache:
        return self._cache

    @property
    def state(self) -> AggregatorState:
        if self._in_flight > 0:
            return AggregatorState.COMPUTING
        snapshot = self._cache.latest()
        if snapshot is None:
            return AggregatorState.IDLE
        if snapshot.status == SnapshotStatus.READY_WITH_PARTIAL_DATA:
            return AggregatorState.READY_WITH_PARTIAL_DATA
        return AggregatorState.READY

    # ── Periodic refresh ──

    async def run_periodic(
        self,
        interval_seconds: Optional[int] = None,
        range_key: Optional[str] = None,
    ) -> None:
        """Start refreshing on a timer in the background."""
        if self._periodic_task is not None:
            logger.warning("Periodic refresh already running")
            return

        interval = interval_seconds or self._config.analytics.refresh_interval_seconds

        async def _loop():
            while True:
                try:
                    await self.refresh(range_key)
                except Exception as e:
                    logger.error(f"Periodic refresh error: {e}")
                await asyncio.sleep(interval)

        self._periodic_task = asyncio.create_task(_loop())
        logger.info(f"Started periodic refresh (interval={interval}s)")

    async def stop_periodic(self) -> None:
        """Stop the periodic refresh loop."""
        if self._periodic_task:
            self._periodic_task.cancel()
            try:
                await self._periodic_task
            except asyncio.CancelledError:
                pass
            self._periodic_task = None
            logger.info("Stopped periodic refresh")

    @property
    def is_periodic_running(self) -> bool:
        return self._periodic_task is not None
