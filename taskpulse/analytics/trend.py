"""
TaskPulse Trend Series — One data point per calendar day of a time range.

The day window for point i is [day_start, day_start + 1 day). Days with no
matches produce a zero point; points are never omitted. Per-day queries run
concurrently, bounded by a semaphore.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, List, Union

from taskpulse.analytics.metrics import TrendPoint, TrendSeries
from taskpulse.analytics.time_range import TimeRange
from taskpulse.engine.errors import ComputationFailure

logger = logging.getLogger("taskpulse.analytics.trend")

CountFn = Callable[[datetime, datetime], Awaitable[Union[int, float]]]

ONE_DAY = timedelta(days=1)


class TrendSeriesBuilder:
    """
    Builds dense daily series.

    Usage:
        builder = TrendSeriesBuilder(max_concurrency=16)
        series = await builder.build(time_range, count_completed_between)
    """

    def __init__(self, max_concurrency: int = 16):
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")
        self._max_concurrency = max_concurrency

    @property
    def max_concurrency(self) -> int:
        return self._max_concurrency

    async def build(self, time_range: TimeRange, count_fn: CountFn) -> TrendSeries:
        """
        Run count_fn once per calendar day and return the points in day order.

        Raises:
            ComputationFailure: a query returned a negative count.
            Any error raised by count_fn propagates unchanged.
        """
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def _point(index: int, day_start: datetime) -> TrendPoint:
            async with semaphore:
                value = await count_fn(day_start, day_start + ONE_DAY)
            if value is None or value < 0:
                raise ComputationFailure(
                    f"Trend query returned invalid count {value!r} for day {day_start.date()}",
                    day=day_start.date().isoformat(),
                )
            return TrendPoint(day_index=index, value=float(value))

        day_starts: List[datetime] = time_range.day_starts()
        points = await asyncio.gather(
            *(_point(i, day) for i, day in enumerate(day_starts))
        )
        logger.debug(f"Built trend series with {len(points)} points")
        return tuple(points)
