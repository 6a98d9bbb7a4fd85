"""
TaskPulse CLI — Run and inspect dashboard refreshes.

Commands:
- taskpulse refresh    — Compute one snapshot from the configured database and print it
- taskpulse ranges     — List the supported range keys
- taskpulse failures   — Show recent category failures from the JSON logs
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from datetime import date, timedelta
from typing import Optional

from taskpulse.analytics.time_range import RANGE_DURATIONS, available_ranges, display_name

logger = logging.getLogger("taskpulse.cli")


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="taskpulse",
        description="TaskPulse — Analytics metrics aggregation engine",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # taskpulse refresh
    refresh_parser = subparsers.add_parser("refresh", help="Compute and print a dashboard snapshot")
    refresh_parser.add_argument(
        "--range", dest="range_key", choices=list(RANGE_DURATIONS),
        help="Range key (default: analytics.default_range from config)",
    )
    refresh_parser.add_argument(
        "--config", default=None, help="Path to taskpulse.yaml (default: auto-discover)"
    )
    refresh_parser.add_argument("--db", help="Database URL (overrides database.url)")
    refresh_parser.add_argument("--json", action="store_true", help="Print the full snapshot as JSON")

    # taskpulse ranges
    subparsers.add_parser("ranges", help="List supported range keys")

    # taskpulse failures
    failures_parser = subparsers.add_parser("failures", help="Show recent category failures")
    failures_parser.add_argument("--days", type=int, default=7, help="How many days back (default: 7)")
    failures_parser.add_argument("--config", default=None, help="Path to taskpulse.yaml")
    failures_parser.add_argument("--limit", type=int, default=50, help="Max entries (default: 50)")

    args = parser.parse_args(argv)

    if args.command == "refresh":
        return cmd_refresh(args)
    elif args.command == "ranges":
        return cmd_ranges(args)
    elif args.command == "failures":
        return cmd_failures(args)
    else:
        parser.print_help()
        return 0


def _load_config(path: Optional[str]):
    from taskpulse.engine.config import load_config
    from taskpulse.engine.errors import ConfigError

    try:
        return load_config(path)
    except ConfigError as e:
        print(f"[ERROR] {e.message}")
        return None


def cmd_refresh(args: argparse.Namespace) -> int:
    """Run one refresh against the configured database."""
    config = _load_config(args.config)
    if config is None:
        return 1

    logging.basicConfig(level=config.logging.level)

    from taskpulse.analytics.aggregator import DashboardAggregator
    from taskpulse.db.base import DEFAULT_ENGINE, engine_registry
    from taskpulse.db.reader import SqlRecordReader
    from taskpulse.engine.cache import SnapshotCache, create_snapshot_mirror
    from taskpulse.engine.logging import init_logging, log, log_system_event, shutdown_logging

    db = config.database
    engine_registry.register(
        DEFAULT_ENGINE,
        args.db or db.url,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        pool_recycle=db.pool_recycle,
        pool_pre_ping=db.pool_pre_ping,
    )
    init_logging(
        log_dir=config.logging.directory,
        flush_interval_ms=config.logging.flush_interval_ms,
        flush_batch_size=config.logging.flush_batch_size,
        max_queue_size=config.logging.max_queue_size,
    )
    log(log_system_event("cli_refresh", details={"environment": config.environment, "range": args.range_key}))

    cache = SnapshotCache()
    if config.redis.enabled:
        cache.subscribe(
            create_snapshot_mirror(config.redis.url, prefix=config.redis.prefix, ttl=config.redis.snapshot_ttl)
        )

    try:
        aggregator = DashboardAggregator(SqlRecordReader(), cache=cache, config=config)
        snapshot = asyncio.run(aggregator.refresh(args.range_key))
    finally:
        shutdown_logging()
        engine_registry.dispose(DEFAULT_ENGINE)

    if args.json:
        print(snapshot.to_json(indent=2))
        return 0

    print("=" * 60)
    print(f"  TaskPulse Dashboard — {display_name(snapshot.range_key)}")
    print("=" * 60)
    for name, value in snapshot.key_performance_indicators().items():
        print(f"  {name:<28} {value:8.1f}")
    print(f"  {'system_health_score':<28} {snapshot.system_health_score:8.1f}  ({snapshot.system_health_status})")
    print()
    for category, metrics in snapshot.categories().items():
        if metrics.failed:
            print(f"[WARN] {category}: {metrics.error}")
        else:
            print(f"[OK] {category}")
    return 0


def cmd_ranges(args: argparse.Namespace) -> int:
    """List supported range keys."""
    for key in available_ranges():
        print(f"{key:<4} {display_name(key)} ({RANGE_DURATIONS[key].days} days)")
    return 0


def cmd_failures(args: argparse.Namespace) -> int:
    """Print recent category failures recorded in analytics/errors."""
    config = _load_config(args.config)
    if config is None:
        return 1

    from taskpulse.engine.logging import FileLogger

    file_logger = FileLogger(log_dir=config.logging.directory)
    entries = file_logger.query(
        "analytics",
        "errors",
        start_date=date.today() - timedelta(days=max(args.days, 0)),
        limit=args.limit,
    )
    if not entries:
        print("No category failures recorded.")
        return 0

    for entry in entries:
        print(json.dumps({
            "timestamp": entry.get("timestamp"),
            "category": entry.get("category"),
            "error_type": entry.get("error_type"),
            "message": entry.get("message"),
        }))
    print(f"\n{len(entries)} failure(s).")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
