"""TaskPulse Analytics — Time ranges, collectors, trends, scoring, aggregation."""

__all__ = [
    "aggregator",
    "collectors",
    "enums",
    "metrics",
    "reader",
    "records",
    "scoring",
    "telemetry",
    "time_range",
    "trend",
]
