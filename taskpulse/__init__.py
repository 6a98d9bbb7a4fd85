"""
TaskPulse — Analytics metrics aggregation engine
Version: 1.0

Reads task, user, team, project and notification records over a time window
and publishes a dashboard snapshot of counts, rates, daily trends and
composite health scores.
"""

__version__ = "1.0.0"
__all__ = ["analytics", "engine", "db"]
