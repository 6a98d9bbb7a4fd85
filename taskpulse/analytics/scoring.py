"""
TaskPulse Composite Scores — Weighted combination of rates into 0-100 scores.

A factor whose denominator is zero has no data and is left out; the
remaining weights are renormalized. When nothing is considered the score
is 0. One fully weighted factor at rate r yields exactly r.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping

from taskpulse.engine.errors import ScoreError

logger = logging.getLogger("taskpulse.analytics.scoring")


@dataclass(frozen=True)
class ScoreFactor:
    name: str
    weight: float
    rate: float
    considered: bool = True

    @classmethod
    def ratio(cls, name: str, weight: float, numerator: float, denominator: float) -> "ScoreFactor":
        """Factor with rate numerator/denominator*100, considered only when denominator > 0."""
        if denominator > 0:
            return cls(name=name, weight=weight, rate=numerator / denominator * 100, considered=True)
        return cls(name=name, weight=weight, rate=0.0, considered=False)


class HealthStatus(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    CRITICAL = "critical"


# Lower bound of each band, checked top-down
HEALTH_BANDS = (
    (80.0, HealthStatus.EXCELLENT),
    (60.0, HealthStatus.GOOD),
    (40.0, HealthStatus.FAIR),
    (20.0, HealthStatus.POOR),
)

SYSTEM_HEALTH_WEIGHT = 0.25


class CompositeScoreCalculator:
    """Stateless score helpers shared by the aggregator."""

    @staticmethod
    def score(factors: Iterable[ScoreFactor]) -> float:
        """
        Weighted mean of the considered factors, clamped to [0, 100].

        Raises:
            ScoreError: a weight is negative, or the considered weights sum to 0.
        """
        considered: List[ScoreFactor] = []
        for factor in factors:
            if factor.weight < 0:
                raise ScoreError(
                    f"Score factor '{factor.name}' has negative weight {factor.weight}",
                    factor=factor.name,
                )
            if factor.considered:
                considered.append(factor)

        if not considered:
            return 0.0

        total_weight = sum(f.weight for f in considered)
        if total_weight <= 0:
            raise ScoreError(
                "Considered score factors have no positive weight",
                factors=",".join(f.name for f in considered),
            )

        value = sum(f.weight * f.rate for f in considered) / total_weight
        return max(0.0, min(100.0, value))

    def team_collaboration_score(
        self,
        team_productivity: Mapping[str, float],
        team_task_distribution: Mapping[str, int],
        team_sizes: Mapping[str, int],
    ) -> float:
        """Equal-weight mean of team completion %, over teams with members and tasks."""
        factors = [
            ScoreFactor(
                name=team_id,
                weight=1.0,
                rate=team_productivity.get(team_id, 0.0),
                considered=team_sizes.get(team_id, 0) >= 1
                and team_task_distribution.get(team_id, 0) >= 1,
            )
            for team_id in team_productivity
        ]
        return self.score(factors)

    def system_health_factors(
        self,
        active_users: int,
        total_users: int,
        active_teams: int,
        total_teams: int,
        completed_tasks: int,
        total_tasks: int,
        active_projects: int,
        total_projects: int,
    ) -> List[ScoreFactor]:
        return [
            ScoreFactor.ratio("user_activity", SYSTEM_HEALTH_WEIGHT, active_users, total_users),
            ScoreFactor.ratio("team_activity", SYSTEM_HEALTH_WEIGHT, active_teams, total_teams),
            ScoreFactor.ratio("task_completion", SYSTEM_HEALTH_WEIGHT, completed_tasks, total_tasks),
            ScoreFactor.ratio("project_activity", SYSTEM_HEALTH_WEIGHT, active_projects, total_projects),
        ]

    def system_health_score(self, **counts: int) -> float:
        """Four factors at 0.25 each; see system_health_factors for the keyword names."""
        return self.score(self.system_health_factors(**counts))

    @staticmethod
    def health_status(score: float) -> HealthStatus:
        for lower_bound, status in HEALTH_BANDS:
            if score >= lower_bound:
                return status
        return HealthStatus.CRITICAL

    @staticmethod
    def explain(factors: Iterable[ScoreFactor]) -> Dict[str, Dict[str, Any]]:
        """Per-factor breakdown for diagnostics."""
        return {
            f.name: {"weight": f.weight, "rate": round(f.rate, 2), "considered": f.considered}
            for f in factors
        }
