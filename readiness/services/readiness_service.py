"""
Readiness Score Calculator

PURPOSE:
Combine the Activity Aggregator's sub-scores into one 0-100 readiness score
plus a per-category breakdown. This is the engine's main export, called
after every mutation of a student (signup, profile save, verification,
platform sync, interview completion).

HOW IT WORKS:
1. aggregate_activity() -> bounded sub-scores (natural units)
2. Multiply each by its weight (weights x caps = 100 points total)
3. Add the GitHub activity bonus and the interview performance bonus
4. Clamp to [0, 100] and round half-up

DEFAULT POINT ALLOCATION:
    base 10 | projects 25 | certifications 10 | events 5
    consistency 15 | skills 5 | coding platforms 10 | cgpa 20
    + GitHub bonus (max 5) + interview bonus (max 10), clamped to 100

A brand-new student with nothing on file scores 25:
base 10 + neutral CGPA 10 + neutral coding platforms 5.
"""

from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict

from readiness.schemas.schemas import ReadinessCategory, ReadinessResult
from readiness.services.aggregator import (
    SUBSCORE_CAPS,
    aggregate_activity,
    as_document,
    get_object,
)
from readiness.utils.numbers import clamp, round_half_up, to_number


GITHUB_BONUS_CAP = 5.0
GITHUB_BONUS_DIVISOR = 20.0
INTERVIEW_BONUS_CAP = 10.0
INTERVIEW_BONUS_DIVISOR = 10.0


class ReadinessWeights(BaseModel):
    """
    Immutable weight table. Each weight multiplies a sub-score measured in
    its own units (see SUBSCORE_CAPS), so weight * cap is the category's
    maximum contribution in points.
    """
    model_config = ConfigDict(frozen=True)

    base: float = 10.0
    projects: float = 25.0 / 30.0
    certifications: float = 0.5
    events: float = 0.5
    consistency: float = 0.75
    skills: float = 0.5
    coding_platforms: float = 1.0
    cgpa: float = 2.0

    def weight_for(self, category: ReadinessCategory) -> float:
        return getattr(self, category.value)

    def max_points(self) -> float:
        """Points available from the weighted categories (bonuses excluded)."""
        return sum(self.weight_for(c) * cap for c, cap in SUBSCORE_CAPS.items())


DEFAULT_WEIGHTS = ReadinessWeights()


# ============================================================
# BONUS TERMS
# ============================================================

def github_bonus(doc: Mapping) -> float:
    """min(5, activity_score / 20); 0 when GitHub was never synced."""
    stats = get_object(doc, "github_stats")
    if stats is None:
        return 0.0
    activity = to_number(stats.get("activity_score"), "github_stats.activity_score")
    return clamp(activity / GITHUB_BONUS_DIVISOR, 0.0, GITHUB_BONUS_CAP)


def interview_performance(doc: Mapping) -> Optional[float]:
    """
    Average of the interview rubric: avg_score plus whichever communication
    averages are on file. None until a session has been completed.
    """
    stats = get_object(doc, "interview_stats")
    if stats is None:
        return None
    completed = to_number(stats.get("completed_sessions"), "interview_stats.completed_sessions")
    if completed <= 0:
        return None

    rubric = [to_number(stats.get("avg_score"), "interview_stats.avg_score")]
    communication = get_object(stats, "communication") or {}
    for key in ("avg_clarity", "avg_structure", "avg_conciseness"):
        value = to_number(communication.get(key), f"interview_stats.communication.{key}", default=None)
        if value is not None:
            rubric.append(value)

    return sum(rubric) / len(rubric)


def interview_bonus(doc: Mapping) -> float:
    """min(10, performance / 10); 0 before the first completed interview."""
    performance = interview_performance(doc)
    if performance is None:
        return 0.0
    return clamp(performance / INTERVIEW_BONUS_DIVISOR, 0.0, INTERVIEW_BONUS_CAP)


# ============================================================
# CALCULATOR
# ============================================================

def calculate_readiness_score(
    student: Any,
    weights: ReadinessWeights = DEFAULT_WEIGHTS,
    now: Optional[datetime] = None,
    consistency_window_days: int = 30
) -> ReadinessResult:
    """
    Calculate a student's readiness score.

    Args:
        student: Student document (dict) or pydantic model
        weights: Weight table (defaults to DEFAULT_WEIGHTS)
        now: Reference time for time-windowed activity
        consistency_window_days: Coding-log window for the consistency score

    Returns:
        ReadinessResult with integer total in [0, 100] and breakdown of
        weighted points per category (one decimal)

    Raises:
        InvalidShapeError: malformed student data (never returns NaN)
    """
    doc = as_document(student)
    subscores = aggregate_activity(doc, now=now, consistency_window_days=consistency_window_days)

    points: Dict[str, float] = {
        category.value: value * weights.weight_for(category)
        for category, value in subscores.items()
    }
    points[ReadinessCategory.github_bonus.value] = github_bonus(doc)
    points[ReadinessCategory.interview_bonus.value] = interview_bonus(doc)

    total = clamp(sum(points.values()), 0.0, 100.0)

    return ReadinessResult(
        total=int(round_half_up(total)),
        breakdown={key: round_half_up(value, 1) for key, value in points.items()},
    )
