"""
Activity Aggregator

PURPOSE:
Turn a student's raw activity (projects, certifications, events, coding
logs, platform snapshots, streak, CGPA) into a fixed set of bounded
sub-scores. Pure function of the student document: no I/O, no side effects.

RULES:
1. Verified-only: pending/rejected items contribute nothing
2. Bonus capping: every secondary bonus is min(raw, cap)
3. Neutral defaults: absent CGPA / LeetCode snapshot score half their cap
4. Every sub-score is bounded by SUBSCORE_CAPS before weighting

The Readiness Calculator weights these sub-scores; the Job Match Scorer
reuses the same verified-only helpers.
"""

from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel

from readiness.core.errors import InvalidShapeError
from readiness.schemas.schemas import ReadinessCategory, ItemStatus
from readiness.utils.numbers import clamp, to_number


# ============================================================
# CAPS & CONSTANTS
# ============================================================

SUBSCORE_CAPS: Dict[ReadinessCategory, float] = {
    ReadinessCategory.base: 1,
    ReadinessCategory.projects: 30,
    ReadinessCategory.certifications: 20,
    ReadinessCategory.events: 10,
    ReadinessCategory.consistency: 20,
    ReadinessCategory.skills: 10,
    ReadinessCategory.coding_platforms: 10,
    ReadinessCategory.cgpa: 10,
}

NEUTRAL_CGPA = 5.0
NEUTRAL_CODING_PLATFORMS = 5.0

PROJECT_POINTS = 10
PROJECT_BASE_CAP = 25
PROJECT_TAG_DEPTH_CAP = 5

CERTIFICATION_POINTS = 5
EVENT_POINTS = 3
EVENT_AWARD_DIVISOR = 10
EVENT_AWARD_CAP = 4

LOG_POINTS = 2
LOG_CAP = 10
PLATFORM_POINTS = 2.5
PLATFORM_CAP = 5
STREAK_POINTS = 0.2
STREAK_CAP = 5

SKILL_POINTS = 2


# ============================================================
# DOCUMENT ACCESS HELPERS
# ============================================================

def as_document(student: Any) -> Mapping:
    """Accept a MongoDB document or a pydantic model."""
    if isinstance(student, BaseModel):
        return student.model_dump()
    if isinstance(student, Mapping):
        return student
    raise InvalidShapeError("student", "a mapping", student)


def get_collection(doc: Mapping, field: str) -> List[Mapping]:
    """Fetch an array field. Absent/None -> []; non-list -> InvalidShapeError."""
    items = doc.get(field)
    if items is None:
        return []
    if not isinstance(items, (list, tuple)):
        raise InvalidShapeError(field, "a list", items)
    for item in items:
        if not isinstance(item, Mapping):
            raise InvalidShapeError(f"{field}[]", "an object", item)
    return list(items)


def get_object(doc: Mapping, field: str) -> Optional[Mapping]:
    """Fetch a nested snapshot object. Absent/None -> None."""
    value = doc.get(field)
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise InvalidShapeError(field, "an object", value)
    return value


def get_string_list(doc: Mapping, field: str) -> List[str]:
    values = doc.get(field)
    if values is None:
        return []
    if not isinstance(values, (list, tuple)):
        raise InvalidShapeError(field, "a list of strings", values)
    return [str(v).strip() for v in values if v is not None and str(v).strip()]


def get_tags(project: Mapping) -> List[str]:
    """Lowercased project tags; a non-list `tags` raises InvalidShapeError."""
    return [t.lower() for t in get_string_list(project, "tags")]


def is_verified(item: Mapping) -> bool:
    """Projects carry a `verified` flag; everything carries `status`."""
    return item.get("status") == ItemStatus.verified.value or item.get("verified") is True


def verified_items(doc: Mapping, field: str) -> List[Mapping]:
    return [item for item in get_collection(doc, field) if is_verified(item)]


def parse_date(value: Any) -> Optional[datetime]:
    """Accept datetimes or ISO strings; naive values are treated as UTC."""
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def shared_tag_bonus(projects: List[Mapping]) -> float:
    """Raw depth bonus: for each tag used by 2+ projects, count the repeats."""
    counts = Counter()
    for project in projects:
        tags = set(get_tags(project))
        counts.update(tags)
    return float(sum(count - 1 for count in counts.values() if count >= 2))


# ============================================================
# SUB-SCORES
# ============================================================

def _projects_subscore(doc: Mapping) -> float:
    projects = verified_items(doc, "projects")
    base = min(len(projects) * PROJECT_POINTS, PROJECT_BASE_CAP)
    bonus = min(shared_tag_bonus(projects), PROJECT_TAG_DEPTH_CAP)
    return base + bonus


def _certifications_subscore(doc: Mapping) -> float:
    return float(len(verified_items(doc, "certifications")) * CERTIFICATION_POINTS)


def _events_subscore(doc: Mapping) -> float:
    events = verified_items(doc, "events")
    awarded = sum(
        max(0.0, to_number(e.get("points_awarded"), "events[].points_awarded"))
        for e in events
    )
    return len(events) * EVENT_POINTS + min(awarded / EVENT_AWARD_DIVISOR, EVENT_AWARD_CAP)


def _consistency_subscore(doc: Mapping, now: datetime, window_days: int) -> float:
    cutoff = now - timedelta(days=window_days)
    recent_logs = []
    for log in get_collection(doc, "coding_logs"):
        logged_at = parse_date(log.get("date") or log.get("created_at"))
        if logged_at is not None and cutoff < logged_at <= now:
            recent_logs.append(log)

    platforms = {
        str(log.get("platform")).strip().lower()
        for log in recent_logs
        if log.get("platform")
    }
    streak = max(0.0, to_number(doc.get("streak_days"), "streak_days"))

    return (
        min(len(recent_logs) * LOG_POINTS, LOG_CAP)
        + min(len(platforms) * PLATFORM_POINTS, PLATFORM_CAP)
        + min(streak * STREAK_POINTS, STREAK_CAP)
    )


def _skills_subscore(doc: Mapping) -> float:
    unique_skills = {s.lower() for s in get_string_list(doc, "skills")}
    return float(len(unique_skills) * SKILL_POINTS)


def _coding_platforms_subscore(doc: Mapping) -> float:
    stats = get_object(doc, "leetcode_stats")
    if stats is None:
        return NEUTRAL_CODING_PLATFORMS

    easy = to_number(stats.get("easy"), "leetcode_stats.easy")
    medium = to_number(stats.get("medium"), "leetcode_stats.medium")
    hard = to_number(stats.get("hard"), "leetcode_stats.hard")
    return max(0.0, easy * 0.05 + medium * 0.1 + hard * 0.25)


def _cgpa_subscore(doc: Mapping) -> float:
    return to_number(doc.get("cgpa"), "cgpa", default=NEUTRAL_CGPA)


# ============================================================
# PUBLIC API
# ============================================================

def aggregate_activity(
    student: Any,
    now: Optional[datetime] = None,
    consistency_window_days: int = 30
) -> Dict[ReadinessCategory, float]:
    """
    Compute every readiness sub-score for a student.

    Args:
        student: Student document (dict) or pydantic model
        now: Reference time for the coding-log window (defaults to utcnow)
        consistency_window_days: How far back a coding log counts as recent

    Returns:
        Mapping of ReadinessCategory -> sub-score, each within SUBSCORE_CAPS

    Raises:
        InvalidShapeError: a collection or numeric field has the wrong shape
    """
    doc = as_document(student)
    now = parse_date(now) or datetime.now(timezone.utc)

    raw = {
        ReadinessCategory.base: 1.0,
        ReadinessCategory.projects: _projects_subscore(doc),
        ReadinessCategory.certifications: _certifications_subscore(doc),
        ReadinessCategory.events: _events_subscore(doc),
        ReadinessCategory.consistency: _consistency_subscore(doc, now, consistency_window_days),
        ReadinessCategory.skills: _skills_subscore(doc),
        ReadinessCategory.coding_platforms: _coding_platforms_subscore(doc),
        ReadinessCategory.cgpa: _cgpa_subscore(doc),
    }

    return {
        category: clamp(value, 0.0, SUBSCORE_CAPS[category])
        for category, value in raw.items()
    }
