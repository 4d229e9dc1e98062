"""
Streak Calculator

Counts consecutive active days ending today or yesterday.

Activity dates come from:
- coding logs (date)
- projects (submitted_at)
- certifications (issued_date)
- events (date)
- GitHub / LeetCode snapshots (last_synced_at)

If the latest activity is older than yesterday the streak is 0.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional, Set, Tuple

from readiness.services.aggregator import as_document, get_collection, get_object, parse_date


ACTIVITY_DATE_FIELDS = {
    "coding_logs": ("date", "created_at"),
    "projects": ("submitted_at", "created_at"),
    "certifications": ("issued_date", "created_at"),
    "events": ("date", "created_at"),
}

SNAPSHOT_DATE_FIELDS = {
    "leetcode_stats": "last_synced_at",
    "github_stats": "last_synced_at",
}


def _add_day(days: Set[date], value: Any) -> bool:
    moment = parse_date(value)
    if moment is None:
        return False
    days.add(moment.astimezone(timezone.utc).date())
    return True


def collect_activity_days(student: Any) -> Set[date]:
    doc = as_document(student)
    days = set()
    for collection, fields in ACTIVITY_DATE_FIELDS.items():
        for item in get_collection(doc, collection):
            for field in fields:
                if _add_day(days, item.get(field)):
                    break
    for snapshot, field in SNAPSHOT_DATE_FIELDS.items():
        stats = get_object(doc, snapshot)
        if stats is not None:
            _add_day(days, stats.get(field))
    return days


def calculate_streak(student: Any, today: Optional[date] = None) -> Tuple[int, Optional[datetime]]:
    """
    Returns:
        (streak_days, last_active_at) where last_active_at is midnight UTC of
        the most recent active day, or None with no activity at all
    """
    days = collect_activity_days(student)
    if not days:
        return 0, None

    today = today or datetime.now(timezone.utc).date()
    latest = max(days)
    last_active_at = datetime(latest.year, latest.month, latest.day, tzinfo=timezone.utc)

    if latest < today - timedelta(days=1):
        return 0, last_active_at

    streak = 0
    cursor = latest
    while cursor in days:
        streak += 1
        cursor -= timedelta(days=1)

    return streak, last_active_at
