"""
History / Timeline Recorder

Append-only bookkeeping run after the calculator:
- readiness_history: {score, calculated_at} for every meaningful call
- growth_timeline:   {date, readiness_score, reason} when a reason is given

A call is meaningful when the caller passes a reason (sync, verification,
interview, profile save) or when the score differs from the last recorded
one. Plain recomputations that land on the same score record nothing.

Entries are never edited or removed here.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, MutableMapping, Optional

from readiness.core.errors import InvalidShapeError


@dataclass(frozen=True)
class HistoryEntries:
    """What one record() call appended (timeline is None without a reason)."""
    history: Dict[str, Any]
    timeline: Optional[Dict[str, Any]] = None


def last_recorded_score(student: MutableMapping) -> Optional[int]:
    history = student.get("readiness_history") or []
    if not history:
        return None
    return history[-1].get("score")


def is_meaningful(student: MutableMapping, new_score: int, reason: Optional[str] = None) -> bool:
    if reason:
        return True
    return last_recorded_score(student) != new_score


def build_entries(
    new_score: int,
    reason: Optional[str] = None,
    now: Optional[datetime] = None
) -> HistoryEntries:
    now = now or datetime.now(timezone.utc)
    history = {"score": int(new_score), "calculated_at": now}
    timeline = None
    if reason:
        timeline = {"date": now, "readiness_score": int(new_score), "reason": reason}
    return HistoryEntries(history=history, timeline=timeline)


def record(
    student: MutableMapping,
    new_score: int,
    reason: Optional[str] = None,
    now: Optional[datetime] = None
) -> Optional[HistoryEntries]:
    """
    Append history (and timeline) entries to an in-memory student document.

    Args:
        student: Student document, mutated in place
        new_score: Score just produced by the calculator
        reason: Human-readable trigger; None for silent recomputes
        now: Timestamp for the entries

    Returns:
        The appended entries, or None when the call did not pass the gate
    """
    if not is_meaningful(student, new_score, reason):
        return None

    for field in ("readiness_history", "growth_timeline"):
        current = student.get(field)
        if current is not None and not isinstance(current, list):
            raise InvalidShapeError(field, "a list", current)

    entries = build_entries(new_score, reason, now)
    student.setdefault("readiness_history", []).append(entries.history)
    if entries.timeline is not None:
        student.setdefault("growth_timeline", []).append(entries.timeline)
    return entries
