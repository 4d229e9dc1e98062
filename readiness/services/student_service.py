"""
Student Service

PURPOSE:
Every change to a student goes through one unit of work:

    load -> mutate -> recompute readiness -> versioned save -> history push

The activity change and the new score are written together in a single
update guarded by the document's `version`. If another writer saved first,
the whole cycle reruns on the fresh document (up to max_update_retries).
streak_days is refreshed from the activity dates on every cycle.
History and timeline entries are pushed afterwards as a best effort: a
failure there is logged and never undoes the saved score.

Built-in mutations:
- add / remove projects, certifications, events
- add coding logs
- verify / reject an item (admin)
- sync GitHub / LeetCode snapshots
- complete a mock interview
- save profile fields
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, MutableMapping, Optional

from bson import ObjectId
from pymongo.errors import PyMongoError

from readiness.core.config import Settings, get_settings
from readiness.core.errors import (
    ConcurrentUpdateError,
    InvalidShapeError,
    ItemNotFoundError,
    StorageError,
    StudentNotFoundError,
)
from readiness.schemas.schemas import ActivityCollection, ItemStatus, VerificationAction
from readiness.services import history_service
from readiness.services.aggregator import get_collection, get_object, verified_items
from readiness.services.readiness_service import calculate_readiness_score
from readiness.services.streak_service import calculate_streak
from readiness.utils.numbers import round_half_up, to_number

logger = logging.getLogger(__name__)

VERIFIABLE_COLLECTIONS = (
    ActivityCollection.projects.value,
    ActivityCollection.certifications.value,
    ActivityCollection.events.value,
)

ITEM_LABELS = {
    "projects": ("Project", "title"),
    "certifications": ("Certification", "name"),
    "events": ("Event", "name"),
    "coding_logs": ("Coding log", "platform"),
}

COMMUNICATION_FIELDS = {
    "clarity": "avg_clarity",
    "structure": "avg_structure",
    "conciseness": "avg_conciseness",
}


# ============================================================
# ARRAY HELPERS
# ============================================================

def find_item(items: List[Mapping], item_id: str) -> Optional[Mapping]:
    """Return the element whose `id` equals item_id, or None."""
    for item in items:
        if str(item.get("id")) == str(item_id):
            return item
    return None


def remove_item(items: List[Mapping], item_id: str) -> Optional[Mapping]:
    """Remove (in place) and return the element with `id` == item_id."""
    for index, item in enumerate(items):
        if str(item.get("id")) == str(item_id):
            return items.pop(index)
    return None


def _activity_list(doc: MutableMapping, collection: str) -> List[Dict[str, Any]]:
    items = get_collection(doc, collection)
    doc[collection] = items
    return items


def new_student_document(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Fresh student with empty activity and zeroed counters."""
    doc = {
        "name": data.get("name"),
        "college": data.get("college"),
        "branch": data.get("branch"),
        "cgpa": data.get("cgpa"),
        "skills": list(data.get("skills") or []),
        "projects": [],
        "certifications": [],
        "events": [],
        "coding_logs": [],
        "leetcode_stats": None,
        "github_stats": None,
        "interview_stats": None,
        "streak_days": 0,
        "last_active_at": None,
        "readiness_score": 0,
        "readiness_history": [],
        "growth_timeline": [],
        "version": 0,
        "created_at": datetime.now(timezone.utc),
    }
    # Unique email index only covers string values
    if data.get("email") is not None:
        doc["email"] = data["email"]
    return doc


# ============================================================
# INTERVIEW FOLDING
# ============================================================

def _running_average(previous: Optional[float], value: float, count: int) -> float:
    if previous is None or count <= 1:
        return value
    return (previous * (count - 1) + value) / count


def fold_interview(stats: Optional[Mapping], answers: List[Mapping]) -> Dict[str, Any]:
    """
    Fold one completed session's per-question feedback into interview_stats.

    avg_score is the running average of session scores; communication
    averages only move for dimensions the session actually scored.
    """
    stats = dict(stats or {})
    communication = dict(stats.get("communication") or {})

    scores = [to_number(a.get("score"), "answers[].score") for a in answers]
    session_score = sum(scores) / len(scores)

    completed = int(to_number(stats.get("completed_sessions"), "interview_stats.completed_sessions")) + 1
    total = int(to_number(stats.get("total_sessions"), "interview_stats.total_sessions")) + 1
    previous_avg = to_number(stats.get("avg_score"), "interview_stats.avg_score", default=None)

    stats["total_sessions"] = max(total, completed)
    stats["completed_sessions"] = completed
    stats["avg_score"] = round_half_up(_running_average(previous_avg, session_score, completed), 1)
    stats["best_score"] = max(
        to_number(stats.get("best_score"), "interview_stats.best_score"),
        round_half_up(session_score, 1)
    )

    for answer_key, stats_key in COMMUNICATION_FIELDS.items():
        values = [
            to_number(a.get(answer_key), f"answers[].{answer_key}")
            for a in answers if a.get(answer_key) is not None
        ]
        if not values:
            continue
        session_value = sum(values) / len(values)
        previous = to_number(communication.get(stats_key), f"communication.{stats_key}", default=None)
        communication[stats_key] = round_half_up(_running_average(previous, session_value, completed), 1)

    stats["communication"] = communication
    return stats


# ============================================================
# LEADERBOARD
# ============================================================

def total_solved(student: Mapping) -> int:
    leetcode = get_object(student, "leetcode_stats") or {}
    logged = sum(
        to_number(log.get("problems_solved"), "coding_logs[].problems_solved")
        for log in get_collection(student, "coding_logs")
    )
    return int(to_number(leetcode.get("total_solved"), "leetcode_stats.total_solved") + logged)


def build_leaderboard(students: List[Mapping], limit: int = 50) -> List[Dict[str, Any]]:
    """
    Rank by readiness, problems solved, streak, verified projects (desc),
    then id.
    """
    def sort_key(student):
        return (
            -to_number(student.get("readiness_score"), "readiness_score"),
            -total_solved(student),
            -to_number(student.get("streak_days"), "streak_days"),
            -len(verified_items(student, "projects")),
            str(student.get("_id", "")),
        )

    ranked = sorted(students, key=sort_key)[:limit]
    return [
        {
            "rank": index + 1,
            "id": str(student.get("_id")),
            "name": student.get("name") or "",
            "college": student.get("college") or "",
            "score": int(to_number(student.get("readiness_score"), "readiness_score")),
            "streak": int(to_number(student.get("streak_days"), "streak_days")),
            "projects": len(verified_items(student, "projects")),
            "total_solved": total_solved(student),
        }
        for index, student in enumerate(ranked)
    ]


# ============================================================
# SERVICE
# ============================================================

@dataclass
class MutationResult:
    student: Dict[str, Any]
    readiness: Any
    value: Any = None


class StudentService:
    """
    Student operations backed by a student repository
    (StudentDocumentService or InMemoryStudentRepository).
    """

    def __init__(self, repository, settings: Optional[Settings] = None):
        self.repository = repository
        self.settings = settings or get_settings()

    # -------- reads --------

    def get_student(self, student_id: str) -> Dict[str, Any]:
        doc = self.repository.get(student_id)
        if doc is None:
            raise StudentNotFoundError(student_id)
        return doc

    def preview_readiness(self, student_id: str):
        """Compute the current score without persisting anything."""
        return calculate_readiness_score(
            self.get_student(student_id),
            consistency_window_days=self.settings.consistency_window_days
        )

    def leaderboard(self, limit: int = 50) -> List[Dict[str, Any]]:
        return build_leaderboard(self.repository.list_all(), limit=limit)

    # -------- unit of work --------

    def create_student(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        doc = new_student_document(data)
        result = calculate_readiness_score(doc, consistency_window_days=self.settings.consistency_window_days)
        doc["readiness_score"] = result.total
        history_service.record(doc, result.total, reason="Joined the platform")
        student_id = self.repository.create(doc)
        doc["_id"] = student_id
        logger.info("Created student %s with readiness %d", student_id, result.total)
        return doc

    def apply_mutation(
        self,
        student_id: str,
        mutate: Callable[[Dict[str, Any]], Any],
        reason: Optional[str] = None
    ) -> MutationResult:
        """
        Run `mutate` on the stored student and persist it with a fresh score.

        Raises:
            StudentNotFoundError: unknown student
            InvalidShapeError: stored data is malformed (the activity change
                is still saved, with the last known score)
            ConcurrentUpdateError: still conflicting after all retries
        """
        attempts = max(1, self.settings.max_update_retries)
        for attempt in range(1, attempts + 1):
            doc = self.get_student(student_id)
            expected_version = doc.get("version", 0)
            value = mutate(doc)
            now = datetime.now(timezone.utc)
            doc["updated_at"] = now

            try:
                doc["streak_days"], doc["last_active_at"] = calculate_streak(doc, today=now.date())
                result = calculate_readiness_score(
                    doc, now=now, consistency_window_days=self.settings.consistency_window_days
                )
            except InvalidShapeError:
                logger.error("Malformed data for student %s; keeping score %s",
                             student_id, doc.get("readiness_score"))
                if self.repository.save(doc, expected_version):
                    raise
                logger.warning("Version conflict on student %s (attempt %d)", student_id, attempt)
                continue

            doc["readiness_score"] = result.total
            if not self.repository.save(doc, expected_version):
                logger.warning("Version conflict on student %s (attempt %d)", student_id, attempt)
                continue

            doc["version"] = expected_version + 1
            self._record_history(doc, result.total, reason, now)
            return MutationResult(student=doc, readiness=result, value=value)

        raise ConcurrentUpdateError(
            f"Student {student_id} kept changing; gave up after {attempts} attempts"
        )

    def _record_history(self, doc: Dict[str, Any], score: int, reason: Optional[str], now: datetime) -> None:
        try:
            entries = history_service.record(doc, score, reason=reason, now=now)
            if entries is not None:
                self.repository.append_history(doc["_id"], entries)
        except (InvalidShapeError, StorageError, PyMongoError) as e:
            logger.warning("Could not record readiness history for %s: %s", doc.get("_id"), e)

    # -------- mutations --------

    def recalculate(self, student_id: str) -> MutationResult:
        return self.apply_mutation(student_id, lambda doc: None)

    def update_profile(self, student_id: str, fields: Mapping[str, Any]) -> MutationResult:
        allowed = ("name", "email", "college", "branch", "cgpa", "skills")

        def mutate(doc):
            for key in allowed:
                if key not in fields:
                    continue
                # null only clears cgpa; other fields keep their value
                if fields[key] is None and key != "cgpa":
                    continue
                doc[key] = fields[key]

        return self.apply_mutation(student_id, mutate, reason="Profile updated")

    def add_item(self, student_id: str, collection: str, payload: Mapping[str, Any]) -> MutationResult:
        """Add a project / certification / event; new items start pending."""
        if collection not in VERIFIABLE_COLLECTIONS:
            raise InvalidShapeError("collection", f"one of {', '.join(VERIFIABLE_COLLECTIONS)}", collection)

        def mutate(doc):
            now = datetime.now(timezone.utc)
            item = dict(payload)
            item["id"] = str(ObjectId())
            item["status"] = ItemStatus.pending.value
            item["created_at"] = now
            if collection == ActivityCollection.projects.value:
                item["verified"] = False
                item.setdefault("submitted_at", now)
            _activity_list(doc, collection).append(item)
            return item

        return self.apply_mutation(student_id, mutate)

    def remove_activity_item(self, student_id: str, collection: str, item_id: str) -> MutationResult:
        label, _ = ITEM_LABELS.get(collection, (collection, "id"))

        def mutate(doc):
            removed = remove_item(_activity_list(doc, collection), item_id)
            if removed is None:
                raise ItemNotFoundError(collection, item_id)
            return removed

        return self.apply_mutation(student_id, mutate, reason=f"{label} removed")

    def add_coding_log(self, student_id: str, payload: Mapping[str, Any]) -> MutationResult:
        def mutate(doc):
            log = dict(payload)
            log["id"] = str(ObjectId())
            log["created_at"] = datetime.now(timezone.utc)
            if log.get("date") is None:
                log["date"] = log["created_at"]
            _activity_list(doc, ActivityCollection.coding_logs.value).append(log)
            return log

        return self.apply_mutation(student_id, mutate)

    def verify_item(
        self,
        student_id: str,
        collection: str,
        item_id: str,
        action: VerificationAction,
        notes: Optional[str] = None
    ) -> MutationResult:
        if collection not in VERIFIABLE_COLLECTIONS:
            raise InvalidShapeError("collection", f"one of {', '.join(VERIFIABLE_COLLECTIONS)}", collection)

        action = VerificationAction(action)
        label, title_field = ITEM_LABELS[collection]
        status = ItemStatus.verified if action == VerificationAction.verify else ItemStatus.rejected

        def mutate(doc):
            item = find_item(_activity_list(doc, collection), item_id)
            if item is None:
                raise ItemNotFoundError(collection, item_id)
            item["status"] = status.value
            if collection == ActivityCollection.projects.value:
                item["verified"] = status == ItemStatus.verified
            item["verified_at"] = datetime.now(timezone.utc)
            if notes:
                item["verification_notes"] = notes
            return item

        result = self.apply_mutation(student_id, mutate, reason=f"{label} {status.value}")
        logger.info("%s '%s' %s for student %s",
                    label, result.value.get(title_field) or item_id, status.value, student_id)
        return result

    def sync_github(self, student_id: str, stats: Mapping[str, Any]) -> MutationResult:
        def mutate(doc):
            doc["github_stats"] = {**dict(stats), "last_synced_at": datetime.now(timezone.utc)}

        return self.apply_mutation(student_id, mutate, reason="GitHub stats synced")

    def sync_leetcode(self, student_id: str, stats: Mapping[str, Any]) -> MutationResult:
        def mutate(doc):
            doc["leetcode_stats"] = {**dict(stats), "last_synced_at": datetime.now(timezone.utc)}

        return self.apply_mutation(student_id, mutate, reason="LeetCode stats synced")

    def complete_interview(self, student_id: str, answers: List[Mapping[str, Any]]) -> MutationResult:
        if not answers:
            raise InvalidShapeError("answers", "a non-empty list")

        def mutate(doc):
            doc["interview_stats"] = fold_interview(get_object(doc, "interview_stats"), answers)
            return doc["interview_stats"]

        return self.apply_mutation(student_id, mutate, reason="Mock interview completed")
