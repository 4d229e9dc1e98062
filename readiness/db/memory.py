"""
In-memory document store.

Same contract as the MongoDB repositories in services/mongo_service.py,
used when STORAGE_BACKEND=memory (local runs, tests). Documents are
deep-copied on the way in and out so callers never share state with the
store, and a single lock makes each operation atomic.
"""
import copy
import threading
from typing import Any, Dict, List, Optional

from bson import ObjectId

from readiness.services.history_service import HistoryEntries

# Array fields written only through append_history
APPEND_ONLY_FIELDS = ("readiness_history", "growth_timeline")


class InMemoryStudentRepository:

    def __init__(self):
        self._docs: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def create(self, doc: Dict[str, Any]) -> str:
        doc = copy.deepcopy(doc)
        student_id = str(doc.get("_id") or ObjectId())
        doc["_id"] = student_id
        doc.setdefault("version", 0)
        with self._lock:
            self._docs[student_id] = doc
        return student_id

    def get(self, student_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            doc = self._docs.get(str(student_id))
            return copy.deepcopy(doc) if doc is not None else None

    def list_all(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [copy.deepcopy(doc) for doc in self._docs.values()]

    def save(self, doc: Dict[str, Any], expected_version: int) -> bool:
        """
        Replace everything but the append-only arrays, only if the stored
        version still equals expected_version. Returns False on conflict.
        """
        student_id = str(doc["_id"])
        with self._lock:
            current = self._docs.get(student_id)
            if current is None or current.get("version", 0) != expected_version:
                return False
            updated = copy.deepcopy(doc)
            for field in APPEND_ONLY_FIELDS:
                updated[field] = current.get(field, [])
            updated["version"] = expected_version + 1
            self._docs[student_id] = updated
            return True

    def append_history(self, student_id: str, entries: HistoryEntries) -> None:
        with self._lock:
            current = self._docs.get(str(student_id))
            if current is None:
                return
            current.setdefault("readiness_history", []).append(copy.deepcopy(entries.history))
            if entries.timeline is not None:
                current.setdefault("growth_timeline", []).append(copy.deepcopy(entries.timeline))


class InMemoryJobRepository:

    def __init__(self):
        self._docs: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def create(self, doc: Dict[str, Any]) -> str:
        doc = copy.deepcopy(doc)
        job_id = str(doc.get("_id") or ObjectId())
        doc["_id"] = job_id
        with self._lock:
            self._docs[job_id] = doc
        return job_id

    def get(self, job_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            doc = self._docs.get(str(job_id))
            return copy.deepcopy(doc) if doc is not None else None

    def list_all(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [copy.deepcopy(doc) for doc in self._docs.values()]

    def update_fields(self, job_id: str, fields: Dict[str, Any]) -> None:
        """Set only the given fields; everything else stays as stored."""
        with self._lock:
            current = self._docs.get(str(job_id))
            if current is None:
                return
            current.update(copy.deepcopy(fields))

    def replace_matches(self, job_id: str, matches: List[Dict[str, Any]], matched_at=None) -> None:
        """Swap the whole cache in one step; readers never see a partial list."""
        with self._lock:
            current = self._docs.get(str(job_id))
            if current is None:
                return
            current["matched_students"] = copy.deepcopy(matches)
            current["match_count"] = len(matches)
            current["last_matched_at"] = matched_at
