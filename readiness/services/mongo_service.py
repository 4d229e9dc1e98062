"""
MongoDB Service - repository operations for the document collections.

Collections in this database:
1. students - Student profile, activity arrays, snapshots, score, history
2. jobs     - Job requirements plus the cached matched_students list

Student writes are versioned: save() only succeeds when the stored
`version` still equals the one that was loaded, so two concurrent
mutations can never both write a score computed from stale activity.
History/timeline entries are appended with $push, never rewritten.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from readiness.core.config import get_settings
from readiness.core.errors import StorageError
from readiness.db.memory import APPEND_ONLY_FIELDS, InMemoryJobRepository, InMemoryStudentRepository
from readiness.db.mongodb import COLLECTIONS, get_collection
from readiness.services.history_service import HistoryEntries

logger = logging.getLogger(__name__)


# ============================================================
# HELPER: Convert ObjectId to string for JSON serialization
# ============================================================

def serialize_doc(doc: dict) -> dict:
    """Convert MongoDB document to JSON-serializable dict."""
    if doc is None:
        return None
    if "_id" in doc:
        doc["_id"] = str(doc["_id"])
    return doc


def serialize_docs(docs: list) -> list:
    """Convert list of MongoDB documents to JSON-serializable list."""
    return [serialize_doc(doc) for doc in docs]


def id_filter(doc_id: str) -> Dict[str, Any]:
    """Match ObjectId keys as well as plain string keys."""
    if ObjectId.is_valid(str(doc_id)):
        return {"_id": ObjectId(str(doc_id))}
    return {"_id": str(doc_id)}


# ============================================================
# STUDENTS COLLECTION
# ============================================================

class StudentDocumentService:
    """
    Handles student document storage.
    One document holds the whole student: profile, activity, score, history.
    """

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["students"])

    def create(self, doc: Dict[str, Any]) -> str:
        """Insert a new student document. Returns its id as string."""
        doc = dict(doc)
        doc.pop("_id", None)
        doc.setdefault("version", 0)
        try:
            result = self.collection.insert_one(doc)
        except PyMongoError as e:
            raise StorageError(f"Could not create student: {e}") from e
        return str(result.inserted_id)

    def get(self, student_id: str) -> Optional[dict]:
        try:
            doc = self.collection.find_one(id_filter(student_id))
        except PyMongoError as e:
            raise StorageError(f"Could not load student {student_id}: {e}") from e
        return serialize_doc(doc)

    def list_all(self) -> List[dict]:
        try:
            return serialize_docs(list(self.collection.find({})))
        except PyMongoError as e:
            raise StorageError(f"Could not list students: {e}") from e

    def save(self, doc: Dict[str, Any], expected_version: int) -> bool:
        """
        Write activity + score in a single update guarded by version.

        Returns:
            False when another writer got there first
        """
        fields = {
            key: value for key, value in doc.items()
            if key not in ("_id", "version") and key not in APPEND_ONLY_FIELDS
        }
        query = id_filter(doc["_id"])
        query["version"] = expected_version
        try:
            result = self.collection.update_one(
                query,
                {"$set": fields, "$inc": {"version": 1}}
            )
        except PyMongoError as e:
            raise StorageError(f"Could not save student {doc['_id']}: {e}") from e
        return result.matched_count == 1

    def append_history(self, student_id: str, entries: HistoryEntries) -> None:
        push = {"readiness_history": entries.history}
        if entries.timeline is not None:
            push["growth_timeline"] = entries.timeline
        try:
            self.collection.update_one(id_filter(student_id), {"$push": push})
        except PyMongoError as e:
            raise StorageError(f"Could not append history for {student_id}: {e}") from e


# ============================================================
# JOBS COLLECTION
# ============================================================

class JobDocumentService:
    """
    Handles job storage, including the matched_students cache.
    """

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["jobs"])

    def create(self, doc: Dict[str, Any]) -> str:
        doc = dict(doc)
        doc.pop("_id", None)
        try:
            result = self.collection.insert_one(doc)
        except PyMongoError as e:
            raise StorageError(f"Could not create job: {e}") from e
        return str(result.inserted_id)

    def get(self, job_id: str) -> Optional[dict]:
        try:
            doc = self.collection.find_one(id_filter(job_id))
        except PyMongoError as e:
            raise StorageError(f"Could not load job {job_id}: {e}") from e
        return serialize_doc(doc)

    def list_all(self) -> List[dict]:
        try:
            return serialize_docs(list(self.collection.find({}).sort("posted_at", -1)))
        except PyMongoError as e:
            raise StorageError(f"Could not list jobs: {e}") from e

    def update_fields(self, job_id: str, fields: Dict[str, Any]) -> None:
        """$set only the given fields, so a concurrent replace_matches survives."""
        fields = dict(fields)
        fields.pop("_id", None)
        fields["updated_at"] = datetime.now(timezone.utc)
        try:
            self.collection.update_one(id_filter(job_id), {"$set": fields})
        except PyMongoError as e:
            raise StorageError(f"Could not update job {job_id}: {e}") from e

    def replace_matches(self, job_id: str, matches: List[Dict[str, Any]], matched_at=None) -> None:
        """Single $set of the whole list: readers see the old or the new cache."""
        try:
            self.collection.update_one(
                id_filter(job_id),
                {"$set": {
                    "matched_students": matches,
                    "match_count": len(matches),
                    "last_matched_at": matched_at,
                }}
            )
        except PyMongoError as e:
            raise StorageError(f"Could not store matches for job {job_id}: {e}") from e


# ============================================================
# CONVENIENCE FUNCTIONS: Pick the configured backend
# ============================================================

_memory_students: Optional[InMemoryStudentRepository] = None
_memory_jobs: Optional[InMemoryJobRepository] = None


def get_student_repository():
    """
    Student repository for the configured STORAGE_BACKEND.

    Usage:
        repo = get_student_repository()
        repo.get(student_id)
    """
    global _memory_students
    if get_settings().storage_backend == "memory":
        if _memory_students is None:
            _memory_students = InMemoryStudentRepository()
        return _memory_students
    return StudentDocumentService()


def get_job_repository():
    global _memory_jobs
    if get_settings().storage_backend == "memory":
        if _memory_jobs is None:
            _memory_jobs = InMemoryJobRepository()
        return _memory_jobs
    return JobDocumentService()
