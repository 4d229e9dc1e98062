"""
MongoDB Connection Utility

MongoDB stores:
- Student documents (profile, activity arrays, platform snapshots,
  readiness score, readiness history, growth timeline)
- Job documents (requirements + cached matched_students)

WHY MongoDB for these?
- Document-oriented: a student and all of its activity is one document
- Single-document updates are atomic, so score + activity save together
- No joins needed: matching reads whole student documents
"""
import logging

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from readiness.core.config import get_settings

logger = logging.getLogger(__name__)

# Global client (connection pooling handled internally by pymongo)
_client: MongoClient = None
_db: Database = None


def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client (singleton pattern)"""
    global _client
    if _client is None:
        settings = get_settings()
        _client = MongoClient(settings.mongodb_uri, tz_aware=True)
    return _client


def get_mongo_db() -> Database:
    """Get the readiness database"""
    global _db
    if _db is None:
        client = get_mongo_client()
        _db = client[get_settings().mongodb_db]
    return _db


def get_collection(name: str) -> Collection:
    """
    Get a specific collection.
    Collections we'll use:
    - students: Student documents
    - jobs: Job postings with their match cache
    """
    db = get_mongo_db()
    return db[name]


def test_mongo_connection() -> bool:
    """
    Test if MongoDB is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        client = get_mongo_client()
        # ping command checks connection
        client.admin.command('ping')
        return True
    except PyMongoError as e:
        logger.error("MongoDB connection failed: %s", e)
        return False


# Collection name constants (avoid typos)
COLLECTIONS = {
    "students": "students",
    "jobs": "jobs",
}


def init_mongo_indexes():
    """
    Create indexes for better query performance.
    Call this once during app startup.
    """
    db = get_mongo_db()

    # Leaderboard sorts by score
    db[COLLECTIONS["students"]].create_index([("readiness_score", DESCENDING)])
    db[COLLECTIONS["students"]].create_index(
        "email", unique=True, partialFilterExpression={"email": {"$type": "string"}}
    )

    # Recruiters list jobs by status
    db[COLLECTIONS["jobs"]].create_index([
        ("status", ASCENDING),
        ("posted_at", DESCENDING)
    ])

    logger.info("MongoDB indexes created successfully")
