"""
Database module - MongoDB connection and the in-memory store.
"""
from readiness.db.mongodb import get_mongo_db, test_mongo_connection, init_mongo_indexes
from readiness.db.memory import InMemoryJobRepository, InMemoryStudentRepository

__all__ = [
    "get_mongo_db",
    "test_mongo_connection",
    "init_mongo_indexes",
    "InMemoryStudentRepository",
    "InMemoryJobRepository",
]
