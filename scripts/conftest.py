"""
Shared fixtures for the test scripts.

Everything runs against the in-memory store; no MongoDB needed.
"""
import os
import sys
sys.path.insert(0, '.')

os.environ.setdefault("STORAGE_BACKEND", "memory")

import pytest

from readiness.core.config import Settings, get_settings
from readiness.db.memory import InMemoryJobRepository, InMemoryStudentRepository
from readiness.services.student_service import StudentService

get_settings.cache_clear()


@pytest.fixture
def settings():
    return Settings(storage_backend="memory")


@pytest.fixture
def student_repo():
    return InMemoryStudentRepository()


@pytest.fixture
def job_repo():
    return InMemoryJobRepository()


@pytest.fixture
def student_service(student_repo, settings):
    return StudentService(student_repo, settings)


@pytest.fixture
def client(student_repo, job_repo):
    from fastapi.testclient import TestClient

    from readiness.core.dependencies import get_job_repo, get_student_repo
    from readiness.main import app

    app.dependency_overrides[get_student_repo] = lambda: student_repo
    app.dependency_overrides[get_job_repo] = lambda: job_repo
    yield TestClient(app)
    app.dependency_overrides.clear()

