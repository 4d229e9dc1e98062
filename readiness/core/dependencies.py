"""
FastAPI dependencies - service wiring for the routes.

Routes depend on these instead of building services themselves, so tests
can swap the storage backend with app.dependency_overrides.
"""

from fastapi import Depends

from readiness.core.config import Settings, get_settings
from readiness.services.matching_service import JobMatchingService
from readiness.services.mongo_service import get_job_repository, get_student_repository
from readiness.services.student_service import StudentService


def get_student_repo():
    return get_student_repository()


def get_job_repo():
    return get_job_repository()


def get_student_service(
    repository=Depends(get_student_repo),
    settings: Settings = Depends(get_settings)
) -> StudentService:
    return StudentService(repository, settings)


def get_matching_service(
    student_repository=Depends(get_student_repo),
    job_repository=Depends(get_job_repo),
    settings: Settings = Depends(get_settings)
) -> JobMatchingService:
    return JobMatchingService(student_repository, job_repository, settings)
