"""
Student Routes

POST   /students                                  - Create student
GET    /students/leaderboard                      - Ranked students
GET    /students/{student_id}                     - Get student
GET    /students/{student_id}/readiness           - Compute score (not saved)
POST   /students/{student_id}/readiness/recalculate - Recompute and save
PUT    /students/{student_id}/profile             - Update profile
POST   /students/{student_id}/projects            - Add project (pending)
POST   /students/{student_id}/certifications      - Add certification (pending)
POST   /students/{student_id}/events              - Add event (pending)
DELETE /students/{student_id}/{collection}/{item_id} - Remove item
POST   /students/{student_id}/coding-logs         - Log coding activity
PUT    /students/{student_id}/stats/github        - Sync GitHub snapshot
PUT    /students/{student_id}/stats/leetcode      - Sync LeetCode snapshot
POST   /students/{student_id}/interviews          - Complete mock interview
"""

from fastapi import APIRouter, Depends, Query
from typing import List

from readiness.core.dependencies import get_student_service
from readiness.services.student_service import StudentService
from readiness.schemas.schemas import (
    CATEGORY_LABELS, ActivityCollection, CertificationCreate, CodingLogCreate,
    EventCreate, GitHubStats, InterviewCompletion, LeaderboardEntry, LeetCodeStats,
    MessageResponse, ProfileUpdate, ProjectCreate, ReadinessResponse,
    StudentCreate, StudentResponse
)

router = APIRouter(prefix="/students", tags=["Students"])


def readiness_response(student_id: str, result) -> ReadinessResponse:
    """Attach display names to the canonical breakdown keys."""
    return ReadinessResponse(
        student_id=student_id,
        score=result.total,
        breakdown=dict(result.breakdown),
        labels={key: CATEGORY_LABELS.get(key, key) for key in result.breakdown}
    )


@router.post("", response_model=StudentResponse, status_code=201)
async def create_student(data: StudentCreate, service: StudentService = Depends(get_student_service)):
    """Create a student. The initial readiness score is computed immediately."""
    return service.create_student(data.model_dump())


@router.get("/leaderboard", response_model=List[LeaderboardEntry])
async def leaderboard(
    limit: int = Query(50, ge=1, le=200),
    service: StudentService = Depends(get_student_service)
):
    return service.leaderboard(limit=limit)


@router.get("/{student_id}", response_model=StudentResponse)
async def get_student(student_id: str, service: StudentService = Depends(get_student_service)):
    return service.get_student(student_id)


@router.get("/{student_id}/readiness", response_model=ReadinessResponse)
async def get_readiness(student_id: str, service: StudentService = Depends(get_student_service)):
    """Current score and breakdown, computed on the fly. Nothing is saved."""
    return readiness_response(student_id, service.preview_readiness(student_id))


@router.post("/{student_id}/readiness/recalculate", response_model=ReadinessResponse)
async def recalculate_readiness(student_id: str, service: StudentService = Depends(get_student_service)):
    outcome = service.recalculate(student_id)
    return readiness_response(student_id, outcome.readiness)


@router.put("/{student_id}/profile", response_model=StudentResponse)
async def update_profile(
    student_id: str,
    data: ProfileUpdate,
    service: StudentService = Depends(get_student_service)
):
    outcome = service.update_profile(student_id, data.model_dump(exclude_unset=True))
    return outcome.student


@router.post("/{student_id}/projects", response_model=ReadinessResponse, status_code=201)
async def add_project(student_id: str, data: ProjectCreate, service: StudentService = Depends(get_student_service)):
    outcome = service.add_item(student_id, ActivityCollection.projects.value, data.model_dump())
    return readiness_response(student_id, outcome.readiness)


@router.post("/{student_id}/certifications", response_model=ReadinessResponse, status_code=201)
async def add_certification(
    student_id: str,
    data: CertificationCreate,
    service: StudentService = Depends(get_student_service)
):
    outcome = service.add_item(student_id, ActivityCollection.certifications.value, data.model_dump())
    return readiness_response(student_id, outcome.readiness)


@router.post("/{student_id}/events", response_model=ReadinessResponse, status_code=201)
async def add_event(student_id: str, data: EventCreate, service: StudentService = Depends(get_student_service)):
    outcome = service.add_item(student_id, ActivityCollection.events.value, data.model_dump())
    return readiness_response(student_id, outcome.readiness)


@router.post("/{student_id}/coding-logs", response_model=ReadinessResponse, status_code=201)
async def add_coding_log(
    student_id: str,
    data: CodingLogCreate,
    service: StudentService = Depends(get_student_service)
):
    outcome = service.add_coding_log(student_id, data.model_dump())
    return readiness_response(student_id, outcome.readiness)


@router.delete("/{student_id}/{collection}/{item_id}", response_model=MessageResponse)
async def remove_item(
    student_id: str,
    collection: ActivityCollection,
    item_id: str,
    service: StudentService = Depends(get_student_service)
):
    outcome = service.remove_activity_item(student_id, collection.value, item_id)
    return MessageResponse(message=f"Removed. Readiness is now {outcome.readiness.total}")


@router.put("/{student_id}/stats/github", response_model=ReadinessResponse)
async def sync_github(student_id: str, data: GitHubStats, service: StudentService = Depends(get_student_service)):
    outcome = service.sync_github(student_id, data.model_dump())
    return readiness_response(student_id, outcome.readiness)


@router.put("/{student_id}/stats/leetcode", response_model=ReadinessResponse)
async def sync_leetcode(student_id: str, data: LeetCodeStats, service: StudentService = Depends(get_student_service)):
    outcome = service.sync_leetcode(student_id, data.model_dump())
    return readiness_response(student_id, outcome.readiness)


@router.post("/{student_id}/interviews", response_model=ReadinessResponse)
async def complete_interview(
    student_id: str,
    data: InterviewCompletion,
    service: StudentService = Depends(get_student_service)
):
    """Fold the session's per-question feedback into interview_stats."""
    answers = [answer.model_dump() for answer in data.answers]
    outcome = service.complete_interview(student_id, answers)
    return readiness_response(student_id, outcome.readiness)
