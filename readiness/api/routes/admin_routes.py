"""
Admin Routes

POST /admin/verifications/{student_id}/{collection}/{item_id} - Verify or reject
"""

from fastapi import APIRouter, Depends

from readiness.core.dependencies import get_student_service
from readiness.services.student_service import StudentService
from readiness.api.routes.student_routes import readiness_response
from readiness.schemas.schemas import ActivityCollection, ReadinessResponse, VerificationDecision

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post("/verifications/{student_id}/{collection}/{item_id}", response_model=ReadinessResponse)
async def decide_verification(
    student_id: str,
    collection: ActivityCollection,
    item_id: str,
    decision: VerificationDecision,
    service: StudentService = Depends(get_student_service)
):
    """
    Verify or reject a pending project, certification or event.
    Only verified items count toward readiness and job matching.
    """
    outcome = service.verify_item(student_id, collection.value, item_id, decision.action, decision.notes)
    return readiness_response(student_id, outcome.readiness)
