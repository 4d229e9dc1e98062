"""
Job Routes

POST /jobs                                        - Create job posting
GET  /jobs/{job_id}                               - Get job details
PUT  /jobs/{job_id}                               - Update job (clears matches)
POST /jobs/{job_id}/match                         - Run matching, replace cache
GET  /jobs/{job_id}/matches                       - Cached matches
GET  /jobs/{job_id}/matches/{student_id}/explain  - Why this student matched
GET  /jobs/{job_id}/stats                         - Match score statistics
"""

from fastapi import APIRouter, Depends, Query

from readiness.core.dependencies import get_job_repo, get_matching_service
from readiness.core.errors import JobNotFoundError
from readiness.services.matching_service import JobMatchingService
from readiness.schemas.schemas import (
    CATEGORY_LABELS, JobCreate, JobResponse, JobUpdate, JobUpdateResponse,
    MatchExplanation, MatchListResponse, MatchRunResponse, MatchStatsResponse
)

router = APIRouter(prefix="/jobs", tags=["Jobs"])


@router.post("", response_model=JobResponse, status_code=201)
async def create_job(job: JobCreate, repository=Depends(get_job_repo)):
    doc = job.model_dump()
    doc["status"] = job.status.value
    doc.update({"matched_students": [], "match_count": 0, "last_matched_at": None})
    doc["_id"] = repository.create(doc)
    return doc


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(job_id: str, repository=Depends(get_job_repo)):
    job = repository.get(job_id)
    if job is None:
        raise JobNotFoundError(job_id)
    return job


@router.put("/{job_id}", response_model=JobUpdateResponse)
async def update_job(
    job_id: str,
    data: JobUpdate,
    service: JobMatchingService = Depends(get_matching_service)
):
    """
    Update a job. Changing skills or thresholds clears the cached matches;
    run POST /jobs/{job_id}/match to rebuild them.
    """
    updates = data.model_dump(exclude_none=True)
    if "status" in updates:
        updates["status"] = updates["status"].value
    cleared = service.update_job(job_id, updates)
    return JobUpdateResponse(job_id=job_id, matches_cleared=cleared)


@router.post("/{job_id}/match", response_model=MatchRunResponse)
async def run_matching(job_id: str, service: JobMatchingService = Depends(get_matching_service)):
    return service.run_matching(job_id)


@router.get("/{job_id}/matches", response_model=MatchListResponse)
async def get_matches(
    job_id: str,
    limit: int = Query(50, ge=1, le=100),
    min_score: int = Query(0, ge=0, le=100),
    service: JobMatchingService = Depends(get_matching_service)
):
    matches = service.get_matches(job_id, limit=limit, min_score=min_score)
    return MatchListResponse(job_id=job_id, total_matches=len(matches), matches=matches)


@router.get("/{job_id}/matches/{student_id}/explain", response_model=MatchExplanation)
async def explain_match(
    job_id: str,
    student_id: str,
    service: JobMatchingService = Depends(get_matching_service)
):
    entry = service.explain_match(job_id, student_id)
    breakdown = entry.get("score_breakdown") or {}
    return MatchExplanation(
        job_id=job_id,
        student_id=student_id,
        match_score=entry.get("match_score", 0),
        match_reason=entry.get("match_reason") or "",
        score_breakdown=breakdown,
        labels={key: CATEGORY_LABELS.get(key, key) for key in breakdown},
        skills_matched=entry.get("skills_matched") or [],
        skills_missing=entry.get("skills_missing") or [],
    )


@router.get("/{job_id}/stats", response_model=MatchStatsResponse)
async def match_stats(job_id: str, service: JobMatchingService = Depends(get_matching_service)):
    return MatchStatsResponse(job_id=job_id, **service.match_stats(job_id))
