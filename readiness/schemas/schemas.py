"""
Pydantic Schemas - Documents, Request/Response Validation

All student/job document shapes and API schemas in one file for simplicity.
The scoring core works on plain dicts (MongoDB documents); these models
validate what enters and leaves through the API.
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional, List, Dict
from datetime import datetime
from enum import Enum


# ============================================================
# ENUMS
# ============================================================

class ItemStatus(str, Enum):
    pending = "pending"
    verified = "verified"
    rejected = "rejected"


class JobStatus(str, Enum):
    draft = "draft"
    active = "active"
    closed = "closed"
    expired = "expired"


class ActivityCollection(str, Enum):
    projects = "projects"
    certifications = "certifications"
    events = "events"
    coding_logs = "coding_logs"


class VerificationAction(str, Enum):
    verify = "verify"
    reject = "reject"


class ReadinessCategory(str, Enum):
    """Canonical readiness breakdown keys. Used everywhere inside the core."""
    base = "base"
    projects = "projects"
    certifications = "certifications"
    events = "events"
    consistency = "consistency"
    skills = "skills"
    coding_platforms = "coding_platforms"
    cgpa = "cgpa"
    github_bonus = "github_bonus"
    interview_bonus = "interview_bonus"


class MatchCategory(str, Enum):
    """Canonical job-match breakdown keys."""
    required_skills = "required_skills"
    preferred_skills = "preferred_skills"
    projects = "projects"
    readiness = "readiness"
    growth = "growth"
    cgpa = "cgpa"
    certifications = "certifications"
    consistency = "consistency"


# Display names, applied only when rendering API responses
CATEGORY_LABELS = {
    "base": "Profile Base",
    "projects": "Projects",
    "certifications": "Certifications",
    "events": "Events",
    "consistency": "Coding Consistency",
    "skills": "Skills",
    "coding_platforms": "Coding Platforms",
    "cgpa": "CGPA",
    "github_bonus": "GitHub Activity Bonus",
    "interview_bonus": "Interview Performance Bonus",
    "required_skills": "Required Skills",
    "preferred_skills": "Preferred Skills",
    "readiness": "Readiness",
    "growth": "Growth Trajectory",
}


# ============================================================
# STUDENT ACTIVITY SCHEMAS
# ============================================================

class ProjectCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    github_link: Optional[str] = None
    tags: List[str] = []


class CertificationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    provider: Optional[str] = None
    issued_date: Optional[datetime] = None


class EventCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    date: Optional[datetime] = None
    points_awarded: float = Field(0, ge=0)


class CodingLogCreate(BaseModel):
    platform: str = Field(..., min_length=1)
    problems_solved: int = Field(0, ge=0)
    minutes_spent: int = Field(0, ge=0)
    date: Optional[datetime] = None


class LeetCodeStats(BaseModel):
    easy: int = Field(0, ge=0)
    medium: int = Field(0, ge=0)
    hard: int = Field(0, ge=0)
    total_solved: int = Field(0, ge=0)
    streak: int = Field(0, ge=0)


class GitHubStats(BaseModel):
    total_repos: int = Field(0, ge=0)
    total_commits: int = Field(0, ge=0)
    activity_score: float = Field(0, ge=0)
    top_languages: List[str] = []


class CommunicationStats(BaseModel):
    avg_clarity: Optional[float] = Field(None, ge=0, le=100)
    avg_structure: Optional[float] = Field(None, ge=0, le=100)
    avg_conciseness: Optional[float] = Field(None, ge=0, le=100)


class InterviewStats(BaseModel):
    total_sessions: int = 0
    completed_sessions: int = 0
    avg_score: float = 0
    best_score: float = 0
    communication: CommunicationStats = CommunicationStats()


class InterviewAnswer(BaseModel):
    """Feedback for one answered question of a mock interview."""
    score: float = Field(..., ge=0, le=100)
    clarity: Optional[float] = Field(None, ge=0, le=100)
    structure: Optional[float] = Field(None, ge=0, le=100)
    conciseness: Optional[float] = Field(None, ge=0, le=100)


class InterviewCompletion(BaseModel):
    answers: List[InterviewAnswer] = Field(..., min_length=1)


class VerificationDecision(BaseModel):
    action: VerificationAction
    notes: Optional[str] = None


class StudentCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    college: Optional[str] = None
    branch: Optional[str] = None
    cgpa: Optional[float] = Field(None, ge=0, le=10)
    skills: List[str] = []


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    college: Optional[str] = None
    branch: Optional[str] = None
    cgpa: Optional[float] = Field(None, ge=0, le=10)
    skills: Optional[List[str]] = None


class HistoryEntry(BaseModel):
    score: int
    calculated_at: datetime


class TimelineEntry(BaseModel):
    date: datetime
    readiness_score: int
    reason: str


class StudentResponse(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field(..., alias="_id")
    name: str
    email: Optional[str] = None
    college: Optional[str] = None
    branch: Optional[str] = None
    cgpa: Optional[float] = None
    skills: List[str] = []
    streak_days: int = 0
    interview_stats: Optional[InterviewStats] = None
    readiness_score: int = 0
    readiness_history: List[HistoryEntry] = []
    growth_timeline: List[TimelineEntry] = []


# ============================================================
# READINESS SCHEMAS
# ============================================================

class ReadinessResult(BaseModel):
    """Calculator output: integer total in [0, 100] plus weighted breakdown."""
    model_config = ConfigDict(frozen=True)

    total: int = Field(..., ge=0, le=100)
    breakdown: Dict[str, float]


class ReadinessResponse(BaseModel):
    student_id: str
    score: int
    breakdown: Dict[str, float]
    labels: Dict[str, str] = {}


class LeaderboardEntry(BaseModel):
    rank: int
    id: str
    name: str
    college: str = ""
    score: int
    streak: int
    projects: int
    total_solved: int


# ============================================================
# JOB SCHEMAS
# ============================================================

class JobCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    status: JobStatus = JobStatus.draft
    required_skills: List[str] = []
    preferred_skills: List[str] = []
    min_readiness_score: float = Field(0, ge=0, le=100)
    min_cgpa: float = Field(0, ge=0, le=10)
    min_projects: int = Field(0, ge=0)
    expires_at: Optional[datetime] = None


class JobResponse(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field(..., alias="_id")
    title: str
    status: JobStatus
    required_skills: List[str] = []
    preferred_skills: List[str] = []
    min_readiness_score: float = 0
    min_cgpa: float = 0
    min_projects: int = 0
    match_count: int = 0
    last_matched_at: Optional[datetime] = None


class JobUpdate(BaseModel):
    title: Optional[str] = None
    status: Optional[JobStatus] = None
    required_skills: Optional[List[str]] = None
    preferred_skills: Optional[List[str]] = None
    min_readiness_score: Optional[float] = Field(None, ge=0, le=100)
    min_cgpa: Optional[float] = Field(None, ge=0, le=10)
    min_projects: Optional[int] = Field(None, ge=0)
    expires_at: Optional[datetime] = None


class JobMatchResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_score: int = Field(..., ge=0, le=100)
    breakdown: Dict[str, float]
    skills_matched: List[str]
    skills_missing: List[str]
    relevant_projects_count: int = 0


class MatchedStudent(BaseModel):
    student_id: str
    match_score: int
    score_breakdown: Dict[str, float] = {}
    skills_matched: List[str] = []
    skills_missing: List[str] = []
    match_reason: str = ""
    last_updated: Optional[datetime] = None


class JobUpdateResponse(BaseModel):
    job_id: str
    matches_cleared: bool


class MatchRunResponse(BaseModel):
    job_id: str
    total_students: int
    match_count: int
    top_matches: List[MatchedStudent]


class MatchListResponse(BaseModel):
    job_id: str
    total_matches: int
    matches: List[MatchedStudent]


class MatchExplanation(BaseModel):
    job_id: str
    student_id: str
    match_score: int
    match_reason: str
    score_breakdown: Dict[str, float]
    labels: Dict[str, str]
    skills_matched: List[str]
    skills_missing: List[str]


class MatchStatsResponse(BaseModel):
    job_id: str
    match_count: int
    top_match_score: int = 0
    avg_match_score: float = 0
    median_match_score: float = 0
    p90_match_score: float = 0


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True


class ErrorResponse(BaseModel):
    detail: str
