"""
Job Matching Service

PURPOSE:
Score students against a recruiter's job posting, rank them, and keep the
ranked list cached on the job document.

HOW IT WORKS:
1. calculate_job_match_score(student, job) -> 0-100 score + breakdown
2. Select candidates (pooled skill coverage, else individual threshold)
3. Rank with a total, deterministic order
4. Replace job.matched_students in one write (never merged)

SCORE ALLOCATION:
    required skills 30 | preferred skills 10 | projects 25 | readiness 20
    growth 10 | cgpa 3 | certifications 2 | consistency 5   (clamped to 100)

CACHE:
The cache is cleared, not recomputed, whenever a matching-relevant job
field changes. Refreshing it is always an explicit "run matching" action.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import numpy as np

from readiness.core.config import Settings, get_settings
from readiness.core.errors import JobNotFoundError, StudentNotFoundError
from readiness.schemas.schemas import JobMatchResult, MatchCategory
from readiness.services.aggregator import (
    as_document,
    get_collection,
    get_object,
    get_string_list,
    get_tags,
    shared_tag_bonus,
    verified_items,
)
from readiness.utils.numbers import clamp, round_half_up, to_number


logger = logging.getLogger(__name__)


# ============================================================
# CONSTANTS
# ============================================================

REQUIRED_SKILLS_POINTS = 30.0
PREFERRED_SKILLS_POINTS = 10.0
READINESS_POINTS = 20.0
GROWTH_CAP = 10.0
CGPA_POINTS = 3.0
NEUTRAL_CGPA_POINTS = 1.5

PROJECT_POINTS = 5
PROJECT_BASE_CAP = 15
PROJECT_TAG_DEPTH_CAP = 5
PROJECT_DIVERSITY_CAP = 5
# Awarded when a student matches a required skill but has no relevant
# verified project yet
PROJECT_FLOOR = 3.0

CERTIFICATION_POINTS = 0.5
CERTIFICATION_CAP = 2.0
STREAK_DIVISOR = 20.0
CONSISTENCY_CAP = 5.0

# Minimum-score floor for students covering at least half the required
# skills: 25 + (required points / 30) * 25. Heuristic threshold pending
# product-owner confirmation.
MIN_SCORE_FLOOR_BASE = 25.0
MIN_SCORE_FLOOR_SPAN = 25.0
MIN_SCORE_FLOOR_COVERAGE = 0.5

# Fields whose change invalidates job.matched_students
MATCHING_FIELDS = (
    "required_skills",
    "preferred_skills",
    "min_readiness_score",
    "min_cgpa",
    "min_projects",
)

ALLOWED_JOB_FIELDS = MATCHING_FIELDS + ("title", "status", "expires_at")


# ============================================================
# SKILL MATCHING
# ============================================================

def normalize_skill(skill: Any) -> str:
    return str(skill).strip().lower()


def skill_matches(skill: str, pool: Iterable[str]) -> bool:
    """Case-insensitive substring match in either direction."""
    target = normalize_skill(skill)
    if not target:
        return False
    return any(s and (s in target or target in s) for s in pool)


def student_skill_pool(doc: Mapping) -> List[str]:
    """Declared skills plus tags of verified projects, lowercased."""
    pool = [normalize_skill(s) for s in get_string_list(doc, "skills")]
    for project in verified_items(doc, "projects"):
        pool.extend(get_tags(project))
    return pool


def _unique(items: Iterable[str]) -> List[str]:
    seen = set()
    output = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        output.append(item)
    return output


def compute_skill_match_percentage(
    student_skills: List[str],
    required_skills: List[str]
) -> float:
    """
    Compute percentage of required skills that student has.

    Uses case-insensitive substring matching.

    Returns:
        Float between 0 and 100
    """
    if not required_skills:
        return 100.0  # No requirements = 100% match

    pool = [normalize_skill(s) for s in student_skills]
    matched = [s for s in required_skills if skill_matches(s, pool)]
    return (len(matched) / len(required_skills)) * 100


# ============================================================
# CATEGORY TERMS
# ============================================================

def _project_points(doc: Mapping, required_skills: List[str], any_required_matched: bool) -> Tuple[float, int]:
    required = [normalize_skill(s) for s in required_skills]
    relevant = [
        p for p in verified_items(doc, "projects")
        if any(skill_matches(tag, required) for tag in get_tags(p))
    ]

    if not relevant:
        return (PROJECT_FLOOR if any_required_matched else 0.0), 0

    unique_tags = {tag for p in relevant for tag in get_tags(p)}
    points = (
        min(len(relevant) * PROJECT_POINTS, PROJECT_BASE_CAP)
        + min(shared_tag_bonus(relevant), PROJECT_TAG_DEPTH_CAP)
        + min(len(unique_tags), PROJECT_DIVERSITY_CAP)
    )
    return float(points), len(relevant)


def _growth_points(doc: Mapping, readiness_score: float) -> float:
    history = get_collection(doc, "readiness_history")
    if len(history) >= 3:
        recent = history[-3:]
        first = to_number(recent[0].get("score"), "readiness_history[].score")
        last = to_number(recent[-1].get("score"), "readiness_history[].score")
        return clamp((last - first) / 2, 0.0, GROWTH_CAP)
    if readiness_score >= 70:
        # Credit high performers without enough history
        return 5.0
    return 0.0


def _consistency_points(doc: Mapping) -> float:
    leetcode = get_object(doc, "leetcode_stats") or {}
    leetcode_streak = to_number(leetcode.get("streak"), "leetcode_stats.streak")
    streak_days = to_number(doc.get("streak_days"), "streak_days")
    return clamp(max(leetcode_streak, streak_days) / STREAK_DIVISOR, 0.0, CONSISTENCY_CAP)


# ============================================================
# MATCH SCORE
# ============================================================

def calculate_job_match_score(student: Any, job: Any) -> JobMatchResult:
    """
    Score one student against one job.

    Deterministic: reads only fields of the two documents, no clock.

    Returns:
        JobMatchResult(total_score, breakdown, skills_matched,
        skills_missing, relevant_projects_count)
    """
    doc = as_document(student)
    job_doc = as_document(job)

    required_skills = get_string_list(job_doc, "required_skills")
    preferred_skills = get_string_list(job_doc, "preferred_skills")
    pool = student_skill_pool(doc)

    skills_matched = []
    skills_missing = []
    for skill in required_skills:
        if skill_matches(skill, pool):
            skills_matched.append(skill)
        else:
            skills_missing.append(skill)

    # 1. Required skills (dominant term)
    if required_skills:
        required_points = len(skills_matched) / len(required_skills) * REQUIRED_SKILLS_POINTS
    else:
        required_points = REQUIRED_SKILLS_POINTS / 2

    # 2. Preferred skills
    if preferred_skills:
        preferred_matched = [s for s in preferred_skills if skill_matches(s, pool)]
        preferred_points = min(
            len(preferred_matched) / len(preferred_skills) * PREFERRED_SKILLS_POINTS,
            PREFERRED_SKILLS_POINTS
        )
    else:
        preferred_points = PREFERRED_SKILLS_POINTS / 2

    # 3. Projects (verified-only, capped bonuses, floor)
    project_points, relevant_count = _project_points(doc, required_skills, bool(skills_matched))

    # 4. Readiness
    readiness_score = clamp(to_number(doc.get("readiness_score"), "readiness_score"), 0.0, 100.0)
    readiness_points = readiness_score / 100 * READINESS_POINTS

    # 5. Growth trajectory
    growth_points = _growth_points(doc, readiness_score)

    # 6. CGPA
    cgpa = to_number(doc.get("cgpa"), "cgpa", default=None)
    cgpa_points = clamp(cgpa, 0.0, 10.0) / 10 * CGPA_POINTS if cgpa else NEUTRAL_CGPA_POINTS

    # 7. Certifications
    cert_points = min(len(verified_items(doc, "certifications")) * CERTIFICATION_POINTS, CERTIFICATION_CAP)

    # 8. Coding consistency
    consistency_points = _consistency_points(doc)

    score = (
        required_points + preferred_points + project_points + readiness_points
        + growth_points + cgpa_points + cert_points + consistency_points
    )

    if skills_matched and len(skills_matched) >= len(required_skills) * MIN_SCORE_FLOOR_COVERAGE:
        floor = MIN_SCORE_FLOOR_BASE + (required_points / REQUIRED_SKILLS_POINTS) * MIN_SCORE_FLOOR_SPAN
        score = max(score, floor)

    breakdown = {
        MatchCategory.required_skills.value: round_half_up(required_points),
        MatchCategory.preferred_skills.value: round_half_up(preferred_points),
        MatchCategory.projects.value: round_half_up(project_points),
        MatchCategory.readiness.value: round_half_up(readiness_points),
        MatchCategory.growth.value: round_half_up(growth_points),
        MatchCategory.cgpa.value: round_half_up(cgpa_points, 1),
        MatchCategory.certifications.value: round_half_up(cert_points, 1),
        MatchCategory.consistency.value: round_half_up(consistency_points, 1),
    }

    return JobMatchResult(
        total_score=int(min(round_half_up(clamp(score, 0.0, 100.0)), 100)),
        breakdown=breakdown,
        skills_matched=_unique(skills_matched),
        skills_missing=_unique(skills_missing),
        relevant_projects_count=relevant_count,
    )


# ============================================================
# RANKING & CANDIDATE SELECTION
# ============================================================

def ranking_key(student: Mapping, result: JobMatchResult) -> tuple:
    """
    Sort key: match score, readiness, streak, verified projects (all desc),
    then student id so that no two students ever compare equal.
    """
    return (
        -result.total_score,
        -to_number(student.get("readiness_score"), "readiness_score"),
        -to_number(student.get("streak_days"), "streak_days"),
        -len(verified_items(student, "projects")),
        str(student.get("_id", "")),
    )


def rank_matches(scored: List[Tuple[Mapping, JobMatchResult]]) -> List[Tuple[Mapping, JobMatchResult]]:
    return sorted(scored, key=lambda pair: ranking_key(pair[0], pair[1]))


def pool_covers_required(students: List[Mapping], required_skills: List[str]) -> bool:
    """True when the combined skills of all students cover every required skill."""
    if not required_skills:
        return True
    combined = set()
    for student in students:
        combined.update(student_skill_pool(student))
        combined.update(
            normalize_skill(c.get("name")) for c in verified_items(student, "certifications") if c.get("name")
        )
    return all(skill_matches(skill, combined) for skill in required_skills)


def meets_job_thresholds(student: Mapping, job: Mapping) -> bool:
    min_readiness = to_number(job.get("min_readiness_score"), "min_readiness_score")
    min_cgpa = to_number(job.get("min_cgpa"), "min_cgpa")
    min_projects = to_number(job.get("min_projects"), "min_projects")

    readiness = to_number(student.get("readiness_score"), "readiness_score")
    cgpa = to_number(student.get("cgpa"), "cgpa")
    projects = len(verified_items(student, "projects"))
    return readiness >= min_readiness and cgpa >= min_cgpa and projects >= min_projects


def build_match_reason(student: Mapping, job: Mapping, result: JobMatchResult) -> str:
    """Template justification for a match."""
    required_count = len(get_string_list(job, "required_skills"))
    readiness = int(to_number(student.get("readiness_score"), "readiness_score"))
    matched = result.skills_matched
    missing = result.skills_missing

    if result.total_score >= 80:
        gap = (
            f"May benefit from developing: {', '.join(missing[:2])}."
            if missing else "Excellent skill coverage."
        )
        return (
            f"Strong match with {len(matched)}/{required_count} required skills and "
            f"{result.relevant_projects_count} relevant projects. Demonstrates consistent "
            f"growth with {readiness}% readiness score. {gap}"
        )
    if result.total_score >= 60:
        return (
            f"Good match with solid foundation in {', '.join(matched[:3])}. Has "
            f"{result.relevant_projects_count} relevant projects and {readiness}% readiness. "
            f"Could strengthen: {', '.join(missing[:2]) or 'nothing critical'}."
        )
    return (
        f"Potential match with {len(matched)} matching skills and growth potential. Would "
        f"benefit from gaining experience in {', '.join(missing[:2]) or 'the core stack'} "
        f"to better align with role requirements."
    )


def match_students_to_job(
    job: Mapping,
    students: List[Mapping],
    settings: Optional[Settings] = None,
    now: Optional[datetime] = None
) -> List[Dict[str, Any]]:
    """
    Build the complete new matched_students list for a job.

    Each student is scored independently; the result is meant to replace
    the cached list as a whole.
    """
    settings = settings or get_settings()
    now = now or datetime.now(timezone.utc)
    required_skills = get_string_list(job, "required_skills")
    team_mode = pool_covers_required(students, required_skills)

    logger.info(
        "Matching %d students to job %s (%s)",
        len(students), job.get("_id"), "pooled coverage" if team_mode else "individual threshold"
    )

    scored = []
    for student in students:
        if settings.enforce_job_thresholds and not meets_job_thresholds(student, job):
            continue

        result = calculate_job_match_score(student, job)
        if required_skills:
            match_pct = len(result.skills_matched) / len(required_skills) * 100
        else:
            match_pct = 100.0

        if team_mode:
            include = bool(result.skills_matched) or not required_skills
        else:
            include = match_pct >= settings.min_skill_match_percentage

        if include:
            scored.append((student, result))
        else:
            logger.debug("Filtered student %s (%.1f%% skill match)", student.get("_id"), match_pct)

    ranked = rank_matches(scored)[:settings.max_matches_per_job]

    return [
        {
            "student_id": str(student.get("_id")),
            "match_score": result.total_score,
            "score_breakdown": dict(result.breakdown),
            "skills_matched": list(result.skills_matched),
            "skills_missing": list(result.skills_missing),
            "match_reason": build_match_reason(student, job, result),
            "last_updated": now,
        }
        for student, result in ranked
    ]


# ============================================================
# CACHE INVALIDATION
# ============================================================

def cleared_cache() -> Dict[str, Any]:
    return {"matched_students": [], "match_count": 0, "last_matched_at": None}


def job_update_fields(job: Mapping[str, Any], updates: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Fields to write for an update: the supplied allowed fields, posted_at on
    activation, and an emptied cache when a matching field was supplied.
    Never includes a copy of the existing matched_students.
    """
    fields = {}
    for field in ALLOWED_JOB_FIELDS:
        if field not in updates or updates[field] is None:
            continue
        value = updates[field]
        if field == "status" and value == "active" and job.get("status") != "active":
            fields["posted_at"] = datetime.now(timezone.utc)
        fields[field] = value

    if any(field in fields for field in MATCHING_FIELDS):
        fields.update(cleared_cache())
    return fields


def apply_job_update(job: Dict[str, Any], updates: Mapping[str, Any]) -> bool:
    """
    Apply allowed field updates to a job document in place.

    Returns:
        True when a matching-relevant field was supplied and the cache was cleared
    """
    fields = job_update_fields(job, updates)
    job.update(fields)
    return "matched_students" in fields


# ============================================================
# MATCH STATISTICS
# ============================================================

def summarize_matches(matched_students: List[Mapping]) -> Dict[str, float]:
    """Top / mean / median / 90th percentile of cached match scores."""
    if not matched_students:
        return {
            "match_count": 0,
            "top_match_score": 0,
            "avg_match_score": 0.0,
            "median_match_score": 0.0,
            "p90_match_score": 0.0,
        }

    scores = np.array([m.get("match_score", 0) for m in matched_students], dtype=float)
    return {
        "match_count": int(scores.size),
        "top_match_score": int(scores.max()),
        "avg_match_score": round_half_up(float(np.mean(scores)), 1),
        "median_match_score": round_half_up(float(np.median(scores)), 1),
        "p90_match_score": round_half_up(float(np.percentile(scores, 90)), 1),
    }


# ============================================================
# SERVICE (storage-backed)
# ============================================================

class JobMatchingService:
    """
    Runs matching against stored students and maintains the job's cache.

    Process:
    1. Load job + all students
    2. match_students_to_job()
    3. Replace matched_students atomically
    """

    def __init__(self, student_repository, job_repository, settings: Optional[Settings] = None):
        self.students = student_repository
        self.jobs = job_repository
        self.settings = settings or get_settings()

    def _load_job(self, job_id: str) -> Dict[str, Any]:
        job = self.jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def run_matching(self, job_id: str) -> Dict[str, Any]:
        job = self._load_job(job_id)
        students = self.students.list_all()
        now = datetime.now(timezone.utc)
        matches = match_students_to_job(job, students, self.settings, now=now)
        self.jobs.replace_matches(job_id, matches, matched_at=now)

        logger.info("Matched %d/%d students to job %s", len(matches), len(students), job_id)
        return {
            "job_id": job_id,
            "total_students": len(students),
            "match_count": len(matches),
            "top_matches": matches[:10],
        }

    def update_job(self, job_id: str, updates: Mapping[str, Any]) -> bool:
        job = self._load_job(job_id)
        fields = job_update_fields(job, updates)
        # Partial write: a matching run finishing meanwhile keeps its list
        self.jobs.update_fields(job_id, fields)
        cleared = "matched_students" in fields
        if cleared:
            logger.info("Cleared cached matches for job %s", job_id)
        return cleared

    def get_matches(self, job_id: str, limit: int = 50, min_score: int = 0) -> List[Dict[str, Any]]:
        job = self._load_job(job_id)
        matches = [m for m in job.get("matched_students") or [] if m.get("match_score", 0) >= min_score]
        return matches[:limit]

    def explain_match(self, job_id: str, student_id: str) -> Dict[str, Any]:
        """Cached entry when present, otherwise a fresh (uncached) score."""
        job = self._load_job(job_id)
        for entry in job.get("matched_students") or []:
            if entry.get("student_id") == student_id and entry.get("score_breakdown"):
                return entry

        student = self.students.get(student_id)
        if student is None:
            raise StudentNotFoundError(student_id)
        result = calculate_job_match_score(student, job)
        return {
            "student_id": student_id,
            "match_score": result.total_score,
            "score_breakdown": dict(result.breakdown),
            "skills_matched": list(result.skills_matched),
            "skills_missing": list(result.skills_missing),
            "match_reason": build_match_reason(student, job, result),
        }

    def match_stats(self, job_id: str) -> Dict[str, Any]:
        job = self._load_job(job_id)
        return summarize_matches(job.get("matched_students") or [])
