#!/usr/bin/env python3
"""
Job Matching Test Script

Tests:
1. Skill match percentage calculation
2. Match score for the react/node/sql scenario
3. Minimum-score floor and project floor
4. Verified-only skill pool
5. Growth trajectory
6. Ranking tie-breaks
7. Candidate selection (pooled coverage vs individual threshold)
8. Cache invalidation on job update
9. Match statistics
10. Job update racing a matching run

Run: pytest scripts/test_matching.py   (or python scripts/test_matching.py)
"""
import sys
sys.path.insert(0, '.')

from datetime import datetime, timezone

import pytest

from readiness.core.config import Settings
from readiness.core.errors import InvalidShapeError
from readiness.db.memory import InMemoryJobRepository, InMemoryStudentRepository
from readiness.schemas.schemas import JobMatchResult
from readiness.services.matching_service import (
    JobMatchingService,
    apply_job_update,
    build_match_reason,
    calculate_job_match_score,
    compute_skill_match_percentage,
    match_students_to_job,
    rank_matches,
    summarize_matches,
)

SETTINGS = Settings(storage_backend="memory")


def project(title, tags, status="verified"):
    return {"id": title, "title": title, "tags": tags, "status": status, "verified": status == "verified"}


def test_skill_matching():
    """Test skill match percentage calculation."""
    print("\n[1] Testing skill match percentage...")

    # Test 1: Perfect match
    pct = compute_skill_match_percentage(["Python", "SQL", "Docker"], ["Python", "SQL", "Docker"])
    print(f"    Perfect match: {pct:.1f}% (expected: 100.0%)")
    assert pct == 100.0

    # Test 2: Partial match
    pct = compute_skill_match_percentage(["Python", "JavaScript"], ["Python", "SQL", "Docker", "AWS"])
    print(f"    Partial match (1/4): {pct:.1f}% (expected: 25.0%)")
    assert pct == 25.0

    # Test 3: No match
    pct = compute_skill_match_percentage(["Ruby", "Rails"], ["Python", "Django"])
    print(f"    No match: {pct:.1f}% (expected: 0.0%)")
    assert pct == 0.0

    # Test 4: Case insensitive, substring either way
    pct = compute_skill_match_percentage(["python3", "REACT"], ["Python", "react.js"])
    print(f"    Case/substring: {pct:.1f}% (expected: 100.0%)")
    assert pct == 100.0

    # Test 5: Empty requirements
    assert compute_skill_match_percentage(["Python"], []) == 100.0

    print("    ✅ Skill match tests passed!")


def test_react_node_scenario():
    print("\n[2] Testing react/node/sql scenario...")

    student = {"_id": "s1", "projects": [project(f"app-{i}", ["react", "node"]) for i in range(3)]}
    job = {"_id": "j1", "required_skills": ["react", "node", "sql"]}

    result = calculate_job_match_score(student, job)
    print(f"    Matched: {result.skills_matched}, missing: {result.skills_missing}")
    assert result.skills_matched == ["react", "node"]
    assert result.skills_missing == ["sql"]
    assert result.breakdown["required_skills"] == 20
    # 3 relevant projects (15) + shared tags (4) + 2 distinct tags (2)
    assert result.breakdown["projects"] == 21
    assert result.breakdown["preferred_skills"] == 5
    assert result.breakdown["cgpa"] == 1.5
    assert result.relevant_projects_count == 3
    assert result.total_score == 48

    # Deterministic
    assert calculate_job_match_score(student, job) == result

    print("    ✅ Scenario tests passed!")


def test_score_floors():
    print("\n[3] Testing score floors...")

    job = {"required_skills": ["react", "node", "sql"], "preferred_skills": ["docker"]}

    # All required skills, no projects: 30 + 0 + 3 (project floor) + 1.5 = 34.5,
    # lifted to 25 + 25 = 50 by the minimum-score floor
    full = calculate_job_match_score({"skills": ["React", "Node", "SQL"]}, job)
    print(f"    Full skill coverage, no projects: {full.total_score} (expected: 50)")
    assert full.breakdown["projects"] == 3
    assert full.total_score == 50

    # One of three required skills: below 50% coverage, no floor
    # 10 + 5 (no preferred listed) + 3 + 1.5 = 19.5
    partial = calculate_job_match_score({"skills": ["react"]}, {"required_skills": ["react", "node", "sql"]})
    assert partial.total_score == 20

    # No match at all: no project floor either
    none = calculate_job_match_score({"skills": ["java"]}, {"required_skills": ["react"]})
    assert none.breakdown["projects"] == 0
    assert none.skills_matched == []

    print("    ✅ Floor tests passed!")


def test_verified_only_pool():
    print("\n[4] Testing verified-only skill pool...")

    student = {"projects": [project("p", ["react"], "pending"), project("q", ["react"], "rejected")]}
    result = calculate_job_match_score(student, {"required_skills": ["react"]})
    assert result.skills_matched == []
    assert result.skills_missing == ["react"]
    assert result.relevant_projects_count == 0
    # 0 + 5 + 0 + 1.5 = 6.5
    assert result.total_score == 7

    print("    ✅ Verified-only tests passed!")


def test_growth_and_readiness():
    print("\n[5] Testing growth trajectory...")

    history = [{"score": s} for s in (30, 50, 60, 70)]
    student = {"readiness_score": 70, "readiness_history": history}
    result = calculate_job_match_score(student, {"required_skills": []})
    assert result.breakdown["readiness"] == 14
    assert result.breakdown["growth"] == 10
    assert result.breakdown["required_skills"] == 15

    # Not enough history: high performers get 5
    short = calculate_job_match_score({"readiness_score": 75, "readiness_history": [{"score": 75}]}, {})
    assert short.breakdown["growth"] == 5
    low = calculate_job_match_score({"readiness_score": 40}, {})
    assert low.breakdown["growth"] == 0

    # Declining scores never go negative
    declining = calculate_job_match_score({"readiness_history": [{"score": s} for s in (80, 60, 40)]}, {})
    assert declining.breakdown["growth"] == 0

    print("    ✅ Growth tests passed!")


def test_ranking():
    print("\n[6] Testing ranking tie-breaks...")

    def result(score):
        return JobMatchResult(total_score=score, breakdown={}, skills_matched=[], skills_missing=[])

    scored = [
        ({"_id": "b", "readiness_score": 60}, result(70)),
        ({"_id": "a", "readiness_score": 60}, result(70)),
        ({"_id": "c", "readiness_score": 80}, result(70)),
        ({"_id": "d", "readiness_score": 10}, result(90)),
        ({"_id": "e", "readiness_score": 60, "streak_days": 5}, result(70)),
    ]
    order = [student["_id"] for student, _ in rank_matches(scored)]
    print(f"    Order: {order}")
    assert order == ["d", "c", "e", "a", "b"]

    print("    ✅ Ranking tests passed!")


LANGUAGES = ["python", "java", "rust", "kotlin", "swift", "ruby", "scala", "haskell", "elixir", "perl", "dart"]


def test_candidate_selection():
    print("\n[7] Testing candidate selection...")

    job = {"_id": "j", "required_skills": LANGUAGES}
    specialist = {"_id": "a", "skills": ["python"]}
    generalist = {"_id": "b", "skills": LANGUAGES[1:]}
    outsider = {"_id": "c", "skills": ["cobol"]}

    # Alone, 1/11 = 9% is below the 10% individual threshold
    assert match_students_to_job(job, [specialist, outsider], SETTINGS) == []

    # Together the pool covers every required skill: any match qualifies
    matches = match_students_to_job(job, [specialist, generalist, outsider], SETTINGS)
    ids = [m["student_id"] for m in matches]
    print(f"    Pooled coverage: {ids}")
    assert ids == ["b", "a"]
    assert matches[0]["match_reason"]
    assert set(matches[0]) >= {"match_score", "score_breakdown", "skills_matched", "skills_missing", "last_updated"}

    # Top-N cap
    capped = Settings(storage_backend="memory", max_matches_per_job=1)
    assert len(match_students_to_job(job, [specialist, generalist], capped)) == 1

    print("    ✅ Selection tests passed!")


def test_job_thresholds():
    print("\n[8] Testing job thresholds...")

    job = {"required_skills": ["python"], "min_cgpa": 8}
    students = [{"_id": "a", "skills": ["python"], "cgpa": 7}, {"_id": "b", "skills": ["python"], "cgpa": 9}]

    assert len(match_students_to_job(job, students, SETTINGS)) == 2

    strict = Settings(storage_backend="memory", enforce_job_thresholds=True)
    assert [m["student_id"] for m in match_students_to_job(job, students, strict)] == ["b"]

    print("    ✅ Threshold tests passed!")


def test_job_update_clears_cache():
    print("\n[9] Testing cache invalidation...")

    job = {"_id": "j", "title": "Dev", "required_skills": ["python"],
           "matched_students": [{"student_id": "a", "match_score": 80}], "match_count": 1,
           "last_matched_at": "yesterday"}

    assert apply_job_update(job, {"title": "Backend Dev"}) is False
    assert job["title"] == "Backend Dev"
    assert job["match_count"] == 1

    assert apply_job_update(job, {"required_skills": ["python", "sql"]}) is True
    assert job["matched_students"] == []
    assert job["match_count"] == 0
    assert job["last_matched_at"] is None

    # Fields outside the allowed set are ignored
    apply_job_update(job, {"matched_students": [{"student_id": "x"}]})
    assert job["matched_students"] == []

    print("    ✅ Cache invalidation tests passed!")


def test_match_reason_and_stats():
    print("\n[10] Testing match reasons and statistics...")

    job = {"required_skills": ["python", "sql"]}
    strong = JobMatchResult(total_score=85, breakdown={}, skills_matched=["python", "sql"],
                            skills_missing=[], relevant_projects_count=2)
    assert build_match_reason({"readiness_score": 72}, job, strong).startswith("Strong match with 2/2")

    weak = JobMatchResult(total_score=30, breakdown={}, skills_matched=["python"], skills_missing=["sql"])
    assert "sql" in build_match_reason({}, job, weak)

    stats = summarize_matches([{"match_score": s} for s in (90, 80, 70, 60)])
    print(f"    Stats: {stats}")
    assert stats["top_match_score"] == 90
    assert stats["avg_match_score"] == 75.0
    assert stats["median_match_score"] == 75.0
    assert stats["p90_match_score"] == 87.0

    assert summarize_matches([])["match_count"] == 0

    print("    ✅ Reason/stats tests passed!")


def test_string_tags_rejected():
    print("\n[11] Testing a plain-string tags field...")

    # "java" must not be read as the letters j, a, v, a
    student = {"projects": [project("Shop", "java")]}
    with pytest.raises(InvalidShapeError):
        calculate_job_match_score(student, {"required_skills": ["javascript", "vue", "sass"]})

    print("    ✅ String tags tests passed!")


class RacingJobRepository(InMemoryJobRepository):
    """Lets a matching run land between update_job's read and its write."""

    def __init__(self):
        super().__init__()
        self.on_get = None

    def get(self, job_id):
        doc = super().get(job_id)
        if self.on_get is not None:
            callback, self.on_get = self.on_get, None
            callback(job_id)
        return doc


def test_job_update_keeps_concurrent_matches():
    print("\n[12] Testing job update during a matching run...")

    jobs = RacingJobRepository()
    job_id = jobs.create({"title": "Dev", "required_skills": ["python"],
                          "matched_students": [], "match_count": 0, "last_matched_at": None})
    matched_at = datetime(2026, 3, 10, tzinfo=timezone.utc)
    jobs.on_get = lambda jid: jobs.replace_matches(
        jid, [{"student_id": "a", "match_score": 80}], matched_at=matched_at
    )

    service = JobMatchingService(InMemoryStudentRepository(), jobs, SETTINGS)
    assert service.update_job(job_id, {"title": "Backend Dev"}) is False

    stored = jobs.get(job_id)
    assert stored["title"] == "Backend Dev"
    assert stored["match_count"] == 1
    assert stored["matched_students"] == [{"student_id": "a", "match_score": 80}]
    assert stored["last_matched_at"] == matched_at

    # Changing a matching field still clears the cache
    assert service.update_job(job_id, {"required_skills": ["python", "sql"]}) is True
    stored = jobs.get(job_id)
    assert stored["matched_students"] == []
    assert stored["match_count"] == 0
    assert stored["required_skills"] == ["python", "sql"]

    print("    ✅ Concurrent update tests passed!")


def main():
    print("=" * 60)
    print("JOB MATCHING TEST")
    print("=" * 60)

    test_skill_matching()
    test_react_node_scenario()
    test_score_floors()
    test_verified_only_pool()
    test_growth_and_readiness()
    test_ranking()
    test_candidate_selection()
    test_job_thresholds()
    test_job_update_clears_cache()
    test_match_reason_and_stats()
    test_string_tags_rejected()
    test_job_update_keeps_concurrent_matches()

    print("\n" + "=" * 60)
    print("✅ ALL MATCHING TESTS PASSED!")
    print("=" * 60)


if __name__ == "__main__":
    main()
