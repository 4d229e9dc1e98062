#!/usr/bin/env python3
"""
API Test Script

End-to-end checks through the FastAPI app with the in-memory store.

Run: pytest scripts/test_api.py
"""
import sys
sys.path.insert(0, '.')


def create_student(client, **fields):
    payload = {"name": "Test Student", **fields}
    response = client.post("/api/students", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["storage"] == "memory"


def test_student_readiness_flow(client):
    print("\n[1] Testing student readiness flow...")

    student = create_student(client, email="asha@example.com", skills=["python"])
    student_id = student["_id"]
    # 25 + one skill (2 * 0.5)
    assert student["readiness_score"] == 26
    assert len(student["readiness_history"]) == 1

    response = client.get(f"/api/students/{student_id}/readiness")
    body = response.json()
    assert body["score"] == 26
    assert body["labels"]["coding_platforms"] == "Coding Platforms"
    assert set(body["breakdown"]) == set(body["labels"])

    response = client.post(f"/api/students/{student_id}/projects", json={"title": "API", "tags": ["python"]})
    assert response.status_code == 201
    assert response.json()["score"] == 26

    view = client.get(f"/api/students/{student_id}").json()
    assert view["_id"] == student_id
    assert "projects" not in view

    print("    ✅ Readiness flow tests passed!")


def test_verification_flow(client, student_repo):
    print("\n[2] Testing admin verification...")

    student_id = create_student(client)["_id"]
    client.post(f"/api/students/{student_id}/certifications", json={"name": "AWS Cloud Practitioner"})
    cert_id = student_repo.get(student_id)["certifications"][0]["id"]

    response = client.post(
        f"/api/admin/verifications/{student_id}/certifications/{cert_id}",
        json={"action": "verify", "notes": "checked"}
    )
    assert response.status_code == 200, response.text
    # 25 + one certification (5 * 0.5)
    assert response.json()["score"] == 28

    student = client.get(f"/api/students/{student_id}").json()
    assert student["growth_timeline"][-1]["reason"] == "Certification verified"

    response = client.post(
        f"/api/admin/verifications/{student_id}/certifications/unknown",
        json={"action": "reject"}
    )
    assert response.status_code == 404

    print("    ✅ Verification tests passed!")


def test_interview_and_stats_endpoints(client):
    student_id = create_student(client)["_id"]

    response = client.post(f"/api/students/{student_id}/interviews", json={"answers": [{"score": 80}]})
    assert response.status_code == 200
    assert response.json()["score"] == 33

    response = client.put(f"/api/students/{student_id}/stats/github", json={"activity_score": 40})
    assert response.json()["score"] == 35

    response = client.post(f"/api/students/{student_id}/interviews", json={"answers": []})
    assert response.status_code == 422


def test_profile_and_leaderboard(client):
    low = create_student(client, name="Low Scorer")["_id"]
    high = create_student(client, name="High Scorer")["_id"]

    response = client.put(f"/api/students/{high}/profile", json={"cgpa": 9.5})
    assert response.status_code == 200
    assert response.json()["readiness_score"] == 34

    board = client.get("/api/students/leaderboard").json()
    assert [row["id"] for row in board][:2] == [high, low]
    assert board[0]["rank"] == 1


def test_unknown_student(client):
    assert client.get("/api/students/507f1f77bcf86cd799439011/readiness").status_code == 404


def test_job_matching_flow(client):
    print("\n[3] Testing job matching flow...")

    strong = create_student(client, name="Strong", skills=["react", "node", "sql"])["_id"]
    create_student(client, name="Weak", skills=["react"])
    create_student(client, name="Other", skills=["java"])

    response = client.post("/api/jobs", json={
        "title": "Full Stack Developer",
        "status": "active",
        "required_skills": ["react", "node", "sql"],
    })
    assert response.status_code == 201, response.text
    job_id = response.json()["_id"]

    response = client.post(f"/api/jobs/{job_id}/match")
    assert response.status_code == 200, response.text
    run = response.json()
    assert run["total_students"] == 3
    assert run["match_count"] == 2
    assert run["top_matches"][0]["student_id"] == strong

    matches = client.get(f"/api/jobs/{job_id}/matches").json()
    assert matches["total_matches"] == 2
    filtered = client.get(f"/api/jobs/{job_id}/matches", params={"min_score": 40}).json()
    assert [m["student_id"] for m in filtered["matches"]] == [strong]

    explanation = client.get(f"/api/jobs/{job_id}/matches/{strong}/explain").json()
    assert explanation["skills_missing"] == []
    assert explanation["labels"]["required_skills"] == "Required Skills"

    stats = client.get(f"/api/jobs/{job_id}/stats").json()
    assert stats["match_count"] == 2
    assert stats["top_match_score"] == run["top_matches"][0]["match_score"]

    # Title change keeps the cache, skill change clears it
    response = client.put(f"/api/jobs/{job_id}", json={"title": "Senior Full Stack Developer"})
    assert response.json()["matches_cleared"] is False
    response = client.put(f"/api/jobs/{job_id}", json={"required_skills": ["go"]})
    assert response.json()["matches_cleared"] is True
    job = client.get(f"/api/jobs/{job_id}").json()
    assert job["match_count"] == 0
    assert client.get(f"/api/jobs/{job_id}/matches").json()["matches"] == []

    assert client.post("/api/jobs/unknown/match").status_code == 404

    print("    ✅ Job matching flow tests passed!")


def test_profile_null_fields_are_ignored(client):
    student_id = create_student(client, name="Ravi", skills=["python"], cgpa=8.0)["_id"]

    response = client.put(f"/api/students/{student_id}/profile", json={"name": None, "skills": None})
    assert response.status_code == 200, response.text
    assert response.json()["name"] == "Ravi"
    assert response.json()["skills"] == ["python"]

    response = client.get(f"/api/students/{student_id}")
    assert response.status_code == 200
    assert response.json()["name"] == "Ravi"

    # null clears cgpa back to the neutral default
    response = client.put(f"/api/students/{student_id}/profile", json={"cgpa": None})
    assert response.status_code == 200
    assert response.json()["cgpa"] is None
    assert response.json()["readiness_score"] == 26


def test_students_without_email(client):
    first = create_student(client, name="No Email One")
    second = create_student(client, name="No Email Two")
    assert first["_id"] != second["_id"]
    assert first["email"] is None


def test_interview_stats_in_student_response(client):
    student_id = create_student(client)["_id"]
    client.post(f"/api/students/{student_id}/interviews", json={"answers": [{"score": 80, "clarity": 70}]})

    body = client.get(f"/api/students/{student_id}").json()
    assert body["interview_stats"]["avg_score"] == 80
    assert body["interview_stats"]["completed_sessions"] == 1
    assert body["interview_stats"]["communication"]["avg_clarity"] == 70


def test_error_body_shape(client):
    response = client.get("/api/students/507f1f77bcf86cd799439011")
    assert response.status_code == 404
    assert set(response.json()) == {"detail"}
