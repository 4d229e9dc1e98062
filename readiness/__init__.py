"""
Placement Readiness Engine
Scores student career readiness and matches students to recruiter jobs.

Architecture:
- Scoring core: pure functions over student/job documents (no I/O)
- MongoDB: Student and job aggregates (activity, history, cached matches)
- FastAPI: Thin HTTP surface that runs mutation -> recompute -> persist
"""

__version__ = "1.0.0"
