"""
Schemas module - Document shapes and API request/response schemas.

Everything lives in schemas.schemas; the names the scoring core needs are
re-exported here.
"""

from readiness.schemas.schemas import (
    ReadinessCategory,
    MatchCategory,
    ItemStatus,
    ReadinessResult,
    JobMatchResult,
)

__all__ = [
    "ReadinessCategory",
    "MatchCategory",
    "ItemStatus",
    "ReadinessResult",
    "JobMatchResult",
]
