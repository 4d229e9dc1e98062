"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from readiness.api.routes.student_routes import router as student_router
from readiness.api.routes.job_routes import router as job_router
from readiness.api.routes.admin_routes import router as admin_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(student_router)
api_router.include_router(job_router)
api_router.include_router(admin_router)
