"""
Placement Readiness Engine - Main Application

FastAPI backend with:
- MongoDB for student and job documents (or an in-memory store)
- Readiness scoring recomputed on every student change
- Job matching with a cached, ranked shortlist per job

Run: uvicorn readiness.main:app --reload
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

from readiness import __version__
from readiness.api.routes import api_router
from readiness.core.config import get_settings
from readiness.core.errors import (
    ConcurrentUpdateError,
    InvalidShapeError,
    ItemNotFoundError,
    JobNotFoundError,
    StorageError,
    StudentNotFoundError,
)
from readiness.db.mongodb import init_mongo_indexes, test_mongo_connection
from readiness.schemas.schemas import ErrorResponse

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Placement Readiness Engine",
    description="""
    Readiness scoring and job matching for campus placement.

    ## Features
    - **Students**: Activity tracking (projects, certifications, events, coding logs)
    - **Readiness**: 0-100 score with per-category breakdown, history and timeline
    - **Admin**: Verify or reject submitted items (only verified items count)
    - **Jobs**: Skill-based matching with a ranked, cached shortlist
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware (allow all for development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix="/api")


# ============================================================
# ERROR HANDLERS
# ============================================================

def _error(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(detail=str(exc)).model_dump())


@app.exception_handler(StudentNotFoundError)
@app.exception_handler(JobNotFoundError)
@app.exception_handler(ItemNotFoundError)
async def not_found_handler(request: Request, exc: Exception):
    return _error(404, exc)


@app.exception_handler(InvalidShapeError)
async def invalid_shape_handler(request: Request, exc: InvalidShapeError):
    logger.warning("Invalid data on %s: %s", request.url.path, exc)
    return _error(422, exc)


@app.exception_handler(ConcurrentUpdateError)
async def conflict_handler(request: Request, exc: ConcurrentUpdateError):
    return _error(409, exc)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error("Storage failure on %s: %s", request.url.path, exc)
    return _error(503, exc)


# Startup event
@app.on_event("startup")
async def startup_event():
    """Initialize MongoDB indexes on startup."""
    if settings.storage_backend != "mongo":
        logger.info("Using in-memory storage; skipping MongoDB setup")
        return
    try:
        init_mongo_indexes()
    except PyMongoError as e:
        logger.warning("MongoDB index initialization failed: %s", e)


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    if settings.storage_backend == "memory":
        storage = "memory"
    else:
        storage = "connected" if test_mongo_connection() else "disconnected"

    return {
        "status": "healthy",
        "version": __version__,
        "storage": storage
    }
