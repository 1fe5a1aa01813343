from fastapi import APIRouter

from app.api.v1.endpoints import (
    # Background sync jobs
    jobs,
)


# Create main API router
api_router = APIRouter(prefix="/api/v1")

# ==================== Job Scheduler ====================
api_router.include_router(
    jobs.router,
    prefix="/jobs",
    tags=["Jobs"]
)
