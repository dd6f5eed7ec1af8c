from fastapi import APIRouter
from app.api.v2 import (
    jobs,
    crew,
    availability_blocks,
    tracking,
)

api_router = APIRouter()

# Include all v2 routers
api_router.include_router(jobs.router, prefix="/jobs", tags=["jobs"])
api_router.include_router(crew.router, prefix="/crew", tags=["crew"])
api_router.include_router(availability_blocks.router, prefix="/availability-blocks", tags=["availability"])
api_router.include_router(tracking.router, prefix="/tracking", tags=["tracking"])
