"""
Tubely API v1 Router Aggregator.

Combines the v1 endpoint routers into a single APIRouter that the
application mounts under /api/v1.

Router Structure:
    - /videos: Thumbnail/video uploads and video record reads
"""

from fastapi import APIRouter

from tubely.api.v1.videos import router as videos_router


api_router = APIRouter()

api_router.include_router(
    videos_router,
    prefix="/videos",
    tags=["videos"],
)
