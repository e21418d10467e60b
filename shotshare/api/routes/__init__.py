"""API routes."""
from fastapi import APIRouter

from . import health, posts, search

api_router = APIRouter(prefix="/api")

api_router.include_router(health.router, tags=["health"])
api_router.include_router(posts.router, tags=["posts"])
api_router.include_router(search.router, tags=["search"])

__all__ = ["api_router"]
