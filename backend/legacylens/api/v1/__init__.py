"""API v1 module."""

from fastapi import APIRouter

from legacylens.api.v1 import analyses, files, health

router = APIRouter()

router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(files.router, prefix="/files", tags=["files"])
router.include_router(analyses.router, prefix="/analyses", tags=["analyses"])
