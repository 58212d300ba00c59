"""Master API router: mounts all endpoint routers."""

from __future__ import annotations

from fastapi import APIRouter

from bodymap.api import areas, bins, export, health

api_router = APIRouter(prefix="/api")

api_router.include_router(health.router)
api_router.include_router(bins.router)
api_router.include_router(areas.router)
api_router.include_router(export.router)
