"""Health check endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from bodymap.config import settings
from bodymap.models.responses import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(
        status="ok",
        version="0.1.0",
        surface_backend=settings.surface_backend,
    )
