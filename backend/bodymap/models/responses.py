"""API response models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"
    surface_backend: str = "pillow"


class SensationPointResponse(BaseModel):
    x: float
    y: float
    valence: float
    intensity: float


class BinResponse(BaseModel):
    nx: int
    ny: int
    x: float
    y: float
    points: list[SensationPointResponse] = Field(default_factory=list)


class BinsResponse(BaseModel):
    side: str
    bins: list[BinResponse] = Field(default_factory=list)


class ParticipantAreasResponse(BaseModel):
    id: str
    areas: dict[str, int] = Field(default_factory=dict)
    total_drawing_area: int = 0


class AreasResponse(BaseModel):
    areas: list[ParticipantAreasResponse] = Field(default_factory=list)
    processing_time_ms: float = 0.0
