"""FastAPI dependency injection."""

from __future__ import annotations

from bodymap.config import settings
from bodymap.engine.config import RasterConfig
from bodymap.engine.surface import SurfaceFactory, get_surface_factory


def get_settings():
    return settings


def get_raster_config() -> RasterConfig:
    return RasterConfig()


def get_surface() -> SurfaceFactory:
    return get_surface_factory(settings.surface_backend)
