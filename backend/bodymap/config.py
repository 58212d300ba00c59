"""Application configuration from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    bodymap_env: str = "development"
    bodymap_log_level: str = "info"

    # CORS
    cors_origins: list[str] = ["http://localhost:5173"]

    # Raster surface backend for pixel mapping: "pillow" or "cairo"
    surface_backend: str = "pillow"

    # Bin size used when a bins request does not give one
    default_bin_width: float = 10.0
    default_bin_height: float = 10.0

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
