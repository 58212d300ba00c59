"""Engine configuration: rasterization and job tunables."""

from __future__ import annotations

from dataclasses import dataclass

from bodymap.utils.rasterizer import DEFAULT_NUDGE, DEFAULT_SAMPLE_STEP


@dataclass
class RasterConfig:
    """Controls how strokes become pixels and how jobs count progress."""

    # Footprint sampling step along a stroke's centerline (pixels)
    sample_step: float = DEFAULT_SAMPLE_STEP

    # Single-point nudge applied when drawing on a raster surface (pixels)
    nudge: float = DEFAULT_NUDGE

    # Used when a stroke carries no brush color
    default_brush_color: str = "#000000"

    # Export progress: one "map" step and one "write" step per participant
    steps_per_participant: int = 2
