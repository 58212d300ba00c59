"""Stroke-to-pixel sensation mapping.

Every stroke is painted alone on a cleared surface and read back; pixels with
non-zero alpha take that stroke's sensation. Later strokes overwrite earlier
ones. Only after all strokes of a drawing are mapped is the pixel map swept,
once, to emit drawn points and count areas: counting per stroke would count
overlapping pixels twice.

Pixel data layout (``read_pixels``):
  - one flat byte string, row-major
  - 4 bytes per pixel, RGBA, alpha is every 4th byte
  - alpha > 0 means the pixel was drawn upon
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray

from bodymap.engine.areas import AreaTally
from bodymap.engine.config import RasterConfig
from bodymap.engine.errors import ConfigurationError
from bodymap.engine.surface import RasterSurface, SurfaceFactory, create_surface
from bodymap.models.survey import Participant, PersonaDrawing, Sensation, SensationPoint
from bodymap.utils.rasterizer import draw_strokes

logger = logging.getLogger(__name__)

_RGBA_CHANNELS = 4
_ALPHA = 3


@dataclass
class PixelMapResult:
    pixel_map: dict[tuple[int, int], Sensation] = field(default_factory=dict)
    drawn_points: list[SensationPoint] = field(default_factory=list)

    @property
    def area(self) -> int:
        return len(self.pixel_map)


def acquire_surface(surface_factory: SurfaceFactory, width: int, height: int) -> RasterSurface:
    """Ask the factory for a surface; a missing surface is fatal."""
    surface = surface_factory(width, height)
    if surface is None:
        raise ConfigurationError(f"Could not get a {width}x{height} raster surface to draw strokes")
    return surface


def read_alpha(surface: RasterSurface, width: int, height: int) -> NDArray[np.uint8]:
    """Alpha channel of the surface as a (height, width) array."""
    data = surface.read_pixels()
    expected = width * height * _RGBA_CHANNELS
    if len(data) != expected:
        raise ConfigurationError(
            f"Raster surface returned {len(data)} bytes, expected {expected} for {width}x{height} RGBA"
        )
    return np.frombuffer(data, dtype=np.uint8).reshape(height, width, _RGBA_CHANNELS)[:, :, _ALPHA]


def map_drawing(
    drawing: PersonaDrawing,
    surface_factory: SurfaceFactory = create_surface,
    *,
    tally: AreaTally | None = None,
    config: RasterConfig | None = None,
) -> PixelMapResult:
    """Compute the sensation pixel map and drawn points of one persona drawing.

    Results are stored on ``drawing`` (replacing any previous snapshot) and
    returned. When ``tally`` is given, every drawn pixel is counted once
    under the sensation of the last stroke that covered it.
    """
    cfg = config or RasterConfig()
    width, height = int(drawing.img_width), int(drawing.img_height)
    surface = acquire_surface(surface_factory, width, height)

    pixel_map: dict[tuple[int, int], Sensation] = {}
    for stroke in drawing.strokes:
        surface.clear()
        draw_strokes([stroke], surface, nudge=cfg.nudge, default_color=cfg.default_brush_color)

        ys, xs = np.nonzero(read_alpha(surface, width, height))
        sensation = stroke.sensation
        for x, y in zip(xs.tolist(), ys.tolist()):
            pixel_map[(x, y)] = sensation

    drawn_points: list[SensationPoint] = []
    for (x, y), sensation in pixel_map.items():
        drawn_points.append(SensationPoint(x, y, sensation.valence, sensation.intensity))
        if tally is not None:
            tally.add(sensation)

    drawing.store_derived(pixel_map, drawn_points)
    logger.debug("Mapped %d strokes to %d drawn pixels", len(drawing.strokes), len(pixel_map))
    return PixelMapResult(pixel_map=pixel_map, drawn_points=drawn_points)


def get_drawn_points(
    drawing: PersonaDrawing,
    surface_factory: SurfaceFactory = create_surface,
    config: RasterConfig | None = None,
) -> tuple[SensationPoint, ...]:
    """Drawn points of a drawing, mapping it first if its caches are empty."""
    if not drawing.is_computed:
        map_drawing(drawing, surface_factory, config=config)
    return drawing.drawn_points


def compute_stroke_areas(
    participant: Participant,
    surface_factory: SurfaceFactory = create_surface,
    config: RasterConfig | None = None,
) -> Participant:
    """Map every side of a participant and recount its per-category areas."""
    start = time.perf_counter()
    participant.tally.reset()
    participant.computed = False

    for side, drawing in participant.drawing.items():
        result = map_drawing(drawing, surface_factory, tally=participant.tally, config=config)
        logger.debug("Participant %s %s: %d pixels", participant.id, side.value, result.area)

    participant.computed = True
    logger.info(
        "Computed stroke areas of participant %s: %d pixels in %d categories (%.1fms)",
        participant.id,
        participant.tally.total,
        len(participant.tally),
        (time.perf_counter() - start) * 1000,
    )
    return participant
