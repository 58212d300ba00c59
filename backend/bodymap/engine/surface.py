"""Raster surfaces: where a single stroke is painted and read back.

A surface exposes ``clear()``, ``stroke_path(path, color, line_width)`` and
``read_pixels()`` returning row-major RGBA bytes (4 per pixel). Two backends:

* ``pillow``: ``PIL.ImageDraw`` polyline with round joins and caps.
* ``cairo``: the path is emitted as SVG ``Q``/``L`` commands and rendered by
  cairosvg, reproducing canvas-style quadratic curves exactly.
"""

from __future__ import annotations

import functools
import io
import logging
import re
from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol
from xml.sax.saxutils import quoteattr

from PIL import Image, ImageColor, ImageDraw

from bodymap.engine.errors import ConfigurationError
from bodymap.utils.geometry import dedupe_consecutive, round_half_up

if TYPE_CHECKING:
    from bodymap.utils.rasterizer import StrokePath

logger = logging.getLogger(__name__)

# Polyline flattening step for the Pillow backend. Half a pixel keeps wide
# strokes visually round on tight curves.
_PILLOW_FLATTEN_STEP = 0.5

_TRANSPARENT = (0, 0, 0, 0)

# Ink used when a stroke's color cannot be parsed
_DEFAULT_INK = (0, 0, 0, 255)

# Canvas-style rgba() with a 0-1 alpha, which Pillow reads as 0-255
_CSS_RGBA = re.compile(r"rgba\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d*\.?\d+)\s*\)", re.IGNORECASE)


class RasterSurface(Protocol):
    width: int
    height: int

    def clear(self) -> None: ...

    def stroke_path(self, path: StrokePath, color: str, line_width: float) -> None: ...

    def read_pixels(self) -> bytes: ...


SurfaceFactory = Callable[[int, int], RasterSurface | None]


def parse_color(color: str) -> tuple[int, int, int, int]:
    """RGBA ink of a CSS color, e.g. ``"#d62728"`` or ``"rgba(214, 39, 40, 0.5)"``.

    Raises ``ValueError`` for colors neither Pillow nor the rgba() form
    understands.
    """
    match = _CSS_RGBA.fullmatch(color.strip())
    if match is None:
        return ImageColor.getcolor(color, "RGBA")
    r, g, b = (min(255, int(v)) for v in match.groups()[:3])
    alpha = min(1.0, float(match.group(4)))
    return (r, g, b, int(round_half_up(alpha * 255)))


def _check_size(width: int, height: int) -> tuple[int, int]:
    w, h = int(width), int(height)
    if w <= 0 or h <= 0:
        raise ConfigurationError(f"Cannot allocate a {width}x{height} raster surface")
    return w, h


class PillowSurface:
    """RGBA Pillow image drawn with ``ImageDraw``. No antialiasing."""

    def __init__(self, width: int, height: int) -> None:
        self.width, self.height = _check_size(width, height)
        self._image = Image.new("RGBA", (self.width, self.height), _TRANSPARENT)
        self._draw = ImageDraw.Draw(self._image)

    def clear(self) -> None:
        self._image.paste(_TRANSPARENT, (0, 0, self.width, self.height))

    def stroke_path(self, path: StrokePath, color: str, line_width: float) -> None:
        try:
            ink = parse_color(color)
        except ValueError:
            logger.warning("Unparseable brush color %r, drawing with default ink", color)
            ink = _DEFAULT_INK
        coords = [tuple(p) for p in dedupe_consecutive(path.sample(_PILLOW_FLATTEN_STEP)).tolist()]
        if not coords:
            return

        if len(coords) >= 2:
            self._draw.line(coords, fill=ink, width=max(1, int(round_half_up(line_width))), joint="curve")

        # Round caps
        r = line_width / 2
        for x, y in (coords[0], coords[-1]):
            self._draw.ellipse([x - r, y - r, x + r, y + r], fill=ink)

    def read_pixels(self) -> bytes:
        return self._image.tobytes()


class SvgSurface:
    """Collects stroked paths as SVG and renders them through cairosvg."""

    def __init__(self, width: int, height: int) -> None:
        self.width, self.height = _check_size(width, height)
        try:
            import cairosvg
        except (ImportError, OSError) as e:
            raise ConfigurationError(f"cairo raster backend unavailable: {e}") from e
        self._cairosvg = cairosvg
        self._elements: list[str] = []

    def clear(self) -> None:
        self._elements.clear()

    def stroke_path(self, path: StrokePath, color: str, line_width: float) -> None:
        self._elements.append(
            f'<path d="{path.to_svg_d()}" fill="none" stroke={quoteattr(color)} '
            f'stroke-width="{line_width}" stroke-linecap="round" stroke-linejoin="round"/>'
        )

    def to_svg(self) -> str:
        return (
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{self.width}" '
            f'height="{self.height}" viewBox="0 0 {self.width} {self.height}">'
            + "".join(self._elements)
            + "</svg>"
        )

    def read_pixels(self) -> bytes:
        png_data = self._cairosvg.svg2png(
            bytestring=self.to_svg().encode("utf-8"),
            output_width=self.width,
            output_height=self.height,
        )
        return Image.open(io.BytesIO(png_data)).convert("RGBA").tobytes()


_BACKENDS: dict[str, type] = {
    "pillow": PillowSurface,
    "cairo": SvgSurface,
}


def create_surface(width: int, height: int, backend: str = "pillow") -> RasterSurface:
    """Allocate a cleared surface of the given size."""
    cls = _BACKENDS.get(backend)
    if cls is None:
        raise ConfigurationError(f"Unknown raster surface backend: {backend!r}")
    surface = cls(width, height)
    logger.debug("Allocated %s surface %dx%d", backend, surface.width, surface.height)
    return surface


def get_surface_factory(backend: str = "pillow") -> SurfaceFactory:
    if backend not in _BACKENDS:
        raise ConfigurationError(f"Unknown raster surface backend: {backend!r}")
    return functools.partial(create_surface, backend=backend)
