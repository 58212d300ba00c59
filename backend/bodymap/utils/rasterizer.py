"""Stroke rasterization: midpoint-smoothed paths, brush footprints, surface drawing.

A freehand stroke p0..pn-1 becomes the path:

    M p1
    Q p0 mid(p0, p1)
    Q p1 mid(p1, p2)
    ...
    Q pn-2 mid(pn-2, pn-1)
    L pn-1

The curve's centerline is what the footprint and the surfaces rasterize.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from bodymap.utils.geometry import (
    as_points,
    flatten_quadratic,
    midpoint,
    resample_polyline,
    round_half_up,
    scale_points,
)

if TYPE_CHECKING:
    from bodymap.engine.surface import RasterSurface
    from bodymap.models.survey import Stroke

# ── Named constants ──

# Footprint sampling step along the centerline, in pixels. One sample per
# pixel of travel means no rounded center is ever skipped.
DEFAULT_SAMPLE_STEP = 1.0

# Single-point strokes are zero-length segments. Renderers disagree on whether
# those are painted, so the final point is nudged by this many pixels on both
# axes to force a visible dot.
DEFAULT_NUDGE = 0.1


@dataclass(frozen=True)
class PathSegment:
    """``Q`` (quadratic, with control point) or ``L`` (straight line)."""

    kind: str
    end: tuple[float, float]
    control: tuple[float, float] | None = None


@dataclass(frozen=True)
class StrokePath:
    start: tuple[float, float]
    segments: tuple[PathSegment, ...] = field(default_factory=tuple)

    def to_svg_d(self) -> str:
        """SVG path data, e.g. ``M 1 2 Q 0 0 0.5 1 L 1 2``."""
        parts = [f"M {_fmt(self.start[0])} {_fmt(self.start[1])}"]
        for seg in self.segments:
            if seg.kind == "Q" and seg.control is not None:
                parts.append(
                    f"Q {_fmt(seg.control[0])} {_fmt(seg.control[1])} "
                    f"{_fmt(seg.end[0])} {_fmt(seg.end[1])}"
                )
            else:
                parts.append(f"L {_fmt(seg.end[0])} {_fmt(seg.end[1])}")
        return " ".join(parts)

    def flatten(self) -> NDArray[np.float64]:
        """Dense polyline through the whole path, start point included."""
        pieces = [np.asarray([self.start], dtype=np.float64)]
        cursor = self.start
        for seg in self.segments:
            if seg.kind == "Q" and seg.control is not None:
                pieces.append(flatten_quadratic(cursor, seg.control, seg.end)[1:])
            else:
                pieces.append(np.asarray([seg.end], dtype=np.float64))
            cursor = seg.end
        return np.concatenate(pieces)

    def sample(self, step: float = DEFAULT_SAMPLE_STEP) -> NDArray[np.float64]:
        """Centerline samples spaced at most ``step`` apart."""
        return resample_polyline(self.flatten(), step)


def _fmt(value: float) -> str:
    return f"{value:.4f}".rstrip("0").rstrip(".")


def smoothed_path(
    points: Sequence[tuple[float, float]] | NDArray[np.float64],
    nudge: float = 0.0,
) -> StrokePath | None:
    """Build the midpoint-smoothed quadratic path of a freehand stroke.

    Fewer than 2 points yields no path unless ``nudge`` is positive, in which
    case a single point becomes a tiny straight segment. The input is never
    modified.
    """
    pts = [(float(x), float(y)) for x, y in as_points(points)]
    if not pts:
        return None

    if len(pts) < 2:
        if nudge <= 0:
            return None
        x, y = pts[0]
        return StrokePath(start=(x, y), segments=(PathSegment("L", (x + nudge, y + nudge)),))

    segments: list[PathSegment] = []
    for prev, cur in zip(pts, pts[1:]):
        segments.append(PathSegment("Q", midpoint(prev, cur), control=prev))

    last_x, last_y = pts[-1]
    segments.append(PathSegment("L", (last_x + nudge, last_y + nudge)))
    return StrokePath(start=pts[1], segments=tuple(segments))


def expand_footprint(
    centers: NDArray[np.float64],
    brush_size: float,
    width: float,
    height: float,
) -> NDArray[np.float64]:
    """Expand sample centers into brush-sized squares of cells.

    Each center is rounded to a pixel, then covered by offsets -r, -r+1, …
    strictly below r (r = brush_size / 2). Cells left of 0, right of
    ``width``, above 0 or below ``height`` are dropped. Duplicates are
    removed, first occurrence wins, so the result keeps sampling order.
    """
    pts = as_points(centers)
    radius = brush_size / 2
    offsets = np.arange(-radius, radius, 1.0)
    if len(pts) == 0 or len(offsets) == 0:
        return np.empty((0, 2))

    rounded = round_half_up(pts).astype(np.float64)
    dx, dy = np.meshgrid(offsets, offsets, indexing="ij")
    xs = (rounded[:, 0][:, None] + dx.ravel()[None, :]).ravel()
    ys = (rounded[:, 1][:, None] + dy.ravel()[None, :]).ravel()

    inside = (xs >= 0) & (xs <= width) & (ys >= 0) & (ys <= height)
    cells = np.column_stack([xs[inside], ys[inside]])
    if len(cells) == 0:
        return np.empty((0, 2))

    _, first = np.unique(cells, axis=0, return_index=True)
    return cells[np.sort(first)]


def stroke_footprint(
    points: Sequence[tuple[float, float]] | NDArray[np.float64],
    brush_size: float,
    width: float,
    height: float,
    *,
    step: float = DEFAULT_SAMPLE_STEP,
    nudge: float = 0.0,
) -> NDArray[np.float64]:
    """Cells covered by one stroke, each listed once. Nx2 array of (x, y)."""
    path = smoothed_path(points, nudge=nudge)
    if path is None:
        return np.empty((0, 2))
    return expand_footprint(path.sample(step), brush_size, width, height)


def draw_strokes(
    strokes: Iterable[Stroke],
    surface: RasterSurface,
    scale_factor: float | None = None,
    *,
    nudge: float = DEFAULT_NUDGE,
    default_color: str = "#000000",
) -> int:
    """Stroke every path onto ``surface``. Returns the number of paths drawn.

    With ``scale_factor`` both the points and the brush size are scaled, for
    drawing on a display-sized surface.
    """
    drawn = 0
    for stroke in strokes:
        points = as_points(stroke.coords())
        brush_size = float(stroke.brush_size)
        if scale_factor is not None:
            points = scale_points(points, scale_factor)
            brush_size *= scale_factor

        path = smoothed_path(points, nudge=nudge)
        if path is None:
            continue
        surface.stroke_path(path, stroke.brush_color or default_color, brush_size)
        drawn += 1
    return drawn
