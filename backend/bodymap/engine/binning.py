"""Rectangular spatial binning of sensation points.

``BinFactory`` groups (x, y) points into fixed-size rectangles of the plane,
e.g. all points inside the same 10x10 area (after d3-rectbin). A point at
(x, y) belongs to bin (floor(x / w), floor(y / h)), anchored at
(nx * w, ny * h).

``merge_drawings`` is the coarse cross-participant variant: raw stroke
geometry is grouped into pixel-sized cells straight from the brush
footprints, with a progress event after each drawing.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Generator, Sequence
from dataclasses import dataclass, field
from typing import Any

from bodymap.engine.config import RasterConfig
from bodymap.engine.errors import DomainMismatchError
from bodymap.engine.progress import ProgressEvent, ProgressTracker
from bodymap.models.survey import PersonaDrawing, SensationPoint
from bodymap.utils.geometry import round_half_up
from bodymap.utils.rasterizer import stroke_footprint

logger = logging.getLogger(__name__)

_MERGE_PHASE = "bins-progress"


@dataclass(frozen=True)
class BinKey:
    nx: int
    ny: int


@dataclass
class Bin:
    """Points inside one rectangle, anchored at its origin corner (x, y)."""

    nx: int
    ny: int
    x: float
    y: float
    points: list[SensationPoint] = field(default_factory=list)

    @property
    def key(self) -> BinKey:
        return BinKey(self.nx, self.ny)

    def __len__(self) -> int:
        return len(self.points)

    def to_dict(self) -> dict[str, Any]:
        return {
            "nx": self.nx,
            "ny": self.ny,
            "x": self.x,
            "y": self.y,
            "points": [p.to_dict() for p in self.points],
        }


class BinFactory:
    """Grid of ``bin_width`` x ``bin_height`` bins covering [x_domain) x [y_domain).

    Bins are allocated eagerly by default. With ``lazy=True`` only the index
    ranges are computed up front and a bin is created the first time a point
    lands in it; ``bins`` returns the same result either way.
    """

    def __init__(
        self,
        x_domain: tuple[float, float],
        y_domain: tuple[float, float],
        bin_width: float = 1.0,
        bin_height: float = 1.0,
        *,
        lazy: bool = False,
    ) -> None:
        if bin_width <= 0 or bin_height <= 0:
            raise ValueError(f"Bin size must be positive, got {bin_width}x{bin_height}")
        if x_domain[1] <= x_domain[0] or y_domain[1] <= y_domain[0]:
            raise ValueError(f"Empty binning domain: x={x_domain}, y={y_domain}")

        self.x_domain = x_domain
        self.y_domain = y_domain
        self.bin_width = bin_width
        self.bin_height = bin_height
        self.lazy = lazy

        self._nx_values = self._indices(x_domain, bin_width)
        self._ny_values = self._indices(y_domain, bin_height)
        self._bins: dict[BinKey, Bin] = {}
        self.make_bins()

    @staticmethod
    def _indices(domain: tuple[float, float], size: float) -> frozenset[int]:
        """Bin indices of the cells starting at domain[0], domain[0] + size, … < domain[1]."""
        start, stop = domain
        count = math.ceil((stop - start) / size)
        values = (start + k * size for k in range(count))
        return frozenset(math.floor(v / size) for v in values if v < stop)

    def make_bins(self) -> None:
        self._bins = {}
        if self.lazy:
            return
        for nx in sorted(self._nx_values):
            for ny in sorted(self._ny_values):
                self._bins[BinKey(nx, ny)] = self._new_bin(nx, ny)

    def reset(self) -> None:
        """Empty every bin for a fresh binning run."""
        self.make_bins()

    def _new_bin(self, nx: int, ny: int) -> Bin:
        return Bin(nx=nx, ny=ny, x=nx * self.bin_width, y=ny * self.bin_height)

    def key_for(self, x: float, y: float) -> BinKey:
        return BinKey(math.floor(x / self.bin_width), math.floor(y / self.bin_height))

    def _lookup(self, key: BinKey) -> Bin:
        found = self._bins.get(key)
        if found is not None:
            return found
        if self.lazy and key.nx in self._nx_values and key.ny in self._ny_values:
            found = self._bins[key] = self._new_bin(key.nx, key.ny)
            return found
        raise DomainMismatchError(
            f"Could not find bin ({key.nx}, {key.ny}) in domain x={self.x_domain}, y={self.y_domain}"
        )

    def bin_points(
        self,
        points: Sequence[SensationPoint],
        on_progress: Callable[[int, int], None] | None = None,
    ) -> None:
        total = len(points)
        for done, point in enumerate(points, start=1):
            self._lookup(self.key_for(point.x, point.y)).points.append(point)
            if on_progress is not None:
                on_progress(done, total)
        logger.debug("Binned %d points into %d of %d allocated bins", total, len(self.bins), self.allocated)

    @property
    def allocated(self) -> int:
        return len(self._bins)

    @property
    def bins(self) -> list[Bin]:
        """Non-empty bins only, ordered by (nx, ny)."""
        filled = [b for b in self._bins.values() if b.points]
        return sorted(filled, key=lambda b: (b.nx, b.ny))


def merge_drawings(
    drawings: Sequence[PersonaDrawing],
    side: str,
    config: RasterConfig | None = None,
) -> Generator[ProgressEvent, None, list[Bin]]:
    """Fold every drawing's brush footprints into pixel-sized cells.

    Yields a progress event after each drawing; the generator's return value
    is the list of cells. Strokes with fewer than 2 points have no footprint
    here. A cell keeps one point per stroke covering it.
    """
    cfg = config or RasterConfig()
    cells: dict[tuple[float, float], Bin] = {}
    tracker = ProgressTracker(_MERGE_PHASE, total=len(drawings))

    for drawing in drawings:
        for stroke in drawing.strokes:
            if len(stroke.points) < 2:
                continue
            footprint = stroke_footprint(
                stroke.coords(),
                stroke.brush_size,
                drawing.img_width,
                drawing.img_height,
                step=cfg.sample_step,
            )
            for ix, iy in footprint.tolist():
                ix, iy = _as_pixel(ix), _as_pixel(iy)
                cell = cells.get((ix, iy))
                if cell is None:
                    cell = cells[(ix, iy)] = Bin(nx=math.floor(ix), ny=math.floor(iy), x=ix, y=iy)
                cell.points.append(SensationPoint(ix, iy, stroke.valence, stroke.intensity))

        percent = int(round_half_up(100 * (tracker.current + 1) / tracker.total))
        yield tracker.advance(f"Merging drawings ({percent}%)")

    logger.info("Merged %d %s drawings into %d cells", len(drawings), side, len(cells))
    return list(cells.values())


def _as_pixel(value: float) -> float:
    return int(value) if float(value).is_integer() else value
