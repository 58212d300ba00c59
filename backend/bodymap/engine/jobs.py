"""Job channels: one per job type.

Each job takes an immutable request and returns a generator of
``JobMessage``s: progress messages first, then exactly one result message.
Messages carry plain dicts and lists (structural copies), never live engine
objects. A job runs to completion or raises on its first error; there is no
cancellation and no partial result.

    bins     -> "bins-progress"*,          "bins"
    areas    -> "areas-progress"*,         "areas-done"
    export   -> "pixelmaps-zip-progress"*, "pixelmaps-done"
"""

from __future__ import annotations

import logging
import time
from collections.abc import Generator, Iterator
from dataclasses import dataclass
from typing import Any, BinaryIO

from bodymap.engine.binning import Bin, BinFactory, merge_drawings
from bodymap.engine.config import RasterConfig
from bodymap.engine.export import PixelMapExporter
from bodymap.engine.progress import JobMessage, ProgressEvent, ProgressTracker
from bodymap.engine.sensation_mapper import compute_stroke_areas, get_drawn_points
from bodymap.engine.surface import SurfaceFactory, create_surface
from bodymap.models.survey import Participant, PersonaDrawing, PersonaSide, Survey
from bodymap.utils.geometry import round_half_up

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BinsRequest:
    """Bin the drawings of one side.

    Without ``width``/``height`` the drawings are merged into pixel-sized
    cells from their brush footprints. With them, drawn pixels are mapped and
    binned on a ``bin_width`` x ``bin_height`` grid over [0, width) x [0, height).
    """

    side: PersonaSide
    drawings: tuple[PersonaDrawing, ...]
    bin_width: float = 10.0
    bin_height: float = 10.0
    width: int | None = None
    height: int | None = None
    lazy: bool = False

    @property
    def uses_grid(self) -> bool:
        return self.width is not None and self.height is not None


@dataclass(frozen=True)
class AreasRequest:
    participants: tuple[Participant, ...]


@dataclass(frozen=True)
class ExportRequest:
    survey: Survey
    sink: BinaryIO


def _relay(
    events: Generator[ProgressEvent, None, Any],
    event: str,
    extra: dict[str, Any] | None = None,
) -> Generator[JobMessage, None, Any]:
    """Re-emit progress events as job messages; returns the inner result."""
    while True:
        try:
            progress = next(events)
        except StopIteration as stop:
            return stop.value
        yield JobMessage(event, {**progress.to_dict(), **(extra or {})})


def _bins_payload(side: PersonaSide, bins: list[Bin]) -> dict[str, Any]:
    return {"side": side.value, "bins": [b.to_dict() for b in bins]}


def run_bins_job(
    request: BinsRequest,
    surface_factory: SurfaceFactory = create_surface,
    config: RasterConfig | None = None,
) -> Iterator[JobMessage]:
    side = PersonaSide(request.side)
    if not request.drawings:
        # Nothing to bin: answer right away, no pixel work.
        yield JobMessage("bins", _bins_payload(side, []))
        return

    start = time.perf_counter()
    extra = {"side": side.value}
    if request.uses_grid:
        bins = yield from _grid_bins(request, surface_factory, config, extra)
    else:
        bins = yield from _relay(merge_drawings(request.drawings, side.value, config), "bins-progress", extra)

    handoff = ProgressTracker("bins-progress", total=1)
    yield JobMessage("bins-progress", {**handoff.advance("Moving data").to_dict(), **extra})
    logger.info(
        "Bins job %s: %d drawings -> %d bins in %.0fms",
        side.value,
        len(request.drawings),
        len(bins),
        (time.perf_counter() - start) * 1000,
    )
    yield JobMessage("bins", _bins_payload(side, bins))


def _grid_bins(
    request: BinsRequest,
    surface_factory: SurfaceFactory,
    config: RasterConfig | None,
    extra: dict[str, Any],
) -> Generator[JobMessage, None, list[Bin]]:
    factory = BinFactory(
        (0, request.width),
        (0, request.height),
        request.bin_width,
        request.bin_height,
        lazy=request.lazy,
    )
    tracker = ProgressTracker("bins-progress", total=len(request.drawings))
    for drawing in request.drawings:
        factory.bin_points(get_drawn_points(drawing, surface_factory, config))
        percent = int(round_half_up(100 * (tracker.current + 1) / tracker.total))
        yield JobMessage("bins-progress", {**tracker.advance(f"Binning drawings ({percent}%)").to_dict(), **extra})
    return factory.bins


def run_areas_job(
    request: AreasRequest,
    surface_factory: SurfaceFactory = create_surface,
    config: RasterConfig | None = None,
) -> Iterator[JobMessage]:
    tracker = ProgressTracker("areas-progress", total=len(request.participants))
    areas: list[dict[str, Any]] = []

    for participant in request.participants:
        yield JobMessage(
            "areas-progress",
            tracker.emit(f"Computing stroke areas of participant {participant.id}").to_dict(),
        )
        compute_stroke_areas(participant, surface_factory, config)
        areas.append(
            {
                "id": participant.id,
                "areas": participant.areas,
                "total_drawing_area": participant.total_drawing_area,
            }
        )
        tracker.advance(f"Computed stroke areas of participant {participant.id}")

    yield JobMessage("areas-done", areas)


def run_export_job(
    request: ExportRequest,
    surface_factory: SurfaceFactory = create_surface,
    config: RasterConfig | None = None,
) -> Iterator[JobMessage]:
    exporter = PixelMapExporter(surface_factory, config)
    summary = yield from _relay(exporter.run(request.survey, request.sink), "pixelmaps-zip-progress")
    yield JobMessage(
        "pixelmaps-done",
        {
            "entries": list(summary.entries),
            "participants": summary.participants,
            "bytes_written": summary.bytes_written,
        },
    )


def drain(messages: Iterator[JobMessage]) -> JobMessage:
    """Consume a job and return its final (result) message."""
    last: JobMessage | None = None
    for message in messages:
        last = message
    if last is None:
        raise RuntimeError("Job produced no messages")
    return last
