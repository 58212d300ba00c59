"""Pixel-map export: one CSV per participant side, all in one streamed ZIP.

The archive is written straight into the caller's sink, entry by entry. It is
only finalized (central directory written) once every participant has been
mapped and written. If anything fails mid-stream, the sink is detached before
the error propagates, so the output never gains an end record:
``zipfile.is_zipfile`` tells a delivered archive from an aborted one.
"""

from __future__ import annotations

import enum
import io
import logging
import time
import zipfile
from collections.abc import Generator, Iterable
from dataclasses import dataclass, field
from typing import BinaryIO

import pandas as pd

from bodymap.engine.config import RasterConfig
from bodymap.engine.progress import ProgressEvent, ProgressTracker
from bodymap.engine.sensation_mapper import get_drawn_points
from bodymap.engine.surface import SurfaceFactory, create_surface
from bodymap.models.survey import PersonaSide, SensationPoint, Survey

logger = logging.getLogger(__name__)

CSV_COLUMNS = ["x", "y", "valence", "intensity"]

_EXPORT_PHASE = "pixelmaps-zip-progress"

# Archive finalization + delivery
_TRAILING_STEPS = 2


class ExportState(enum.Enum):
    IDLE = "idle"
    MAPPING = "mapping"
    ARCHIVING = "archiving"
    DELIVERED = "delivered"
    ABORTED = "aborted"


@dataclass
class ExportSummary:
    entries: list[str] = field(default_factory=list)
    participants: int = 0
    bytes_written: int = 0


def entry_name(participant_id: str, side: PersonaSide | str) -> str:
    """``"<participantId>-<side>.csv"``."""
    return f"{participant_id}-{PersonaSide(side).value}.csv"


def points_to_csv(points: Iterable[SensationPoint]) -> str:
    """One row per drawn pixel, header ``x,y,valence,intensity``."""
    frame = pd.DataFrame([p.as_tuple() for p in points], columns=CSV_COLUMNS)
    return frame.to_csv(index=False)


def read_pixel_map_csv(data: str | bytes) -> list[SensationPoint]:
    """Parse an exported CSV entry back into sensation points."""
    text = data.decode("utf-8") if isinstance(data, bytes) else data
    if not text.strip():
        return []
    frame = pd.read_csv(io.StringIO(text))
    missing = [c for c in CSV_COLUMNS if c not in frame.columns]
    if missing:
        raise ValueError(f"Pixel map CSV missing columns: {missing}")
    return [
        SensationPoint(int(row.x), int(row.y), float(row.valence), float(row.intensity))
        for row in frame[CSV_COLUMNS].itertuples(index=False)
    ]


class ArchiveSink:
    """Write-only view of the caller's sink.

    It has no ``tell``/``seek``, so ``zipfile`` writes in streaming mode
    (data descriptors after each entry). After ``detach()`` all writes are
    dropped.
    """

    def __init__(self, dest: BinaryIO) -> None:
        self._dest = dest
        self._detached = False
        self.bytes_written = 0

    def write(self, data: bytes) -> int:
        if self._detached:
            return len(data)
        self._dest.write(data)
        self.bytes_written += len(data)
        return len(data)

    def flush(self) -> None:
        if not self._detached and hasattr(self._dest, "flush"):
            self._dest.flush()

    def detach(self) -> None:
        self._detached = True

    @property
    def detached(self) -> bool:
        return self._detached


class PixelMapExporter:
    """Drives the sensation mapper over a survey into one ZIP archive.

    State machine: IDLE -> MAPPING -> ARCHIVING -> DELIVERED, or ABORTED on
    the first error. Single pass, no retry, no rollback.
    """

    def __init__(
        self,
        surface_factory: SurfaceFactory = create_surface,
        config: RasterConfig | None = None,
    ) -> None:
        self.surface_factory = surface_factory
        self.config = config or RasterConfig()
        self.state = ExportState.IDLE

    def total_steps(self, survey: Survey) -> int:
        return self.config.steps_per_participant * len(survey.participants) + _TRAILING_STEPS

    def run(self, survey: Survey, sink: BinaryIO) -> Generator[ProgressEvent, None, ExportSummary]:
        """Export ``survey`` into ``sink``, yielding a progress event per step."""
        start = time.perf_counter()
        tracker = ProgressTracker(_EXPORT_PHASE, total=self.total_steps(survey))
        archive = ArchiveSink(sink)
        summary = ExportSummary(participants=len(survey.participants))

        self.state = ExportState.MAPPING
        zf = zipfile.ZipFile(archive, mode="w", compression=zipfile.ZIP_DEFLATED)
        try:
            for participant in survey.participants.values():
                points_by_side = {
                    side: get_drawn_points(drawing, self.surface_factory, self.config)
                    for side, drawing in participant.drawing.items()
                }
                yield tracker.advance(f"Computed pixel map of participant {participant.id}")

                for side, points in points_by_side.items():
                    name = entry_name(participant.id, side)
                    zf.writestr(name, points_to_csv(points))
                    summary.entries.append(name)
                yield tracker.advance(f"Wrote pixel maps of participant {participant.id}")

            self.state = ExportState.ARCHIVING
            zf.close()
            yield tracker.advance("Created archive")

            archive.flush()
            summary.bytes_written = archive.bytes_written
            self.state = ExportState.DELIVERED
        except BaseException:
            # Also reached when the consumer closes the run before delivery
            self.state = ExportState.ABORTED
            archive.detach()
            zf.close()
            logger.warning(
                "Export aborted after %d/%d steps; archive left unfinalized",
                tracker.current,
                tracker.total,
            )
            raise

        logger.info(
            "Exported %d entries for %d participants (%d bytes) in %.0fms",
            len(summary.entries),
            summary.participants,
            summary.bytes_written,
            (time.perf_counter() - start) * 1000,
        )
        yield tracker.advance("Delivered archive")
        return summary


def export_pixel_maps(
    survey: Survey,
    sink: BinaryIO,
    surface_factory: SurfaceFactory = create_surface,
    config: RasterConfig | None = None,
) -> ExportSummary:
    """Run an export to completion, discarding progress events."""
    exporter = PixelMapExporter(surface_factory, config)
    run = exporter.run(survey, sink)
    while True:
        try:
            next(run)
        except StopIteration as stop:
            return stop.value
