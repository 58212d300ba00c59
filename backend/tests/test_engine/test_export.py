"""Tests for CSV pixel maps and the streamed ZIP export."""

from __future__ import annotations

import io
import zipfile

import pytest

from bodymap.engine.errors import ConfigurationError
from bodymap.engine.export import (
    ArchiveSink,
    ExportState,
    PixelMapExporter,
    entry_name,
    export_pixel_maps,
    points_to_csv,
    read_pixel_map_csv,
)
from bodymap.engine.surface import create_surface
from bodymap.models.survey import PersonaSide, SensationPoint, Survey


class TestCsv:
    def test_round_trip(self):
        points = [SensationPoint(3, 4, -2.0, 3.0), SensationPoint(5, 6, 0.5, 1.0)]
        text = points_to_csv(points)
        assert text.splitlines()[0] == "x,y,valence,intensity"
        assert read_pixel_map_csv(text) == points

    def test_empty_map_still_has_header(self):
        text = points_to_csv([])
        assert text.strip() == "x,y,valence,intensity"
        assert read_pixel_map_csv(text) == []
        assert read_pixel_map_csv(b"") == []

    def test_missing_columns(self):
        with pytest.raises(ValueError, match="intensity"):
            read_pixel_map_csv("x,y,valence\n1,2,3\n")

    def test_entry_name(self):
        assert entry_name("p01", PersonaSide.FEMALE_BACK) == "p01-FemaleBack.csv"
        assert entry_name("p02", "MaleFront") == "p02-MaleFront.csv"


class TestArchiveSink:
    def test_detach_drops_writes(self):
        dest = io.BytesIO()
        sink = ArchiveSink(dest)
        sink.write(b"abc")
        sink.detach()
        sink.write(b"def")
        assert dest.getvalue() == b"abc"
        assert sink.bytes_written == 3
        assert sink.detached


class TestPixelMapExporter:
    def test_full_export(self, survey):
        exporter = PixelMapExporter()
        sink = io.BytesIO()
        run = exporter.run(survey, sink)
        events = []
        while True:
            try:
                events.append(next(run))
            except StopIteration as stop:
                summary = stop.value
                break

        assert exporter.total_steps(survey) == 6
        assert [e.current for e in events] == [1, 2, 3, 4, 5, 6]
        assert all(e.total == 6 for e in events)
        assert events[0].message == "Computed pixel map of participant p01"
        assert events[1].message == "Wrote pixel maps of participant p01"
        assert [e.message for e in events[-2:]] == ["Created archive", "Delivered archive"]
        assert exporter.state is ExportState.DELIVERED

        assert summary.entries == ["p01-FemaleFront.csv", "p01-FemaleBack.csv", "p02-MaleFront.csv"]
        assert summary.bytes_written == len(sink.getvalue())

        assert zipfile.is_zipfile(io.BytesIO(sink.getvalue()))
        with zipfile.ZipFile(io.BytesIO(sink.getvalue())) as zf:
            assert zf.namelist() == summary.entries
            front = survey.participants["p01"].drawing[PersonaSide.FEMALE_FRONT]
            assert read_pixel_map_csv(zf.read("p01-FemaleFront.csv")) == list(front.drawn_points)

    def test_export_reuses_computed_maps(self, survey):
        calls = []

        def factory(width, height):
            calls.append((width, height))
            return create_surface(width, height)

        export_pixel_maps(survey, io.BytesIO(), factory)
        assert len(calls) == 3
        export_pixel_maps(survey, io.BytesIO(), factory)
        assert len(calls) == 3

    def test_empty_survey_is_an_empty_archive(self):
        sink = io.BytesIO()
        summary = export_pixel_maps(Survey(), sink)
        assert summary.entries == []
        with zipfile.ZipFile(io.BytesIO(sink.getvalue())) as zf:
            assert zf.namelist() == []

    def test_failure_aborts_without_archive(self, survey):
        calls = []

        def failing_factory(width, height):
            calls.append(1)
            # Second side of the first participant gets no surface
            return create_surface(width, height) if len(calls) == 1 else None

        exporter = PixelMapExporter(failing_factory)
        sink = io.BytesIO()
        with pytest.raises(ConfigurationError):
            for _ in exporter.run(survey, sink):
                pass

        assert exporter.state is ExportState.ABORTED
        assert not zipfile.is_zipfile(io.BytesIO(sink.getvalue()))

    def test_failure_after_first_participant(self, survey):
        calls = []

        def failing_factory(width, height):
            calls.append(1)
            return create_surface(width, height) if len(calls) <= 2 else None

        exporter = PixelMapExporter(failing_factory)
        sink = io.BytesIO()
        events = []
        with pytest.raises(ConfigurationError):
            for event in exporter.run(survey, sink):
                events.append(event)

        assert [e.current for e in events] == [1, 2]
        assert exporter.state is ExportState.ABORTED
        assert sink.getvalue()
        assert not zipfile.is_zipfile(io.BytesIO(sink.getvalue()))

    def test_closing_after_delivery_keeps_archive(self, survey):
        exporter = PixelMapExporter()
        sink = io.BytesIO()
        run = exporter.run(survey, sink)
        messages = [next(run).message for _ in range(exporter.total_steps(survey))]
        assert messages[-1] == "Delivered archive"

        run.close()
        assert exporter.state is ExportState.DELIVERED
        assert zipfile.is_zipfile(io.BytesIO(sink.getvalue()))

    def test_closing_mid_export_aborts(self, survey):
        exporter = PixelMapExporter()
        sink = io.BytesIO()
        run = exporter.run(survey, sink)
        next(run)
        next(run)

        run.close()
        assert exporter.state is ExportState.ABORTED
        assert not zipfile.is_zipfile(io.BytesIO(sink.getvalue()))
