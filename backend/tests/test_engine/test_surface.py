"""Tests for raster surface backends."""

from __future__ import annotations

import numpy as np
import pytest
from PIL import ImageDraw

from bodymap.engine.errors import ConfigurationError
from bodymap.engine.surface import PillowSurface, create_surface, get_surface_factory, parse_color
from bodymap.utils.rasterizer import smoothed_path


def _alpha(surface) -> np.ndarray:
    data = np.frombuffer(surface.read_pixels(), dtype=np.uint8)
    return data.reshape(surface.height, surface.width, 4)[:, :, 3]


class TestPillowSurface:
    def test_new_surface_is_transparent(self):
        surface = create_surface(20, 10)
        assert isinstance(surface, PillowSurface)
        assert len(surface.read_pixels()) == 20 * 10 * 4
        assert not _alpha(surface).any()

    def test_stroke_is_painted_along_the_path(self):
        surface = create_surface(40, 30)
        surface.stroke_path(smoothed_path([(5, 15), (20, 15), (35, 15)]), "#d62728", 4)
        alpha = _alpha(surface)
        assert alpha[15, 20] > 0
        assert alpha[15, 30] > 0
        assert not alpha[2, 2]
        assert not alpha[28, 38]

    def test_css_colors_are_accepted(self):
        surface = create_surface(20, 20)
        surface.stroke_path(smoothed_path([(2, 10), (18, 10)]), "rgb(255, 127, 14)", 3)
        assert _alpha(surface).any()

    def test_clear_erases_everything(self):
        surface = create_surface(20, 20)
        surface.stroke_path(smoothed_path([(2, 2), (18, 18)]), "#000000", 4)
        surface.clear()
        assert not _alpha(surface).any()

    def test_single_point_dot(self):
        surface = create_surface(20, 20)
        surface.stroke_path(smoothed_path([(10, 10)], nudge=0.1), "#000000", 4)
        assert _alpha(surface)[10, 10] > 0

    def test_translucent_canvas_color(self):
        surface = create_surface(20, 20)
        surface.stroke_path(smoothed_path([(2, 10), (18, 10)]), "rgba(214, 39, 40, 0.5)", 3)
        pixels = np.frombuffer(surface.read_pixels(), dtype=np.uint8).reshape(20, 20, 4)
        assert tuple(pixels[10, 10]) == (214, 39, 40, 128)

    def test_unparseable_color_uses_default_ink(self):
        surface = create_surface(20, 20)
        surface.stroke_path(smoothed_path([(2, 10), (18, 10)]), "not-a-color", 3)
        pixels = np.frombuffer(surface.read_pixels(), dtype=np.uint8).reshape(20, 20, 4)
        assert tuple(pixels[10, 10]) == (0, 0, 0, 255)

    def test_half_pixel_line_width_rounds_up(self, monkeypatch):
        widths = []
        original = ImageDraw.ImageDraw.line

        def recording_line(draw, xy, fill=None, width=0, joint=None):
            widths.append(width)
            return original(draw, xy, fill=fill, width=width, joint=joint)

        monkeypatch.setattr(ImageDraw.ImageDraw, "line", recording_line)
        surface = create_surface(20, 20)
        surface.stroke_path(smoothed_path([(2, 10), (18, 10)]), "#000000", 2.5)
        assert widths[0] == 3


class TestParseColor:
    def test_pillow_colors(self):
        assert parse_color("#d62728") == (214, 39, 40, 255)
        assert parse_color("rgb(255, 127, 14)") == (255, 127, 14, 255)

    def test_rgba_alpha_is_a_fraction(self):
        assert parse_color("rgba(214, 39, 40, 0.5)") == (214, 39, 40, 128)
        assert parse_color("rgba(0, 0, 0, 1)") == (0, 0, 0, 255)
        assert parse_color("RGBA(1, 2, 3, .25)") == (1, 2, 3, 64)

    def test_unknown_color(self):
        with pytest.raises(ValueError):
            parse_color("not-a-color")


class TestSurfaceFactory:
    def test_invalid_size_is_a_configuration_error(self):
        with pytest.raises(ConfigurationError):
            create_surface(0, 10)

    def test_unknown_backend(self):
        with pytest.raises(ConfigurationError):
            create_surface(10, 10, backend="webgl")
        with pytest.raises(ConfigurationError):
            get_surface_factory("webgl")

    def test_factory_binds_backend(self):
        factory = get_surface_factory("pillow")
        surface = factory(12, 8)
        assert (surface.width, surface.height) == (12, 8)

    def test_cairo_backend_renders_same_stroke(self):
        try:
            surface = create_surface(40, 30, backend="cairo")
        except ConfigurationError:
            pytest.skip("cairo library not available")
        surface.stroke_path(smoothed_path([(5, 15), (20, 15), (35, 15)]), "#1f77b4", 4)
        assert "stroke-linecap=\"round\"" in surface.to_svg()
        try:
            alpha = _alpha(surface)
        except OSError:
            pytest.skip("cairo library not available")
        assert alpha[15, 20] > 0
        assert not alpha[2, 2]
