"""Leaf-node geometry helpers. No engine imports."""

from __future__ import annotations

import math

import numpy as np
from numpy.typing import NDArray

# Quadratic segments are flattened into this many chords per unit of control
# polygon length before arc-length resampling. 4 chords/px keeps the chord
# error well below the 1px sampling step.
_FLATTEN_DENSITY = 4

# Lower bound on chords per curve, so very short curves still bend.
_MIN_FLATTEN_CHORDS = 8


def midpoint(p1: tuple[float, float], p2: tuple[float, float]) -> tuple[float, float]:
    """Point halfway between p1 and p2."""
    return (p1[0] + (p2[0] - p1[0]) / 2, p1[1] + (p2[1] - p1[1]) / 2)


def as_points(points) -> NDArray[np.float64]:
    """Coerce a sequence of (x, y) pairs to an Nx2 float array."""
    arr = np.asarray(points, dtype=np.float64)
    if arr.size == 0:
        return np.empty((0, 2))
    return arr.reshape(-1, 2)


def scale_points(points: NDArray[np.float64], scale_factor: float) -> NDArray[np.float64]:
    """Multiply every coordinate by ``scale_factor``. Returns a new array."""
    return as_points(points) * scale_factor


def round_half_up(values: NDArray[np.float64] | float) -> NDArray[np.int64]:
    """Round to the nearest integer, ties toward +inf (browser ``Math.round``)."""
    return np.floor(np.asarray(values, dtype=np.float64) + 0.5).astype(np.int64)


def arc_lengths(points: NDArray[np.float64]) -> NDArray[np.float64]:
    """Cumulative arc-length along a point sequence."""
    if len(points) == 0:
        return np.empty(0)
    diffs = np.diff(points, axis=0)
    segment_lengths = np.sqrt(np.sum(diffs**2, axis=1))
    return np.concatenate([[0.0], np.cumsum(segment_lengths)])


def quadratic_bezier(
    p0: tuple[float, float],
    control: tuple[float, float],
    p1: tuple[float, float],
    t: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Evaluate B(t) = (1-t)²·p0 + 2t(1-t)·c + t²·p1 for every t."""
    t = np.asarray(t, dtype=np.float64)[:, None]
    a = np.asarray(p0, dtype=np.float64)
    c = np.asarray(control, dtype=np.float64)
    b = np.asarray(p1, dtype=np.float64)
    return (1 - t) ** 2 * a + 2 * t * (1 - t) * c + t**2 * b


def flatten_quadratic(
    p0: tuple[float, float],
    control: tuple[float, float],
    p1: tuple[float, float],
) -> NDArray[np.float64]:
    """Dense polyline approximation of a quadratic curve, endpoints included."""
    hull = math.dist(p0, control) + math.dist(control, p1)
    chords = max(_MIN_FLATTEN_CHORDS, math.ceil(hull * _FLATTEN_DENSITY))
    return quadratic_bezier(p0, control, p1, np.linspace(0.0, 1.0, chords + 1))


def resample_polyline(points: NDArray[np.float64], step: float) -> NDArray[np.float64]:
    """Resample a polyline at a fixed arc-length step.

    Samples sit at s = 0, step, 2·step, … plus the final point, so consecutive
    samples are never further apart than ``step``.
    """
    if step <= 0:
        raise ValueError(f"Sampling step must be positive, got {step}")
    pts = as_points(points)
    if len(pts) < 2:
        return pts.copy()

    cumulative = arc_lengths(pts)
    total = float(cumulative[-1])
    if total == 0.0:
        return pts[[0, -1]].copy()

    stations = np.arange(0.0, total, step)
    if stations[-1] < total:
        stations = np.append(stations, total)
    xs = np.interp(stations, cumulative, pts[:, 0])
    ys = np.interp(stations, cumulative, pts[:, 1])
    return np.column_stack([xs, ys])


def dedupe_consecutive(points: NDArray[np.float64]) -> NDArray[np.float64]:
    """Drop points equal to their predecessor."""
    pts = as_points(points)
    if len(pts) < 2:
        return pts
    keep = np.ones(len(pts), dtype=bool)
    keep[1:] = np.any(np.diff(pts, axis=0) != 0, axis=1)
    return pts[keep]
