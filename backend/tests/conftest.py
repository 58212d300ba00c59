"""Shared test fixtures."""

from __future__ import annotations

import copy

import pytest

from bodymap.models.requests import ParticipantModel
from bodymap.models.survey import Participant, PersonaDrawing, Point, Stroke, Survey


# Survey payloads in the survey tool's JSON shape. 40x30 canvases keep the
# pixel work small.

HORIZONTAL_STROKE = {
    "points": [{"x": 5, "y": 15}, {"x": 20, "y": 15}, {"x": 35, "y": 15}],
    "brushColor": "#d62728",
    "brushSize": 4,
    "valence": -2,
    "intensity": 3,
}

VERTICAL_STROKE = {
    "points": [{"x": 20, "y": 3}, {"x": 20, "y": 15}, {"x": 20, "y": 27}],
    "brushColor": "#1f77b4",
    "brushSize": 4,
    "valence": 1,
    "intensity": 2,
}

DOT_STROKE = {
    "points": [{"x": 10, "y": 10}],
    "brushColor": "#2ca02c",
    "brushSize": 4,
    "valence": 0,
    "intensity": 1,
}

FEMALE_PARTICIPANT = {
    "id": "p01",
    "drawing": {
        "FemaleFront": {
            "imgWidth": 40,
            "imgHeight": 30,
            "scaleFactor": 1.0,
            "strokes": [HORIZONTAL_STROKE, VERTICAL_STROKE],
        },
        "FemaleBack": {
            "imgWidth": 40,
            "imgHeight": 30,
            "scaleFactor": 1.0,
            "strokes": [DOT_STROKE],
        },
    },
}

MALE_PARTICIPANT = {
    "id": "p02",
    "drawing": {
        "MaleFront": {
            "imgWidth": 40,
            "imgHeight": 30,
            "scaleFactor": 0.5,
            "strokes": [
                {
                    "points": [{"x": 8, "y": 22}, {"x": 16, "y": 20}, {"x": 26, "y": 24}, {"x": 32, "y": 20}],
                    "brushColor": "rgb(255, 127, 14)",
                    "brushSize": 6,
                    "valence": 2,
                    "intensity": 1,
                },
            ],
        },
        "MaleBack": None,
    },
}


def make_stroke(
    points: list[tuple[float, float]],
    brush_size: float = 4,
    valence: float = 1,
    intensity: float = 1,
    brush_color: str = "#000000",
) -> Stroke:
    return Stroke(
        points=tuple(Point(x, y) for x, y in points),
        brush_size=brush_size,
        valence=valence,
        intensity=intensity,
        brush_color=brush_color,
    )


def load_participant(payload: dict) -> Participant:
    return ParticipantModel.model_validate(copy.deepcopy(payload)).to_domain()


@pytest.fixture
def female_participant() -> Participant:
    return load_participant(FEMALE_PARTICIPANT)


@pytest.fixture
def male_participant() -> Participant:
    return load_participant(MALE_PARTICIPANT)


@pytest.fixture
def survey(female_participant, male_participant) -> Survey:
    return Survey.from_participants([female_participant, male_participant])


@pytest.fixture
def crossing_drawing() -> PersonaDrawing:
    """Horizontal stroke, then a vertical one crossing it at (20, 15)."""
    return PersonaDrawing(
        img_width=40,
        img_height=30,
        strokes=[
            make_stroke([(5, 15), (20, 15), (35, 15)], valence=-2, intensity=3),
            make_stroke([(20, 3), (20, 15), (20, 27)], valence=1, intensity=2),
        ],
    )
