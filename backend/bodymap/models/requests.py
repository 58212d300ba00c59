"""API request models.

Field names follow the survey tool's JSON (``imgWidth``, ``brushSize`` …);
snake_case names are accepted too.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from bodymap.engine.surface import parse_color
from bodymap.models.survey import (
    Participant,
    PersonaDrawing,
    PersonaSide,
    Point,
    Stroke,
    Survey,
)


class _SurveyModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PointModel(_SurveyModel):
    x: float
    y: float


class StrokeModel(_SurveyModel):
    points: list[PointModel] = Field(default_factory=list)
    brush_color: str = Field(default="#000000", description="Any CSS color Pillow/cairo understands")
    brush_size: float = Field(..., gt=0, description="Brush diameter in pixels")
    valence: float
    intensity: float

    @field_validator("brush_color")
    @classmethod
    def _drawable_color(cls, value: str) -> str:
        # Empty means the configured default color
        if not value:
            return value
        try:
            parse_color(value)
        except ValueError as e:
            raise ValueError(f"unsupported brush color: {value!r}") from e
        return value

    def to_domain(self) -> Stroke:
        return Stroke(
            points=tuple(Point(p.x, p.y) for p in self.points),
            brush_size=self.brush_size,
            valence=self.valence,
            intensity=self.intensity,
            brush_color=self.brush_color,
        )


class PersonaDrawingModel(_SurveyModel):
    img_width: int = Field(..., gt=0)
    img_height: int = Field(..., gt=0)
    scale_factor: float = Field(default=1.0, gt=0)
    strokes: list[StrokeModel] = Field(default_factory=list)

    def to_domain(self) -> PersonaDrawing:
        return PersonaDrawing(
            img_width=self.img_width,
            img_height=self.img_height,
            strokes=[s.to_domain() for s in self.strokes],
            scale_factor=self.scale_factor,
        )


class ParticipantModel(_SurveyModel):
    id: str = Field(..., min_length=1)
    drawing: dict[PersonaSide, PersonaDrawingModel | None]

    @model_validator(mode="after")
    def _has_a_side(self) -> ParticipantModel:
        if not any(d is not None for d in self.drawing.values()):
            raise ValueError(f"participant {self.id} has no drawn side")
        return self

    def to_domain(self) -> Participant:
        return Participant(
            id=self.id,
            drawing={side: d.to_domain() for side, d in self.drawing.items() if d is not None},
        )


class BinsRequestModel(_SurveyModel):
    side: PersonaSide
    drawings: list[PersonaDrawingModel] = Field(default_factory=list)
    bin_width: float | None = Field(default=None, gt=0)
    bin_height: float | None = Field(default=None, gt=0)
    width: int | None = Field(default=None, gt=0, description="Grid domain width; omit for pixel cells")
    height: int | None = Field(default=None, gt=0, description="Grid domain height; omit for pixel cells")
    lazy: bool = False


class ParticipantsRequestModel(_SurveyModel):
    participants: list[ParticipantModel] = Field(default_factory=list)

    def to_participants(self) -> list[Participant]:
        return [p.to_domain() for p in self.participants]

    def to_survey(self) -> Survey:
        return Survey.from_participants(self.to_participants())
