"""Survey domain model: strokes, persona drawings, participants, survey.

Derived data (pixel maps, drawn points, area tallies) lives next to the data
it is derived from, but is only valid once computed by the engine.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from bodymap.engine.areas import AreaTally
from bodymap.engine.errors import NotComputedError


class Persona(str, enum.Enum):
    FEMALE = "Female"
    MALE = "Male"


class PersonaSide(str, enum.Enum):
    FEMALE_FRONT = "FemaleFront"
    FEMALE_BACK = "FemaleBack"
    MALE_FRONT = "MaleFront"
    MALE_BACK = "MaleBack"

    @property
    def persona(self) -> Persona:
        if self.value.startswith(Persona.FEMALE.value):
            return Persona.FEMALE
        return Persona.MALE


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Sensation:
    """Valence/intensity pair chosen for a stroke. Hashable, used as area key."""

    valence: float
    intensity: float

    @property
    def key(self) -> str:
        return f"{format_scale(self.valence)}:{format_scale(self.intensity)}"


@dataclass(frozen=True)
class SensationPoint:
    x: float
    y: float
    valence: float
    intensity: float

    @property
    def sensation(self) -> Sensation:
        return Sensation(self.valence, self.intensity)

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.x, self.y, self.valence, self.intensity)

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "valence": self.valence, "intensity": self.intensity}


@dataclass(frozen=True)
class Stroke:
    """One freehand stroke: ordered points, brush style, one sensation."""

    points: tuple[Point, ...]
    brush_size: float
    valence: float
    intensity: float
    brush_color: str = "#000000"

    @property
    def sensation(self) -> Sensation:
        return Sensation(self.valence, self.intensity)

    def coords(self) -> list[tuple[float, float]]:
        return [(p.x, p.y) for p in self.points]


PixelMap = Mapping[tuple[int, int], Sensation]


@dataclass
class PersonaDrawing:
    """One anatomical view drawn by one participant."""

    img_width: int
    img_height: int
    strokes: list[Stroke] = field(default_factory=list)
    scale_factor: float = 1.0
    _pixel_map: PixelMap | None = field(default=None, init=False, repr=False)
    _drawn_points: tuple[SensationPoint, ...] | None = field(default=None, init=False, repr=False)

    @property
    def is_computed(self) -> bool:
        return self._pixel_map is not None

    @property
    def sensation_pixel_map(self) -> PixelMap:
        if self._pixel_map is None:
            raise NotComputedError("Sensation pixel map has not been computed")
        return self._pixel_map

    @property
    def drawn_points(self) -> tuple[SensationPoint, ...]:
        if self._drawn_points is None:
            raise NotComputedError("Drawn points have not been computed")
        return self._drawn_points

    def store_derived(
        self,
        pixel_map: dict[tuple[int, int], Sensation],
        drawn_points: Iterable[SensationPoint],
    ) -> None:
        """Replace both caches with a read-only snapshot."""
        self._pixel_map = MappingProxyType(dict(pixel_map))
        self._drawn_points = tuple(drawn_points)

    def invalidate(self) -> None:
        self._pixel_map = None
        self._drawn_points = None

    def set_strokes(self, strokes: Iterable[Stroke]) -> None:
        self.strokes = list(strokes)
        self.invalidate()

    def add_stroke(self, stroke: Stroke) -> None:
        self.strokes.append(stroke)
        self.invalidate()


Drawing = dict[PersonaSide, PersonaDrawing]


def infer_persona(drawing: Mapping[PersonaSide, PersonaDrawing]) -> Persona:
    """Female if any female side was drawn, Male otherwise."""
    if any(side.persona is Persona.FEMALE for side in drawing):
        return Persona.FEMALE
    return Persona.MALE


@dataclass
class Participant:
    id: str
    drawing: Drawing
    persona: Persona = field(init=False)
    tally: AreaTally = field(default_factory=AreaTally, repr=False)
    computed: bool = False

    def __post_init__(self) -> None:
        self.drawing = {PersonaSide(side): d for side, d in self.drawing.items() if d is not None}
        if not self.drawing:
            raise ValueError(f"Participant {self.id} has no drawn side")
        self.persona = infer_persona(self.drawing)

    @property
    def areas(self) -> dict[str, int]:
        """Pixel count per ``"valence:intensity"`` category."""
        self._require_computed()
        return self.tally.table()

    @property
    def total_drawing_area(self) -> int:
        self._require_computed()
        return self.tally.total

    def invalidate(self) -> None:
        self.tally.reset()
        self.computed = False
        for persona_drawing in self.drawing.values():
            persona_drawing.invalidate()

    def _require_computed(self) -> None:
        if not self.computed:
            raise NotComputedError(f"Stroke areas of participant {self.id} have not been computed")


@dataclass
class Survey:
    """Participants by id, plus non-owning indexes by persona and by side."""

    participants: dict[str, Participant] = field(default_factory=dict)
    personas: dict[Persona, list[Participant]] = field(
        default_factory=lambda: {persona: [] for persona in Persona}
    )
    drawings_per_side: dict[PersonaSide, list[PersonaDrawing]] = field(default_factory=dict)

    @classmethod
    def from_participants(cls, participants: Iterable[Participant]) -> Survey:
        survey = cls()
        for participant in participants:
            survey.add_participant(participant)
        return survey

    def add_participant(self, participant: Participant) -> None:
        if participant.id in self.participants:
            raise ValueError(f"Duplicate participant id: {participant.id}")
        self.participants[participant.id] = participant
        self.personas[participant.persona].append(participant)
        for side, persona_drawing in participant.drawing.items():
            self.drawings_per_side.setdefault(side, []).append(persona_drawing)

    def drawings_for(self, side: PersonaSide) -> list[PersonaDrawing]:
        return list(self.drawings_per_side.get(PersonaSide(side), []))

    def __len__(self) -> int:
        return len(self.participants)


def format_scale(value: float) -> str:
    """Integral values print without a fractional part (``2.0`` -> ``"2"``)."""
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return repr(number)
