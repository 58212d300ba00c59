"""Job progress: one tracker per job invocation, immutable events out."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class ProgressEvent:
    phase: str
    current: int
    total: int
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class JobMessage:
    """One message on a job channel: ``{"event": ..., "params": ...}``."""

    event: str
    params: Any

    def to_dict(self) -> dict[str, Any]:
        return {"event": self.event, "params": self.params}


class ProgressTracker:
    """Counts discrete steps of one job. Created at job start, dropped at job end."""

    def __init__(self, phase: str, total: int = 0) -> None:
        self.phase = phase
        self.total = total
        self.current = 0

    def emit(self, message: str) -> ProgressEvent:
        """Event at the current count, without advancing."""
        return ProgressEvent(self.phase, self.current, self.total, message)

    def advance(self, message: str, steps: int = 1) -> ProgressEvent:
        self.current += steps
        if self.current > self.total:
            raise ValueError(f"{self.phase}: step {self.current} exceeds total {self.total}")
        return self.emit(message)
