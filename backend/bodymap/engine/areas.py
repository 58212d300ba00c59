"""Area tally: drawn pixel count per (valence, intensity) category."""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bodymap.models.survey import Sensation


class AreaTally:
    """Counts pixels per sensation plus a running total.

    Counts only, no normalization: callers divide by ``total`` when they need
    proportions.
    """

    def __init__(self) -> None:
        self._counts: Counter[Sensation] = Counter()
        self.total = 0

    def add(self, sensation: Sensation, pixels: int = 1) -> None:
        self._counts[sensation] += pixels
        self.total += pixels

    def reset(self) -> None:
        self._counts.clear()
        self.total = 0

    def count(self, sensation: Sensation) -> int:
        return self._counts[sensation]

    def table(self) -> dict[str, int]:
        """Output form keyed by ``"valence:intensity"``."""
        return {sensation.key: n for sensation, n in self._counts.items()}

    def __len__(self) -> int:
        return len(self._counts)

    def __repr__(self) -> str:
        return f"AreaTally(categories={len(self._counts)}, total={self.total})"
