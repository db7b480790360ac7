"""Win/loss streak value.

A streak is the current run of consecutive results in one direction. It is
stored as two columns (direction, length) and only rendered as the familiar
``W3`` / ``L1`` token at the API boundary.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class StreakDirection(StrEnum):
    WIN = "W"
    LOSS = "L"


@dataclass(frozen=True)
class Streak:
    """Current consecutive-outcome run for a team."""

    direction: StreakDirection | None = None
    length: int = 0

    @classmethod
    def start(cls, won: bool) -> Streak:
        return cls(StreakDirection.WIN if won else StreakDirection.LOSS, 1)

    @classmethod
    def from_columns(cls, direction: str | None, length: int | None) -> Streak:
        if direction is None or not length:
            return cls()
        return cls(StreakDirection(direction), length)

    def extend(self, won: bool) -> Streak:
        """Return the streak after one more result.

        Same direction increments the length; a change of direction (or no
        prior result) resets to a run of one.
        """
        direction = StreakDirection.WIN if won else StreakDirection.LOSS
        if self.direction is direction:
            return Streak(direction, self.length + 1)
        return Streak(direction, 1)

    @property
    def is_empty(self) -> bool:
        return self.direction is None

    def to_columns(self) -> tuple[str | None, int]:
        if self.direction is None:
            return None, 0
        return self.direction.value, self.length

    def __str__(self) -> str:
        if self.direction is None:
            return "-"
        return f"{self.direction.value}{self.length}"
