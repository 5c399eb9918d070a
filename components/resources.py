"""components.resources — Loop-level singletons (not per-activity or per-observer)."""

from __future__ import annotations
from dataclasses import dataclass

from core.constants import MINUTES_PER_HOUR, MINUTES_PER_DAY


@dataclass
class GameClock:
    """Monotonic in-game calendar, in game-minutes since the epoch.

    Single source of truth for decay ages and audit deadlines.  Only
    ``advance()`` moves it forward; nothing reads the wall clock.
    """
    minutes: float = 0.0

    def now(self) -> float:
        return self.minutes

    def advance(self, minutes: float) -> float:
        if minutes > 0:
            self.minutes += minutes
        return self.minutes

    @property
    def hours(self) -> float:
        return self.minutes / MINUTES_PER_HOUR

    @property
    def days(self) -> float:
        return self.minutes / MINUTES_PER_DAY

    def days_since(self, timestamp: float) -> float:
        """Game days elapsed since *timestamp* (game-minutes)."""
        return (self.minutes - timestamp) / MINUTES_PER_DAY


@dataclass
class DetectionDials:
    """Global detection multipliers shared by Heat (writer) and Detection (reader).

    ``patrol_frequency`` shortens patrol intervals, ``sensitivity``
    scales observer awareness.  Both compose multiplicatively: every
    ``scale_*`` call multiplies the current value, never replaces it.
    """
    patrol_frequency: float = 1.0
    sensitivity: float = 1.0
    floor: float = 0.01

    def scale_patrol(self, multiplier: float) -> float:
        self.patrol_frequency = max(self.floor, self.patrol_frequency * multiplier)
        return self.patrol_frequency

    def scale_sensitivity(self, multiplier: float) -> float:
        self.sensitivity = max(self.floor, self.sensitivity * multiplier)
        return self.sensitivity
