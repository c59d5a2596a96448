"""Immutable (total, remaining) duration pair.

All durations are seconds as floats.  Every transform returns a new
``TimeValue``; nothing here has side effects, so values are safe to share
between the engine thread and subscribers.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from .errors import InvalidDuration


MAX_HOURS = 23
MAX_MINUTES = 59
MAX_SECONDS = 59


@dataclass(frozen=True)
class TimeValue:
    total: float
    remaining: float = field(default=None)  # type: ignore[assignment]

    def __post_init__(self) -> None:
        if self.total is None or self.total <= 0:
            raise InvalidDuration(f"total must be positive, got {self.total!r}")
        if self.remaining is None:
            object.__setattr__(self, "remaining", float(self.total))
        elif self.remaining < 0:
            raise InvalidDuration(f"remaining must be >= 0, got {self.remaining!r}")
        elif self.remaining > self.total:
            raise InvalidDuration(
                f"remaining {self.remaining!r} exceeds total {self.total!r}"
            )

    @classmethod
    def from_components(
        cls, hours: int = 0, minutes: int = 0, seconds: int = 0
    ) -> TimeValue:
        """Build a full-length value from picker-style fields."""
        for value, limit, label in (
            (hours, MAX_HOURS, "hours"),
            (minutes, MAX_MINUTES, "minutes"),
            (seconds, MAX_SECONDS, "seconds"),
        ):
            if not 0 <= value <= limit:
                raise InvalidDuration(f"{label} must be in 0..{limit}, got {value}")
        return cls(hours * 3600 + minutes * 60 + seconds)

    # ── transforms ────────────────────────────────────────────────────

    def with_remaining(self, remaining: float) -> TimeValue:
        """Same total, new remaining.  Callers clamp negatives first."""
        return TimeValue(self.total, remaining)

    def turned_back(self) -> TimeValue:
        """Rewind to the full duration (used by reset)."""
        return TimeValue(self.total)

    def expired(self) -> TimeValue:
        return TimeValue(self.total, 0.0)

    # ── derived ───────────────────────────────────────────────────────

    @property
    def is_expired(self) -> bool:
        return self.remaining <= 0

    @property
    def progress_ratio(self) -> float:
        """0.0 → 1.0 progress through the countdown."""
        return (self.total - self.remaining) / self.total

    @property
    def components(self) -> tuple[int, int, int]:
        """``(hours, minutes, seconds)`` of the total duration."""
        return _split(math.ceil(self.total))

    @property
    def display(self) -> str:
        """``HH:MM:SS``, rounding partial seconds up."""
        hours, minutes, seconds = _split(math.ceil(self.remaining))
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}"

    def __str__(self) -> str:
        return self.display


def _split(whole_seconds: int) -> tuple[int, int, int]:
    hours, rest = divmod(whole_seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    return hours, minutes, seconds
