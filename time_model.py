"""Real-time to simulated-time conversion and the realm calendar."""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional
import math

# Real seconds per simulated year when the world gives no usable scale
DEFAULT_SECONDS_PER_YEAR = 60.0

DAYS_PER_MONTH = [31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31]
DAYS_PER_YEAR = sum(DAYS_PER_MONTH)


def seconds_to_years(elapsed: float, seconds_per_year: Optional[float],
                     default: float = DEFAULT_SECONDS_PER_YEAR) -> float:
    """Convert real ``elapsed`` seconds to simulated years.

    A missing, zero, negative or non-finite ``seconds_per_year`` falls back
    to ``default``.  Negative elapsed time counts as zero.
    """
    scale = seconds_per_year
    if scale is None or not isinstance(scale, (int, float)) or not math.isfinite(scale) or scale <= 0:
        scale = default
    if elapsed is None or not math.isfinite(elapsed) or elapsed <= 0:
        return 0.0
    return elapsed / scale


@dataclass
class Calendar:
    year: int = 0
    month: int = 1
    day: int = 1
    _day_fraction: float = field(default=0.0, repr=False)

    def advance_fraction(self, delta_years: float) -> None:
        """Advance the calendar by ``delta_years``, carrying partial days."""
        if delta_years <= 0:
            return
        self._day_fraction += delta_years * DAYS_PER_YEAR
        days = int(self._day_fraction)
        self._day_fraction -= days
        self.day += days
        while True:
            dim = DAYS_PER_MONTH[self.month - 1]
            if self.day <= dim:
                break
            self.day -= dim
            self.month += 1
            if self.month > 12:
                self.month = 1
                self.year += 1

    @property
    def day_fraction(self) -> float:
        """Partial day carried toward the next date change."""
        return self._day_fraction

    def to_dict(self) -> dict:
        return {"year": self.year, "month": self.month, "day": self.day}
