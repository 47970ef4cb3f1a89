"""
Recurrence generation for Cadence.

Pure functions only: every output depends on the arguments alone, never on
the clock. Callers that care about "now" discard past occurrences themselves.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Union

BIWEEKLY_STEP = timedelta(days=14)
BIWEEKLY_PERIOD_LENGTH = timedelta(days=13)


@dataclass(frozen=True)
class WeeklyOnWeekday:
    """One occurrence per 7-day block, on a fixed weekday (Monday=0)."""
    weekday: int

    def __post_init__(self):
        if not 0 <= self.weekday <= 6:
            raise ValueError(f"weekday must be in 0..6, got {self.weekday}")


@dataclass(frozen=True)
class Biweekly:
    """One occurrence every 14 days from the anchor."""


Cadence = Union[WeeklyOnWeekday, Biweekly]


def generate_occurrences(anchor: datetime, cadence: Cadence, horizon_count: int) -> List[datetime]:
    """Return exactly ``horizon_count`` strictly increasing occurrences.

    The anchor's time of day is kept on every occurrence.
    """
    if horizon_count < 0:
        raise ValueError("horizon_count must be non-negative")

    if isinstance(cadence, Biweekly):
        return [anchor + BIWEEKLY_STEP * i for i in range(horizon_count)]

    if isinstance(cadence, WeeklyOnWeekday):
        occurrences = []
        for i in range(horizon_count):
            block_start = anchor + timedelta(days=7 * i)
            offset = (cadence.weekday - block_start.weekday() + 7) % 7
            occurrences.append(block_start + timedelta(days=offset))
        return occurrences

    raise TypeError(f"Unsupported cadence: {cadence!r}")


def biweekly_period_end(start: datetime) -> datetime:
    """Inclusive end of the two-week period that opens at ``start``."""
    return start + BIWEEKLY_PERIOD_LENGTH


def roll_forward(anchor: datetime, now: datetime, step: timedelta = BIWEEKLY_STEP) -> datetime:
    """First ``anchor + k*step`` (k >= 0) at or after ``now``.

    Keeps generated ids phase-aligned with the original anchor no matter when
    setup runs.
    """
    if anchor >= now:
        return anchor
    elapsed = now - anchor
    steps = elapsed // step
    candidate = anchor + step * steps
    if candidate < now:
        candidate += step
    return candidate
