"""
Recurring job definitions for Cadence.

The biweekly self-review and the two weekly maintenance windows. Both the
scheduler (to persist executable tasks) and the calendar (to project
informational maintenance events) read from here, so ids and times always
agree.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Tuple

from cadence.models.scheduler import AnalysisKind, MaintenancePayload
from cadence.services.recurrence import WeeklyOnWeekday, generate_occurrences
from cadence.time_utils import at_hour, start_of_day


# ============================================
# SCHEDULE CONFIGURATION
# ============================================

DEFAULT_REVIEW_ANCHOR = datetime(2025, 8, 19, 9, 0)  # first biweekly review, 09:00 UTC
BIWEEKLY_REVIEW_SCHEDULE = "biweekly"


@dataclass(frozen=True)
class MaintenanceWindow:
    slot: str
    weekday: int  # Monday=0
    hour: int
    title: str
    schedule: str
    category: str
    summary: str
    payload: MaintenancePayload
    tags: Tuple[str, ...] = field(default_factory=tuple)


MAINTENANCE_SCHEDULE: Tuple[MaintenanceWindow, ...] = (
    MaintenanceWindow(
        slot="tuesday",
        weekday=1,
        hour=10,  # 10:00 AM
        title="Full System Analysis",
        schedule="weekly_tuesday",
        category="system",
        summary=(
            "Automated system analysis including ecosystem health, dream state "
            "predictions, and creative intelligence generation."
        ),
        payload=MaintenancePayload(
            analysis_kind=AnalysisKind.FULL_SYSTEM,
            include_ecosystem=True,
            include_dreamstate=True,
            include_creative_intelligence=True,
        ),
        tags=("maintenance", "system-analysis"),
    ),
    MaintenanceWindow(
        slot="friday",
        weekday=4,
        hour=14,  # 2:00 PM
        title="Ecosystem Health Check",
        schedule="weekly_friday",
        category="health-check",
        summary="Ecosystem health monitoring and optimization recommendations.",
        payload=MaintenancePayload(
            analysis_kind=AnalysisKind.ECOSYSTEM_HEALTH,
            include_ecosystem=True,
            include_optimization=True,
        ),
        tags=("maintenance", "ecosystem-health"),
    ),
)


@dataclass(frozen=True)
class MaintenanceOccurrence:
    window: MaintenanceWindow
    run_at: datetime

    @property
    def task_id(self) -> str:
        return maintenance_task_id(self.window.slot, self.run_at)


def review_task_id(start: datetime) -> str:
    return f"self_review_{start.date().isoformat()}"


def maintenance_task_id(slot: str, run_at: datetime) -> str:
    return f"maintenance_{slot}_{run_at.date().isoformat()}"


def review_task_name(start: datetime) -> str:
    return f"Biweekly Self Review - {start.date().isoformat()}"


def maintenance_occurrences(now: datetime, weeks: int) -> List[MaintenanceOccurrence]:
    """Every maintenance window over ``weeks`` week-blocks starting today.

    Occurrences before ``now`` are dropped. Sorted by run time.
    """
    today = start_of_day(now)
    occurrences = []
    for window in MAINTENANCE_SCHEDULE:
        anchor = at_hour(today, window.hour)
        for run_at in generate_occurrences(anchor, WeeklyOnWeekday(window.weekday), weeks):
            if run_at >= now:
                occurrences.append(MaintenanceOccurrence(window=window, run_at=run_at))
    occurrences.sort(key=lambda o: (o.run_at, o.window.slot))
    return occurrences
