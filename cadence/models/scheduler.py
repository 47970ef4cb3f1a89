"""
Scheduled task models for Cadence.

The ``metadata`` payload of a task is a tagged union keyed by ``kind``; each
executor decodes exactly the payload it understands.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, Field, field_validator

from cadence.models.review import ReviewScope, ReviewType
from cadence.time_utils import to_naive_utc


class TaskType(str, Enum):
    SELF_REVIEW = "self_review"
    MAINTENANCE = "maintenance"


class TaskStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    PAUSED = "paused"


class AnalysisKind(str, Enum):
    FULL_SYSTEM = "full_system"
    ECOSYSTEM_HEALTH = "ecosystem_health"


class SelfReviewPayload(BaseModel):
    """Period bounds and scope for a self-review task."""
    kind: Literal["self_review"] = "self_review"
    period_start: datetime
    period_end: datetime
    review_type: ReviewType = ReviewType.BIWEEKLY
    scope: ReviewScope = Field(default_factory=ReviewScope)

    @field_validator("period_start", "period_end")
    @classmethod
    def _normalise(cls, value: datetime) -> datetime:
        return to_naive_utc(value)


class MaintenancePayload(BaseModel):
    """Analysis selector for a maintenance task."""
    kind: Literal["maintenance"] = "maintenance"
    analysis_kind: AnalysisKind
    include_ecosystem: bool = True
    include_dreamstate: bool = False
    include_creative_intelligence: bool = False
    include_optimization: bool = False


TaskPayload = Annotated[
    Union[SelfReviewPayload, MaintenancePayload],
    Field(discriminator="kind"),
]


class ScheduledTask(BaseModel):
    """One executable occurrence of a recurring job."""
    id: str  # "<type>_<slot?>_<YYYY-MM-DD>", the idempotency key
    name: str
    type: TaskType
    schedule: str
    next_run: datetime
    last_run: Optional[datetime] = None
    status: TaskStatus = TaskStatus.ACTIVE
    metadata: TaskPayload
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SetupReport(BaseModel):
    """Result of a (re-runnable) task setup pass."""
    created: int = 0
    skipped: int = 0
    task_ids: list[str] = Field(default_factory=list)
