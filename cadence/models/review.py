"""
Self-review period models for Cadence.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict
from pydantic import BaseModel, Field, field_validator, model_validator

from cadence.time_utils import to_naive_utc


class ReviewType(str, Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"
    MILESTONE = "milestone"


class ReviewStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ReviewScope(BaseModel):
    """Which data sources a review pulls from."""
    include_journal: bool = True
    include_repositories: bool = True
    include_meetings: bool = True
    include_intelligence: bool = True
    include_projects: bool = True


class ReviewAnalysis(BaseModel):
    """Results written once by the review analysis pass."""
    overall_progress: str
    key_insights: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    performance_metrics: Dict[str, float] = Field(default_factory=dict)
    detail_path: Optional[str] = None


class SelfReviewPeriod(BaseModel):
    """A bounded window of activity to analyse retrospectively."""
    id: str
    title: str
    start_date: datetime
    end_date: datetime
    type: ReviewType = ReviewType.BIWEEKLY
    status: ReviewStatus = ReviewStatus.PENDING
    scope: ReviewScope = Field(default_factory=ReviewScope)
    analysis_results: Optional[ReviewAnalysis] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def _normalise(cls, value: datetime) -> datetime:
        return to_naive_utc(value)

    @model_validator(mode="after")
    def _check_bounds(self) -> "SelfReviewPeriod":
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self
