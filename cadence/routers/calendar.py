"""
Calendar API endpoints: unified timeline, stats and self-review periods.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
import structlog

from cadence.container import CadenceServices, get_services
from cadence.infrastructure.exceptions import NotFoundError
from cadence.models.calendar import (
    CalendarEvent, CalendarFilters, CalendarStats, DateRange, EventPriority, EventType
)
from cadence.models.review import ReviewScope, ReviewStatus, ReviewType, SelfReviewPeriod
from cadence.models.sources import EventContext

router = APIRouter()
logger = structlog.get_logger(__name__)


class ReviewCreate(BaseModel):
    title: str
    start_date: datetime
    end_date: datetime
    type: ReviewType = ReviewType.BIWEEKLY
    scope: ReviewScope = Field(default_factory=ReviewScope)
    analyze: bool = False


def _filters(
    types: Optional[List[EventType]] = Query(default=None),
    categories: Optional[List[str]] = Query(default=None),
    priorities: Optional[List[EventPriority]] = Query(default=None),
    project_ids: Optional[List[str]] = Query(default=None),
    tags: Optional[List[str]] = Query(default=None),
    show_completed: Optional[bool] = Query(default=None),
) -> CalendarFilters:
    return CalendarFilters(
        types=types,
        categories=categories,
        priorities=priorities,
        project_ids=project_ids,
        tags=tags,
        show_completed=show_completed,
    )


# ============================================================================
# Events
# ============================================================================

@router.get("/events", response_model=List[CalendarEvent])
async def get_events(
    start: Optional[datetime] = Query(default=None),
    end: Optional[datetime] = Query(default=None),
    filters: CalendarFilters = Depends(_filters),
    services: CadenceServices = Depends(get_services),
):
    """Merged timeline from every source, newest first."""
    if (start is None) != (end is None):
        raise HTTPException(
            status_code=400,
            detail="start and end must be given together",
        )
    if start is not None:
        filters = filters.model_copy(update={"date_range": DateRange(start=start, end=end)})
    return await services.calendar.get_events(filters)


@router.get("/events/range", response_model=List[CalendarEvent])
async def get_events_in_range(
    start: datetime = Query(...),
    end: datetime = Query(...),
    filters: CalendarFilters = Depends(_filters),
    services: CadenceServices = Depends(get_services),
):
    """Events between start and end (inclusive), for calendar views."""
    return await services.calendar.get_events_in_range(start, end, filters)


@router.get("/events/{event_type}/{event_id}", response_model=EventContext)
async def get_event_context(
    event_type: EventType,
    event_id: str,
    services: CadenceServices = Depends(get_services),
):
    """Source record behind one event, for the event detail view."""
    return await services.calendar.get_event_context(event_id, event_type)


@router.get("/stats", response_model=CalendarStats)
async def get_stats(services: CadenceServices = Depends(get_services)):
    return await services.stats.get_stats()


# ============================================================================
# Self-review periods
# ============================================================================

@router.get("/reviews", response_model=List[SelfReviewPeriod])
async def list_reviews(
    start: Optional[datetime] = Query(default=None),
    end: Optional[datetime] = Query(default=None),
    status: Optional[ReviewStatus] = Query(default=None),
    services: CadenceServices = Depends(get_services),
):
    return await services.reviews.list_periods(start=start, end=end, status=status)


@router.post("/reviews", response_model=SelfReviewPeriod, status_code=201)
async def create_review(body: ReviewCreate, services: CadenceServices = Depends(get_services)):
    """Create a review period, optionally starting its analysis right away."""
    period = await services.reviews.create_period(
        title=body.title,
        start_date=body.start_date,
        end_date=body.end_date,
        type=body.type,
        scope=body.scope,
    )
    if body.analyze:
        services.reviews.start_analysis(period.id)
    return period


@router.get("/reviews/{period_id}", response_model=SelfReviewPeriod)
async def get_review(period_id: str, services: CadenceServices = Depends(get_services)):
    period = await services.reviews.get_period(period_id)
    if period is None:
        raise NotFoundError("Self-review period", period_id)
    return period


@router.post("/reviews/{period_id}/analyze", status_code=202)
async def analyze_review(period_id: str, services: CadenceServices = Depends(get_services)):
    """Start the analysis in the background."""
    period = await services.reviews.get_period(period_id)
    if period is None:
        raise NotFoundError("Self-review period", period_id)
    services.reviews.start_analysis(period_id)
    logger.info("review_analysis_requested", period_id=period_id)
    return {"status": "started", "period_id": period_id}
