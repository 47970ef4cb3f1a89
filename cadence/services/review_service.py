"""
Self-review periods: persistence and background analysis.

A period is created pending, moves to in_progress while its analysis runs and
ends completed once results are written. Results are written at most once.
"""

import asyncio
import uuid
from collections import Counter
from datetime import datetime
from typing import Callable, List, Optional, Set

import structlog
from sqlalchemy import select, update

from cadence.db.models import SelfReviewPeriodModel
from cadence.infrastructure.database import get_session
from cadence.infrastructure.exceptions import InvalidReviewPeriodError, NotFoundError
from cadence.models.review import (
    ReviewAnalysis,
    ReviewScope,
    ReviewStatus,
    ReviewType,
    SelfReviewPeriod,
)
from cadence.services.collaborators import (
    IntelligenceSource,
    JournalSource,
    MeetingSource,
    ReviewAnalyzer,
    ReviewData,
)
from cadence.time_utils import to_naive_utc, utcnow

logger = structlog.get_logger(__name__)


def _orm_to_period(row: SelfReviewPeriodModel) -> SelfReviewPeriod:
    return SelfReviewPeriod(
        id=row.id,
        title=row.title,
        start_date=row.start_date,
        end_date=row.end_date,
        type=row.type,
        status=row.status,
        scope=ReviewScope(**(row.scope or {})),
        analysis_results=ReviewAnalysis(**row.analysis_results) if row.analysis_results else None,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


# ============================================
# DEFAULT ANALYZER
# ============================================

class SummaryReviewAnalyzer:
    """Builds a review summary from activity counts. No text generation."""

    async def analyze(self, period: SelfReviewPeriod, data: ReviewData) -> ReviewAnalysis:
        days = max((period.end_date - period.start_date).days + 1, 1)
        journal_count = len(data.journal)
        intelligence_count = len(data.intelligence)
        meeting_count = len(data.meetings)

        impacts = [entry.impact for entry in data.journal if entry.impact is not None]
        confidences = [entry.confidence for entry in data.intelligence if entry.confidence is not None]
        tags = Counter(tag for entry in data.journal for tag in entry.tags)
        tags.update(tag for entry in data.intelligence for tag in entry.tags)
        projects = {entry.project_name for entry in data.journal if entry.project_name}

        insights = []
        if tags:
            top = ", ".join(tag for tag, _ in tags.most_common(3))
            insights.append(f"Most frequent topics: {top}")
        if projects:
            insights.append(f"Worked across {len(projects)} project(s): {', '.join(sorted(projects))}")
        if meeting_count:
            insights.append(f"{meeting_count} meeting(s) recorded in the period")

        recommendations = []
        if journal_count == 0:
            recommendations.append("No journal entries this period; log key decisions as they happen")
        if impacts and sum(impacts) / len(impacts) < 5:
            recommendations.append("Average decision impact was low; focus on fewer, higher-leverage items")
        for source, error in sorted(data.unavailable.items()):
            recommendations.append(f"Review data from {source} was unavailable ({error})")

        metrics = {
            "journal_entries": float(journal_count),
            "intelligence_entries": float(intelligence_count),
            "meetings": float(meeting_count),
            "entries_per_day": round((journal_count + intelligence_count) / days, 2),
        }
        if impacts:
            metrics["average_impact"] = round(sum(impacts) / len(impacts), 2)
        if confidences:
            metrics["average_confidence"] = round(sum(confidences) / len(confidences), 2)

        return ReviewAnalysis(
            overall_progress=(
                f"{period.type.value.capitalize()} review {period.start_date.date().isoformat()} - "
                f"{period.end_date.date().isoformat()}: {journal_count} journal entries, "
                f"{intelligence_count} intelligence entries, {meeting_count} meetings."
            ),
            key_insights=insights,
            recommendations=recommendations,
            performance_metrics=metrics,
        )


# ============================================
# SELF-REVIEW SERVICE
# ============================================

class SelfReviewService:
    """Self-review period store plus the analysis pipeline."""

    def __init__(
        self,
        journal: JournalSource,
        intelligence: IntelligenceSource,
        meetings: MeetingSource,
        analyzer: Optional[ReviewAnalyzer] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.journal = journal
        self.intelligence = intelligence
        self.meetings = meetings
        self.analyzer = analyzer or SummaryReviewAnalyzer()
        self._clock = clock
        self._background: Set[asyncio.Task] = set()

    # ----- persistence -----

    async def create_period(
        self,
        title: str,
        start_date: datetime,
        end_date: datetime,
        type: ReviewType = ReviewType.BIWEEKLY,
        scope: Optional[ReviewScope] = None,
    ) -> SelfReviewPeriod:
        start_date = to_naive_utc(start_date)
        end_date = to_naive_utc(end_date)
        if end_date <= start_date:
            raise InvalidReviewPeriodError(
                f"Review period must end after it starts ({start_date.isoformat()} - {end_date.isoformat()})"
            )

        now = self._clock()
        period = SelfReviewPeriod(
            id=uuid.uuid4().hex,
            title=title,
            start_date=start_date,
            end_date=end_date,
            type=type,
            status=ReviewStatus.PENDING,
            scope=scope or ReviewScope(),
            created_at=now,
            updated_at=now,
        )

        async with get_session() as session:
            session.add(SelfReviewPeriodModel(
                id=period.id,
                title=period.title,
                start_date=period.start_date,
                end_date=period.end_date,
                type=period.type.value,
                status=period.status.value,
                scope=period.scope.model_dump(),
                created_at=now,
                updated_at=now,
            ))

        logger.info("review_period_created", period_id=period.id, title=title, type=period.type.value)
        return period

    async def get_period(self, period_id: str) -> Optional[SelfReviewPeriod]:
        async with get_session() as session:
            row = await session.get(SelfReviewPeriodModel, period_id)
            return _orm_to_period(row) if row is not None else None

    async def find_period(self, title: str, start_date: datetime, end_date: datetime) -> Optional[SelfReviewPeriod]:
        """The earliest-created period with exactly these title and bounds."""
        async with get_session() as session:
            stmt = (
                select(SelfReviewPeriodModel)
                .where(
                    SelfReviewPeriodModel.title == title,
                    SelfReviewPeriodModel.start_date == to_naive_utc(start_date),
                    SelfReviewPeriodModel.end_date == to_naive_utc(end_date),
                )
                .order_by(SelfReviewPeriodModel.created_at.asc())
                .limit(1)
            )
            row = (await session.execute(stmt)).scalars().first()
            return _orm_to_period(row) if row is not None else None

    async def list_periods(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        status: Optional[ReviewStatus] = None,
    ) -> List[SelfReviewPeriod]:
        """Periods starting inside [start, end], latest first."""
        start, end = to_naive_utc(start), to_naive_utc(end)
        async with get_session() as session:
            stmt = select(SelfReviewPeriodModel)
            if start is not None:
                stmt = stmt.where(SelfReviewPeriodModel.start_date >= start)
            if end is not None:
                stmt = stmt.where(SelfReviewPeriodModel.start_date <= end)
            if status is not None:
                stmt = stmt.where(SelfReviewPeriodModel.status == status.value)
            stmt = stmt.order_by(SelfReviewPeriodModel.start_date.desc())

            result = await session.execute(stmt)
            return [_orm_to_period(row) for row in result.scalars().all()]

    async def _set_status(
        self, period_id: str, status: ReviewStatus, only_from: Optional[ReviewStatus] = None
    ) -> bool:
        async with get_session() as session:
            stmt = update(SelfReviewPeriodModel).where(SelfReviewPeriodModel.id == period_id)
            if only_from is not None:
                stmt = stmt.where(SelfReviewPeriodModel.status == only_from.value)
            result = await session.execute(
                stmt.values(status=status.value, updated_at=self._clock())
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1

    async def record_results(self, period_id: str, results: ReviewAnalysis) -> bool:
        """Write analysis results once. Returns False if results already exist."""
        async with get_session() as session:
            result = await session.execute(
                update(SelfReviewPeriodModel)
                .where(SelfReviewPeriodModel.id == period_id)
                .where(SelfReviewPeriodModel.analysis_results.is_(None))
                .values(
                    analysis_results=results.model_dump(),
                    status=ReviewStatus.COMPLETED.value,
                    updated_at=self._clock(),
                )
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1

    # ----- analysis -----

    async def gather_review_data(self, period: SelfReviewPeriod) -> ReviewData:
        """Collect in-period records for every source the scope includes.

        A failing source is noted in ``unavailable`` and contributes nothing.
        """
        data = ReviewData(period=period)
        start, end = period.start_date, period.end_date

        async def journal():
            data.journal = await self.journal.list_journal_entries(start=start, end=end)

        async def intelligence():
            data.intelligence = await self.intelligence.list_intelligence_entries(start=start, end=end)

        async def meetings():
            data.meetings = [
                meeting for meeting in await self.meetings.list_meetings()
                if start <= meeting.date_recorded <= end
            ]

        steps = []
        if period.scope.include_journal:
            steps.append(("journal", journal))
        if period.scope.include_intelligence:
            steps.append(("intelligence", intelligence))
        if period.scope.include_meetings:
            steps.append(("meetings", meetings))

        results = await asyncio.gather(*(step() for _, step in steps), return_exceptions=True)
        for (name, _), result in zip(steps, results):
            if isinstance(result, Exception):
                logger.warning("review_source_unavailable", period_id=period.id, source=name, error=str(result))
                data.unavailable[name] = str(result)
        return data

    async def generate_analysis(self, period_id: str) -> ReviewAnalysis:
        """Run the full analysis pass for one period and store the results."""
        period = await self.get_period(period_id)
        if period is None:
            raise NotFoundError("Self-review period", period_id)
        if period.analysis_results is not None:
            return period.analysis_results

        await self._set_status(period_id, ReviewStatus.IN_PROGRESS)
        logger.info("review_analysis_started", period_id=period_id)

        data = await self.gather_review_data(period)
        analysis = await self.analyzer.analyze(period, data)

        if not await self.record_results(period_id, analysis):
            logger.warning("review_results_already_recorded", period_id=period_id)
            stored = await self.get_period(period_id)
            return stored.analysis_results if stored and stored.analysis_results else analysis

        logger.info("review_analysis_completed", period_id=period_id)
        return analysis

    async def _run_analysis(self, period_id: str) -> ReviewAnalysis:
        try:
            return await self.generate_analysis(period_id)
        except Exception as e:
            logger.error(
                "review_analysis_failed",
                period_id=period_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            await self._set_status(period_id, ReviewStatus.PENDING, only_from=ReviewStatus.IN_PROGRESS)
            raise

    def _forget(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        # Failures are already logged in _run_analysis
        if not task.cancelled():
            task.exception()

    def start_analysis(self, period_id: str) -> asyncio.Task:
        """Start the analysis in the background and return its handle.

        Awaiting the handle yields the analysis or re-raises its failure.
        """
        task = asyncio.create_task(self._run_analysis(period_id), name=f"review-analysis-{period_id}")
        self._background.add(task)
        task.add_done_callback(self._forget)
        return task

    @property
    def pending_analyses(self) -> int:
        return len(self._background)

    async def drain(self) -> None:
        """Wait for every outstanding background analysis."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
