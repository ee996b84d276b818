"""
DatabaseResultsSink - writes analysis output into the relational tables.

Each call opens its own short session so a page reported mid-crawl is
visible to status polls immediately and survives a later failure.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from site_analyzer.core.database import get_session_factory
from site_analyzer.engines.base import AnalysisScores, PageRecord, RunStatus, RunSummary, SEOIssue
from site_analyzer.engines.sink import ResultsSink
from site_analyzer.models.models import CrawledPage, SEOIssueRecord, WebsiteAnalysis

logger = structlog.get_logger(__name__)


class DatabaseResultsSink(ResultsSink):

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None):
        self.session_factory = session_factory or get_session_factory()

    async def record_page(self, analysis_id: str, page: PageRecord) -> None:
        analysis_uuid = uuid.UUID(analysis_id)
        async with self.session_factory() as session:
            session.add(CrawledPage(analysis_id=analysis_uuid, **page.model_dump()))
            await session.execute(
                update(WebsiteAnalysis)
                .where(WebsiteAnalysis.id == analysis_uuid)
                .values(pages_crawled=WebsiteAnalysis.pages_crawled + 1)
            )
            await session.commit()

    async def record_issues(self, analysis_id: str, issues: list[SEOIssue]) -> None:
        analysis_uuid = uuid.UUID(analysis_id)
        async with self.session_factory() as session:
            session.add_all([
                SEOIssueRecord(
                    analysis_id=analysis_uuid,
                    severity=issue.severity.value,
                    category=issue.category.value,
                    issue_type=issue.issue_type,
                    description=issue.description,
                    recommendation=issue.recommendation,
                    page_url=issue.page_url,
                )
                for issue in issues
            ])
            await session.commit()
        logger.info("Issues persisted", count=len(issues))

    async def record_completion(self, analysis_id: str, scores: AnalysisScores, summary: RunSummary) -> None:
        await self._update(
            analysis_id,
            status=summary.status.value,
            pages_crawled=summary.pages_crawled,
            total_issues=summary.total_issues,
            critical_issues=summary.critical_issues,
            warnings=summary.warnings,
            completed_at=summary.completed_at or datetime.now(timezone.utc),
            error_message=None,
            **scores.model_dump(),
        )

    async def record_failure(self, analysis_id: str, summary: RunSummary) -> None:
        await self._update(
            analysis_id,
            status=RunStatus.FAILED.value,
            completed_at=summary.completed_at or datetime.now(timezone.utc),
            error_message=summary.error_message,
        )

    async def is_cancelled(self, analysis_id: str) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(
                select(WebsiteAnalysis.status).where(WebsiteAnalysis.id == uuid.UUID(analysis_id))
            )
            return result.scalar_one_or_none() == RunStatus.FAILED.value

    async def _update(self, analysis_id: str, **values) -> None:
        async with self.session_factory() as session:
            await session.execute(
                update(WebsiteAnalysis).where(WebsiteAnalysis.id == uuid.UUID(analysis_id)).values(**values)
            )
            await session.commit()
