"""
Analysis Tasks - Celery entry point for detached website analyses.

Flow:
1. The API creates a website_analyses row (in_progress) and dispatches
   run_analysis_task
2. The task loads the project, its crawl settings snapshot and its active
   exclusion patterns, and builds a CrawlTarget
3. AnalysisRunner crawls, analyzes and scores, reporting into
   DatabaseResultsSink as it goes

A target that cannot be built (bad pattern, bad settings) fails the run
before any network traffic.
"""

from __future__ import annotations

import asyncio
import uuid

import structlog
from celery.exceptions import SoftTimeLimitExceeded
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from site_analyzer.core.database import get_engine, get_session_factory
from site_analyzer.engines.base import CrawlSettings, CrawlTarget, RunStatus, RunSummary
from site_analyzer.engines.crawler.patterns import PatternValidationError
from site_analyzer.engines.runner import AnalysisRunner
from site_analyzer.models.models import CrawlerExclusionPattern, Project, WebsiteAnalysis
from site_analyzer.workers.celery_app import celery_app
from site_analyzer.workers.persistence import DatabaseResultsSink

logger = structlog.get_logger(__name__)


def run_async(coro):
    """Run a coroutine on a private event loop inside a sync Celery task."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def build_target(project: Project, analysis: WebsiteAnalysis, patterns: list[str]) -> CrawlTarget:
    """Settings snapshot on the analysis wins over the project's current settings."""
    raw_settings = {**(project.crawl_settings or {}), **(analysis.crawl_settings or {})}
    return CrawlTarget(
        base_url=project.root_url,
        settings=CrawlSettings.model_validate(raw_settings),
        exclusion_patterns=tuple(patterns),
    )


async def load_target(
    analysis_id: str,
    session_factory: async_sessionmaker[AsyncSession],
) -> CrawlTarget:
    async with session_factory() as session:
        analysis = await session.get(WebsiteAnalysis, uuid.UUID(analysis_id))
        if analysis is None:
            raise LookupError(f"Analysis {analysis_id} not found")

        project = await session.get(Project, analysis.project_id)
        if project is None:
            raise LookupError(f"Project {analysis.project_id} not found")

        result = await session.execute(
            select(CrawlerExclusionPattern.pattern)
            .where(
                CrawlerExclusionPattern.project_id == project.id,
                CrawlerExclusionPattern.is_active.is_(True),
            )
            .order_by(CrawlerExclusionPattern.created_at)
        )
        patterns = list(result.scalars().all())

    return build_target(project, analysis, patterns)


async def execute_analysis(
    analysis_id: str,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> RunSummary:
    session_factory = session_factory or get_session_factory()
    sink = DatabaseResultsSink(session_factory)

    try:
        target = await load_target(analysis_id, session_factory)
    except (LookupError, PatternValidationError, ValidationError) as exc:
        logger.error("Analysis target rejected", analysis_id=analysis_id, error=str(exc))
        summary = RunSummary(status=RunStatus.FAILED, error_message=str(exc))
        await sink.record_failure(analysis_id, summary)
        return summary

    return await AnalysisRunner(sink).run(analysis_id, target)


async def _run_in_worker(analysis_id: str) -> RunSummary:
    # Pooled asyncpg connections are bound to the loop that opened them
    try:
        return await execute_analysis(analysis_id)
    finally:
        await get_engine().dispose()


# ─────────────────────────────────────────────
# Task: Run Analysis
# ─────────────────────────────────────────────

@celery_app.task(
    name="site_analyzer.workers.analysis_tasks.run_analysis_task",
    bind=True,
    queue="analysis_queue",
    acks_late=True,
)
def run_analysis_task(self, analysis_id: str) -> dict:
    logger.info("Starting analysis task", analysis_id=analysis_id, task_id=self.request.id)

    try:
        summary = run_async(_run_in_worker(analysis_id))
    except SoftTimeLimitExceeded:
        logger.error("Analysis task timed out", analysis_id=analysis_id)
        run_async(DatabaseResultsSink().record_failure(
            analysis_id, RunSummary(status=RunStatus.FAILED, error_message="Analysis timed out"),
        ))
        raise
    except Exception as exc:
        logger.error("Analysis task crashed", analysis_id=analysis_id, error=str(exc), exc_info=True)
        raise

    return summary.model_dump(mode="json")
