"""
Analysis runner - the run boundary around one website analysis.

Crawl → report each page → analyze issues → score → report completion.
Anything unexpected is caught here: the run is reported failed with the
captured message and no scores. Pages already reported stay reported.
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator

import httpx
import structlog

from site_analyzer.core.config import get_settings
from site_analyzer.core.logging import bind_run_context, clear_run_context
from site_analyzer.engines.base import CrawlTarget, PageRecord, RunStatus, RunSummary
from site_analyzer.engines.crawler.engine import CrawlScheduler
from site_analyzer.engines.crawler.fetcher import SSRFGuard
from site_analyzer.engines.issues.engine import IssueAnalyzer
from site_analyzer.engines.scoring.engine import ScoreAggregator
from site_analyzer.engines.sink import ResultsSink

logger = structlog.get_logger(__name__)
settings = get_settings()

CANCELLED_MESSAGE = "Analysis cancelled"


def default_headers() -> dict[str, str]:
    return {
        "User-Agent": settings.CRAWLER_USER_AGENT,
        "Accept": "text/html,application/xhtml+xml,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
    }


class AnalysisRunner:
    """Runs one analysis end to end and reports into a ResultsSink."""

    def __init__(
        self,
        sink: ResultsSink,
        http_session: httpx.AsyncClient | None = None,
        guard: SSRFGuard | None = None,
        issue_analyzer: IssueAnalyzer | None = None,
        score_aggregator: ScoreAggregator | None = None,
    ):
        self.sink = sink
        self.http_session = http_session
        self.guard = guard
        self.issue_analyzer = issue_analyzer or IssueAnalyzer()
        self.score_aggregator = score_aggregator or ScoreAggregator()

    async def run(self, analysis_id: str, target: CrawlTarget) -> RunSummary:
        start = time.perf_counter()
        bind_run_context(analysis_id, target.host)
        logger.info("Analysis starting", base_url=target.base_url, max_pages=target.settings.max_pages)

        reported: list[PageRecord] = []

        async def on_page(page: PageRecord) -> None:
            await self.sink.record_page(analysis_id, page)
            reported.append(page)

        async def should_stop() -> bool:
            return await self.sink.is_cancelled(analysis_id)

        try:
            async with self._session() as session:
                scheduler = CrawlScheduler(session, guard=self.guard)
                crawl = await scheduler.crawl(target, on_page=on_page, should_stop=should_stop)

            if crawl.cancelled:
                logger.info("Analysis stopped after cancellation", pages_crawled=len(crawl.pages))
                return RunSummary(
                    status=RunStatus.FAILED,
                    pages_crawled=len(crawl.pages),
                    error_message=CANCELLED_MESSAGE,
                )

            issues = self.issue_analyzer.analyze_all(crawl.pages)
            await self.sink.record_issues(analysis_id, issues)

            scores = self.score_aggregator.calculate(crawl.pages, issues)
            summary = RunSummary(
                status=RunStatus.COMPLETED,
                pages_crawled=len(crawl.pages),
                completed_at=datetime.now(timezone.utc),
                scores=scores,
                **self.score_aggregator.summarize(issues),
            )
            if await self.sink.is_cancelled(analysis_id):
                logger.info("Analysis cancelled before completion", pages_crawled=summary.pages_crawled)
                return RunSummary(
                    status=RunStatus.FAILED,
                    pages_crawled=len(crawl.pages),
                    error_message=CANCELLED_MESSAGE,
                )
            await self.sink.record_completion(analysis_id, scores, summary)

            logger.info(
                "Analysis complete",
                pages_crawled=summary.pages_crawled,
                total_issues=summary.total_issues,
                critical_issues=summary.critical_issues,
                overall_score=scores.overall_score,
                elapsed_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            return summary

        except Exception as exc:
            logger.error(
                "Analysis failed",
                error=str(exc),
                pages_reported=len(reported),
                elapsed_ms=round((time.perf_counter() - start) * 1000, 2),
                exc_info=True,
            )
            summary = RunSummary(
                status=RunStatus.FAILED,
                pages_crawled=len(reported),
                completed_at=datetime.now(timezone.utc),
                error_message=str(exc) or type(exc).__name__,
            )
            await self._report_failure(analysis_id, summary)
            return summary

        finally:
            clear_run_context()

    async def _report_failure(self, analysis_id: str, summary: RunSummary) -> None:
        try:
            await self.sink.record_failure(analysis_id, summary)
        except Exception as exc:
            logger.error("Could not record analysis failure", error=str(exc), exc_info=True)

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self.http_session is not None:
            yield self.http_session
            return
        async with httpx.AsyncClient(
            headers=default_headers(),
            follow_redirects=False,
            limits=httpx.Limits(max_connections=5, max_keepalive_connections=2),
        ) as client:
            yield client
