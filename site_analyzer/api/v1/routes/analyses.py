"""
Analysis API Routes

Routes validate input, record state and dispatch work. Crawling happens in
the Celery worker; the POST returns 202 as soon as the run is queued.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from uuid import UUID

import structlog
from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, ConfigDict
from sqlalchemy import select

from site_analyzer.core.database import DBSession
from site_analyzer.engines.base import CrawlSettings, RunStatus
from site_analyzer.engines.runner import CANCELLED_MESSAGE
from site_analyzer.models.models import Project, WebsiteAnalysis
from site_analyzer.workers.analysis_tasks import run_analysis_task

logger = structlog.get_logger(__name__)
router = APIRouter()


# ─────────────────────────────────────────────
# Request / Response Schemas
# ─────────────────────────────────────────────

class StartAnalysisRequest(BaseModel):
    project_id: UUID
    crawl_settings: CrawlSettings | None = None


class AnalysisResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    status: str
    pages_crawled: int = 0
    total_issues: int = 0
    critical_issues: int = 0
    warnings: int = 0
    technical_score: int | None = None
    content_score: int | None = None
    mobile_score: int | None = None
    ai_chatbot_score: int | None = None
    overall_score: int | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    error_message: str | None = None


# ─────────────────────────────────────────────
# Routes
# ─────────────────────────────────────────────

@router.post(
    "",
    response_model=AnalysisResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Start a website analysis",
)
async def start_analysis(body: StartAnalysisRequest, db: DBSession) -> AnalysisResponse:
    """
    1. Resolve the project
    2. Refuse when the project already has a run in progress
    3. Snapshot crawl settings onto a new in_progress analysis
    4. Dispatch the Celery task and return 202
    """
    project = await db.get(Project, body.project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")

    running = await db.execute(
        select(WebsiteAnalysis.id).where(
            WebsiteAnalysis.project_id == project.id,
            WebsiteAnalysis.status == RunStatus.IN_PROGRESS.value,
        ).limit(1)
    )
    if running.scalar_one_or_none() is not None:
        raise HTTPException(status_code=409, detail="An analysis is already in progress for this project")

    crawl_settings = body.crawl_settings or CrawlSettings.model_validate(project.crawl_settings or {})
    analysis = WebsiteAnalysis(
        id=uuid.uuid4(),
        project_id=project.id,
        status=RunStatus.IN_PROGRESS.value,
        crawl_settings=crawl_settings.model_dump(mode="json", by_alias=True),
        pages_crawled=0,
        total_issues=0,
        critical_issues=0,
        warnings=0,
        started_at=datetime.now(timezone.utc),
    )
    db.add(analysis)
    await db.commit()

    task = run_analysis_task.apply_async(args=[str(analysis.id)], task_id=str(analysis.id))
    analysis.celery_task_id = task.id
    await db.commit()

    logger.info("Analysis dispatched", analysis_id=str(analysis.id), domain=project.domain)
    return AnalysisResponse.model_validate(analysis)


@router.get("/{analysis_id}", response_model=AnalysisResponse, summary="Get analysis status and scores")
async def get_analysis(analysis_id: UUID, db: DBSession) -> AnalysisResponse:
    analysis = await db.get(WebsiteAnalysis, analysis_id)
    if not analysis:
        raise HTTPException(status_code=404, detail="Analysis not found")
    return AnalysisResponse.model_validate(analysis)


@router.post("/{analysis_id}/cancel", response_model=AnalysisResponse, summary="Cancel a running analysis")
async def cancel_analysis(analysis_id: UUID, db: DBSession) -> AnalysisResponse:
    """Marks the run failed; the crawler notices before its next fetch."""
    analysis = await db.get(WebsiteAnalysis, analysis_id)
    if not analysis:
        raise HTTPException(status_code=404, detail="Analysis not found")
    if analysis.status != RunStatus.IN_PROGRESS.value:
        raise HTTPException(status_code=409, detail=f"Analysis is not running (status: {analysis.status})")

    analysis.status = RunStatus.FAILED.value
    analysis.error_message = CANCELLED_MESSAGE
    analysis.completed_at = datetime.now(timezone.utc)
    await db.commit()

    logger.info("Analysis cancelled", analysis_id=str(analysis_id))
    return AnalysisResponse.model_validate(analysis)
