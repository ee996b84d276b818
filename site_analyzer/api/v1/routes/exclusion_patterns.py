"""
Exclusion Pattern Routes

Patterns are validated through the same compiler the crawler uses, so a
pattern that is stored here can always be compiled by a later crawl.
"""

from __future__ import annotations

import uuid
from uuid import UUID

import structlog
from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import select

from site_analyzer.core.database import DBSession
from site_analyzer.engines.crawler.patterns import PatternValidationError, compile_pattern
from site_analyzer.models.models import CrawlerExclusionPattern, Project

logger = structlog.get_logger(__name__)
router = APIRouter()


# ─────────────────────────────────────────────
# Schemas
# ─────────────────────────────────────────────

class PatternCheckRequest(BaseModel):
    pattern: str


class PatternCheckResponse(BaseModel):
    pattern: str
    valid: bool
    reason: str | None = None
    regex: str | None = None


class CreatePatternRequest(BaseModel):
    project_id: UUID
    pattern: str
    description: str | None = Field(None, max_length=255)
    is_default: bool = False


class ExclusionPatternResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    pattern: str
    description: str | None
    is_default: bool
    is_active: bool


def _reject(exc: PatternValidationError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"pattern": exc.pattern, "reason": exc.reason, "error": type(exc).__name__},
    )


# ─────────────────────────────────────────────
# Routes
# ─────────────────────────────────────────────

@router.post("/validate", response_model=PatternCheckResponse, summary="Check a pattern without storing it")
async def validate_pattern(body: PatternCheckRequest) -> PatternCheckResponse:
    try:
        compiled = compile_pattern(body.pattern)
    except PatternValidationError as exc:
        return PatternCheckResponse(pattern=body.pattern, valid=False, reason=exc.reason)
    return PatternCheckResponse(pattern=body.pattern, valid=True, regex=compiled.regex.pattern)


@router.get("", response_model=list[ExclusionPatternResponse], summary="List a project's exclusion patterns")
async def list_patterns(
    db: DBSession,
    project_id: UUID = Query(...),
    include_inactive: bool = Query(False),
) -> list[ExclusionPatternResponse]:
    query = select(CrawlerExclusionPattern).where(CrawlerExclusionPattern.project_id == project_id)
    if not include_inactive:
        query = query.where(CrawlerExclusionPattern.is_active.is_(True))
    result = await db.execute(query.order_by(CrawlerExclusionPattern.created_at))
    return [ExclusionPatternResponse.model_validate(p) for p in result.scalars().all()]


@router.post(
    "",
    response_model=ExclusionPatternResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add an exclusion pattern to a project",
)
async def create_pattern(body: CreatePatternRequest, db: DBSession) -> ExclusionPatternResponse:
    try:
        compile_pattern(body.pattern)
    except PatternValidationError as exc:
        logger.info("Exclusion pattern rejected", pattern=body.pattern[:120], reason=exc.reason)
        raise _reject(exc)

    project = await db.get(Project, body.project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")

    existing = await db.execute(
        select(CrawlerExclusionPattern).where(
            CrawlerExclusionPattern.project_id == body.project_id,
            CrawlerExclusionPattern.pattern == body.pattern,
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(status_code=409, detail="Pattern already exists for this project")

    record = CrawlerExclusionPattern(
        id=uuid.uuid4(),
        project_id=body.project_id,
        pattern=body.pattern,
        description=body.description,
        is_default=body.is_default,
        is_active=True,
    )
    db.add(record)
    await db.flush()

    logger.info("Exclusion pattern added", project_id=str(body.project_id), pattern=body.pattern)
    return ExclusionPatternResponse.model_validate(record)


@router.delete("/{pattern_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Deactivate an exclusion pattern")
async def deactivate_pattern(pattern_id: UUID, db: DBSession) -> None:
    record = await db.get(CrawlerExclusionPattern, pattern_id)
    if not record:
        raise HTTPException(status_code=404, detail="Pattern not found")
    record.is_active = False
    await db.flush()
