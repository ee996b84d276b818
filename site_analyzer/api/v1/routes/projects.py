"""Project registration: the site an analysis runs against and its default crawl settings."""

from __future__ import annotations

import uuid
from uuid import UUID

import structlog
from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from site_analyzer.core.database import DBSession
from site_analyzer.engines.base import CrawlSettings, CrawlTarget
from site_analyzer.models.models import Project

logger = structlog.get_logger(__name__)
router = APIRouter()


class CreateProjectRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    domain: str = Field(..., min_length=1, max_length=255)
    crawl_settings: CrawlSettings = Field(default_factory=CrawlSettings)


class ProjectResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    domain: str
    root_url: str
    crawl_settings: dict


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED, summary="Register a project")
async def create_project(body: CreateProjectRequest, db: DBSession) -> ProjectResponse:
    try:
        target = CrawlTarget(base_url=body.domain)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors(include_url=False, include_context=False)) from exc

    project = Project(
        id=uuid.uuid4(),
        name=body.name,
        domain=target.host,
        root_url=target.base_url,
        crawl_settings=body.crawl_settings.model_dump(mode="json", by_alias=True),
        is_active=True,
    )
    db.add(project)
    await db.flush()

    logger.info("Project created", project_id=str(project.id), domain=project.domain)
    return ProjectResponse.model_validate(project)


@router.get("/{project_id}", response_model=ProjectResponse, summary="Get a project")
async def get_project(project_id: UUID, db: DBSession) -> ProjectResponse:
    project = await db.get(Project, project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return ProjectResponse.model_validate(project)
