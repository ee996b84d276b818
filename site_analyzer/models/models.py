"""
Database Models - relational storage for projects and their analyses.

- UUID primary keys
- created_at/updated_at on every table
- Crawl settings stored as JSONB in the application's camelCase keys
- One website_analyses row per run; pages and issues hang off it
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from site_analyzer.core.database import Base


# ─────────────────────────────────────────────
# Mixins
# ─────────────────────────────────────────────

class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class UUIDPrimaryKeyMixin:
    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)


# ─────────────────────────────────────────────
# Projects
# ─────────────────────────────────────────────

class Project(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A website under analysis."""
    __tablename__ = "projects"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    domain: Mapped[str] = mapped_column(String(255), nullable=False)
    root_url: Mapped[str] = mapped_column(String(500), nullable=False)
    crawl_settings: Mapped[dict] = mapped_column(JSONB, default=dict, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    exclusion_patterns: Mapped[list["CrawlerExclusionPattern"]] = relationship(
        "CrawlerExclusionPattern", back_populates="project", order_by="CrawlerExclusionPattern.created_at"
    )
    analyses: Mapped[list["WebsiteAnalysis"]] = relationship(
        "WebsiteAnalysis", back_populates="project", order_by="WebsiteAnalysis.created_at.desc()"
    )

    __table_args__ = (
        Index("ix_projects_domain", "domain"),
    )


class CrawlerExclusionPattern(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Wildcard URL pattern skipped by every crawl of the project."""
    __tablename__ = "crawler_exclusion_patterns"

    project_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    pattern: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    project: Mapped[Project] = relationship("Project", back_populates="exclusion_patterns")

    __table_args__ = (
        UniqueConstraint("project_id", "pattern", name="uq_exclusion_patterns_project_pattern"),
        Index("ix_exclusion_patterns_project_id", "project_id"),
    )


# ─────────────────────────────────────────────
# Analyses
# ─────────────────────────────────────────────

class WebsiteAnalysis(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """One analysis run for a project."""
    __tablename__ = "website_analyses"

    project_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="in_progress", nullable=False)
    # in_progress | completed | failed

    celery_task_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    crawl_settings: Mapped[dict] = mapped_column(JSONB, default=dict, nullable=False)

    pages_crawled: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_issues: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    critical_issues: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    warnings: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    technical_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    content_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    mobile_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    ai_chatbot_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    overall_score: Mapped[int | None] = mapped_column(Integer, nullable=True)

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    project: Mapped[Project] = relationship("Project", back_populates="analyses")
    pages: Mapped[list["CrawledPage"]] = relationship("CrawledPage", back_populates="analysis")
    issues: Mapped[list["SEOIssueRecord"]] = relationship("SEOIssueRecord", back_populates="analysis")

    __table_args__ = (
        Index("ix_website_analyses_project_id", "project_id"),
        Index("ix_website_analyses_status", "status"),
    )


class CrawledPage(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A fetched page and its extracted SEO facts."""
    __tablename__ = "crawled_pages"

    analysis_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("website_analyses.id", ondelete="CASCADE"), nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    meta_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    h1: Mapped[str | None] = mapped_column(Text, nullable=True)
    canonical_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    word_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    status_code: Mapped[int] = mapped_column(Integer, nullable=False)
    load_time_ms: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    page_size_kb: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    has_robots_meta: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_indexable: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    has_og_tags: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    has_twitter_cards: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    has_schema_markup: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    total_images: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    images_without_alt: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    internal_links: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    external_links: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    broken_links: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    analysis: Mapped[WebsiteAnalysis] = relationship("WebsiteAnalysis", back_populates="pages")

    __table_args__ = (
        Index("ix_crawled_pages_analysis_id", "analysis_id"),
    )


class SEOIssueRecord(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "seo_issues"

    analysis_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("website_analyses.id", ondelete="CASCADE"), nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    issue_type: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    recommendation: Mapped[str | None] = mapped_column(Text, nullable=True)
    page_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    analysis: Mapped[WebsiteAnalysis] = relationship("WebsiteAnalysis", back_populates="issues")

    __table_args__ = (
        Index("ix_seo_issues_analysis_id", "analysis_id"),
        Index("ix_seo_issues_severity", "severity"),
    )
