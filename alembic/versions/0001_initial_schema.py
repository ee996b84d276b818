"""initial schema

Revision ID: 0001
Revises:
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _id() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False)


def _analysis_fk() -> sa.Column:
    return sa.Column(
        "analysis_id",
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey("website_analyses.id", ondelete="CASCADE"),
        nullable=False,
    )


def _counter(name: str) -> sa.Column:
    return sa.Column(name, sa.Integer(), nullable=False, server_default="0")


def _flag(name: str, default: bool = False) -> sa.Column:
    return sa.Column(name, sa.Boolean(), nullable=False, server_default=sa.true() if default else sa.false())


def upgrade() -> None:
    op.create_table(
        "projects",
        _id(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("domain", sa.String(255), nullable=False),
        sa.Column("root_url", sa.String(500), nullable=False),
        sa.Column("crawl_settings", postgresql.JSONB(), nullable=False, server_default="{}"),
        _flag("is_active", default=True),
        *_timestamps(),
    )
    op.create_index("ix_projects_domain", "projects", ["domain"])

    op.create_table(
        "crawler_exclusion_patterns",
        _id(),
        sa.Column(
            "project_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("pattern", sa.String(100), nullable=False),
        sa.Column("description", sa.String(255), nullable=True),
        _flag("is_default"),
        _flag("is_active", default=True),
        *_timestamps(),
        sa.UniqueConstraint("project_id", "pattern", name="uq_exclusion_patterns_project_pattern"),
    )
    op.create_index("ix_exclusion_patterns_project_id", "crawler_exclusion_patterns", ["project_id"])

    op.create_table(
        "website_analyses",
        _id(),
        sa.Column(
            "project_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("status", sa.String(20), nullable=False, server_default="in_progress"),
        sa.Column("celery_task_id", sa.String(255), nullable=True),
        sa.Column("crawl_settings", postgresql.JSONB(), nullable=False, server_default="{}"),
        _counter("pages_crawled"),
        _counter("total_issues"),
        _counter("critical_issues"),
        _counter("warnings"),
        sa.Column("technical_score", sa.Integer(), nullable=True),
        sa.Column("content_score", sa.Integer(), nullable=True),
        sa.Column("mobile_score", sa.Integer(), nullable=True),
        sa.Column("ai_chatbot_score", sa.Integer(), nullable=True),
        sa.Column("overall_score", sa.Integer(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_website_analyses_project_id", "website_analyses", ["project_id"])
    op.create_index("ix_website_analyses_status", "website_analyses", ["status"])

    op.create_table(
        "crawled_pages",
        _id(),
        _analysis_fk(),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("meta_description", sa.Text(), nullable=True),
        sa.Column("h1", sa.Text(), nullable=True),
        sa.Column("canonical_url", sa.Text(), nullable=True),
        _counter("word_count"),
        sa.Column("status_code", sa.Integer(), nullable=False),
        _counter("load_time_ms"),
        _counter("page_size_kb"),
        _flag("has_robots_meta"),
        _flag("is_indexable", default=True),
        _flag("has_og_tags"),
        _flag("has_twitter_cards"),
        _flag("has_schema_markup"),
        _counter("total_images"),
        _counter("images_without_alt"),
        _counter("internal_links"),
        _counter("external_links"),
        _counter("broken_links"),
        *_timestamps(),
    )
    op.create_index("ix_crawled_pages_analysis_id", "crawled_pages", ["analysis_id"])

    op.create_table(
        "seo_issues",
        _id(),
        _analysis_fk(),
        sa.Column("severity", sa.String(20), nullable=False),
        sa.Column("category", sa.String(20), nullable=False),
        sa.Column("issue_type", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("recommendation", sa.Text(), nullable=True),
        sa.Column("page_url", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_seo_issues_analysis_id", "seo_issues", ["analysis_id"])
    op.create_index("ix_seo_issues_severity", "seo_issues", ["severity"])


def downgrade() -> None:
    op.drop_table("seo_issues")
    op.drop_table("crawled_pages")
    op.drop_table("website_analyses")
    op.drop_table("crawler_exclusion_patterns")
    op.drop_table("projects")
