"""
Type contracts shared by the crawler, the issue analyzer and the scorer.

Design principles:
- Records are explicit, immutable pydantic models with fixed fields
- Severity, category, strategy and run status are closed enums
- Every extracted page field is optional; only the issue analyzer
  decides that "missing" is a problem
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

from site_analyzer.core.config import get_settings
from site_analyzer.engines.crawler.patterns import compile_pattern

settings = get_settings()


# ─────────────────────────────────────────────
# Enums
# ─────────────────────────────────────────────

class Severity(str, Enum):
    CRITICAL = "critical"   # Blocks indexing or ranking - fix immediately
    WARNING = "warning"     # Hurts ranking or CTR
    INFO = "info"           # Nice to have - never affects scores


class IssueCategory(str, Enum):
    TECHNICAL = "technical"
    CONTENT = "content"
    MOBILE = "mobile"
    AI_CHATBOT = "ai_chatbot"


class CrawlStrategy(str, Enum):
    BREADTH_FIRST = "breadth_first"
    DEPTH_FIRST = "depth_first"


class RunStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


# ─────────────────────────────────────────────
# Configuration input
# ─────────────────────────────────────────────

class CrawlSettings(BaseModel):
    """Per-target crawl settings supplied by the calling application."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, use_enum_values=False)

    max_pages: int = Field(settings.CRAWLER_DEFAULT_MAX_PAGES, ge=1, le=settings.CRAWLER_MAX_PAGES_LIMIT, alias="maxPages")
    timeout_ms: int = Field(settings.CRAWLER_DEFAULT_TIMEOUT_MS, gt=0, alias="timeoutMs")
    rate_limit_ms: int = Field(settings.CRAWLER_DEFAULT_RATE_LIMIT_MS, ge=0, alias="rateLimitMs")
    respect_robots_txt: bool = Field(True, alias="respectRobotsTxt")
    follow_nofollow_links: bool = Field(False, alias="followNofollowLinks")
    crawl_strategy: CrawlStrategy = Field(CrawlStrategy.BREADTH_FIRST, alias="crawlStrategy")
    check_broken_links: bool = Field(False, alias="checkBrokenLinks")


class CrawlTarget(BaseModel):
    """
    A root domain under analysis. Built once per run and never mutated.
    Exclusion patterns are validated on construction so a bad pattern
    fails here, synchronously, instead of inside the crawl loop.
    """
    model_config = ConfigDict(frozen=True)

    base_url: str
    settings: CrawlSettings = Field(default_factory=CrawlSettings)
    exclusion_patterns: tuple[str, ...] = ()

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        v = v.strip()
        if not v.lower().startswith(("http://", "https://")):
            v = f"https://{v}"
        parsed = urlparse(v)
        if not parsed.hostname:
            raise ValueError(f"Cannot resolve a host from '{v}'")
        return f"{parsed.scheme.lower()}://{parsed.netloc.lower()}"

    @field_validator("exclusion_patterns", mode="before")
    @classmethod
    def validate_patterns(cls, v):
        # PatternValidationError is not a ValueError, so it escapes pydantic unwrapped
        ordered: list[str] = []
        for pattern in v or ():
            compile_pattern(pattern)
            if pattern not in ordered:
                ordered.append(pattern)
        return tuple(ordered)

    @property
    def host(self) -> str:
        return urlparse(self.base_url).hostname or ""


# ─────────────────────────────────────────────
# Crawl output
# ─────────────────────────────────────────────

class PageRecord(BaseModel):
    """One crawled page's extracted SEO signals."""
    model_config = ConfigDict(frozen=True)

    url: str
    title: str | None = None
    meta_description: str | None = None
    h1: str | None = None
    canonical_url: str | None = None
    word_count: int = 0
    status_code: int = 200
    load_time_ms: int = 0
    page_size_kb: int = 0
    has_robots_meta: bool = False
    is_indexable: bool = True
    has_og_tags: bool = False
    has_twitter_cards: bool = False
    has_schema_markup: bool = False
    total_images: int = 0
    images_without_alt: int = 0
    internal_links: int = 0
    external_links: int = 0
    broken_links: int = 0   # Only computed when check_broken_links is enabled


class SEOIssue(BaseModel):
    """A single detected problem on a single page."""
    model_config = ConfigDict(frozen=True)

    severity: Severity
    category: IssueCategory
    issue_type: str
    description: str
    recommendation: str | None = None
    page_url: str | None = None


class AnalysisScores(BaseModel):
    model_config = ConfigDict(frozen=True)

    technical_score: int = Field(ge=0, le=100)
    content_score: int = Field(ge=0, le=100)
    mobile_score: int = Field(ge=0, le=100)
    ai_chatbot_score: int = Field(ge=0, le=100)
    overall_score: int = Field(ge=0, le=100)


class CrawlResult(BaseModel):
    """What one scheduler invocation produced."""
    pages: list[PageRecord] = Field(default_factory=list)
    seed_count: int = 0
    total_queued: int = 0
    total_crawled: int = 0
    total_failed: int = 0
    total_excluded: int = 0
    total_skipped: int = 0
    elapsed_seconds: float = 0.0
    cancelled: bool = False


class RunSummary(BaseModel):
    """Run-level metadata handed to the results sink."""
    status: RunStatus
    pages_crawled: int = 0
    total_issues: int = 0
    critical_issues: int = 0
    warnings: int = 0
    completed_at: datetime | None = None
    error_message: str | None = None
    scores: AnalysisScores | None = None
