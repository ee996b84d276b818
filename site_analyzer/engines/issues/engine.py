"""
Issue Analyzer Engine

Runs per-page rule checks against a PageRecord:
- Title tag (presence, length)
- Meta description (presence, length)
- H1 heading
- Content length
- Image alt text
- Open Graph tags
- Schema.org structured data (AI chatbot readiness)
- Load time
- Indexability and broken internal links

Rules are independent and run in a fixed order; the order of issues for a
page follows the rule order.
"""

from __future__ import annotations

from typing import Iterable

import structlog

from site_analyzer.engines.base import IssueCategory, PageRecord, SEOIssue, Severity

logger = structlog.get_logger(__name__)


class IssueAnalyzer:

    # Thresholds
    TITLE_MIN_LENGTH = 30
    TITLE_MAX_LENGTH = 60
    META_DESC_MIN_LENGTH = 120
    META_DESC_MAX_LENGTH = 160
    MIN_WORD_COUNT = 300
    MAX_LOAD_TIME_MS = 3000

    def analyze(self, page: PageRecord) -> list[SEOIssue]:
        issues: list[SEOIssue] = []

        def add(severity: Severity, category: IssueCategory, issue_type: str, description: str, recommendation: str) -> None:
            issues.append(SEOIssue(
                severity=severity,
                category=category,
                issue_type=issue_type,
                description=description,
                recommendation=recommendation,
                page_url=page.url,
            ))

        # ── Title ──────────────────────────────────
        if not page.title:
            add(
                Severity.CRITICAL, IssueCategory.TECHNICAL, "Missing Title",
                "Page is missing a title tag",
                "Add a descriptive title tag (50-60 characters)",
            )
        elif not self.TITLE_MIN_LENGTH <= len(page.title) <= self.TITLE_MAX_LENGTH:
            add(
                Severity.WARNING, IssueCategory.TECHNICAL, "Title Length",
                f"Title is {len(page.title)} characters "
                f"(recommended: {self.TITLE_MIN_LENGTH}-{self.TITLE_MAX_LENGTH})",
                "Adjust title length so it displays in full in search results",
            )

        # ── Meta Description ───────────────────────
        if page.meta_description is None:
            add(
                Severity.CRITICAL, IssueCategory.TECHNICAL, "Missing Meta Description",
                "Page is missing a meta description",
                "Add a compelling meta description (150-160 characters)",
            )
        elif not self.META_DESC_MIN_LENGTH <= len(page.meta_description) <= self.META_DESC_MAX_LENGTH:
            add(
                Severity.WARNING, IssueCategory.TECHNICAL, "Meta Description Length",
                f"Meta description is {len(page.meta_description)} characters "
                f"(recommended: {self.META_DESC_MIN_LENGTH}-{self.META_DESC_MAX_LENGTH})",
                "Adjust meta description length to 150-160 characters",
            )

        # ── Headings ──────────────────────────────
        if not page.h1:
            add(
                Severity.CRITICAL, IssueCategory.TECHNICAL, "Missing H1",
                "Page is missing an H1 heading",
                "Add a single H1 heading that clearly describes the page content",
            )

        # ── Content ───────────────────────────────
        if page.word_count < self.MIN_WORD_COUNT:
            add(
                Severity.WARNING, IssueCategory.CONTENT, "Thin Content",
                f"Page has only {page.word_count} words (recommended: {self.MIN_WORD_COUNT}+)",
                "Add more high-quality content to provide value to users and search engines",
            )

        # ── Images ────────────────────────────────
        if page.images_without_alt > 0:
            add(
                Severity.WARNING, IssueCategory.TECHNICAL, "Images Without Alt Text",
                f"{page.images_without_alt} of {page.total_images} images are missing alt text",
                "Add descriptive alt text to all images for accessibility and SEO",
            )

        # ── Social ────────────────────────────────
        if not page.has_og_tags:
            add(
                Severity.INFO, IssueCategory.TECHNICAL, "Missing Open Graph Tags",
                "Page is missing Open Graph meta tags",
                "Add Open Graph tags for better social media sharing (og:title, og:description, og:image)",
            )

        # ── Structured Data ───────────────────────
        if not page.has_schema_markup:
            add(
                Severity.WARNING, IssueCategory.AI_CHATBOT, "Missing Schema Markup",
                "Page is missing structured data (Schema.org markup)",
                "Add JSON-LD structured data to help AI chatbots understand your content",
            )

        # ── Performance ───────────────────────────
        if page.load_time_ms > self.MAX_LOAD_TIME_MS:
            add(
                Severity.WARNING, IssueCategory.MOBILE, "Slow Load Time",
                f"Page load time is {page.load_time_ms}ms (recommended: <{self.MAX_LOAD_TIME_MS}ms)",
                "Optimize images, minify CSS/JS, and leverage browser caching to improve load time",
            )

        # ── Indexability ──────────────────────────
        if not page.is_indexable:
            add(
                Severity.WARNING, IssueCategory.TECHNICAL, "Noindex Page",
                "Page carries a robots noindex directive and will not appear in search results",
                "Remove the noindex directive unless the page is intentionally hidden from search",
            )

        if page.broken_links > 0:
            add(
                Severity.WARNING, IssueCategory.TECHNICAL, "Broken Links",
                f"{page.broken_links} internal links return an error",
                "Fix or redirect broken links so users and crawlers reach live pages",
            )

        return issues

    def analyze_all(self, pages: Iterable[PageRecord]) -> list[SEOIssue]:
        all_issues: list[SEOIssue] = []
        page_count = 0
        for page in pages:
            all_issues.extend(self.analyze(page))
            page_count += 1
        logger.info("Pages analyzed", pages=page_count, issues=len(all_issues))
        return all_issues
