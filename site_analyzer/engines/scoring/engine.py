"""
Scoring Engine - converts the issue set of a run into category scores.

Scoring Model:
- Each category starts at 100
- Every critical issue in the category costs 10 points, every warning 5
- Info issues never affect scores; scores floor at 0
- Overall score is a weighted blend:
    technical 30% + content 35% + mobile 20% + ai_chatbot 15%
"""

from __future__ import annotations

from collections import Counter
from typing import Iterable

import structlog

from site_analyzer.core.config import get_settings
from site_analyzer.engines.base import AnalysisScores, IssueCategory, PageRecord, SEOIssue, Severity

logger = structlog.get_logger(__name__)
settings = get_settings()


# ─────────────────────────────────────────────
# Category Weights
# ─────────────────────────────────────────────

CATEGORY_WEIGHTS: dict[IssueCategory, float] = {
    IssueCategory.TECHNICAL: settings.WEIGHT_TECHNICAL,
    IssueCategory.CONTENT: settings.WEIGHT_CONTENT,
    IssueCategory.MOBILE: settings.WEIGHT_MOBILE,
    IssueCategory.AI_CHATBOT: settings.WEIGHT_AI_CHATBOT,
}

SEVERITY_PENALTIES: dict[Severity, int] = {
    Severity.CRITICAL: 10,
    Severity.WARNING: 5,
    Severity.INFO: 0,
}


def category_score(issues: Iterable[SEOIssue], category: IssueCategory) -> int:
    penalty = sum(SEVERITY_PENALTIES[i.severity] for i in issues if i.category == category)
    return max(0, 100 - penalty)


def weighted_overall(scores: dict[IssueCategory, int], weights: dict[IssueCategory, float] = CATEGORY_WEIGHTS) -> int:
    """
    Weighted blend rounded half up.
    Weights are taken as whole percentages so the sum is exact integer math.
    """
    total = sum(round(weights[category] * 100) * score for category, score in scores.items())
    return min(100, max(0, (total + 50) // 100))


class ScoreAggregator:
    """Aggregates a run's issues into AnalysisScores. Pure and deterministic."""

    def calculate(self, pages: list[PageRecord], issues: list[SEOIssue]) -> AnalysisScores:
        scores = {category: category_score(issues, category) for category in IssueCategory}
        overall = weighted_overall(scores)

        result = AnalysisScores(
            technical_score=scores[IssueCategory.TECHNICAL],
            content_score=scores[IssueCategory.CONTENT],
            mobile_score=scores[IssueCategory.MOBILE],
            ai_chatbot_score=scores[IssueCategory.AI_CHATBOT],
            overall_score=overall,
        )
        logger.info(
            "Scores calculated",
            pages=len(pages),
            issues=len(issues),
            overall=overall,
            technical=result.technical_score,
            content=result.content_score,
            mobile=result.mobile_score,
            ai_chatbot=result.ai_chatbot_score,
        )
        return result

    @staticmethod
    def summarize(issues: list[SEOIssue]) -> dict[str, int]:
        """Issue counts reported as run metadata."""
        counts = Counter(i.severity for i in issues)
        return {
            "total_issues": len(issues),
            "critical_issues": counts[Severity.CRITICAL],
            "warnings": counts[Severity.WARNING],
        }
