"""Tests for category and overall scoring."""

import pytest

from site_analyzer.engines.base import IssueCategory, PageRecord, SEOIssue, Severity
from site_analyzer.engines.scoring.engine import ScoreAggregator, category_score, weighted_overall


def issue(severity: Severity, category: IssueCategory) -> SEOIssue:
    return SEOIssue(severity=severity, category=category, issue_type="Test", description="test issue")


PAGES = [PageRecord(url="https://example.com/")]


class TestCategoryScore:

    def test_no_issues_is_perfect(self):
        assert category_score([], IssueCategory.TECHNICAL) == 100

    def test_penalties(self):
        issues = [
            issue(Severity.CRITICAL, IssueCategory.TECHNICAL),
            issue(Severity.WARNING, IssueCategory.TECHNICAL),
            issue(Severity.INFO, IssueCategory.TECHNICAL),
            issue(Severity.CRITICAL, IssueCategory.CONTENT),
        ]
        assert category_score(issues, IssueCategory.TECHNICAL) == 85
        assert category_score(issues, IssueCategory.CONTENT) == 90

    def test_floors_at_zero(self):
        issues = [issue(Severity.CRITICAL, IssueCategory.MOBILE)] * 11
        assert category_score(issues, IssueCategory.MOBILE) == 0


class TestWeightedOverall:

    def test_perfect_scores(self):
        assert weighted_overall({c: 100 for c in IssueCategory}) == 100

    @pytest.mark.parametrize("technical, content, expected", [
        (70, 95, 89),    # 89.25
        (95, 100, 99),   # 98.5 rounds up
        (0, 0, 35),
    ])
    def test_blend(self, technical, content, expected):
        scores = {
            IssueCategory.TECHNICAL: technical,
            IssueCategory.CONTENT: content,
            IssueCategory.MOBILE: 100,
            IssueCategory.AI_CHATBOT: 100,
        }
        assert weighted_overall(scores) == expected


class TestScoreAggregator:

    def test_no_issues_scores_100_everywhere(self):
        scores = ScoreAggregator().calculate(PAGES, [])
        assert scores.model_dump() == {
            "technical_score": 100,
            "content_score": 100,
            "mobile_score": 100,
            "ai_chatbot_score": 100,
            "overall_score": 100,
        }

    def test_thin_untitled_page_scores(self):
        issues = [issue(Severity.CRITICAL, IssueCategory.TECHNICAL)] * 3 + [issue(Severity.WARNING, IssueCategory.CONTENT)]
        scores = ScoreAggregator().calculate(PAGES, issues)
        assert scores.technical_score == 70
        assert scores.content_score == 95
        assert scores.mobile_score == 100
        assert scores.ai_chatbot_score == 100
        assert scores.overall_score == 89

    def test_info_issues_never_affect_scores(self):
        issues = [issue(Severity.INFO, category) for category in IssueCategory] * 5
        assert ScoreAggregator().calculate(PAGES, issues).overall_score == 100

    def test_deterministic(self):
        issues = [issue(Severity.WARNING, IssueCategory.AI_CHATBOT), issue(Severity.CRITICAL, IssueCategory.MOBILE)]
        aggregator = ScoreAggregator()
        assert aggregator.calculate(PAGES, issues) == aggregator.calculate(PAGES, list(reversed(issues)))

    def test_summarize_counts(self):
        issues = [
            issue(Severity.CRITICAL, IssueCategory.TECHNICAL),
            issue(Severity.WARNING, IssueCategory.CONTENT),
            issue(Severity.WARNING, IssueCategory.MOBILE),
            issue(Severity.INFO, IssueCategory.TECHNICAL),
        ]
        assert ScoreAggregator.summarize(issues) == {"total_issues": 4, "critical_issues": 1, "warnings": 2}
