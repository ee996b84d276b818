"""Tests for exclusion pattern validation and matching."""

import pytest

from site_analyzer.engines.base import CrawlTarget
from site_analyzer.engines.crawler.patterns import (
    InvalidPatternError,
    PatternMatcher,
    PatternTooComplexError,
    PatternTooLongError,
    PatternValidationError,
    compile_pattern,
    wildcard_to_regex,
)


class TestCompilePattern:

    def test_star_matches_any_run(self):
        compiled = compile_pattern("*/listings/*")
        assert compiled.matches("https://site.com/listings/123")
        assert compiled.matches("https://site.com/listings/")
        assert not compiled.matches("https://site.com/about")

    def test_match_is_case_insensitive(self):
        assert compile_pattern("*/LISTINGS/*").matches("https://site.com/listings/9")

    def test_question_mark_matches_one_character(self):
        compiled = compile_pattern("https://example.com/page?")
        assert compiled.matches("https://example.com/page1")
        assert not compiled.matches("https://example.com/page12")
        assert not compiled.matches("https://example.com/page")

    def test_other_characters_are_literal(self):
        compiled = compile_pattern("*.pdf")
        assert compiled.matches("https://example.com/doc.pdf")
        assert not compiled.matches("https://example.com/docxpdf")

    def test_pattern_is_anchored(self):
        assert not compile_pattern("/listings/").matches("https://site.com/listings/")

    def test_star_runs_collapse(self):
        assert wildcard_to_regex("a**b") == "^a.*b$"

    def test_rejects_pattern_over_100_characters(self):
        with pytest.raises(PatternTooLongError):
            compile_pattern("a" * 101)

    def test_accepts_pattern_of_exactly_100_characters(self):
        assert compile_pattern("a" * 100).pattern == "a" * 100

    @pytest.mark.parametrize("pattern", ["", "   ", "has space", "tab\there"])
    def test_rejects_blank_or_whitespace_patterns(self, pattern):
        with pytest.raises(InvalidPatternError):
            compile_pattern(pattern)

    def test_rejects_pattern_over_compile_budget(self):
        with pytest.raises(PatternTooComplexError) as exc_info:
            compile_pattern("*/slow/*", budget_ms=-1)
        assert "too complex" in exc_info.value.reason

    def test_errors_share_a_base_class(self):
        for error in (InvalidPatternError, PatternTooLongError, PatternTooComplexError):
            assert issubclass(error, PatternValidationError)


class TestPatternMatcher:

    def test_returns_first_matching_pattern(self):
        matcher = PatternMatcher(["*/blog/*", "*/blog/drafts/*"])
        assert matcher.match("https://example.com/blog/drafts/1") == "*/blog/*"

    def test_no_match_returns_none(self):
        assert PatternMatcher(["*/admin/*"]).match("https://example.com/about") is None

    def test_duplicates_are_dropped(self):
        matcher = PatternMatcher(["*/a/*", "*/b/*", "*/a/*"])
        assert len(matcher) == 2
        assert matcher.patterns == ["*/a/*", "*/b/*"]

    def test_empty_matcher_matches_nothing(self):
        assert not PatternMatcher().matches("https://example.com/anything")


class TestCrawlTargetPatterns:

    def test_invalid_pattern_fails_target_construction(self):
        with pytest.raises(PatternTooLongError):
            CrawlTarget(base_url="example.com", exclusion_patterns=("x" * 150,))

    def test_patterns_are_deduplicated_in_order(self):
        target = CrawlTarget(base_url="example.com", exclusion_patterns=["*/b/*", "*/a/*", "*/b/*"])
        assert target.exclusion_patterns == ("*/b/*", "*/a/*")

    def test_bare_domain_gets_https_origin(self):
        target = CrawlTarget(base_url="Example.com/some/path")
        assert target.base_url == "https://example.com"
        assert target.host == "example.com"
