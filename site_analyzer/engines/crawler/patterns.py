"""
Exclusion patterns - user-configured wildcard rules that remove URLs from a crawl.

Pattern language:
    *   any run of characters (including none)
    ?   exactly one character
Everything else matches literally. Matching is case-insensitive and anchored
to the whole URL, so `*/listings/*` excludes https://site.com/listings/123
but `/listings/` on its own matches nothing but that exact string.

Patterns are validated when they are accepted (length cap, bounded
compilation time) and never reach the crawl loop in an invalid state.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from typing import Iterable

import structlog

from site_analyzer.core.config import get_settings

logger = structlog.get_logger(__name__)
settings = get_settings()

_FORBIDDEN_CHARS = re.compile(r"[\s\x00-\x1f\x7f]")
_STAR_RUN = re.compile(r"\*{2,}")


# ─────────────────────────────────────────────
# Errors
# ─────────────────────────────────────────────

class PatternValidationError(Exception):
    """Raised when an exclusion pattern is rejected at the point it is accepted."""

    def __init__(self, pattern: str, reason: str):
        super().__init__(f"{reason}: {pattern[:120]!r}")
        self.pattern = pattern
        self.reason = reason


class InvalidPatternError(PatternValidationError):
    pass


class PatternTooLongError(PatternValidationError):
    pass


class PatternTooComplexError(PatternValidationError):
    pass


# ─────────────────────────────────────────────
# Compilation
# ─────────────────────────────────────────────

@dataclass(frozen=True)
class ExclusionPattern:
    """A validated, compiled exclusion pattern."""
    pattern: str
    regex: re.Pattern[str]
    compile_ms: float

    def matches(self, url: str) -> bool:
        return self.regex.match(url) is not None


def wildcard_to_regex(pattern: str) -> str:
    """Translate the wildcard language to an anchored regular expression."""
    collapsed = _STAR_RUN.sub("*", pattern)
    parts: list[str] = []
    for char in collapsed:
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return "^" + "".join(parts) + "$"


def compile_pattern(
    pattern: str,
    max_length: int | None = None,
    budget_ms: float | None = None,
) -> ExclusionPattern:
    """
    Validate and compile a wildcard pattern.

    Raises:
        InvalidPatternError: empty, or contains whitespace/control characters
        PatternTooLongError: longer than the configured cap (100 chars)
        PatternTooComplexError: compilation exceeded the time budget
    """
    max_length = settings.PATTERN_MAX_LENGTH if max_length is None else max_length
    budget_ms = settings.PATTERN_COMPILE_BUDGET_MS if budget_ms is None else budget_ms

    if not isinstance(pattern, str) or not pattern.strip():
        raise InvalidPatternError(str(pattern), "Pattern must be a non-empty string")
    if len(pattern) > max_length:
        raise PatternTooLongError(pattern, f"Pattern exceeds {max_length} characters")
    if _FORBIDDEN_CHARS.search(pattern):
        raise InvalidPatternError(pattern, "Pattern contains whitespace or control characters")

    start = time.perf_counter()
    try:
        regex = re.compile(wildcard_to_regex(pattern), re.IGNORECASE)
    except re.error as exc:
        raise InvalidPatternError(pattern, f"Invalid pattern syntax ({exc})") from exc
    elapsed_ms = (time.perf_counter() - start) * 1000

    if elapsed_ms > budget_ms:
        logger.warning("Exclusion pattern rejected as too complex", pattern=pattern, compile_ms=round(elapsed_ms, 2))
        raise PatternTooComplexError(pattern, "Pattern too complex (compilation timeout)")

    return ExclusionPattern(pattern=pattern, regex=regex, compile_ms=elapsed_ms)


# ─────────────────────────────────────────────
# Matcher
# ─────────────────────────────────────────────

class PatternMatcher:
    """Ordered set of compiled exclusion patterns for one crawl."""

    def __init__(self, patterns: Iterable[str] = ()):
        self._compiled: list[ExclusionPattern] = []
        seen: set[str] = set()
        for pattern in patterns:
            if pattern in seen:
                continue
            seen.add(pattern)
            self._compiled.append(compile_pattern(pattern))

    def __len__(self) -> int:
        return len(self._compiled)

    @property
    def patterns(self) -> list[str]:
        return [p.pattern for p in self._compiled]

    def match(self, url: str) -> str | None:
        """Return the first pattern that matches `url`, or None."""
        for compiled in self._compiled:
            if compiled.matches(url):
                return compiled.pattern
        return None

    def matches(self, url: str) -> bool:
        return self.match(url) is not None
