"""
Results sink - the boundary the analysis core reports into.

The core never touches storage directly. Per page it emits one PageRecord;
after the run it emits the issue list, the scores and the run summary.
The sink also answers "has this run been cancelled?" between page fetches.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import defaultdict

from site_analyzer.engines.base import AnalysisScores, PageRecord, RunStatus, RunSummary, SEOIssue


class ResultsSink(ABC):

    @abstractmethod
    async def record_page(self, analysis_id: str, page: PageRecord) -> None:
        ...

    @abstractmethod
    async def record_issues(self, analysis_id: str, issues: list[SEOIssue]) -> None:
        ...

    @abstractmethod
    async def record_completion(self, analysis_id: str, scores: AnalysisScores, summary: RunSummary) -> None:
        ...

    @abstractmethod
    async def record_failure(self, analysis_id: str, summary: RunSummary) -> None:
        ...

    @abstractmethod
    async def is_cancelled(self, analysis_id: str) -> bool:
        """True once an external caller has marked the run failed."""
        ...


class InMemoryResultsSink(ResultsSink):
    """Keeps everything in dicts. Used by tests and local runs."""

    def __init__(self):
        self.pages: dict[str, list[PageRecord]] = defaultdict(list)
        self.issues: dict[str, list[SEOIssue]] = defaultdict(list)
        self.scores: dict[str, AnalysisScores] = {}
        self.summaries: dict[str, RunSummary] = {}
        self.statuses: dict[str, RunStatus] = {}

    async def record_page(self, analysis_id: str, page: PageRecord) -> None:
        self.pages[analysis_id].append(page)

    async def record_issues(self, analysis_id: str, issues: list[SEOIssue]) -> None:
        self.issues[analysis_id].extend(issues)

    async def record_completion(self, analysis_id: str, scores: AnalysisScores, summary: RunSummary) -> None:
        self.scores[analysis_id] = scores
        self.summaries[analysis_id] = summary
        self.statuses[analysis_id] = summary.status

    async def record_failure(self, analysis_id: str, summary: RunSummary) -> None:
        self.summaries[analysis_id] = summary
        self.statuses[analysis_id] = summary.status

    async def is_cancelled(self, analysis_id: str) -> bool:
        return self.statuses.get(analysis_id) == RunStatus.FAILED

    def cancel(self, analysis_id: str) -> None:
        self.statuses[analysis_id] = RunStatus.FAILED
