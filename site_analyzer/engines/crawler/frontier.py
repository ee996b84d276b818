"""
Frontier - the mutable URL state of one crawl.

A URL lives in exactly one place at a time: the queue, `visited`, `failed`,
`excluded` or `redirected`. Once it leaves the queue it never comes back,
so no URL is fetched twice. A redirected URL counts as seen; the page it
served is recorded in `visited` under the URL that served it.
A Frontier belongs to a single scheduler call.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field

from site_analyzer.engines.base import CrawlStrategy


@dataclass
class Frontier:
    strategy: CrawlStrategy = CrawlStrategy.BREADTH_FIRST
    queue: deque[str] = field(default_factory=deque)
    queued: set[str] = field(default_factory=set)
    visited: set[str] = field(default_factory=set)
    failed: set[str] = field(default_factory=set)
    excluded: set[str] = field(default_factory=set)
    redirected: set[str] = field(default_factory=set)

    def __len__(self) -> int:
        return len(self.queue)

    def seen(self, url: str) -> bool:
        return (
            url in self.queued
            or url in self.visited
            or url in self.failed
            or url in self.excluded
            or url in self.redirected
        )

    def add(self, url: str) -> bool:
        """Enqueue at the tail. Returns False if the URL was already seen."""
        if self.seen(url):
            return False
        self.queue.append(url)
        self.queued.add(url)
        return True

    def add_links(self, urls: list[str]) -> int:
        """
        Enqueue links found on one page, per strategy.

        Breadth-first appends to the tail. Depth-first pushes onto the head
        in reverse, so the first link on the page is the next one visited.
        """
        fresh: list[str] = []
        for url in urls:
            if not self.seen(url) and url not in fresh:
                fresh.append(url)

        if self.strategy == CrawlStrategy.DEPTH_FIRST:
            for url in reversed(fresh):
                self.queue.appendleft(url)
        else:
            self.queue.extend(fresh)
        self.queued.update(fresh)
        return len(fresh)

    def pop(self) -> str | None:
        if not self.queue:
            return None
        url = self.queue.popleft()
        self.queued.discard(url)
        return url

    def mark_visited(self, url: str) -> None:
        self.visited.add(url)

    def mark_failed(self, url: str) -> None:
        self.failed.add(url)

    def mark_excluded(self, url: str) -> None:
        self.excluded.add(url)

    def mark_redirected(self, url: str, final_url: str) -> bool:
        """
        `url` was answered from `final_url`. Returns False when `final_url`
        was already visited, i.e. the page is a duplicate.
        """
        self.redirected.add(url)
        if final_url in self.visited:
            return False
        if final_url in self.queued:
            self.queue.remove(final_url)
            self.queued.discard(final_url)
        self.failed.discard(final_url)
        self.visited.add(final_url)
        return True

    def abandon_remaining(self) -> int:
        """Budget exhausted: whatever is still queued becomes failed."""
        count = 0
        while self.queue:
            url = self.pop()
            self.failed.add(url)
            count += 1
        return count
