"""
Broken-link detection for internal links (opt-in via check_broken_links).

Each URL is checked at most once per run. HEAD first; servers that answer
405 get a GET. Guard refusals are policy, not breakage, and are not counted.
"""

from __future__ import annotations

from typing import Awaitable, Callable

import structlog

from site_analyzer.core.config import get_settings
from site_analyzer.engines.crawler.fetcher import BlockedURLError, FetchError, PageFetcher

logger = structlog.get_logger(__name__)
settings = get_settings()


class BrokenLinkChecker:

    def __init__(
        self,
        fetcher: PageFetcher,
        timeout_ms: int,
        before_request: Callable[[], Awaitable[None]] | None = None,
        max_checks_per_page: int | None = None,
    ):
        self.fetcher = fetcher
        self.timeout_ms = timeout_ms
        self.before_request = before_request
        self.max_checks_per_page = (
            settings.CRAWLER_MAX_LINK_CHECKS_PER_PAGE if max_checks_per_page is None else max_checks_per_page
        )
        self._results: dict[str, bool] = {}

    @property
    def checked(self) -> int:
        return len(self._results)

    async def count_broken(self, links: list[str]) -> int:
        broken = 0
        for url in links[: self.max_checks_per_page]:
            if url not in self._results:
                self._results[url] = await self._is_broken(url)
            if self._results[url]:
                broken += 1
        return broken

    async def _is_broken(self, url: str) -> bool:
        if self.before_request is not None:
            await self.before_request()
        try:
            response, _ = await self.fetcher.request("HEAD", url, self.timeout_ms)
            if response.status_code == 405:
                response, _ = await self.fetcher.request("GET", url, self.timeout_ms)
        except BlockedURLError:
            return False
        except FetchError as e:
            logger.debug("Link check failed", url=url, error=str(e))
            return True

        if response.status_code >= 400:
            logger.debug("Broken link found", url=url, status=response.status_code)
            return True
        return False
