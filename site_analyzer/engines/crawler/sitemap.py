"""
Sitemap discovery - resolves the initial crawl frontier.

Fallback chain, first non-empty result wins:
1. {base}/sitemap.xml
2. {base}/sitemap_index.xml (each <sitemap><loc> resolved recursively)
3. Sitemap: lines from {base}/robots.txt
4. [base] - homepage only

Only URLs on the target host count; a step whose URLs all live elsewhere
(e.g. a www. sitemap for an apex target) is treated as empty.

Every step swallows its own network and parse errors and returns [],
so discovery degrades instead of failing the run.
"""

from __future__ import annotations

from typing import Iterable

import httpx
import structlog
from bs4 import BeautifulSoup

from site_analyzer.core.config import get_settings
from site_analyzer.engines.crawler.fetcher import BlockedURLError, FetchError, PageFetcher, SSRFGuard
from site_analyzer.engines.crawler.robots import RobotsHandler
from site_analyzer.engines.crawler.urls import URLNormalizer

logger = structlog.get_logger(__name__)
settings = get_settings()

MAX_SITEMAP_NESTING = 3


class SitemapDiscoverer:
    """Discover and parse XML sitemaps."""

    def __init__(
        self,
        guard: SSRFGuard | None = None,
        timeout: float | None = None,
        max_urls: int | None = None,
    ):
        self.guard = guard or SSRFGuard()
        self.timeout = timeout if timeout is not None else settings.CRAWLER_SITEMAP_TIMEOUT
        self.max_urls = max_urls if max_urls is not None else settings.CRAWLER_MAX_SITEMAP_URLS

    async def discover(
        self,
        base_url: str,
        session: httpx.AsyncClient,
        sitemap_hints: Iterable[str] | None = None,
    ) -> list[str]:
        """
        Return the ordered, de-duplicated seed list for `base_url`.

        `sitemap_hints` are Sitemap: lines the caller already read from
        robots.txt; when None, robots.txt is fetched here.
        """
        base = base_url.rstrip("/")

        steps = (
            ("sitemap.xml", lambda: self._fetch_sitemap(f"{base}/sitemap.xml", session)),
            ("sitemap_index.xml", lambda: self._fetch_sitemap(f"{base}/sitemap_index.xml", session)),
            ("robots.txt", lambda: self._from_robots(base, session, sitemap_hints)),
        )
        for source, step in steps:
            urls = self._same_host(await step(), base_url)
            if urls:
                logger.info("Sitemap URLs discovered", source=source, count=len(urls))
                return urls

        logger.info("No sitemap found, seeding with homepage only", base_url=base_url)
        return [base_url]

    async def _from_robots(
        self,
        base: str,
        session: httpx.AsyncClient,
        sitemap_hints: Iterable[str] | None,
    ) -> list[str]:
        if sitemap_hints is None:
            text = await self._get_text(f"{base}/robots.txt", session)
            if not text:
                return []
            sitemap_hints = RobotsHandler(guard=self.guard).parse(text).sitemaps

        urls: list[str] = []
        for sitemap_url in sitemap_hints:
            urls.extend(await self._fetch_sitemap(sitemap_url, session))
            if len(urls) >= self.max_urls:
                break
        return urls

    async def _fetch_sitemap(self, url: str, session: httpx.AsyncClient, depth: int = 0) -> list[str]:
        """Fetch and parse a single sitemap or sitemap index."""
        content = await self._get_text(url, session)
        if not content:
            return []

        try:
            soup = BeautifulSoup(content, "xml")
        except Exception as e:
            logger.debug("Sitemap parse failed", url=url, error=str(e))
            return []

        urls: list[str] = []

        if soup.find("sitemapindex") is not None:
            if depth >= MAX_SITEMAP_NESTING:
                logger.debug("Sitemap nesting too deep", url=url, depth=depth)
                return []
            for sitemap in soup.find_all("sitemap"):
                loc = sitemap.find("loc")
                if loc and loc.get_text(strip=True):
                    urls.extend(await self._fetch_sitemap(loc.get_text(strip=True), session, depth + 1))
                if len(urls) >= self.max_urls:
                    break

        elif soup.find("urlset") is not None:
            for entry in soup.find_all("url"):
                loc = entry.find("loc")
                if loc and loc.get_text(strip=True):
                    urls.append(loc.get_text(strip=True))

        return urls

    async def _get_text(self, url: str, session: httpx.AsyncClient) -> str:
        fetcher = PageFetcher(session, guard=self.guard)
        try:
            response, _ = await fetcher.request("GET", url, int(self.timeout * 1000))
        except BlockedURLError as e:
            logger.warning("Sitemap location blocked", url=url, reason=str(e))
            return ""
        except FetchError as e:
            logger.debug("Sitemap fetch failed", url=url, error=str(e))
            return ""

        if response.status_code != 200:
            logger.debug("Sitemap not available", url=url, status=response.status_code)
            return ""
        return response.text

    def _same_host(self, urls: list[str], base_url: str) -> list[str]:
        """De-duplicate, drop other hosts, cap at max_urls."""
        seen: set[str] = set()
        ordered: list[str] = []
        for url in urls:
            if url not in seen and URLNormalizer.is_same_host(url, base_url):
                seen.add(url)
                ordered.append(url)
            if len(ordered) >= self.max_urls:
                break
        return ordered
