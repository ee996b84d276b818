"""
Crawler Engine - sequential BFS/DFS crawl of one site.

Architecture:
- Frontier seeded from sitemap discovery; the homepage is always a seed
- Per URL: normalize → same-host → exclusion patterns → robots.txt
- Redirect hops pass the same checks; pages are recorded under the served URL
- Fixed-interval rate limiting; robots crawl-delay overrides the setting
- SSRF-guarded fetching, one page at a time
- Page budget counts successfully fetched pages only
- Cooperative cancellation checked before every dequeue

Crawling is deliberately sequential: one page is fetched, extracted and
link-harvested before the next dequeue, so the rate-limit interval holds
uniformly and the frontier needs no locking.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable

import httpx
import structlog

from site_analyzer.core.config import get_settings
from site_analyzer.engines.base import CrawlResult, CrawlTarget, PageRecord
from site_analyzer.engines.crawler.extractor import PageExtractor
from site_analyzer.engines.crawler.fetcher import (
    BlockedURLError,
    FetchError,
    PageFetcher,
    RedirectCheck,
    RedirectRefusedError,
    SSRFGuard,
)
from site_analyzer.engines.crawler.frontier import Frontier
from site_analyzer.engines.crawler.link_checker import BrokenLinkChecker
from site_analyzer.engines.crawler.links import LinkExtractor
from site_analyzer.engines.crawler.patterns import PatternMatcher
from site_analyzer.engines.crawler.robots import RobotsHandler, RobotsRules
from site_analyzer.engines.crawler.sitemap import SitemapDiscoverer
from site_analyzer.engines.crawler.urls import URLNormalizer

logger = structlog.get_logger(__name__)
settings = get_settings()

PageCallback = Callable[[PageRecord], Awaitable[None]]
StopCheck = Callable[[], Awaitable[bool]]


# ─────────────────────────────────────────────
# Data Structures
# ─────────────────────────────────────────────

@dataclass
class CrawlStats:
    """Live crawl statistics."""
    total_queued: int = 0
    total_crawled: int = 0
    total_failed: int = 0
    total_excluded: int = 0
    total_skipped: int = 0
    start_time: float = field(default_factory=time.monotonic)

    @property
    def elapsed_seconds(self) -> float:
        return time.monotonic() - self.start_time

    @property
    def pages_per_second(self) -> float:
        elapsed = self.elapsed_seconds
        return self.total_crawled / elapsed if elapsed > 0 else 0


@dataclass
class RateLimiter:
    """
    Minimum spacing between consecutive requests.
    The first request goes out immediately; each later one waits until
    `interval_ms` has passed since the previous request finished.
    """
    interval_ms: int
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    _last_request: float | None = field(default=None, init=False)

    async def acquire(self) -> None:
        if self._last_request is not None and self.interval_ms > 0:
            remaining = self.interval_ms / 1000 - (time.monotonic() - self._last_request)
            if remaining > 0:
                await self.sleep(remaining)

    def release(self) -> None:
        self._last_request = time.monotonic()

    async def wait_turn(self) -> None:
        """acquire() + release() for callers that do not track completion."""
        await self.acquire()
        self.release()


# ─────────────────────────────────────────────
# Scheduler
# ─────────────────────────────────────────────

class CrawlScheduler:
    """
    Orchestrates one crawl over a Frontier.

    Flow:
    1. Guard-check the target, read robots.txt, discover seeds
    2. Dequeue → policy checks → rate limit → fetch → extract → enqueue links
    3. Stop when the frontier is empty or max_pages pages were fetched
    """

    def __init__(
        self,
        http_session: httpx.AsyncClient,
        guard: SSRFGuard | None = None,
        robots_handler: RobotsHandler | None = None,
        sitemap_discoverer: SitemapDiscoverer | None = None,
        extractor: PageExtractor | None = None,
        link_extractor: LinkExtractor | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.http_session = http_session
        self.guard = guard or SSRFGuard()
        self.robots_handler = robots_handler or RobotsHandler(guard=self.guard)
        self.sitemap_discoverer = sitemap_discoverer or SitemapDiscoverer(guard=self.guard)
        self.extractor = extractor or PageExtractor()
        self.link_extractor = link_extractor or LinkExtractor()
        self.fetcher = PageFetcher(http_session, guard=self.guard)
        self.sleep = sleep

    async def crawl(
        self,
        target: CrawlTarget,
        on_page: PageCallback | None = None,
        should_stop: StopCheck | None = None,
    ) -> CrawlResult:
        crawl_settings = target.settings
        base_url = target.base_url
        stats = CrawlStats()
        pages: list[PageRecord] = []
        cancelled = False

        matcher = PatternMatcher(target.exclusion_patterns)
        frontier = Frontier(strategy=crawl_settings.crawl_strategy)

        # Step 1: robots.txt and seeds
        reachable = await self._target_reachable(base_url)
        rules = RobotsRules()
        if reachable and crawl_settings.respect_robots_txt:
            rules = await self.robots_handler.fetch(base_url, self.http_session)

        interval_ms = crawl_settings.rate_limit_ms
        if crawl_settings.respect_robots_txt and rules.crawl_delay_ms is not None:
            interval_ms = rules.crawl_delay_ms
            logger.info("Respecting crawl-delay", delay_ms=interval_ms, base_url=base_url)
        rate_limiter = RateLimiter(interval_ms=interval_ms, sleep=self.sleep)

        if reachable:
            hints = rules.sitemaps if crawl_settings.respect_robots_txt else None
            seeds = await self.sitemap_discoverer.discover(base_url, self.http_session, sitemap_hints=hints)
        else:
            seeds = [base_url]

        for seed in [*seeds, base_url]:
            normalized = URLNormalizer.normalize(seed, base_url)
            if normalized and frontier.add(normalized):
                stats.total_queued += 1

        link_checker = None
        if crawl_settings.check_broken_links:
            link_checker = BrokenLinkChecker(
                self.fetcher,
                timeout_ms=crawl_settings.timeout_ms,
                before_request=rate_limiter.wait_turn,
            )

        redirect_check = self._redirect_check(base_url, matcher, rules if crawl_settings.respect_robots_txt else None)

        logger.info(
            "Crawl starting",
            base_url=base_url,
            seeds=len(frontier),
            max_pages=crawl_settings.max_pages,
            strategy=crawl_settings.crawl_strategy.value,
            exclusion_patterns=len(matcher),
        )

        # Step 2: crawl loop
        while frontier and len(frontier.visited) < crawl_settings.max_pages:
            if should_stop is not None and await should_stop():
                cancelled = True
                logger.info("Crawl cancelled", crawled=len(pages), queued=len(frontier))
                break

            raw_url = frontier.pop()
            url = URLNormalizer.normalize(raw_url, base_url)
            if not url or url in frontier.visited or url in frontier.failed or url in frontier.excluded:
                stats.total_skipped += 1
                continue

            if not URLNormalizer.is_same_host(url, base_url):
                frontier.mark_excluded(url)
                stats.total_skipped += 1
                logger.debug("Skipping off-domain URL", url=url)
                continue

            pattern = matcher.match(url)
            if pattern:
                frontier.mark_excluded(url)
                stats.total_excluded += 1
                logger.info("URL excluded by pattern", url=url, pattern=pattern)
                continue

            if crawl_settings.respect_robots_txt and not rules.is_allowed(url):
                frontier.mark_excluded(url)
                stats.total_skipped += 1
                logger.debug("Blocked by robots.txt", url=url)
                continue

            await rate_limiter.acquire()
            try:
                result = await self.fetcher.fetch(url, crawl_settings.timeout_ms, on_redirect=redirect_check)
            except RedirectRefusedError as e:
                frontier.mark_excluded(url)
                stats.total_skipped += 1
                logger.info("Redirect refused", url=url, target=e.url, reason=str(e))
                continue
            except BlockedURLError as e:
                frontier.mark_excluded(url)
                stats.total_skipped += 1
                logger.warning("Fetch blocked by SSRF guard", url=url, reason=str(e))
                continue
            except FetchError as e:
                frontier.mark_failed(url)
                stats.total_failed += 1
                logger.warning("Page fetch failed", url=url, error=str(e), error_type=type(e).__name__)
                continue
            finally:
                rate_limiter.release()

            page_url = URLNormalizer.normalize(result.final_url, base_url) or url
            if page_url == url:
                frontier.mark_visited(url)
            elif not frontier.mark_redirected(url, page_url):
                stats.total_skipped += 1
                logger.debug("Redirect target already crawled", url=url, final_url=page_url)
                continue
            stats.total_crawled += 1

            record = self.extractor.extract(
                result.body,
                page_url,
                base_url,
                status_code=result.status_code,
                load_time_ms=result.elapsed_ms,
            )

            links = self._same_host_links(result.body, result.final_url, base_url, crawl_settings.follow_nofollow_links)

            if link_checker is not None:
                internal = [link for link in links if not matcher.matches(link)]
                record = record.model_copy(update={"broken_links": await link_checker.count_broken(internal)})

            pages.append(record)
            if on_page is not None:
                await on_page(record)

            stats.total_queued += frontier.add_links(links)

            if stats.total_crawled % 10 == 0:
                logger.info(
                    "Crawl progress",
                    crawled=stats.total_crawled,
                    queued=len(frontier),
                    failed=stats.total_failed,
                    pps=round(stats.pages_per_second, 2),
                )

        if not cancelled and frontier:
            abandoned = frontier.abandon_remaining()
            stats.total_failed += abandoned
            logger.info("Page budget reached", max_pages=crawl_settings.max_pages, abandoned=abandoned)

        logger.info(
            "Crawl complete",
            base_url=base_url,
            crawled=stats.total_crawled,
            failed=stats.total_failed,
            excluded=stats.total_excluded,
            skipped=stats.total_skipped,
            elapsed_seconds=round(stats.elapsed_seconds, 2),
            cancelled=cancelled,
        )

        return CrawlResult(
            pages=pages,
            seed_count=len(seeds),
            total_queued=stats.total_queued,
            total_crawled=stats.total_crawled,
            total_failed=stats.total_failed,
            total_excluded=stats.total_excluded,
            total_skipped=stats.total_skipped,
            elapsed_seconds=round(stats.elapsed_seconds, 3),
            cancelled=cancelled,
        )

    async def _target_reachable(self, base_url: str) -> bool:
        """A target the guard refuses gets no robots/sitemap traffic at all."""
        try:
            await self.guard.check(base_url)
        except BlockedURLError as e:
            logger.warning("Target blocked by SSRF guard", base_url=base_url, reason=str(e))
            return False
        except FetchError as e:
            logger.warning("Target host did not resolve", base_url=base_url, error=str(e))
            return False
        return True

    def _redirect_check(self, base_url: str, matcher: PatternMatcher, rules: RobotsRules | None) -> RedirectCheck:
        """Apply the per-URL crawl policy to each redirect hop."""
        def check(location: str) -> None:
            hop = URLNormalizer.normalize(location, base_url)
            if not hop or not URLNormalizer.is_same_host(hop, base_url):
                raise RedirectRefusedError(location, "Redirect leaves the target host")
            pattern = matcher.match(hop)
            if pattern:
                raise RedirectRefusedError(location, f"Redirect target excluded by {pattern}")
            if rules is not None and not rules.is_allowed(hop):
                raise RedirectRefusedError(location, "Redirect target disallowed by robots.txt")
        return check

    def _same_host_links(self, html: str, page_url: str, base_url: str, follow_nofollow: bool) -> list[str]:
        normalized_links: list[str] = []
        for link in self.link_extractor.extract(html, page_url, follow_nofollow=follow_nofollow):
            normalized = URLNormalizer.normalize(link, base_url)
            if normalized and URLNormalizer.is_same_host(normalized, base_url):
                normalized_links.append(normalized)
        return normalized_links
