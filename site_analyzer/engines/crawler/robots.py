"""
robots.txt fetching and policy evaluation.

Only the group addressed to our own token (preferred) or to `*` is honoured.
Allow rules are checked before Disallow rules and win on a match.
Rules and paths are compared lower-cased, matching the normalized URLs
the scheduler hands in.
"""

from __future__ import annotations

import re
from urllib.parse import urlparse

import httpx
import structlog
from pydantic import BaseModel, ConfigDict

from site_analyzer.core.config import get_settings
from site_analyzer.engines.crawler.fetcher import BlockedURLError, FetchError, PageFetcher, SSRFGuard

logger = structlog.get_logger(__name__)
settings = get_settings()


def request_path(url_or_path: str) -> str:
    """Path + query of a URL, as robots rules see it."""
    parsed = urlparse(url_or_path)
    path = parsed.path or "/"
    if parsed.query:
        path = f"{path}?{parsed.query}"
    return path


def path_matches(rule: str, path: str) -> bool:
    """Prefix match with `*` wildcards and an optional trailing `$` anchor."""
    if not rule:
        return False
    if "*" not in rule and not rule.endswith("$"):
        return path.startswith(rule)

    anchored = rule.endswith("$")
    body = rule[:-1] if anchored else rule
    regex = ".*".join(re.escape(part) for part in body.split("*"))
    return re.match(regex + ("$" if anchored else ""), path) is not None


class RobotsRules(BaseModel):
    """Parsed robots.txt policy for one target. Empty means allow everything."""
    model_config = ConfigDict(frozen=True)

    allow: tuple[str, ...] = ()
    disallow: tuple[str, ...] = ()
    crawl_delay_ms: int | None = None
    sitemaps: tuple[str, ...] = ()

    def is_allowed(self, url_or_path: str) -> bool:
        path = request_path(url_or_path).lower()
        if any(path_matches(rule, path) for rule in self.allow):
            return True
        if any(path_matches(rule, path) for rule in self.disallow):
            return False
        return True


class RobotsHandler:
    """Fetch and parse robots.txt into RobotsRules."""

    def __init__(
        self,
        token: str | None = None,
        timeout: float | None = None,
        guard: SSRFGuard | None = None,
    ):
        self.token = (token or settings.CRAWLER_ROBOTS_TOKEN).lower()
        self.timeout = timeout if timeout is not None else settings.CRAWLER_ROBOTS_TIMEOUT
        self.guard = guard or SSRFGuard()

    async def fetch(self, base_url: str, session: httpx.AsyncClient) -> RobotsRules:
        """
        Fetch {base}/robots.txt. Any failure yields permissive rules;
        a missing or broken robots.txt never fails the run. Redirects are
        followed through the fetcher, so every hop is guard-checked.
        """
        robots_url = f"{base_url.rstrip('/')}/robots.txt"
        fetcher = PageFetcher(session, guard=self.guard)
        try:
            response, _ = await fetcher.request("GET", robots_url, int(self.timeout * 1000))
        except BlockedURLError as e:
            logger.warning("robots.txt location blocked", url=robots_url, reason=str(e))
            return RobotsRules()
        except FetchError as e:
            logger.debug("Could not fetch robots.txt", url=robots_url, error=str(e))
            return RobotsRules()

        if response.status_code != 200:
            logger.debug("robots.txt not available", url=robots_url, status=response.status_code)
            return RobotsRules()

        rules = self.parse(response.text)
        logger.info(
            "robots.txt parsed",
            url=robots_url,
            allow=len(rules.allow),
            disallow=len(rules.disallow),
            crawl_delay_ms=rules.crawl_delay_ms,
            sitemaps=len(rules.sitemaps),
        )
        return rules

    def parse(self, text: str) -> RobotsRules:
        groups: list[tuple[list[str], list[tuple[str, str]]]] = []
        sitemaps: list[str] = []
        agents: list[str] = []
        directives: list[tuple[str, str]] = []
        in_rules = False

        for raw_line in text.splitlines():
            line = raw_line.split("#", 1)[0].strip()
            if not line or ":" not in line:
                continue
            field, value = line.split(":", 1)
            field = field.strip().lower()
            value = value.strip()

            if field == "sitemap":
                if value:
                    sitemaps.append(value)
                continue

            if field == "user-agent":
                # A user-agent line after rules starts a new group
                if in_rules:
                    groups.append((agents, directives))
                    agents, directives, in_rules = [], [], False
                agents.append(value.lower())
            elif field in ("allow", "disallow", "crawl-delay"):
                if agents:
                    directives.append((field, value))
                    in_rules = True

        if agents:
            groups.append((agents, directives))

        selected = self._select_group(groups)
        allow: list[str] = []
        disallow: list[str] = []
        crawl_delay_ms: int | None = None

        for field, value in selected:
            if field == "allow" and value:
                allow.append(value.lower())
            elif field == "disallow" and value:
                disallow.append(value.lower())
            elif field == "crawl-delay" and crawl_delay_ms is None:
                try:
                    crawl_delay_ms = int(float(value) * 1000)
                except ValueError:
                    logger.debug("Ignoring malformed crawl-delay", value=value)
                else:
                    if crawl_delay_ms < 0:
                        crawl_delay_ms = None

        return RobotsRules(
            allow=tuple(allow),
            disallow=tuple(disallow),
            crawl_delay_ms=crawl_delay_ms,
            sitemaps=tuple(sitemaps),
        )

    def _select_group(self, groups: list[tuple[list[str], list[tuple[str, str]]]]) -> list[tuple[str, str]]:
        """Our own token's group wins over the wildcard group."""
        own: list[tuple[str, str]] = []
        wildcard: list[tuple[str, str]] = []
        found_own = False
        for agents, directives in groups:
            if any(agent.split("/", 1)[0] == self.token for agent in agents):
                own.extend(directives)
                found_own = True
            elif "*" in agents:
                wildcard.extend(directives)
        return own if found_own else wildcard
