"""
Link Extractor - outbound links of one page, ready to enqueue.
"""

from __future__ import annotations

from urllib.parse import urljoin, urlparse, urlunparse

from bs4 import BeautifulSoup

SKIPPED_SCHEMES = ("javascript:", "mailto:", "tel:", "data:")


class LinkExtractor:
    """Pull absolute http(s) links out of a page, honouring nofollow policy."""

    def extract(self, html: str, page_url: str, follow_nofollow: bool = False) -> list[str]:
        """
        Return absolute links in first-encounter order, duplicates removed.

        hrefs resolve against the page's own URL (or its <base href>),
        not the crawl root.
        """
        soup = BeautifulSoup(html or "", "lxml")

        if not follow_nofollow and self._page_is_nofollow(soup):
            return []

        resolve_against = page_url
        base_tag = soup.find("base", href=True)
        if base_tag is not None:
            resolve_against = urljoin(page_url, base_tag["href"].strip())

        links: list[str] = []
        seen: set[str] = set()
        for a in soup.find_all("a", href=True):
            href = a["href"].strip()
            if not href or href.startswith("#") or href.lower().startswith(SKIPPED_SCHEMES):
                continue

            rel = a.get("rel") or []
            if isinstance(rel, str):
                rel = rel.split()
            if not follow_nofollow and "nofollow" in {r.lower() for r in rel}:
                continue

            try:
                parsed = urlparse(urljoin(resolve_against, href))
            except ValueError:
                continue
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                continue

            absolute = urlunparse(parsed._replace(fragment=""))
            if absolute not in seen:
                seen.add(absolute)
                links.append(absolute)

        return links

    @staticmethod
    def _page_is_nofollow(soup: BeautifulSoup) -> bool:
        for meta in soup.find_all("meta"):
            name = (meta.get("name") or "").strip().lower()
            if name == "robots" and "nofollow" in (meta.get("content") or "").lower():
                return True
        return False
