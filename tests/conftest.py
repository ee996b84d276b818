"""
Shared fixtures.
Network access goes through httpx.MockTransport; DNS through a fake resolver.
"""

from collections import Counter
from typing import Callable

import httpx
import pytest

from site_analyzer.engines.crawler.fetcher import SSRFGuard

PUBLIC_ADDRESS = "93.184.216.34"


async def public_resolver(host: str) -> list[str]:
    return [PUBLIC_ADDRESS]


@pytest.fixture
def public_guard() -> SSRFGuard:
    """Guard that resolves every hostname to a public address."""
    return SSRFGuard(resolver=public_resolver)


class FakeSite:
    """
    In-memory website served through httpx.MockTransport.

    pages maps a path to HTML, or to a ready httpx.Response for anything
    that is not a plain 200 page. Unknown paths answer 404.
    """

    def __init__(
        self,
        pages: dict[str, str | httpx.Response],
        robots: str | None = None,
        sitemap: str | None = None,
        host: str = "example.com",
    ):
        self.pages = pages
        self.robots = robots
        self.sitemap = sitemap
        self.host = host
        self.requests: Counter[str] = Counter()
        self.methods: list[tuple[str, str]] = []
        self.foreign_hosts: list[str] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.host != self.host:
            self.foreign_hosts.append(request.url.host)
            return httpx.Response(404)

        path = request.url.path
        self.requests[path] += 1
        self.methods.append((request.method, path))

        if path == "/robots.txt":
            return httpx.Response(200, text=self.robots) if self.robots is not None else httpx.Response(404)
        if path == "/sitemap.xml" and self.sitemap is not None:
            return httpx.Response(200, text=self.sitemap, headers={"content-type": "application/xml"})

        page = self.pages.get(path)
        if page is None:
            return httpx.Response(404, html="<html><body>Not found</body></html>")
        if isinstance(page, httpx.Response):
            return page
        return httpx.Response(200, html=page)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def page_requests(self) -> Counter[str]:
        """Requests excluding robots.txt and sitemap discovery."""
        return Counter({
            path: count for path, count in self.requests.items()
            if path not in ("/robots.txt", "/sitemap.xml", "/sitemap_index.xml")
        })


@pytest.fixture
def fake_site() -> Callable[..., FakeSite]:
    return FakeSite


def html_page(*links: str, title: str = "Page", body: str = "") -> str:
    anchors = "".join(f'<a href="{href}">{href}</a>' for href in links)
    return f"<html><head><title>{title}</title></head><body>{body}{anchors}</body></html>"


@pytest.fixture
def make_html() -> Callable[..., str]:
    return html_page
