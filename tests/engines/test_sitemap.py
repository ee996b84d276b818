"""Tests for sitemap discovery and its fallback chain."""

import httpx
import pytest

from site_analyzer.engines.crawler.sitemap import SitemapDiscoverer

BASE = "https://example.com"


def urlset(*locs: str) -> str:
    entries = "".join(f"<url><loc>{loc}</loc></url>" for loc in locs)
    return f'<?xml version="1.0" encoding="UTF-8"?><urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{entries}</urlset>'


def sitemap_index(*locs: str) -> str:
    entries = "".join(f"<sitemap><loc>{loc}</loc></sitemap>" for loc in locs)
    return f'<?xml version="1.0" encoding="UTF-8"?><sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{entries}</sitemapindex>'


def serve(documents: dict[str, str]):
    def handler(request: httpx.Request) -> httpx.Response:
        body = documents.get(request.url.path)
        if body is None:
            return httpx.Response(404)
        return httpx.Response(200, text=body)
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestSitemapDiscoverer:

    @pytest.mark.asyncio
    async def test_uses_sitemap_xml_first(self, public_guard):
        async with serve({
            "/sitemap.xml": urlset(f"{BASE}/a", f"{BASE}/b"),
            "/sitemap_index.xml": urlset(f"{BASE}/never"),
        }) as client:
            urls = await SitemapDiscoverer(guard=public_guard).discover(BASE, client)
        assert urls == [f"{BASE}/a", f"{BASE}/b"]

    @pytest.mark.asyncio
    async def test_resolves_sitemap_index_recursively(self, public_guard):
        async with serve({
            "/sitemap_index.xml": sitemap_index(f"{BASE}/posts.xml", f"{BASE}/pages.xml"),
            "/posts.xml": urlset(f"{BASE}/post-1", f"{BASE}/post-2"),
            "/pages.xml": urlset(f"{BASE}/about"),
        }) as client:
            urls = await SitemapDiscoverer(guard=public_guard).discover(BASE, client)
        assert urls == [f"{BASE}/post-1", f"{BASE}/post-2", f"{BASE}/about"]

    @pytest.mark.asyncio
    async def test_falls_back_to_robots_sitemap_lines(self, public_guard):
        async with serve({
            "/robots.txt": f"User-agent: *\nDisallow:\nSitemap: {BASE}/custom-map.xml\n",
            "/custom-map.xml": urlset(f"{BASE}/from-robots"),
        }) as client:
            urls = await SitemapDiscoverer(guard=public_guard).discover(BASE, client)
        assert urls == [f"{BASE}/from-robots"]

    @pytest.mark.asyncio
    async def test_uses_hints_instead_of_fetching_robots(self, public_guard):
        async with serve({
            "/robots.txt": f"Sitemap: {BASE}/ignored.xml\n",
            "/hinted.xml": urlset(f"{BASE}/hinted"),
        }) as client:
            urls = await SitemapDiscoverer(guard=public_guard).discover(BASE, client, sitemap_hints=[f"{BASE}/hinted.xml"])
        assert urls == [f"{BASE}/hinted"]

    @pytest.mark.asyncio
    async def test_homepage_only_when_nothing_found(self, public_guard):
        async with serve({}) as client:
            urls = await SitemapDiscoverer(guard=public_guard).discover(BASE, client)
        assert urls == [BASE]

    @pytest.mark.asyncio
    async def test_malformed_sitemap_falls_through(self, public_guard):
        async with serve({"/sitemap.xml": "<html>not a sitemap</html>"}) as client:
            urls = await SitemapDiscoverer(guard=public_guard).discover(BASE, client)
        assert urls == [BASE]

    @pytest.mark.asyncio
    async def test_network_errors_are_swallowed(self, public_guard):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            urls = await SitemapDiscoverer(guard=public_guard).discover(BASE, client)
        assert urls == [BASE]

    @pytest.mark.asyncio
    async def test_deduplicates_and_caps(self, public_guard):
        async with serve({
            "/sitemap.xml": urlset(f"{BASE}/a", f"{BASE}/a", f"{BASE}/b", f"{BASE}/c"),
        }) as client:
            urls = await SitemapDiscoverer(guard=public_guard, max_urls=2).discover(BASE, client)
        assert urls == [f"{BASE}/a", f"{BASE}/b"]

    @pytest.mark.asyncio
    async def test_other_host_entries_fall_through(self, public_guard):
        async with serve({
            "/sitemap.xml": urlset("https://www.example.com/a", "https://www.example.com/b"),
        }) as client:
            urls = await SitemapDiscoverer(guard=public_guard).discover(BASE, client)
        assert urls == [BASE]

    @pytest.mark.asyncio
    async def test_other_host_entries_are_dropped(self, public_guard):
        async with serve({
            "/sitemap.xml": urlset(f"{BASE}/a", "https://cdn.example.net/b"),
        }) as client:
            urls = await SitemapDiscoverer(guard=public_guard).discover(BASE, client)
        assert urls == [f"{BASE}/a"]

    @pytest.mark.asyncio
    async def test_redirect_to_private_address_is_not_followed(self, public_guard):
        requested: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(str(request.url))
            if request.url.path == "/sitemap.xml":
                return httpx.Response(302, headers={"location": "http://10.0.0.5/internal.xml"})
            return httpx.Response(404)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            urls = await SitemapDiscoverer(guard=public_guard).discover(BASE, client)

        assert urls == [BASE]
        assert not any("10.0.0.5" in url for url in requested)
