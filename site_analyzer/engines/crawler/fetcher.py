"""
Page Fetcher - SSRF-guarded HTTP GET of a single URL.

Every request, and every redirect hop, passes through SSRFGuard first:
loopback, private, link-local and unique-local addresses are refused,
whether given as IP literals, as `localhost`, or reached via DNS.
"""

from __future__ import annotations

import asyncio
import ipaddress
import socket
import time
from dataclasses import dataclass
from typing import Awaitable, Callable
from urllib.parse import urljoin, urlparse

import httpx
import structlog

from site_analyzer.core.config import get_settings

logger = structlog.get_logger(__name__)
settings = get_settings()

BLOCKED_NETWORKS = tuple(
    ipaddress.ip_network(cidr)
    for cidr in (
        "0.0.0.0/8",
        "127.0.0.0/8",
        "10.0.0.0/8",
        "172.16.0.0/12",
        "192.168.0.0/16",
        "169.254.0.0/16",
        "::/128",
        "::1/128",
        "fe80::/10",
        "fc00::/7",
    )
)

BLOCKED_HOSTNAMES = ("localhost", "localhost.localdomain", "ip6-localhost", "ip6-loopback")

HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")

REDIRECT_STATUSES = (301, 302, 303, 307, 308)

Resolver = Callable[[str], Awaitable[list[str]]]
RedirectCheck = Callable[[str], None]


# ─────────────────────────────────────────────
# Errors
# ─────────────────────────────────────────────

class FetchError(Exception):
    """A page could not be fetched. The URL is marked failed; the crawl goes on."""

    def __init__(self, url: str, message: str):
        super().__init__(message)
        self.url = url


class BlockedURLError(FetchError):
    """The SSRF guard refused the URL. A policy drop, not a page failure."""


class RedirectRefusedError(BlockedURLError):
    """A redirect pointed somewhere the crawl policy does not allow."""


class FetchTimeoutError(FetchError):
    pass


class HTTPStatusFetchError(FetchError):
    def __init__(self, url: str, status_code: int):
        super().__init__(url, f"HTTP {status_code}")
        self.status_code = status_code


# ─────────────────────────────────────────────
# SSRF guard
# ─────────────────────────────────────────────

def is_blocked_address(address: str) -> bool:
    """True if `address` is an IP inside any blocked range."""
    try:
        ip = ipaddress.ip_address(address.split("%", 1)[0])
    except ValueError:
        return False
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    return any(ip.version == net.version and ip in net for net in BLOCKED_NETWORKS)


async def system_resolver(host: str) -> list[str]:
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(host, None, type=socket.SOCK_STREAM)
    return [info[4][0] for info in infos]


class SSRFGuard:
    """
    Refuses URLs that point at internal infrastructure.

    Hostnames are resolved and every resolved address must be public;
    resolution can be disabled (`resolve=False`) to check literals only.
    """

    def __init__(self, resolve: bool | None = None, resolver: Resolver | None = None):
        self.resolve = settings.CRAWLER_RESOLVE_HOSTNAMES if resolve is None else resolve
        self.resolver = resolver or system_resolver

    async def check(self, url: str) -> None:
        """Raise BlockedURLError if `url` must not be fetched."""
        try:
            host = (urlparse(url).hostname or "").lower().rstrip(".")
        except ValueError:
            raise BlockedURLError(url, "Malformed URL") from None

        if not host:
            raise BlockedURLError(url, "URL has no host")
        if host in BLOCKED_HOSTNAMES or host.endswith(".localhost"):
            raise BlockedURLError(url, f"Blocked hostname {host}")

        try:
            ipaddress.ip_address(host)
            is_literal = True
        except ValueError:
            is_literal = False

        if is_literal:
            if is_blocked_address(host):
                raise BlockedURLError(url, f"Blocked address {host}")
            return

        if not self.resolve:
            return

        try:
            addresses = await self.resolver(host)
        except (OSError, UnicodeError) as e:
            raise FetchError(url, f"DNS resolution failed for {host}: {e}") from e

        if not addresses:
            raise FetchError(url, f"DNS resolution returned no addresses for {host}")
        blocked = [a for a in addresses if is_blocked_address(a)]
        if blocked:
            raise BlockedURLError(url, f"{host} resolves to blocked address {blocked[0]}")


# ─────────────────────────────────────────────
# Fetcher
# ─────────────────────────────────────────────

@dataclass(frozen=True)
class FetchResult:
    url: str
    final_url: str
    status_code: int
    body: str
    content_type: str
    elapsed_ms: int
    size_bytes: int


class PageFetcher:
    """Fetches individual pages over plain HTTP with httpx."""

    def __init__(
        self,
        http_session: httpx.AsyncClient,
        guard: SSRFGuard | None = None,
        max_redirects: int | None = None,
    ):
        self.http_session = http_session
        self.guard = guard or SSRFGuard()
        self.max_redirects = settings.CRAWLER_MAX_REDIRECTS if max_redirects is None else max_redirects

    async def fetch(self, url: str, timeout_ms: int, on_redirect: RedirectCheck | None = None) -> FetchResult:
        """
        GET `url`, following redirects by hand so every hop is guarded.
        Raises a FetchError subclass on any failure.
        """
        response, elapsed_ms = await self.request("GET", url, timeout_ms, on_redirect=on_redirect)
        final_url = str(response.url)

        if not 200 <= response.status_code < 300:
            raise HTTPStatusFetchError(final_url, response.status_code)

        content_type = response.headers.get("content-type", "")
        if content_type and not content_type.lower().startswith(HTML_CONTENT_TYPES):
            raise FetchError(final_url, f"Unsupported content type {content_type}")

        return FetchResult(
            url=url,
            final_url=final_url,
            status_code=response.status_code,
            body=response.text,
            content_type=content_type,
            elapsed_ms=int(round(elapsed_ms)),
            size_bytes=len(response.content),
        )

    async def request(
        self,
        method: str,
        url: str,
        timeout_ms: int,
        on_redirect: RedirectCheck | None = None,
    ) -> tuple[httpx.Response, float]:
        """
        Issue `method` with guarded manual redirects.
        Returns the final response and the total elapsed time in ms.

        `on_redirect` sees every redirect target before it is requested and
        may raise RedirectRefusedError to stop there.
        """
        timeout = timeout_ms / 1000
        start = time.perf_counter()
        current = url

        for _ in range(self.max_redirects + 1):
            await self.guard.check(current)
            try:
                # httpx timeouts are per socket operation; wait_for caps the whole exchange
                response = await asyncio.wait_for(
                    self.http_session.request(method, current, timeout=timeout, follow_redirects=False),
                    timeout=timeout,
                )
            except (httpx.TimeoutException, asyncio.TimeoutError) as e:
                raise FetchTimeoutError(current, f"Timed out after {timeout_ms}ms") from e
            except httpx.HTTPError as e:
                raise FetchError(current, f"{type(e).__name__}: {e}") from e

            location = response.headers.get("location")
            if response.status_code in REDIRECT_STATUSES and location:
                current = urljoin(current, location)
                if on_redirect is not None:
                    on_redirect(current)
                continue

            return response, (time.perf_counter() - start) * 1000

        raise FetchError(url, f"Exceeded {self.max_redirects} redirects")
