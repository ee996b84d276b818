"""
URL canonicalization for crawl deduplication.

Two URLs that differ only in fragment, query-parameter order, trailing slash
or letter case normalize to the same string.
"""

from __future__ import annotations

from urllib.parse import parse_qsl, urlencode, urljoin, urlparse, urlunparse

ALLOWED_SCHEMES = ("http", "https")


class URLNormalizer:
    """Normalizes URLs for deduplication and comparison."""

    @classmethod
    def normalize(cls, url: str | None, base_url: str) -> str | None:
        """
        Resolve `url` against `base_url` and canonicalize it.
        Returns None if the URL is malformed or not http(s); callers drop it.
        """
        if not url or not url.strip():
            return None
        try:
            resolved = urljoin(base_url, url.strip())
            parsed = urlparse(resolved)

            if parsed.scheme.lower() not in ALLOWED_SCHEMES or not parsed.hostname:
                return None
            _ = parsed.port  # ValueError on a non-numeric port

            query = ""
            if parsed.query:
                # Keyed on the lower-cased name since the whole URL is lower-cased below;
                # sorted() is stable, so repeated keys keep their original order
                params = sorted(
                    parse_qsl(parsed.query, keep_blank_values=True),
                    key=lambda kv: kv[0].lower(),
                )
                query = urlencode(params)

            path = parsed.path or "/"
            if path != "/" and path.endswith("/"):
                path = path.rstrip("/") or "/"

            normalized = urlunparse((
                parsed.scheme,
                parsed.netloc,
                path,
                parsed.params,
                query,
                "",  # No fragment
            ))
            return normalized.lower()

        except ValueError:
            return None

    @classmethod
    def host(cls, url: str) -> str:
        try:
            return (urlparse(url).hostname or "").lower()
        except ValueError:
            return ""

    @classmethod
    def is_same_host(cls, url: str, origin: str) -> bool:
        """Same-domain policy: exact hostname match, subdomains are other sites."""
        host = cls.host(url)
        return bool(host) and host == cls.host(origin)

    @classmethod
    def origin(cls, url: str) -> str:
        parsed = urlparse(url)
        return f"{parsed.scheme}://{parsed.netloc}".lower()
