"""
Page Extractor - turns raw markup into a PageRecord.

All fields are best-effort: a missing element yields None / 0 / False and
never raises. Interpreting "missing" as a problem is the issue analyzer's job.
"""

from __future__ import annotations

from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag

from site_analyzer.engines.base import PageRecord

INVISIBLE_TAGS = ["script", "style", "noscript", "template"]


def _text_or_none(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _attr(tag: Tag | None, name: str) -> str | None:
    if tag is None:
        return None
    value = tag.get(name)
    if isinstance(value, list):
        value = " ".join(value)
    return value


def page_size_kb(size_bytes: int) -> int:
    """Kilobytes, rounded half up."""
    return (size_bytes + 512) // 1024


class PageExtractor:
    """Extract SEO signals from one page's HTML."""

    def extract(
        self,
        html: str,
        url: str,
        base_url: str,
        status_code: int = 200,
        load_time_ms: int = 0,
    ) -> PageRecord:
        soup = BeautifulSoup(html or "", "lxml")

        title_tag = soup.find("title")
        title = _text_or_none(title_tag.get_text()) if title_tag else None

        meta_description = _text_or_none(_attr(soup.find("meta", attrs={"name": _ci("description")}), "content"))

        h1_tag = soup.find("h1")
        h1 = _text_or_none(h1_tag.get_text()) if h1_tag else None

        canonical_url = _text_or_none(_attr(soup.find("link", rel=_has_token("canonical")), "href"))

        robots_metas = soup.find_all("meta", attrs={"name": _ci("robots")})
        robots_content = " ".join((_attr(tag, "content") or "") for tag in robots_metas).lower()

        has_og_tags = soup.find("meta", attrs={"property": _prefix("og:")}) is not None
        has_twitter_cards = soup.find("meta", attrs={"name": _prefix("twitter:")}) is not None
        has_schema_markup = (
            soup.find("script", attrs={"type": _ci("application/ld+json")}) is not None
            or soup.find(attrs={"itemscope": True}) is not None
        )

        images = soup.find_all("img")
        images_without_alt = sum(1 for img in images if not (img.get("alt") or "").strip())

        internal_links, external_links = self._count_links(soup, base_url)

        return PageRecord(
            url=url,
            title=title,
            meta_description=meta_description,
            h1=h1,
            canonical_url=canonical_url,
            word_count=self._word_count(soup),
            status_code=status_code,
            load_time_ms=load_time_ms,
            page_size_kb=page_size_kb(len((html or "").encode("utf-8"))),
            has_robots_meta=bool(robots_metas),
            is_indexable="noindex" not in robots_content,
            has_og_tags=has_og_tags,
            has_twitter_cards=has_twitter_cards,
            has_schema_markup=has_schema_markup,
            total_images=len(images),
            images_without_alt=images_without_alt,
            internal_links=internal_links,
            external_links=external_links,
        )

    @staticmethod
    def _word_count(soup: BeautifulSoup) -> int:
        root = soup.body or soup
        for tag in root.find_all(INVISIBLE_TAGS):
            tag.decompose()
        return len(root.get_text(separator=" ").split())

    @staticmethod
    def _count_links(soup: BeautifulSoup, base_url: str) -> tuple[int, int]:
        base = base_url.lower().rstrip("/")
        internal = external = 0
        for a in soup.find_all("a", href=True):
            href = a["href"].strip()
            lowered = href.lower()
            if lowered.startswith(base):
                internal += 1
            elif lowered.startswith("http"):
                external += 1
            elif lowered and not lowered.startswith(("#", "//")) and not _scheme(lowered):
                internal += 1
        return internal, external


def _scheme(href: str) -> str:
    try:
        return urlparse(href).scheme
    except ValueError:
        return ""


# BeautifulSoup attribute filters

def _ci(expected: str):
    return lambda value: value is not None and value.strip().lower() == expected


def _prefix(prefix: str):
    return lambda value: value is not None and value.strip().lower().startswith(prefix)


def _has_token(token: str):
    # rel is a multi-valued attribute; bs4 calls the filter once per token
    return lambda value: value is not None and value.lower() == token
