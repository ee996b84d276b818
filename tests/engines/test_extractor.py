"""Tests for page signal extraction and outbound link harvesting."""

import pytest

from site_analyzer.engines.crawler.extractor import PageExtractor, page_size_kb
from site_analyzer.engines.crawler.links import LinkExtractor

BASE = "https://example.com"

FULL_PAGE = """
<html><head>
  <title>  Example Domain Title  </title>
  <meta name="Description" content="A description">
  <link rel="canonical" href="https://example.com/page">
  <meta property="og:title" content="Example">
  <meta name="twitter:card" content="summary">
  <meta name="robots" content="index, follow">
  <script type="application/ld+json">{"@type": "Organization"}</script>
</head><body>
  <h1>Main heading</h1>
  <p>one two three four five</p>
  <script>var hidden = "not counted";</script>
  <img src="a.png" alt="Alt text"><img src="b.png"><img src="c.png" alt="  ">
  <a href="https://example.com/a">A</a>
  <a href="/b">B</a>
  <a href="https://other.com/">Other</a>
  <a href="#top">Top</a>
  <a href="mailto:me@example.com">Mail</a>
</body></html>
"""


class TestPageExtractor:

    @pytest.fixture
    def record(self):
        return PageExtractor().extract(FULL_PAGE, f"{BASE}/page", BASE, status_code=200, load_time_ms=420)

    def test_text_fields(self, record):
        assert record.url == f"{BASE}/page"
        assert record.title == "Example Domain Title"
        assert record.meta_description == "A description"
        assert record.h1 == "Main heading"
        assert record.canonical_url == "https://example.com/page"

    def test_word_count_ignores_scripts(self, record):
        # h1 (2) + paragraph (5) + anchor texts (5)
        assert record.word_count == 12

    def test_meta_flags(self, record):
        assert record.has_robots_meta
        assert record.is_indexable
        assert record.has_og_tags
        assert record.has_twitter_cards
        assert record.has_schema_markup

    def test_image_counts(self, record):
        assert record.total_images == 3
        assert record.images_without_alt == 2

    def test_link_counts(self, record):
        assert record.internal_links == 2
        assert record.external_links == 1
        assert record.broken_links == 0

    def test_passes_through_fetch_facts(self, record):
        assert record.status_code == 200
        assert record.load_time_ms == 420
        assert record.page_size_kb == page_size_kb(len(FULL_PAGE.encode("utf-8")))

    def test_noindex_page(self):
        html = '<html><head><meta name="robots" content="NOINDEX, nofollow"></head><body></body></html>'
        record = PageExtractor().extract(html, f"{BASE}/hidden", BASE)
        assert record.has_robots_meta
        assert not record.is_indexable

    def test_microdata_counts_as_schema(self):
        html = '<html><body><div itemscope itemtype="https://schema.org/Product">Mug</div></body></html>'
        assert PageExtractor().extract(html, BASE, BASE).has_schema_markup

    def test_missing_elements_are_none(self):
        record = PageExtractor().extract("", f"{BASE}/empty", BASE)
        assert record.title is None
        assert record.meta_description is None
        assert record.h1 is None
        assert record.canonical_url is None
        assert record.word_count == 0
        assert not record.has_robots_meta
        assert record.is_indexable
        assert record.total_images == 0

    def test_blank_title_is_none(self):
        record = PageExtractor().extract("<html><head><title>   </title></head></html>", BASE, BASE)
        assert record.title is None

    @pytest.mark.parametrize("size_bytes, expected", [(0, 0), (511, 0), (512, 1), (1024, 1), (1536, 2), (10 * 1024, 10)])
    def test_page_size_rounds_half_up(self, size_bytes, expected):
        assert page_size_kb(size_bytes) == expected


class TestLinkExtractor:

    PAGE = """
    <html><body>
      <a href="next">Next</a>
      <a href="/about#team">About</a>
      <a href="/about">About again</a>
      <a rel="nofollow" href="/secret">Secret</a>
      <a href="javascript:void(0)">JS</a>
      <a href="tel:+15550100">Call</a>
      <a href="#top">Top</a>
      <a href="https://other.com/x">Elsewhere</a>
    </body></html>
    """

    def test_resolves_against_page_url_in_order(self):
        links = LinkExtractor().extract(self.PAGE, "https://example.com/blog/post")
        assert links == [
            "https://example.com/blog/next",
            "https://example.com/about",
            "https://other.com/x",
        ]

    def test_follow_nofollow_includes_nofollow_links(self):
        links = LinkExtractor().extract(self.PAGE, "https://example.com/blog/post", follow_nofollow=True)
        assert "https://example.com/secret" in links

    def test_meta_nofollow_page_yields_nothing(self):
        html = '<html><head><meta name="robots" content="nofollow"></head><body><a href="/a">A</a></body></html>'
        assert LinkExtractor().extract(html, BASE) == []
        assert LinkExtractor().extract(html, BASE, follow_nofollow=True) == ["https://example.com/a"]

    def test_base_href_changes_resolution(self):
        html = '<html><head><base href="https://example.com/docs/"></head><body><a href="intro">Intro</a></body></html>'
        assert LinkExtractor().extract(html, "https://example.com/other/page") == ["https://example.com/docs/intro"]
