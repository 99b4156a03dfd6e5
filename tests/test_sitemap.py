"""Tests for sitemap parsing and fetching."""

import httpx
import pytest
import respx

from urllens.discovery.sitemap import (
    SitemapKind,
    fetch_sitemap,
    is_sitemap_content_type,
    parse_sitemap_content,
)
from urllens.errors import FetchError, SitemapParseError

URLSET = """<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <url><loc> https://example.com/a </loc><lastmod>2024-01-01</lastmod></url>
  <url><loc>https://example.com/b</loc></url>
  <url><loc></loc></url>
</urlset>
"""

INDEX = """<?xml version="1.0" encoding="UTF-8"?>
<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <sitemap><loc>https://example.com/sitemap-posts.xml</loc></sitemap>
  <sitemap><loc>https://example.com/sitemap-pages.xml</loc></sitemap>
</sitemapindex>
"""


class TestParseSitemapContent:
    """Tests for sitemap parsing."""

    def test_urlset(self):
        """Test a namespaced URL set."""
        document = parse_sitemap_content(URLSET, "https://example.com/sitemap.xml")
        assert document.kind is SitemapKind.URLSET
        assert document.locs == ["https://example.com/a", "https://example.com/b"]
        assert document.url == "https://example.com/sitemap.xml"

    def test_index(self):
        """Test a sitemap index."""
        document = parse_sitemap_content(INDEX)
        assert document.kind is SitemapKind.INDEX
        assert document.locs == [
            "https://example.com/sitemap-posts.xml",
            "https://example.com/sitemap-pages.xml",
        ]

    def test_without_namespace(self):
        """Test documents without the sitemap namespace."""
        content = "<urlset><url><loc>https://example.com/x</loc></url></urlset>"
        assert parse_sitemap_content(content).locs == ["https://example.com/x"]

    def test_nonstandard_layout_falls_back_to_any_loc(self):
        """Test loc elements outside url entries are still found."""
        content = "<urlset><entry><loc>https://example.com/y</loc></entry></urlset>"
        assert parse_sitemap_content(content).locs == ["https://example.com/y"]

    def test_leading_whitespace_and_bom(self):
        """Test leading noise before the XML declaration."""
        document = parse_sitemap_content("\ufeff\n  " + URLSET)
        assert len(document.locs) == 2

    def test_invalid_xml(self):
        """Test malformed XML raises."""
        with pytest.raises(SitemapParseError):
            parse_sitemap_content("<urlset><url>", "https://example.com/s.xml")

    def test_unexpected_root(self):
        """Test an HTML page is not a sitemap."""
        with pytest.raises(SitemapParseError):
            parse_sitemap_content("<html><body>Not found</body></html>")

    def test_empty_urlset(self):
        """Test an empty URL set parses with no locations."""
        document = parse_sitemap_content("<urlset/>")
        assert document.kind is SitemapKind.URLSET
        assert document.locs == []


class TestContentType:
    """Tests for sitemap content type checks."""

    @pytest.mark.parametrize(
        "content_type",
        [
            "application/xml",
            "text/xml; charset=utf-8",
            "application/rss+xml",
            "text/plain",
            "application/octet-stream",
            "",
        ],
    )
    def test_accepted(self, content_type):
        """Test content types that can carry a sitemap."""
        assert is_sitemap_content_type(content_type)

    @pytest.mark.parametrize("content_type", ["text/html", "application/json", "image/png"])
    def test_rejected(self, content_type):
        """Test content types that cannot carry a sitemap."""
        assert not is_sitemap_content_type(content_type)


class TestFetchSitemap:
    """Tests for fetching sitemaps."""

    @pytest.mark.asyncio
    async def test_fetch(self):
        """Test fetching and parsing a sitemap."""
        with respx.mock:
            respx.get("https://example.com/sitemap.xml").mock(
                return_value=httpx.Response(
                    200, text=URLSET, headers={"Content-Type": "application/xml"}
                )
            )
            async with httpx.AsyncClient() as client:
                document = await fetch_sitemap(client, "https://example.com/sitemap.xml")

        assert document.locs == ["https://example.com/a", "https://example.com/b"]

    @pytest.mark.asyncio
    async def test_fetch_404(self):
        """Test a missing sitemap raises FetchError."""
        with respx.mock:
            respx.get("https://example.com/sitemap.xml").mock(return_value=httpx.Response(404))
            async with httpx.AsyncClient() as client:
                with pytest.raises(FetchError):
                    await fetch_sitemap(client, "https://example.com/sitemap.xml")

    @pytest.mark.asyncio
    async def test_fetch_html_rejected(self):
        """Test an HTML response is rejected by content type."""
        with respx.mock:
            respx.get("https://example.com/sitemap.xml").mock(
                return_value=httpx.Response(
                    200, text="<html></html>", headers={"Content-Type": "text/html"}
                )
            )
            async with httpx.AsyncClient() as client:
                with pytest.raises(FetchError):
                    await fetch_sitemap(client, "https://example.com/sitemap.xml")

    @pytest.mark.asyncio
    async def test_fetch_oversized(self):
        """Test the body size limit."""
        with respx.mock:
            respx.get("https://example.com/sitemap.xml").mock(
                return_value=httpx.Response(
                    200, text=URLSET, headers={"Content-Type": "application/xml"}
                )
            )
            async with httpx.AsyncClient() as client:
                with pytest.raises(FetchError):
                    await fetch_sitemap(client, "https://example.com/sitemap.xml", max_bytes=64)
