"""Sitemap fetching and parsing."""

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import httpx

from urllens.discovery.http import fetch_document
from urllens.errors import FetchError, SitemapParseError

# Checked when neither robots.txt nor the caller names a sitemap
STANDARD_SITEMAP_PATHS = (
    "/sitemap.xml",
    "/sitemap_index.xml",
    "/sitemap-index.xml",
    "/sitemaps.xml",
)

DEFAULT_MAX_BYTES = 10 * 1024 * 1024

_TOLERATED_CONTENT_TYPES = ("text/plain", "application/octet-stream")


class SitemapKind(Enum):
    """Root element of a sitemap document."""

    URLSET = "urlset"
    INDEX = "sitemapindex"


@dataclass
class SitemapDocument:
    """Parsed sitemap: page locations for a URL set, child sitemaps for an index."""

    url: str
    kind: SitemapKind
    locs: list[str]


def is_sitemap_content_type(content_type: str) -> bool:
    """Check if a Content-Type header can carry a sitemap.

    XML types are expected; text/plain and octet-stream bodies are tolerated
    as long as they parse. A missing header is tolerated too.
    """
    content_type = content_type.split(";", 1)[0].strip().lower()
    if not content_type:
        return True
    return "xml" in content_type or content_type in _TOLERATED_CONTENT_TYPES


def parse_sitemap_content(content: str, url: str = "") -> SitemapDocument:
    """Parse a sitemap or sitemap index.

    Namespaced and namespace-less documents are both accepted. A URL set
    without standard ``<url><loc>`` entries falls back to every ``<loc>``.

    Args:
        content: XML text.
        url: URL the document was fetched from.

    Returns:
        Parsed document.

    Raises:
        SitemapParseError: If the content is not XML or not a sitemap.
    """
    try:
        root = ET.fromstring(content.lstrip("\ufeff \t\r\n"))
    except ET.ParseError as e:
        raise SitemapParseError(f"Invalid XML in {url or 'sitemap'}: {e}") from e

    tag = root.tag.rsplit("}", 1)[-1].lower()

    if tag == SitemapKind.INDEX.value:
        return SitemapDocument(url, SitemapKind.INDEX, _loc_texts(root, "{*}sitemap/{*}loc"))

    if tag == SitemapKind.URLSET.value:
        locs = _loc_texts(root, "{*}url/{*}loc")
        if not locs:
            # Non-standard layouts
            locs = _loc_texts(root, ".//{*}loc")
        return SitemapDocument(url, SitemapKind.URLSET, locs)

    raise SitemapParseError(f"Unexpected root element <{tag}> in {url or 'sitemap'}")


def _loc_texts(root: ET.Element, path: str) -> list[str]:
    locs: list[str] = []
    for loc in root.findall(path):
        if loc.text and loc.text.strip():
            locs.append(loc.text.strip())
    return locs


async def fetch_sitemap(
    client: httpx.AsyncClient,
    sitemap_url: str,
    timeout: float = 10,
    max_bytes: int = DEFAULT_MAX_BYTES,
    user_agent: Optional[str] = None,
) -> SitemapDocument:
    """Fetch and parse one sitemap document.

    Args:
        client: HTTP client.
        sitemap_url: URL of the sitemap.
        timeout: Request timeout.
        max_bytes: Largest accepted body.
        user_agent: Optional User-Agent override.

    Returns:
        Parsed document.

    Raises:
        FetchError: On non-2xx status, oversized body or unusable content type.
        SitemapParseError: If the body is not a sitemap.
        httpx.HTTPError: On connection errors.
        asyncio.TimeoutError: If the request times out.
    """
    document = await fetch_document(client, sitemap_url, timeout, max_bytes, user_agent)

    if not document.ok:
        raise FetchError(sitemap_url, f"HTTP {document.status_code}")

    if not is_sitemap_content_type(document.content_type):
        raise FetchError(sitemap_url, f"unexpected content type {document.content_type}")

    return parse_sitemap_content(document.text, sitemap_url)
