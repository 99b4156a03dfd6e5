"""Discovery module - URL normalization, robots.txt and sitemap discovery."""

from urllens.discovery.robots import fetch_robots, is_allowed, parse_robots_content
from urllens.discovery.sitemap import fetch_sitemap, parse_sitemap_content
from urllens.discovery.url_utils import (
    deduplicate_urls,
    domain_of,
    is_exact_or_www_aware,
    is_subdomain_or_self,
    normalize_url,
)

__all__ = [
    "fetch_robots",
    "is_allowed",
    "parse_robots_content",
    "fetch_sitemap",
    "parse_sitemap_content",
    "normalize_url",
    "deduplicate_urls",
    "domain_of",
    "is_subdomain_or_self",
    "is_exact_or_www_aware",
]
