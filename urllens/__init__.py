"""URL Lens - URL ingestion and domain discovery.

Turns pasted URL lists, CSV exports, or a single seed domain into a canonical,
deduplicated, domain-scoped URL set ready for content and SEO analysis.
"""

__version__ = "1.0.0"
__author__ = "URL Lens Team"
