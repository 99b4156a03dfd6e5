"""Exception types shared across URL Lens."""


class URLLensError(Exception):
    """Base class for all URL Lens errors."""


class InvalidURLError(URLLensError):
    """A candidate token could not be normalized into a canonical URL."""

    def __init__(self, token: str, reason: str):
        self.token = token
        self.reason = reason
        super().__init__(f"{reason}: {token!r}")


class IngestError(URLLensError):
    """Input file could not be read for ingestion."""


class UnsupportedFileError(IngestError):
    """Input file has an extension the parser does not accept."""


class FileTooLargeError(IngestError):
    """Input file exceeds the configured size limit."""


class FetchError(URLLensError):
    """A document could not be retrieved (non-2xx status or oversized body)."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"{url}: {reason}")


class SitemapParseError(URLLensError):
    """A fetched sitemap document is not usable XML."""


class DiscoveryCancelled(URLLensError):
    """Discovery was cancelled by the caller before it finished."""
