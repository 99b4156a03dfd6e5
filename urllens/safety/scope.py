"""Discovery scope validation and budget enforcement."""

import asyncio
from dataclasses import dataclass, fields
from typing import Any, Optional

from urllens.discovery.http import DEFAULT_USER_AGENT
from urllens.discovery.robots import RobotsRecord, is_allowed
from urllens.discovery.url_utils import (
    domain_of,
    extract_path,
    get_origin,
    is_exact_or_www_aware,
    normalize_url,
)
from urllens.errors import InvalidURLError


@dataclass(frozen=True)
class DiscoveryBudget:
    """Caps bounding the work a single discovery may do."""

    max_urls: int = 100
    max_sitemaps: int = 50
    max_depth: int = 2
    max_concurrency: int = 5
    timeout: float = 10
    max_document_bytes: int = 10 * 1024 * 1024

    def __post_init__(self) -> None:
        for name in ("max_urls", "max_sitemaps", "max_concurrency", "max_document_bytes"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1")
        if self.max_depth < 0:
            raise ValueError("max_depth must not be negative")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")

    @classmethod
    def from_config(
        cls,
        config: dict[str, Any],
        profile: Optional[dict[str, Any]] = None,
    ) -> "DiscoveryBudget":
        """Build a budget from the ``discovery`` section and an optional profile.

        Args:
            config: Full configuration dictionary.
            profile: Profile overrides (see ``config.get_profile``).

        Returns:
            Discovery budget.
        """
        if config is None:
            raise TypeError("config is required")

        names = {f.name for f in fields(cls)}
        values = {k: v for k, v in config.get("discovery", {}).items() if k in names}
        if profile:
            values.update({k: v for k, v in profile.items() if k in names})

        return cls(**values)


class DiscoveryScope:
    """Validates discovered URLs against the target domain and tracks the budget."""

    def __init__(
        self,
        target: str,
        config: dict[str, Any],
        ignore_robots: bool = False,
        budget: Optional[DiscoveryBudget] = None,
    ):
        """Initialize discovery scope.

        Args:
            target: Target domain or URL.
            config: Configuration dictionary.
            ignore_robots: Whether to ignore robots.txt exclusions.
            budget: Explicit budget; built from config when omitted.
        """
        if config is None:
            raise TypeError("config is required")

        try:
            canonical = normalize_url(target)
        except InvalidURLError as e:
            raise ValueError(f"Invalid target domain: {target!r} ({e.reason})") from e
        if canonical is None:
            raise ValueError("Target domain is empty")

        self.origin = get_origin(canonical)
        self.root_url = normalize_url(self.origin)
        self.target_host = domain_of(canonical)

        # Scope config
        discovery_config = config.get("discovery", {})
        self.user_agent = discovery_config.get("user_agent", DEFAULT_USER_AGENT)
        self.respect_robots = discovery_config.get("respect_robots_txt", True) and not ignore_robots
        self.budget = budget or DiscoveryBudget.from_config(config)

        # State
        self.robots: Optional[RobotsRecord] = None
        self._semaphore = asyncio.Semaphore(self.budget.max_concurrency)
        self._documents_reserved = 0
        self._url_count = 0

    def is_in_scope(self, url: str) -> bool:
        """Check if a URL is in scope.

        Args:
            url: Canonical URL to check.

        Returns:
            True if the host matches the target and robots.txt allows the path.
        """
        if not url.lower().startswith(("http://", "https://")):
            return False

        host = domain_of(url)
        if not host or not is_exact_or_www_aware(host, self.target_host):
            return False

        # robots.txt only speaks for its own origin
        if self.robots and self.respect_robots and get_origin(url) == self.origin:
            path = extract_path(url, include_query=True)
            if not is_allowed(self.robots.rules, self.user_agent, path):
                return False

        return True

    def reserve_document(self) -> bool:
        """Claim one sitemap fetch from the budget.

        Returns:
            True if a fetch may be issued, False once a cap is reached.
        """
        if self.exhausted:
            return False
        self._documents_reserved += 1
        return True

    def record_url(self) -> None:
        """Count one accepted URL against the budget."""
        self._url_count += 1

    @property
    def urls_exhausted(self) -> bool:
        return self._url_count >= self.budget.max_urls

    @property
    def documents_exhausted(self) -> bool:
        return self._documents_reserved >= self.budget.max_sitemaps

    @property
    def exhausted(self) -> bool:
        return self.urls_exhausted or self.documents_exhausted

    @property
    def concurrency(self) -> asyncio.Semaphore:
        """Semaphore bounding simultaneous fetches."""
        return self._semaphore

    def get_stats(self) -> dict[str, Any]:
        """Get current stats.

        Returns:
            Stats dictionary.
        """
        return {
            "urls_accepted": self._url_count,
            "max_urls": self.budget.max_urls,
            "sitemaps_reserved": self._documents_reserved,
            "max_sitemaps": self.budget.max_sitemaps,
            "max_concurrency": self.budget.max_concurrency,
            "robots_loaded": self.robots is not None and self.robots.exists,
        }
