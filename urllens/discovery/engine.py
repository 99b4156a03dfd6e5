"""Domain discovery - robots.txt and sitemap driven URL discovery."""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Iterable, Optional, TypeVar, Union

import httpx

from urllens.config import get_default_config
from urllens.discovery.http import FETCH_ERRORS, client_scope
from urllens.discovery.robots import RobotsRecord, fetch_robots, missing_robots
from urllens.discovery.sitemap import (
    STANDARD_SITEMAP_PATHS,
    SitemapDocument,
    SitemapKind,
    fetch_sitemap,
)
from urllens.discovery.url_utils import (
    domain_of,
    is_exact_or_www_aware,
    normalize_domain,
    normalize_url,
)
from urllens.errors import DiscoveryCancelled, InvalidURLError, SitemapParseError
from urllens.safety.scope import DiscoveryBudget, DiscoveryScope

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Failures that drop a single sitemap without aborting discovery
_SITEMAP_ERRORS = FETCH_ERRORS + (SitemapParseError,)


class DiscoverySource(Enum):
    """Where a discovered URL came from."""

    SITEMAP = "sitemap"
    ROBOTS = "robots"
    MANUAL = "manual"


@dataclass(frozen=True)
class DiscoveredURL:
    """A canonical URL found during discovery."""

    url: str
    source: DiscoverySource


@dataclass
class DiscoveryResult:
    """Outcome of a domain discovery run."""

    domain: str
    urls: list[DiscoveredURL] = field(default_factory=list)
    robots: RobotsRecord = field(default_factory=missing_robots)
    sitemaps_fetched: int = 0
    sitemaps_failed: int = 0
    budget_exhausted: bool = False


@dataclass(frozen=True)
class _SitemapJob:
    url: str
    depth: int
    source: DiscoverySource


def filter_urls_by_domain(
    urls: Iterable[Union[DiscoveredURL, str]],
    target: str,
) -> list[Union[DiscoveredURL, str]]:
    """Filter URLs to only include those from the target domain.

    An apex target keeps itself and its subdomains; a target with a
    subdomain label (``www.example.com``) keeps only exact matches.
    Unparseable entries are dropped.

    Args:
        urls: Discovered URLs or plain URL strings.
        target: Target domain or URL.

    Returns:
        Matching entries in input order.
    """
    target_host = normalize_domain(target)
    if not target_host:
        return []

    matched = []
    for item in urls:
        url = item.url if isinstance(item, DiscoveredURL) else item
        host = domain_of(url) if isinstance(url, str) else None
        if host and is_exact_or_www_aware(host, target_host):
            matched.append(item)
    return matched


def get_unique_domains(urls: Iterable[str]) -> list[str]:
    """Get unique lower-cased hosts from a list of URLs.

    Subdomains are kept as separate entries. Unparseable URLs are skipped.

    Args:
        urls: URL strings.

    Returns:
        Hosts in first-seen order.
    """
    domains: dict[str, None] = {}
    for url in urls:
        host = domain_of(url) if isinstance(url, str) else None
        if host:
            domains.setdefault(host, None)
    return list(domains)


class DomainDiscoveryEngine:
    """Discover a domain's URLs from robots.txt and its sitemap hierarchy."""

    def __init__(
        self,
        config: Optional[dict[str, Any]] = None,
        budget: Optional[DiscoveryBudget] = None,
        client: Optional[httpx.AsyncClient] = None,
        ignore_robots: bool = False,
    ):
        """Initialize the engine.

        Args:
            config: Configuration dictionary; defaults when omitted.
            budget: Explicit budget; built from config when omitted.
            client: Shared HTTP client. Not closed by the engine.
            ignore_robots: Keep URLs that robots.txt disallows.
        """
        self.config = config if config is not None else get_default_config()
        self.budget = budget or DiscoveryBudget.from_config(self.config)
        self.client = client
        self.ignore_robots = ignore_robots

        discovery_config = self.config.get("discovery", {})
        self.probe_standard_sitemaps = discovery_config.get("probe_standard_sitemaps", True)
        self.include_root = discovery_config.get("include_root", True)

    async def discover(
        self,
        target_domain: str,
        extra_sitemaps: Optional[Iterable[str]] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> DiscoveryResult:
        """Discover URLs for a domain.

        Args:
            target_domain: Domain or URL to discover.
            extra_sitemaps: Sitemap URLs to read in addition to robots.txt ones.
            cancel_event: Set by the caller to abort discovery.

        Returns:
            Discovery result.

        Raises:
            DiscoveryCancelled: If ``cancel_event`` is set before completion.
            ValueError: If ``target_domain`` is not a usable domain.
        """
        scope = DiscoveryScope(
            target_domain,
            self.config,
            ignore_robots=self.ignore_robots,
            budget=self.budget,
        )
        cancel_event = cancel_event or asyncio.Event()

        async with client_scope(
            self.client,
            timeout=self.budget.timeout,
            user_agent=scope.user_agent,
            max_connections=self.budget.max_concurrency,
        ) as client:
            return await self._run(scope, client, list(extra_sitemaps or []), cancel_event)

    async def _run(
        self,
        scope: DiscoveryScope,
        client: httpx.AsyncClient,
        extra_sitemaps: list[str],
        cancel_event: asyncio.Event,
    ) -> DiscoveryResult:
        result = DiscoveryResult(domain=scope.target_host)

        if cancel_event.is_set():
            raise DiscoveryCancelled(f"Discovery of {scope.target_host} cancelled")

        scope.robots = await self._until_cancelled(
            fetch_robots(
                scope.origin,
                client=client,
                timeout=self.budget.timeout,
                user_agent=scope.user_agent,
            ),
            cancel_event,
            scope,
        )
        result.robots = scope.robots
        logger.info(
            "robots.txt for %s: %s, %d sitemap(s)",
            scope.origin,
            "found" if scope.robots.exists else "missing",
            len(scope.robots.sitemaps),
        )

        roots = self._root_jobs(scope, extra_sitemaps)
        logger.info("Queued %d root sitemap(s) for %s", len(roots), scope.target_host)

        collected = await self._traverse(scope, client, roots, cancel_event, result)

        urls = filter_urls_by_domain(collected, scope.target_host)
        if self.include_root and len(urls) < self.budget.max_urls:
            if not any(item.url == scope.root_url for item in urls):
                urls.insert(0, DiscoveredURL(scope.root_url, DiscoverySource.MANUAL))

        result.urls = urls
        if result.budget_exhausted:
            logger.info("Discovery budget reached for %s: %s", scope.target_host, scope.get_stats())

        logger.info(
            "Discovered %d URL(s) for %s from %d sitemap(s), %d failed",
            len(result.urls),
            scope.target_host,
            result.sitemaps_fetched,
            result.sitemaps_failed,
        )
        return result

    def _root_jobs(self, scope: DiscoveryScope, extra_sitemaps: list[str]) -> list[_SitemapJob]:
        jobs: list[_SitemapJob] = []
        seen: set[str] = set()

        def add(url: str, source: DiscoverySource) -> None:
            try:
                canonical = normalize_url(url)
            except InvalidURLError as e:
                logger.debug("Ignoring sitemap %r: %s", url, e.reason)
                return
            if canonical and canonical not in seen:
                seen.add(canonical)
                jobs.append(_SitemapJob(canonical, 0, source))

        for url in scope.robots.sitemaps if scope.robots else []:
            add(url, DiscoverySource.ROBOTS)
        for url in extra_sitemaps:
            add(url, DiscoverySource.SITEMAP)

        if not jobs and self.probe_standard_sitemaps:
            for path in STANDARD_SITEMAP_PATHS:
                add(f"{scope.origin}{path}", DiscoverySource.SITEMAP)

        return jobs

    async def _traverse(
        self,
        scope: DiscoveryScope,
        client: httpx.AsyncClient,
        roots: list[_SitemapJob],
        cancel_event: asyncio.Event,
        result: DiscoveryResult,
    ) -> list[DiscoveredURL]:
        """Walk the sitemap tree breadth-first under the worker pool.

        Only this coroutine touches ``collected``; fetch tasks hand back
        parsed documents and never mutate shared state.
        """
        collected: dict[str, DiscoveredURL] = {}
        visited: set[str] = set()
        jobs: dict[asyncio.Task, _SitemapJob] = {}

        def schedule(job: _SitemapJob) -> None:
            if job.url in visited:
                return
            if not scope.reserve_document():
                result.budget_exhausted = True
                return
            visited.add(job.url)
            task = asyncio.create_task(self._fetch(scope, client, job))
            jobs[task] = job

        for job in roots:
            schedule(job)

        cancel_waiter = asyncio.create_task(cancel_event.wait())
        try:
            while jobs:
                done, _ = await asyncio.wait(
                    set(jobs) | {cancel_waiter},
                    return_when=asyncio.FIRST_COMPLETED,
                )
                if cancel_waiter in done:
                    raise DiscoveryCancelled(f"Discovery of {scope.target_host} cancelled")

                for task in done:
                    job = jobs.pop(task)
                    document = task.result()
                    if document is None:
                        result.sitemaps_failed += 1
                        continue

                    result.sitemaps_fetched += 1
                    if document.kind is SitemapKind.INDEX:
                        if job.depth >= self.budget.max_depth:
                            logger.debug("Depth limit reached at %s", job.url)
                            continue
                        for loc in document.locs:
                            schedule(_SitemapJob(loc, job.depth + 1, job.source))
                    else:
                        self._collect(scope, document, job.source, collected)

                if scope.urls_exhausted:
                    result.budget_exhausted = True
                    break
        finally:
            cancel_waiter.cancel()
            for task in jobs:
                task.cancel()
            await asyncio.gather(cancel_waiter, *jobs, return_exceptions=True)

        return list(collected.values())

    async def _fetch(
        self,
        scope: DiscoveryScope,
        client: httpx.AsyncClient,
        job: _SitemapJob,
    ) -> Optional[SitemapDocument]:
        async with scope.concurrency:
            try:
                return await fetch_sitemap(
                    client,
                    job.url,
                    timeout=self.budget.timeout,
                    max_bytes=self.budget.max_document_bytes,
                    user_agent=scope.user_agent,
                )
            except _SITEMAP_ERRORS as e:
                logger.debug("Skipping sitemap %s: %s", job.url, e or type(e).__name__)
                return None

    def _collect(
        self,
        scope: DiscoveryScope,
        document: SitemapDocument,
        source: DiscoverySource,
        collected: dict[str, DiscoveredURL],
    ) -> None:
        for loc in document.locs:
            if scope.urls_exhausted:
                return
            try:
                canonical = normalize_url(loc)
            except InvalidURLError as e:
                logger.debug("Ignoring <loc> %r in %s: %s", loc, document.url, e.reason)
                continue
            if not canonical or canonical in collected:
                continue
            if not scope.is_in_scope(canonical):
                continue
            collected[canonical] = DiscoveredURL(canonical, source)
            scope.record_url()

    async def _until_cancelled(
        self,
        awaitable: Awaitable[T],
        cancel_event: asyncio.Event,
        scope: DiscoveryScope,
    ) -> T:
        task = asyncio.ensure_future(awaitable)
        cancel_waiter = asyncio.create_task(cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {task, cancel_waiter},
                return_when=asyncio.FIRST_COMPLETED,
            )
            if task not in done:
                raise DiscoveryCancelled(f"Discovery of {scope.target_host} cancelled")
            return task.result()
        finally:
            task.cancel()
            cancel_waiter.cancel()
            await asyncio.gather(task, cancel_waiter, return_exceptions=True)


async def discover(
    target_domain: str,
    extra_sitemaps: Optional[Iterable[str]] = None,
    budget: Optional[DiscoveryBudget] = None,
    *,
    config: Optional[dict[str, Any]] = None,
    client: Optional[httpx.AsyncClient] = None,
    cancel_event: Optional[asyncio.Event] = None,
    ignore_robots: bool = False,
) -> DiscoveryResult:
    """Discover URLs for a domain from robots.txt and sitemaps.

    Args:
        target_domain: Domain or URL to discover.
        extra_sitemaps: Additional sitemap URLs.
        budget: Discovery budget; built from config when omitted.
        config: Configuration dictionary; defaults when omitted.
        client: Shared HTTP client.
        cancel_event: Set by the caller to abort discovery.
        ignore_robots: Keep URLs that robots.txt disallows.

    Returns:
        Discovery result.
    """
    engine = DomainDiscoveryEngine(
        config=config,
        budget=budget,
        client=client,
        ignore_robots=ignore_robots,
    )
    return await engine.discover(target_domain, extra_sitemaps, cancel_event)
