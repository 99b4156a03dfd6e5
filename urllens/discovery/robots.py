"""Robots.txt fetching and parsing."""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional, Union
from urllib.parse import urljoin

import httpx

from urllens.discovery.http import (
    DEFAULT_USER_AGENT,
    FETCH_ERRORS,
    client_scope,
    fetch_document,
)
from urllens.discovery.url_utils import normalize_url
from urllens.errors import InvalidURLError

logger = logging.getLogger(__name__)

# Google stops reading robots.txt after 500 KiB
ROBOTS_MAX_BYTES = 500 * 1024


@dataclass
class RobotRule:
    """Allow/Disallow rules for one user agent."""

    user_agent: str
    allow: list[str] = field(default_factory=list)
    disallow: list[str] = field(default_factory=list)
    crawl_delay: Optional[float] = None


@dataclass
class RobotsRecord:
    """Parsed robots.txt."""

    exists: bool
    allowed: bool
    sitemaps: list[str] = field(default_factory=list)
    rules: list[RobotRule] = field(default_factory=list)
    crawl_delay: Optional[float] = None
    raw_content: Optional[str] = None


def missing_robots() -> RobotsRecord:
    """Record used when robots.txt is absent or unreachable (allow everything)."""
    return RobotsRecord(exists=False, allowed=True)


def parse_robots_content(
    content: str,
    user_agent: str = "*",
    path: str = "/",
) -> RobotsRecord:
    """Parse robots.txt content.

    Consecutive ``User-agent`` lines form one group and share the
    ``Allow``/``Disallow`` lines that follow them. ``Sitemap`` lines are
    collected independently of groups.

    Args:
        content: Raw robots.txt content.
        user_agent: Agent used to compute ``allowed`` and ``crawl_delay``.
        path: Path used to compute ``allowed``.

    Returns:
        Parsed record.
    """
    rules: list[RobotRule] = []
    sitemaps: list[str] = []
    group: list[RobotRule] = []
    collecting_agents = False

    for raw_line in content.lstrip("\ufeff").splitlines():
        # Strip comments
        line = raw_line.split("#", 1)[0].strip()
        if not line or ":" not in line:
            continue

        directive, value = line.split(":", 1)
        directive = directive.strip().lower()
        value = value.strip()

        if directive == "user-agent":
            if not value:
                continue
            if not collecting_agents:
                group = []
                collecting_agents = True
            rule = RobotRule(user_agent=value)
            group.append(rule)
            rules.append(rule)
            continue

        if directive == "sitemap":
            _add_sitemap(sitemaps, value)
            continue

        collecting_agents = False

        if directive == "allow":
            if value:
                for rule in group:
                    rule.allow.append(value)
        elif directive == "disallow":
            if value:
                for rule in group:
                    rule.disallow.append(value)
        elif directive == "crawl-delay":
            try:
                delay = float(value)
            except ValueError:
                continue
            for rule in group:
                rule.crawl_delay = delay

    return RobotsRecord(
        exists=True,
        allowed=is_allowed(rules, user_agent, path),
        sitemaps=sitemaps,
        rules=rules,
        crawl_delay=get_crawl_delay(rules, user_agent),
        raw_content=content,
    )


def _add_sitemap(sitemaps: list[str], value: str) -> None:
    try:
        canonical = normalize_url(value)
    except InvalidURLError:
        logger.debug("Ignoring invalid sitemap entry: %r", value)
        return

    if canonical and canonical not in sitemaps:
        sitemaps.append(canonical)


async def fetch_robots(
    origin: str,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = 10,
    user_agent: str = DEFAULT_USER_AGENT,
    path: str = "/",
) -> RobotsRecord:
    """Fetch and parse robots.txt for an origin.

    Any failure (network error, timeout, non-2xx status) yields a record
    that allows everything.

    Args:
        origin: Origin of the target, e.g. ``https://example.com``.
        client: Optional shared HTTP client.
        timeout: Request timeout.
        user_agent: Agent used for the request and for ``allowed``.
        path: Path used to compute ``allowed``.

    Returns:
        Parsed record.
    """
    robots_url = urljoin(origin, "/robots.txt")

    try:
        async with client_scope(client, timeout, user_agent) as http:
            document = await fetch_document(
                http, robots_url, timeout, ROBOTS_MAX_BYTES, user_agent
            )
    except FETCH_ERRORS as e:
        logger.debug("robots.txt unavailable at %s: %s", robots_url, e or type(e).__name__)
        return missing_robots()

    if not document.ok:
        logger.debug("robots.txt at %s returned HTTP %d", robots_url, document.status_code)
        return missing_robots()

    return parse_robots_content(document.text, user_agent, path)


def is_allowed(
    rules: Union[RobotsRecord, list[RobotRule]],
    user_agent: str,
    path: str,
) -> bool:
    """Check if a path is allowed for a user agent.

    Rules for the agent itself take priority over the ``*`` group; with no
    matching group everything is allowed. Within the group the longest
    matching pattern wins, and an ``Allow`` beats a ``Disallow`` of the same
    length.

    Args:
        rules: Parsed record or its rules.
        user_agent: Agent name, e.g. ``Googlebot`` or ``URLLensBot/1.0``.
        path: URL path to check.

    Returns:
        True if path is allowed.
    """
    if isinstance(rules, RobotsRecord):
        rules = rules.rules

    selected = _select_group(rules, user_agent)
    if not selected:
        return True

    best_length = -1
    verdict = True

    for rule in selected:
        for pattern in rule.disallow:
            if _path_matches(path, pattern) and len(pattern) > best_length:
                best_length = len(pattern)
                verdict = False

    for rule in selected:
        for pattern in rule.allow:
            if _path_matches(path, pattern) and len(pattern) >= best_length:
                best_length = len(pattern)
                verdict = True

    return verdict


def get_crawl_delay(
    rules: Union[RobotsRecord, list[RobotRule]],
    user_agent: str,
) -> Optional[float]:
    """Crawl-delay of the group that applies to ``user_agent``, or None."""
    if isinstance(rules, RobotsRecord):
        rules = rules.rules

    for rule in _select_group(rules, user_agent):
        if rule.crawl_delay is not None:
            return rule.crawl_delay
    return None


def _select_group(rules: list[RobotRule], user_agent: str) -> list[RobotRule]:
    agent = user_agent.strip().lower()
    product = agent.split("/", 1)[0]

    specific = [r for r in rules if r.user_agent.lower() in (agent, product)]
    if specific:
        return specific

    return [r for r in rules if r.user_agent == "*"]


def _path_matches(path: str, pattern: str) -> bool:
    """Check if a path matches a robots.txt pattern.

    Supports wildcards (*) and end-of-string ($).

    Args:
        path: URL path.
        pattern: Robots.txt pattern.

    Returns:
        True if matches.
    """
    if not pattern:
        return False

    anchored = pattern.endswith("$")
    if anchored:
        pattern = pattern[:-1]

    if "*" not in pattern:
        return path == pattern if anchored else path.startswith(pattern)

    regex = ".*".join(re.escape(part) for part in pattern.split("*"))
    if anchored:
        regex += "$"
    return re.match(regex, path) is not None


def get_robots_summary(record: RobotsRecord) -> str:
    """Get a human-readable summary of a robots.txt record."""
    if not record.exists:
        return "No robots.txt found - all paths are allowed by default."

    parts: list[str] = []

    if record.allowed:
        parts.append("This URL is ALLOWED for crawling.")
    else:
        parts.append("This URL is DISALLOWED for crawling.")

    if record.crawl_delay:
        parts.append(f"Crawl delay: {record.crawl_delay:g} seconds.")

    if record.sitemaps:
        parts.append(f"{len(record.sitemaps)} sitemap(s) found.")

    total_rules = sum(len(r.allow) + len(r.disallow) for r in record.rules)
    parts.append(f"{total_rules} total rules across {len(record.rules)} user-agent(s).")

    return " ".join(parts)
