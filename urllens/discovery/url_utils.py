"""URL utilities - normalization, deduplication, domain scope checks."""

import ipaddress
import re
from typing import Iterable, Optional
from urllib.parse import SplitResult, urlsplit, urlunsplit

from urllens.errors import InvalidURLError

ALLOWED_SCHEMES = ("http", "https")
DEFAULT_PORTS = {"http": 80, "https": 443}

# Matches an explicit "scheme://" prefix
_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*://")

# Characters that can never appear in a host name
_FORBIDDEN_HOST_CHARS = frozenset(" \t\n\r#/:<>?@[\\]^|%\"'`{}")

# Public suffixes with two labels, so "example.co.uk" still counts as an apex
TWO_LEVEL_SUFFIXES = frozenset(
    {
        "co.uk",
        "org.uk",
        "ac.uk",
        "gov.uk",
        "me.uk",
        "com.au",
        "net.au",
        "org.au",
        "co.nz",
        "co.jp",
        "co.in",
        "co.za",
        "com.br",
        "com.mx",
        "com.cn",
        "com.tr",
    }
)


def normalize_url(token: str) -> Optional[str]:
    """Normalize a candidate token into a canonical URL.

    - Trims surrounding whitespace
    - Adds ``https://`` when no scheme is present
    - Lowercases the scheme and host
    - Removes default ports (80, 443)
    - Renders an empty path as ``/``
    - Leaves path, query and fragment untouched otherwise

    Args:
        token: Raw candidate text.

    Returns:
        Canonical URL, or None if the token is empty after trimming.

    Raises:
        InvalidURLError: If the token cannot be turned into an http(s) URL.
    """
    text = token.strip()
    if not text:
        return None

    if any(ch.isspace() for ch in text):
        raise InvalidURLError(token, "contains whitespace")

    explicit_scheme = bool(_SCHEME_RE.match(text))
    if not explicit_scheme:
        text = f"https://{text}"

    try:
        parts = urlsplit(text)
        port = parts.port
    except ValueError as e:
        raise InvalidURLError(token, "unparseable") from e

    scheme = parts.scheme.lower()
    if scheme not in ALLOWED_SCHEMES:
        raise InvalidURLError(token, "unsupported scheme")

    host = parts.hostname
    if not host or not _is_valid_host(host, parts.netloc):
        raise InvalidURLError(token, "unparseable")

    # A bare word like "URL" or "name" is not a host
    if not explicit_scheme and not _looks_like_domain(host):
        raise InvalidURLError(token, "unparseable")

    netloc = _build_netloc(parts, scheme, host, port)
    path = parts.path or "/"

    return urlunsplit((scheme, netloc, path, parts.query, parts.fragment))


def _is_valid_host(host: str, netloc: str) -> bool:
    """Check a parsed host name for characters a URL host cannot contain."""
    if "[" in netloc:
        try:
            ipaddress.IPv6Address(host)
        except ValueError:
            return False
        return True

    if not host.strip("."):
        return False

    return not any(ch in _FORBIDDEN_HOST_CHARS for ch in host)


def _looks_like_domain(host: str) -> bool:
    return "." in host.strip(".") or host == "localhost" or _is_ip(host)


def _is_ip(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
    except ValueError:
        return False
    return True


def _build_netloc(parts: SplitResult, scheme: str, host: str, port: Optional[int]) -> str:
    userinfo = ""
    if "@" in parts.netloc:
        userinfo = parts.netloc.rpartition("@")[0] + "@"

    if ":" in host:
        host = f"[{host}]"

    if port is not None and port != DEFAULT_PORTS[scheme]:
        return f"{userinfo}{host}:{port}"
    return f"{userinfo}{host}"


def is_valid_url(url: str) -> bool:
    """Check if a string normalizes to a valid HTTP/HTTPS URL.

    Args:
        url: String to validate.

    Returns:
        True if valid URL.
    """
    try:
        return normalize_url(url) is not None
    except InvalidURLError:
        return False


def deduplicate_urls(urls: Iterable[str]) -> list[str]:
    """Canonicalize URLs and drop duplicates, keeping first-seen order.

    Entries that fail normalization are dropped.

    Args:
        urls: URLs to deduplicate.

    Returns:
        Deduplicated list of canonical URLs.
    """
    seen: set[str] = set()
    unique: list[str] = []

    for url in urls:
        try:
            canonical = normalize_url(url)
        except InvalidURLError:
            continue

        if canonical and canonical not in seen:
            seen.add(canonical)
            unique.append(canonical)

    return unique


def domain_of(url: str) -> Optional[str]:
    """Return the lower-cased host of an absolute URL.

    Args:
        url: Absolute URL.

    Returns:
        Host name, or None if the URL has no scheme or host.
    """
    try:
        parts = urlsplit(url.strip())
        host = parts.hostname
    except (ValueError, AttributeError):
        return None

    if not parts.scheme or not parts.netloc or not host:
        return None

    return host.rstrip(".")


def normalize_domain(text: str) -> Optional[str]:
    """Reduce a domain or URL typed by a user to a bare lower-cased host.

    ``"HTTPS://Example.com/path"`` and ``"example.com/"`` both become
    ``"example.com"``.

    Args:
        text: Domain or URL.

    Returns:
        Host name, or None if nothing usable remains.
    """
    text = text.strip()
    if not text:
        return None
    if not _SCHEME_RE.match(text):
        text = f"https://{text}"
    return domain_of(text)


def is_apex_domain(domain: str) -> bool:
    """Check if a domain has no subdomain label.

    ``example.com`` and ``example.co.uk`` are apex domains,
    ``www.example.com`` is not.
    """
    labels = domain.lower().strip(".").split(".")
    if len(labels) <= 2:
        return True
    return len(labels) == 3 and ".".join(labels[-2:]) in TWO_LEVEL_SUFFIXES


def is_subdomain_or_self(host: str, target: str) -> bool:
    """Check if host is the target itself or one of its subdomains.

    ``notexample.com`` does not match ``example.com``.
    """
    host = host.lower().rstrip(".")
    target = target.lower().rstrip(".")
    if not host or not target:
        return False
    return host == target or host.endswith(f".{target}")


def is_exact_or_www_aware(host: str, target: str) -> bool:
    """Check if host is in scope for a target domain.

    A target with a subdomain label (``www.example.com``) only matches itself.
    An apex target (``example.com``) matches itself and every subdomain.
    """
    host = host.lower().rstrip(".")
    target = target.lower().rstrip(".")

    if _is_ip(target) or not is_apex_domain(target):
        return host == target

    return is_subdomain_or_self(host, target)


def get_origin(url: str) -> str:
    """Get the origin (scheme + host + port) of a canonical URL.

    Args:
        url: Full URL.

    Returns:
        Origin without trailing slash.
    """
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


def extract_path(url: str, include_query: bool = False) -> str:
    """Extract the path from a URL.

    Args:
        url: Full URL.
        include_query: Append ``?query`` when the URL has one.

    Returns:
        Path component.
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return "/"

    path = parts.path or "/"
    if include_query and parts.query:
        path = f"{path}?{parts.query}"
    return path
