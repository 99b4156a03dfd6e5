"""Tests for URL utilities."""

import pytest

from urllens.discovery.url_utils import (
    deduplicate_urls,
    domain_of,
    extract_path,
    get_origin,
    is_apex_domain,
    is_exact_or_www_aware,
    is_subdomain_or_self,
    is_valid_url,
    normalize_domain,
    normalize_url,
)
from urllens.errors import InvalidURLError


class TestNormalizeUrl:
    """Tests for URL normalization."""

    def test_adds_https_scheme(self):
        """Test that a bare domain gets https and a root path."""
        assert normalize_url("example.com") == "https://example.com/"
        assert normalize_url("www.example.com/path") == "https://www.example.com/path"

    def test_lowercase_scheme_and_host(self):
        """Test that scheme and host are lowercased but the path is not."""
        assert normalize_url("HTTP://EXAMPLE.COM/path") == "http://example.com/path"
        assert normalize_url("HTTPS://Example.Com/PATH") == "https://example.com/PATH"

    def test_remove_default_ports(self):
        """Test that default ports are removed."""
        assert normalize_url("http://example.com:80/path") == "http://example.com/path"
        assert normalize_url("https://example.com:443/path") == "https://example.com/path"

        # Non-default ports should be kept
        assert normalize_url("https://example.com:8443/a") == "https://example.com:8443/a"

    def test_keeps_query_and_fragment(self):
        """Test that query and fragment are left untouched."""
        assert (
            normalize_url("https://example.com/p?b=2&a=1#top")
            == "https://example.com/p?b=2&a=1#top"
        )

    def test_keeps_trailing_slash(self):
        """Test that non-root trailing slashes are significant."""
        assert normalize_url("https://example.com/docs/") == "https://example.com/docs/"
        assert normalize_url("https://example.com/docs") == "https://example.com/docs"

    def test_trims_whitespace(self):
        """Test that surrounding whitespace is ignored."""
        assert normalize_url("  https://example.com/a \t") == "https://example.com/a"

    def test_empty_returns_none(self):
        """Test that empty tokens are not URLs and not errors."""
        assert normalize_url("") is None
        assert normalize_url("   ") is None

    def test_localhost_and_ip(self):
        """Test hosts without a public suffix."""
        assert normalize_url("localhost:3000") == "https://localhost:3000/"
        assert normalize_url("http://127.0.0.1/x") == "http://127.0.0.1/x"
        assert normalize_url("http://[::1]:8080/x") == "http://[::1]:8080/x"

    def test_unsupported_scheme(self):
        """Test that non-HTTP schemes are rejected."""
        with pytest.raises(InvalidURLError) as exc_info:
            normalize_url("ftp://example.com/file")
        assert exc_info.value.reason == "unsupported scheme"

    def test_internal_whitespace(self):
        """Test that tokens with inner whitespace are rejected."""
        with pytest.raises(InvalidURLError) as exc_info:
            normalize_url("not a url")
        assert exc_info.value.reason == "contains whitespace"

    @pytest.mark.parametrize(
        "token",
        ["URL", "http://", "https://example.com:99999/", "javascript:alert(1)"],
    )
    def test_unparseable(self, token):
        """Test tokens that cannot become a URL."""
        with pytest.raises(InvalidURLError):
            normalize_url(token)

    @pytest.mark.parametrize(
        "token",
        [
            "Example.COM",
            "http://example.com:80",
            "https://example.com/a/b?x=1#y",
            "https://user:pw@example.com:8080/",
            "http://[::1]/",
        ],
    )
    def test_idempotent(self, token):
        """Test that normalizing a canonical URL returns it unchanged."""
        canonical = normalize_url(token)
        assert normalize_url(canonical) == canonical


class TestDeduplicateUrls:
    """Tests for URL deduplication."""

    def test_removes_equivalent_urls(self):
        """Test that URLs with the same canonical form collapse."""
        urls = [
            "https://Example.com",
            "https://example.com/",
            "example.com",
            "https://other.com",
        ]
        assert deduplicate_urls(urls) == ["https://example.com/", "https://other.com/"]

    def test_drops_invalid(self):
        """Test that invalid entries are dropped."""
        assert deduplicate_urls(["bad url", "", "https://a.com/x"]) == ["https://a.com/x"]

    def test_preserves_order(self):
        """Test first-seen order is preserved."""
        urls = ["https://c.com/", "https://a.com/", "https://c.com/"]
        assert deduplicate_urls(urls) == ["https://c.com/", "https://a.com/"]


class TestIsValidUrl:
    """Tests for URL validation."""

    def test_valid_urls(self):
        """Test valid URLs."""
        assert is_valid_url("http://example.com")
        assert is_valid_url("example.com/path")

    def test_invalid_urls(self):
        """Test invalid URLs."""
        assert not is_valid_url("")
        assert not is_valid_url("ftp://example.com")
        assert not is_valid_url("Website")


class TestDomainHelpers:
    """Tests for host extraction and scope matching."""

    def test_domain_of(self):
        """Test host extraction."""
        assert domain_of("https://WWW.Example.com:8080/x") == "www.example.com"
        assert domain_of("https://example.com./") == "example.com"
        assert domain_of("example.com") is None

    def test_normalize_domain(self):
        """Test reducing user input to a host."""
        assert normalize_domain("HTTPS://Example.com/path") == "example.com"
        assert normalize_domain("example.com/") == "example.com"
        assert normalize_domain("  ") is None

    def test_is_apex_domain(self):
        """Test apex detection, including two-label suffixes."""
        assert is_apex_domain("example.com")
        assert is_apex_domain("example.co.uk")
        assert is_apex_domain("localhost")
        assert not is_apex_domain("www.example.com")
        assert not is_apex_domain("www.example.co.uk")

    def test_is_subdomain_or_self(self):
        """Test label-boundary matching."""
        assert is_subdomain_or_self("example.com", "example.com")
        assert is_subdomain_or_self("a.b.example.com", "Example.com")
        assert not is_subdomain_or_self("notexample.com", "example.com")
        assert not is_subdomain_or_self("", "example.com")

    def test_apex_target_matches_subdomains(self):
        """Test that an apex target accepts its subdomains."""
        assert is_exact_or_www_aware("www.example.com", "example.com")
        assert is_exact_or_www_aware("blog.example.com", "example.com")
        assert not is_exact_or_www_aware("notexample.com", "example.com")

    def test_subdomain_target_is_exact(self):
        """Test that a subdomain target only accepts itself."""
        assert is_exact_or_www_aware("www.example.com", "www.example.com")
        assert not is_exact_or_www_aware("example.com", "www.example.com")
        assert not is_exact_or_www_aware("api.example.com", "www.example.com")

    def test_ip_target_is_exact(self):
        """Test that IP targets only accept themselves."""
        assert is_exact_or_www_aware("10.0.0.1", "10.0.0.1")
        assert not is_exact_or_www_aware("10.0.0.2", "10.0.0.1")


class TestExtractors:
    """Tests for origin and path extraction."""

    def test_get_origin(self):
        """Test origin extraction keeps non-default ports."""
        assert get_origin("https://example.com:8443/a?b") == "https://example.com:8443"
        assert get_origin("http://example.com/") == "http://example.com"

    def test_extract_path(self):
        """Test path extraction."""
        assert extract_path("https://example.com/api/users") == "/api/users"
        assert extract_path("https://example.com") == "/"
        assert extract_path("https://example.com/a?b=1") == "/a"
        assert extract_path("https://example.com/a?b=1", include_query=True) == "/a?b=1"
