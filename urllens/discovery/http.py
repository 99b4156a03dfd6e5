"""HTTP helpers shared by the robots and sitemap fetchers."""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional

import httpx

from urllens.errors import FetchError

DEFAULT_USER_AGENT = "URLLensBot/1.0"

# Errors that make a single resource unusable without affecting others
NETWORK_ERRORS = (httpx.HTTPError, httpx.InvalidURL, asyncio.TimeoutError)
FETCH_ERRORS = NETWORK_ERRORS + (FetchError,)


@dataclass
class FetchedDocument:
    """Body and metadata of a fetched document."""

    url: str
    status_code: int
    content_type: str
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def create_client(
    timeout: float = 10,
    user_agent: str = DEFAULT_USER_AGENT,
    max_connections: Optional[int] = None,
) -> httpx.AsyncClient:
    """Create an async client configured for discovery requests."""
    return httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=True,
        headers={"User-Agent": user_agent},
        limits=httpx.Limits(max_connections=max_connections or 100),
    )


@asynccontextmanager
async def client_scope(
    client: Optional[httpx.AsyncClient],
    timeout: float = 10,
    user_agent: str = DEFAULT_USER_AGENT,
    max_connections: Optional[int] = None,
) -> AsyncIterator[httpx.AsyncClient]:
    """Yield the caller's client, or a new one that is closed on exit.

    A client passed in by the caller is never closed here.
    """
    if client is not None:
        yield client
        return

    async with create_client(timeout, user_agent, max_connections) as owned:
        yield owned


async def fetch_document(
    client: httpx.AsyncClient,
    url: str,
    timeout: float,
    max_bytes: int,
    user_agent: Optional[str] = None,
) -> FetchedDocument:
    """GET a document with a hard timeout and a body size limit.

    Args:
        client: HTTP client.
        url: Document URL.
        timeout: Seconds before the whole request is abandoned.
        max_bytes: Largest accepted body.
        user_agent: Optional User-Agent override for this request.

    Returns:
        Fetched document. Non-2xx responses are returned with an empty body.

    Raises:
        FetchError: If the body exceeds ``max_bytes``.
        httpx.HTTPError: On connection and protocol errors.
        asyncio.TimeoutError: If ``timeout`` elapses.
    """
    headers = {"User-Agent": user_agent} if user_agent else None
    return await asyncio.wait_for(
        _read_limited(client, url, max_bytes, headers),
        timeout=timeout,
    )


async def _read_limited(
    client: httpx.AsyncClient,
    url: str,
    max_bytes: int,
    headers: Optional[dict[str, str]],
) -> FetchedDocument:
    async with client.stream("GET", url, headers=headers) as response:
        content_type = response.headers.get("content-type", "").lower()

        if not response.is_success:
            return FetchedDocument(url, response.status_code, content_type, "")

        declared = response.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > max_bytes:
            raise FetchError(url, f"body larger than {max_bytes} bytes")

        chunks: list[bytes] = []
        size = 0
        async for chunk in response.aiter_bytes():
            size += len(chunk)
            if size > max_bytes:
                raise FetchError(url, f"body larger than {max_bytes} bytes")
            chunks.append(chunk)

        body = b"".join(chunks)
        try:
            text = body.decode(response.encoding or "utf-8", errors="replace")
        except LookupError:
            text = body.decode("utf-8", errors="replace")

        return FetchedDocument(url, response.status_code, content_type, text)
