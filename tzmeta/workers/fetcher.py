"""Async HTTP fetcher.

Responsible solely for retrieving raw bytes from a URL.

Uses httpx.AsyncClient which is meant to be long-lived and reused.
A single shared client is managed by the module; see ``get_http_client``
and ``close_http_client`` for lifecycle hooks.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import httpx

from tzmeta.core.config import settings
from tzmeta.core.errors import FetchFailed

logger = logging.getLogger(__name__)

# Module-level shared client
_http_client: Optional[httpx.AsyncClient] = None


def get_http_client() -> httpx.AsyncClient:
    """Return the shared AsyncClient.  Creates one if missing."""
    global _http_client  # noqa: PLW0603
    if _http_client is None or _http_client.is_closed:
        _http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(settings.http_timeout),
            follow_redirects=True,
            verify=settings.http_verify_ssl,
            headers={"User-Agent": "TzMeta/1.0"},
        )
    return _http_client


async def close_http_client() -> None:
    """Close the shared AsyncClient gracefully."""
    global _http_client  # noqa: PLW0603
    if _http_client is not None and not _http_client.is_closed:
        await _http_client.aclose()
        _http_client = None
        logger.info("HTTP client closed.")


async def slow_step() -> None:
    """Optional pause between resolution steps (``debug_step_delay``)."""
    if settings.debug_step_delay > 0:
        await asyncio.sleep(settings.debug_step_delay)


async def fetch_bytes(url: str) -> bytes:
    """GET *url* once and return the body.

    Only HTTP 200 counts as success.  There is no retry: a failed fetch
    fails the whole resolution, which the caller may start again.

    Raises:
        FetchFailed: on any other status code or transport failure.
    """
    client = get_http_client()
    try:
        response = await client.get(url)
    except httpx.InvalidURL as exc:
        raise FetchFailed(url, f"invalid URL: {exc}") from exc
    except httpx.RequestError as exc:
        raise FetchFailed(url, str(exc) or type(exc).__name__) from exc

    logger.debug("%s -> code: %d", url, response.status_code)
    if response.status_code != 200:
        raise FetchFailed(url, status=response.status_code)
    return response.content
