"""Shared async HTTP client used by every HTTP provider."""

from __future__ import annotations

from typing import Optional

import httpx

from carpool.config import settings

_client: Optional[httpx.AsyncClient] = None


def get_http_client() -> httpx.AsyncClient:
    """Return the process-wide client, creating it on first use."""
    global _client
    if _client is None or _client.is_closed:
        _client = httpx.AsyncClient(
            timeout=settings.provider_timeout_seconds,
            headers={"User-Agent": settings.http_user_agent},
        )
    return _client


async def close_http_client() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
