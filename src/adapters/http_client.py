"""httpx wrapper.

Why a wrapper:
- Standardizes timeouts and headers for the few plain HTTP calls we make
  (reachability checks); media metadata goes through yt-dlp.
- Easy to swap for a stub/mocked client in tests.
"""

from __future__ import annotations

import httpx

from core.config import AppSettings


def build_async_client(
    settings: AppSettings | None = None,
    *,
    extra_headers: dict[str, str] | None = None,
) -> httpx.AsyncClient:
    """Create an `httpx.AsyncClient` with safe defaults."""

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.resolve_timeout_seconds),
        follow_redirects=True,
        headers=headers,
    )
