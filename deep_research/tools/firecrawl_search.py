from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from deep_research.config import settings


@dataclass
class SearchResult:
    url: str
    title: str
    markdown: str | None


async def search(
    query: str,
    *,
    limit: int = 5,
    timeout_seconds: float = 30.0,
    formats: tuple[str, ...] = ("markdown",),
) -> list[SearchResult]:
    """Run a Firecrawl search and scrape the hits as rendered markdown."""
    if not settings.firecrawl_key:
        raise RuntimeError("FIRECRAWL_KEY is not configured")

    endpoint = settings.firecrawl_api_url.rstrip("/") + "/v1/search"
    payload: dict[str, Any] = {
        "query": query,
        "limit": limit,
        "timeout": int(timeout_seconds * 1000),
        "scrapeOptions": {"formats": list(formats)},
    }
    headers = {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {settings.firecrawl_key}",
    }

    async with httpx.AsyncClient(timeout=timeout_seconds, follow_redirects=True) as client:
        response = await client.post(endpoint, json=payload, headers=headers)
        response.raise_for_status()
        data = response.json()

    items = data.get("data", []) if isinstance(data, dict) else []
    results: list[SearchResult] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        metadata = item.get("metadata") if isinstance(item.get("metadata"), dict) else {}
        results.append(
            SearchResult(
                url=str(item.get("url") or metadata.get("sourceURL") or ""),
                title=str(item.get("title") or metadata.get("title") or ""),
                markdown=item.get("markdown") or None,
            )
        )
    return results
