from __future__ import annotations

import asyncio

from loguru import logger

from deep_research.config import settings
from deep_research.services.resilience import get_limiter, limited_retry
from deep_research.tools import firecrawl_search
from deep_research.tools.text_trim import trim_prompt


def result_limit(depth: int) -> int:
    return min(max(int(depth), 1) * 2, settings.search_max_results)


async def search_web(query: str, depth: int) -> list[str]:
    """Search the web for query and return trimmed page contents.

    Never raises: a search that fails after its retries yields an empty list so
    the research run keeps going.
    """
    logger.info(f"Searching for: {query!r}")
    try:
        results = await limited_retry(
            get_limiter("search"),
            lambda: firecrawl_search.search(
                query,
                limit=result_limit(depth),
                timeout_seconds=settings.search_timeout_seconds,
            ),
            base_delay=settings.search_retry_base_delay,
            label="firecrawl.search",
        )
        contents = [
            trim_prompt(result.markdown, settings.search_content_max_chars)
            for result in results
            if result.markdown and result.markdown.strip()
        ]
        logger.info(f"Found {len(contents)} relevant results for {query!r}")
        return contents
    except Exception as e:
        logger.error(f"Error searching for {query!r}: {e}")
        return []
    finally:
        await asyncio.sleep(settings.search_pause_seconds)
