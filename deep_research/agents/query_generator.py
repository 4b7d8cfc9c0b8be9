from __future__ import annotations

from datetime import date
from typing import Any

from loguru import logger

from deep_research.agents.structured import generate_object
from deep_research.services.prompt_store import render_prompt

QUERIES_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "queries": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Distinct web search queries covering different aspects",
        }
    },
    "required": ["queries"],
}

FALLBACK_SUFFIXES = ("comparison", "review", "worth it")


def parse_queries(payload: dict[str, Any], breadth: int) -> list[str]:
    queries = payload["queries"]
    if not isinstance(queries, list):
        raise ValueError("queries must be a list")
    valid = [q.strip() for q in queries if isinstance(q, str) and q.strip()][:breadth]
    if not valid:
        raise ValueError("No valid queries found in response")
    return valid


def fallback_queries(query: str, breadth: int) -> list[str]:
    """Mechanical variations of the original query."""
    return [query, *(f"{query} {suffix}" for suffix in FALLBACK_SUFFIXES)][:breadth]


async def generate_serp_queries(
    query: str,
    breadth: int,
    *,
    model: str | None = None,
) -> list[str]:
    logger.info("Generating search queries...")
    return await generate_object(
        system=render_prompt("queries.system", today_iso=date.today().isoformat()),
        prompt=render_prompt("queries.prompt", query=query, breadth=breadth),
        schema=QUERIES_SCHEMA,
        parse=lambda payload: parse_queries(payload, breadth),
        fallback=lambda: fallback_queries(query, breadth),
        caller="queries",
        model=model,
    )
