"""Chunked analysis of accumulated search content."""
from __future__ import annotations

import asyncio
from typing import Any

from loguru import logger

from deep_research.agents.structured import generate_object
from deep_research.config import settings
from deep_research.models.schemas import ChunkAnalysis, Finding
from deep_research.services.prompt_store import render_prompt

CHUNK_SEPARATOR = "\n\n"
RAW_PREVIEW_CHARS = 200

ANALYSIS_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "summary": {
            "type": "string",
            "description": "A concise executive summary of the key insights",
        },
        "keyFindings": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "title": {"type": "string", "description": "Finding category or title"},
                    "details": {"type": "array", "items": {"type": "string"}},
                },
                "required": ["title", "details"],
            },
        },
        "sources": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Brief description of each source",
        },
    },
    "required": ["summary", "keyFindings", "sources"],
}


def chunk_contents(contents: list[str], max_chunk_chars: int) -> list[str]:
    """Greedily pack contents into chunks of at most max_chunk_chars.

    A chunk is closed as soon as the next item would push it over the bound; an
    item larger than the bound on its own becomes a chunk by itself.
    """
    chunks: list[str] = []
    current = ""
    for content in contents:
        if not content:
            continue
        if not current:
            current = content
        elif len(current) + len(CHUNK_SEPARATOR) + len(content) > max_chunk_chars:
            chunks.append(current)
            current = content
        else:
            current = f"{current}{CHUNK_SEPARATOR}{content}"
    if current:
        chunks.append(current)
    return chunks


def merge_chunk_results(results: list[ChunkAnalysis]) -> ChunkAnalysis:
    """Concatenate summaries; dedupe findings by title and sources by value, first wins."""
    findings: list[Finding] = []
    seen_titles: set[str] = set()
    for result in results:
        for finding in result.key_findings:
            if finding.title in seen_titles:
                continue
            seen_titles.add(finding.title)
            findings.append(finding)

    sources = list(dict.fromkeys(source for result in results for source in result.sources))

    return ChunkAnalysis(
        summary=CHUNK_SEPARATOR.join(result.summary for result in results),
        key_findings=findings,
        sources=sources,
    )


def degraded_analysis(contents: list[str]) -> ChunkAnalysis:
    return ChunkAnalysis(
        summary="Error analyzing results. Here are the raw findings:",
        key_findings=[
            Finding(
                title="Raw Results",
                details=[f"{content[:RAW_PREVIEW_CHARS]}..." for content in contents],
            )
        ],
        sources=["Error processing sources"],
    )


async def analyze_chunk(query: str, chunk: str, *, model: str | None = None) -> ChunkAnalysis:
    return await generate_object(
        system=render_prompt("analysis.system"),
        prompt=render_prompt("analysis.prompt", query=query, chunk=chunk),
        schema=ANALYSIS_SCHEMA,
        parse=ChunkAnalysis.model_validate,
        caller="analysis",
        model=model,
    )


async def process_contents(
    query: str,
    contents: list[str],
    *,
    model: str | None = None,
) -> ChunkAnalysis:
    logger.info("Analyzing search results...")
    chunks = chunk_contents(contents, settings.analysis_chunk_max_chars)
    logger.info(f"Processing {len(chunks)} content chunks...")

    results: list[ChunkAnalysis] = []
    for index, chunk in enumerate(chunks):
        logger.info(f"Processing chunk {index + 1}/{len(chunks)}...")
        try:
            results.append(await analyze_chunk(query, chunk, model=model))
        except Exception as e:
            logger.error(f"Error processing chunk {index + 1}: {e}")

        if index < len(chunks) - 1:
            await asyncio.sleep(settings.analysis_chunk_pause_seconds)

    if not results:
        logger.warning("No valid results from any chunk, returning raw findings")
        return degraded_analysis(contents)
    return merge_chunk_results(results)
