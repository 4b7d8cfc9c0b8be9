"""Markdown rendering and persistence of research results."""
from __future__ import annotations

import re
from datetime import date, datetime
from pathlib import Path

from loguru import logger

from deep_research.config import settings
from deep_research.models.schemas import ResearchResult

SLUG_MAX_CHARS = 50


def format_report(query: str, result: ResearchResult, *, now: datetime | None = None) -> str:
    timestamp = (now or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
    sections = ["# Deep Research Report\n"]
    sections.append(f"**Query:** {query}")
    sections.append(f"**Date:** {timestamp}\n")

    if result.search_queries:
        sections.append("## Search Queries Used")
        sections.extend(f"{i}. {q}" for i, q in enumerate(result.search_queries, 1))
        sections.append("")

    report = result.report
    sections.append("## Executive Summary")
    sections.append(report.executive_summary)
    sections.append("")

    if report.key_findings:
        sections.append("## Key Findings")
        for i, finding in enumerate(report.key_findings, 1):
            sections.append(f"### {i}. {finding.title}")
            sections.extend(f"- {detail}" for detail in finding.details)
            sections.append("")

    if report.sources:
        sections.append("## Sources")
        sections.extend(f"{i}. {source}" for i, source in enumerate(report.sources, 1))

    if result.error:
        sections.append("\n## Errors")
        sections.append(f"⚠️ {result.error}")

    return "\n".join(sections)


def slugify(text: str, max_chars: int = SLUG_MAX_CHARS) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower())[:max_chars]


def report_filename(query: str, today: date | None = None) -> str:
    return f"research-{slugify(query)}-{(today or date.today()).isoformat()}.md"


def save_report(content: str, filename: str = "", output_dir: str | Path | None = None) -> Path:
    """Write content under the output directory, creating it when needed."""
    directory = Path(output_dir or settings.output_dir)
    directory.mkdir(parents=True, exist_ok=True)

    name = filename or f"research-{datetime.now().strftime('%Y-%m-%dT%H-%M-%S')}.md"
    if not name.endswith(".md"):
        name = f"{name}.md"

    path = directory / name
    path.write_text(content, encoding="utf-8")
    logger.info(f"Report saved to: {path}")
    return path
