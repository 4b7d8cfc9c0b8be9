from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

MIN_BREADTH, MAX_BREADTH = 1, 10
MIN_DEPTH, MAX_DEPTH = 1, 5

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _parse_int(raw: str | int | None, default: int) -> int:
    """Read a leading integer from free text; blank, garbage or zero means default."""
    if isinstance(raw, int):
        return raw or default
    match = _LEADING_INT.match(raw or "")
    if not match:
        return default
    return int(match.group(1)) or default


def _clamp(value: int, low: int, high: int) -> int:
    return min(high, max(low, value))


# --- Requests ---


class ResearchRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    query: str = Field(min_length=1)
    breadth: int = Field(default=6, ge=MIN_BREADTH, le=MAX_BREADTH)
    depth: int = Field(default=3, ge=MIN_DEPTH, le=MAX_DEPTH)

    @property
    def is_feedback_only(self) -> bool:
        return self.breadth == 1 and self.depth == 1

    @classmethod
    def from_user_input(
        cls,
        query: str,
        breadth_raw: str | int | None,
        depth_raw: str | int | None,
        *,
        default_breadth: int = 6,
        default_depth: int = 3,
    ) -> "ResearchRequest":
        return cls(
            query=query.strip(),
            breadth=_clamp(_parse_int(breadth_raw, default_breadth), MIN_BREADTH, MAX_BREADTH),
            depth=_clamp(_parse_int(depth_raw, default_depth), MIN_DEPTH, MAX_DEPTH),
        )


# --- Analysis ---


def _as_string_list(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [item if isinstance(item, str) else str(item) for item in value if item is not None]
    return value


class Finding(BaseModel):
    title: str
    details: list[str] = Field(default_factory=list)

    @field_validator("details", mode="before")
    @classmethod
    def _coerce_details(cls, value: Any) -> Any:
        return _as_string_list(value)


class ChunkAnalysis(BaseModel):
    """Model analysis of one chunk of search content."""

    model_config = ConfigDict(populate_by_name=True)

    summary: str = Field(min_length=1)
    key_findings: list[Finding] = Field(alias="keyFindings")
    sources: list[str] = Field(default_factory=list)

    @field_validator("sources", mode="before")
    @classmethod
    def _coerce_sources(cls, value: Any) -> Any:
        return _as_string_list(value)


# --- Responses ---


class ResearchReport(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    executive_summary: str = Field(default="", alias="executiveSummary")
    key_findings: list[Finding] = Field(default_factory=list, alias="keyFindings")
    sources: list[str] = Field(default_factory=list)


class ResearchResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    query: str
    feedback_questions: list[str] = Field(default_factory=list, alias="feedbackQuestions")
    search_queries: list[str] = Field(default_factory=list, alias="searchQueries")
    report: ResearchReport = Field(default_factory=ResearchReport)
    error: str | None = None
