"""Clarifying questions asked before a research run."""
from __future__ import annotations

from typing import Any

from loguru import logger

from deep_research.agents.structured import generate_object
from deep_research.config import settings
from deep_research.services.prompt_store import render_prompt

FEEDBACK_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "questions": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Follow-up questions to clarify the research direction",
        }
    },
    "required": ["questions"],
}


def parse_questions(payload: dict[str, Any], num_questions: int) -> list[str]:
    questions = payload["questions"]
    if not isinstance(questions, list):
        raise ValueError("questions must be a list")
    valid = [
        q.strip()
        for q in questions
        if isinstance(q, str) and q.strip() and "?" in q
    ][:num_questions]
    if not valid:
        raise ValueError("No valid questions found in response")
    return valid


def default_questions(query: str, num_questions: int) -> list[str]:
    return [
        render_prompt("feedback.fallback_scope", query=query),
        render_prompt("feedback.fallback_goals"),
        render_prompt("feedback.fallback_constraints"),
        render_prompt("feedback.fallback_timeframe"),
        render_prompt("feedback.fallback_sources"),
    ][:num_questions]


async def generate_feedback(
    query: str,
    num_questions: int | None = None,
    *,
    model: str | None = None,
) -> list[str]:
    count = settings.feedback_questions if num_questions is None else num_questions
    logger.info("Generating feedback questions...")
    return await generate_object(
        system=render_prompt("feedback.system"),
        prompt=render_prompt("feedback.prompt", query=query, num_questions=count),
        schema=FEEDBACK_SCHEMA,
        parse=lambda payload: parse_questions(payload, count),
        fallback=lambda: default_questions(query, count),
        limiter_name="feedback",
        base_delay=settings.feedback_retry_base_delay,
        caller="feedback",
        model=model,
    )
