"""Structured JSON generation with one stricter retry and a deterministic fallback."""
from __future__ import annotations

import json
from typing import Any, Callable, TypeVar

from loguru import logger

from deep_research import llm_client
from deep_research.config import settings
from deep_research.services.json_extract import parse_json_object
from deep_research.services.prompt_store import render_prompt
from deep_research.services.resilience import get_limiter, limited_retry

T = TypeVar("T")

# Shape problems surface as any of these once the JSON is parsed.
PARSE_ERRORS = (ValueError, TypeError, KeyError)


class StructuredOutputError(ValueError):
    """The model did not produce usable JSON, even after the stricter retry."""


def build_structured_prompt(system: str, prompt: str, schema: dict[str, Any]) -> str:
    return render_prompt(
        "structured.prompt",
        system=system,
        schema=json.dumps(schema, indent=2),
        prompt=prompt,
    )


def build_retry_prompt(structured_prompt: str) -> str:
    return f"{structured_prompt}\n\n{render_prompt('structured.retry_suffix')}"


async def _generate_parsed(
    *,
    system: str,
    prompt: str,
    schema: dict[str, Any],
    parse: Callable[[dict[str, Any]], T],
    limiter_name: str,
    base_delay: float,
    caller: str,
    model: str | None,
) -> T:
    limiter = get_limiter(limiter_name)
    structured_prompt = build_structured_prompt(system, prompt, schema)
    last_error: Exception | None = None

    for attempt, attempt_prompt in enumerate(
        (structured_prompt, build_retry_prompt(structured_prompt)), start=1
    ):
        text = await limited_retry(
            limiter,
            lambda p=attempt_prompt: llm_client.generate_text(p, model=model, caller=caller),
            base_delay=base_delay,
            label=caller,
        )
        logger.debug(f"{caller} raw response (attempt {attempt}): {text[:500]}")
        try:
            return parse(parse_json_object(text))
        except PARSE_ERRORS as e:
            last_error = e
            logger.warning(f"{caller}: attempt {attempt} returned unusable JSON: {e}")

    raise StructuredOutputError(f"{caller}: no valid JSON after retry: {last_error}") from last_error


async def generate_object(
    *,
    system: str,
    prompt: str,
    schema: dict[str, Any],
    parse: Callable[[dict[str, Any]], T],
    fallback: Callable[[], T] | None = None,
    limiter_name: str = "generation",
    base_delay: float | None = None,
    caller: str = "structured",
    model: str | None = None,
) -> T:
    """Ask the model for a JSON object and convert it with parse.

    parse validates the shape and may raise ValueError, TypeError or KeyError;
    that triggers one retry with a stricter prompt. When fallback is given, it
    replaces the result of any failure, including exhausted call retries.
    """
    try:
        return await _generate_parsed(
            system=system,
            prompt=prompt,
            schema=schema,
            parse=parse,
            limiter_name=limiter_name,
            base_delay=settings.generation_retry_base_delay if base_delay is None else base_delay,
            caller=caller,
            model=model,
        )
    except Exception as e:
        if fallback is None:
            raise
        logger.error(f"{caller} failed, using fallback: {e}")
        return fallback()
