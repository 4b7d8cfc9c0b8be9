"""Gemini client factory over the OpenAI-compatible SDK."""
from __future__ import annotations

import time
from typing import Any

from deep_research.config import settings
from deep_research.services import logger as log_service

HARM_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)

# Blocking disabled for every harm category.
SAFETY_SETTINGS = [
    {"category": category, "threshold": "BLOCK_NONE"} for category in HARM_CATEGORIES
]


def get_client() -> Any:
    """Get an AsyncOpenAI client pointed at the Gemini endpoint."""
    from openai import AsyncOpenAI

    if not settings.google_api_key:
        raise RuntimeError("GOOGLE_API_KEY is not configured")
    return AsyncOpenAI(
        api_key=settings.google_api_key,
        base_url=settings.llm_base_url,
    )


def get_model() -> str:
    """Get the active model id."""
    if settings.llm_model:
        return settings.llm_model
    return settings.default_model


_client: Any | None = None


def client() -> Any:
    """Get or create the LLM client."""
    global _client
    if _client is None:
        _client = get_client()
    return _client


def _response_text(response: Any) -> str:
    choices = getattr(response, "choices", None) or []
    if not choices:
        return ""
    message = getattr(choices[0], "message", None)
    text = getattr(message, "content", None)
    return text if isinstance(text, str) else ""


async def generate_text(
    prompt: str,
    *,
    model: str | None = None,
    caller: str = "llm",
) -> str:
    """Send a single-turn prompt and return the raw response text."""
    model_name = model or get_model()
    t0 = time.monotonic()
    try:
        response = await client().chat.completions.create(
            model=model_name,
            messages=[{"role": "user", "content": prompt}],
            extra_body={"extra_body": {"google": {"safety_settings": SAFETY_SETTINGS}}},
        )
    except Exception as e:
        log_service.log_llm_call(
            model=model_name,
            caller=caller,
            duration_ms=int((time.monotonic() - t0) * 1000),
            status="error",
            error=str(e),
        )
        raise

    usage = getattr(response, "usage", None)
    log_service.log_llm_call(
        model=model_name,
        caller=caller,
        input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
        output_tokens=getattr(usage, "completion_tokens", 0) or 0,
        duration_ms=int((time.monotonic() - t0) * 1000),
    )
    return _response_text(response)
