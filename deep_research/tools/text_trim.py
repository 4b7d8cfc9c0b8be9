"""Shorten scraped page content to a size budget without cutting mid-token."""
from __future__ import annotations

from functools import lru_cache

import tiktoken
from langchain_text_splitters import RecursiveCharacterTextSplitter

ENCODING_NAME = "o200k_base"
# Minimum share of the budget a natural-boundary chunk must fill.
MIN_FILL_RATIO = 0.5
TOKEN_LOOKAHEAD_CHARS = 64


@lru_cache(maxsize=1)
def _encoding() -> tiktoken.Encoding:
    return tiktoken.get_encoding(ENCODING_NAME)


def cut_at_token_boundary(text: str, max_chars: int) -> str:
    """Hard cut to at most max_chars, backing off to the last whole token."""
    if len(text) <= max_chars:
        return text
    window = text[: max_chars + TOKEN_LOOKAHEAD_CHARS]
    encoding = _encoding()
    tokens = encoding.encode(window, disallowed_special=())
    _, offsets = encoding.decode_with_offsets(tokens)
    cut = max((offset for offset in offsets if offset <= max_chars), default=0)
    if cut <= 0:
        cut = max_chars
    return text[:cut]


def trim_prompt(prompt: str, context_size: int) -> str:
    """Trim prompt to at most context_size characters.

    Prefers a paragraph, line or word boundary; falls back to a token boundary
    when the first natural chunk would drop most of the budget.
    """
    if not prompt:
        return ""
    if len(prompt) <= context_size:
        return prompt

    splitter = RecursiveCharacterTextSplitter(
        chunk_size=context_size,
        chunk_overlap=0,
        strip_whitespace=False,
    )
    chunks = splitter.split_text(prompt)
    trimmed = chunks[0] if chunks else ""
    if context_size * MIN_FILL_RATIO <= len(trimmed) <= context_size:
        return trimmed
    return cut_at_token_boundary(prompt, context_size)
