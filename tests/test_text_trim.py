from __future__ import annotations

from unittest.mock import patch

from deep_research.tools.text_trim import cut_at_token_boundary, trim_prompt


class FakeEncoding:
    """Tokens every 7 characters, enough to check boundary arithmetic."""

    def encode(self, text, disallowed_special=()):
        self.text = text
        return list(range((len(text) + 6) // 7))

    def decode_with_offsets(self, tokens):
        return self.text, [token * 7 for token in tokens]


def test_short_text_is_unchanged():
    assert trim_prompt("short page", 100) == "short page"
    assert trim_prompt("", 100) == ""


def test_long_text_is_cut_at_word_boundary():
    text = "word " * 5000

    trimmed = trim_prompt(text, 15_000)

    assert len(trimmed) <= 15_000
    assert len(trimmed) >= 7_500
    assert text.startswith(trimmed)
    assert trimmed.endswith("word")


def test_prefers_paragraph_boundaries():
    paragraphs = ["alpha " * 150, "beta " * 150, "gamma " * 150]
    text = "\n\n".join(p.strip() for p in paragraphs)

    trimmed = trim_prompt(text, 2_000)

    assert len(trimmed) <= 2_000
    assert trimmed.endswith("beta")
    assert "gamma" not in trimmed


def test_tiny_first_chunk_falls_back_to_token_cut():
    text = "Title\n\n" + "x" * 20_000

    with patch("deep_research.tools.text_trim._encoding", return_value=FakeEncoding()):
        trimmed = trim_prompt(text, 15_000)

    assert trimmed == text[:14_994]


def test_cut_at_token_boundary_leaves_short_text_alone():
    assert cut_at_token_boundary("abc", 10) == "abc"


def test_leading_whitespace_is_kept_in_trimmed_prefix():
    text = "   \n\n" + "word " * 5000

    with patch("deep_research.tools.text_trim._encoding", return_value=FakeEncoding()):
        trimmed = trim_prompt(text, 15_000)

    assert len(trimmed) <= 15_000
    assert text.startswith(trimmed)
