from __future__ import annotations

import os
from unittest.mock import AsyncMock, patch

import pytest

os.environ.setdefault("GOOGLE_API_KEY", "test-google-key")
os.environ.setdefault("FIRECRAWL_KEY", "test-firecrawl-key")

from deep_research.services.resilience import reset_limiters  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_limiters():
    reset_limiters()
    yield
    reset_limiters()


@pytest.fixture
def no_sleep():
    """Replace asyncio.sleep so backoff and pacing waits are recorded, not slept."""
    with patch("asyncio.sleep", new=AsyncMock()) as sleep:
        yield sleep
