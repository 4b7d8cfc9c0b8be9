"""Loguru sinks and one-line structured records for model calls and research steps."""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from deep_research.config import settings

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"

# Chatty HTTP and SDK loggers go through stdlib logging, not loguru.
NOISY_LOGGERS = ("httpx", "httpcore", "hpack", "openai._base_client", "asyncio")

LOG_DIR = Path(settings.log_dir)
LOG_DIR.mkdir(parents=True, exist_ok=True)

logger.remove()
logger.add(sys.stderr, format=CONSOLE_FORMAT, level=settings.app_log_level.upper(), colorize=True)
logger.add(
    LOG_DIR / "deep_research_{time:YYYY-MM-DD}.log",
    format=FILE_FORMAT,
    level="DEBUG",
    rotation="00:00",
    retention="7 days",
    compression="zip",
    encoding="utf-8",
)

for _name in NOISY_LOGGERS:
    logging.getLogger(_name).setLevel(settings.noisy_log_level.upper())


def _record(tag: str, fields: dict[str, Any], *, failed: bool = False) -> None:
    payload = {"at": datetime.now(timezone.utc).isoformat(timespec="milliseconds"), **fields}
    if failed:
        logger.error(f"{tag}_FAILED: {payload}")
    else:
        logger.info(f"{tag}: {payload}")


def log_llm_call(
    model: str,
    caller: str,
    input_tokens: int = 0,
    output_tokens: int = 0,
    duration_ms: int = 0,
    status: str = "success",
    error: Optional[str] = None,
) -> None:
    """Record one model request with its token usage and latency."""
    _record(
        "LLM_CALL",
        {
            "model": model,
            "caller": caller,
            "tokens": {"in": input_tokens, "out": output_tokens, "total": input_tokens + output_tokens},
            "duration_ms": duration_ms,
            "status": status,
            "error": error,
        },
        failed=error is not None,
    )


def log_research_step(query: str, step: str, status: str, data: Optional[dict[str, Any]] = None) -> None:
    _record(
        "RESEARCH_STEP",
        {"query": query[:120], "step": step, "status": status, "data": data},
        failed=status == "error",
    )


def log_event(kind: str, message: str, **fields: Any) -> None:
    _record("EVENT", {"kind": kind, "message": message, **fields})
