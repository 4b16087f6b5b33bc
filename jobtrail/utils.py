"""Shared utilities: logging, retry logic, best-effort side channels, and time helpers."""

from __future__ import annotations

import asyncio
import functools
import logging
import sys
from datetime import date, datetime, time
from pathlib import Path
from typing import Awaitable, TypeVar

from jobtrail.errors import Result, SideEffectError

T = TypeVar("T")

logger = logging.getLogger("jobtrail")


def setup_logging(verbose: bool = False, log_dir: Path | str = "data") -> logging.Logger:
    """Configure console + file logging. Returns the root project logger."""
    logger = logging.getLogger("jobtrail")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.DEBUG if verbose else logging.INFO)
    fmt = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s", datefmt="%H:%M:%S")
    console.setFormatter(fmt)
    logger.addHandler(console)

    # File handler for full debug log
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_dir / "session.log", mode="a")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    )
    logger.addHandler(file_handler)

    return logger


def retry_async(max_retries: int = 3, backoff_base: float = 2.0):
    """Decorator: retry an async function with exponential backoff.

    Usage:
        @retry_async(max_retries=3)
        async def flaky_call():
            ...
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            last_error = None
            for attempt in range(max_retries):
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    last_error = e
                    if attempt < max_retries - 1:
                        wait = backoff_base ** attempt
                        logger.warning(
                            "%s attempt %d failed: %s. Retrying in %.1fs...",
                            func.__name__, attempt + 1, e, wait,
                        )
                        await asyncio.sleep(wait)
            raise last_error  # type: ignore[misc]
        return wrapper
    return decorator


async def best_effort(operation: str, awaitable: Awaitable[T]) -> Result[T]:
    """Await a side-channel call, turning any failure into a logged Result.

    The primary write that triggered the side channel must not depend on it,
    so the caller inspects ``result.value`` and otherwise moves on.
    """
    try:
        value = await awaitable
    except Exception as e:
        logger.warning("%s failed: %s", operation, e)
        return Result.failure(SideEffectError(operation, e))
    return Result.success(value)


def parse_time_of_day(value: str | time) -> time:
    """Parse ``"HH:MM"`` into a time, raising ValueError on garbage."""
    if isinstance(value, time):
        return value
    try:
        return time.fromisoformat(str(value).strip())
    except ValueError:
        raise ValueError(f"Expected a HH:MM time of day, got {value!r}") from None


def at_time_of_day(day: date, time_of_day: time) -> datetime:
    return datetime.combine(day, time_of_day)
