"""Utility functions for the OSS stats collector."""

import functools
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Tuple

from loguru import logger

from .exceptions import DecodeError


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a GitHub ISO-8601 timestamp into an aware UTC datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            raise DecodeError(f"invalid timestamp {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Format a datetime the way GitHub does (second precision, Z suffix)."""
    if value is None:
        return None
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_repo_url(repo_url: str) -> Tuple[str, str]:
    """Extract (owner, repo) from URLs like https://api.github.com/repos/owner/repo."""
    parts = [part for part in repo_url.rstrip("/").split("/") if part]
    if len(parts) < 2:
        raise DecodeError(f"invalid repository URL: {repo_url}")
    return parts[-2], parts[-1]


def format_duration(seconds: float) -> str:
    """Format duration in seconds to human-readable string."""
    if seconds < 60:
        return f"{seconds:.2f} seconds"
    elif seconds < 3600:
        minutes = seconds / 60
        return f"{minutes:.2f} minutes"
    else:
        hours = seconds / 3600
        return f"{hours:.2f} hours"


def format_count(value: int) -> str:
    """Compact counts for badges: 950, 1.2k, 3.4M."""
    if value < 1000:
        return str(value)
    if value < 1_000_000:
        return f"{value / 1000:.1f}k".replace(".0k", "k")
    return f"{value / 1_000_000:.1f}M".replace(".0M", "M")


def log_performance(func: Callable) -> Callable:
    """Decorator to log function performance."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> Any:
        start_time = time.time()

        try:
            result = func(*args, **kwargs)
            duration = time.time() - start_time

            logger.debug(f"{func.__name__} completed in {format_duration(duration)}")
            return result

        except Exception as e:
            duration = time.time() - start_time

            logger.warning(f"{func.__name__} failed after {format_duration(duration)}: {e}")
            raise

    return wrapper
