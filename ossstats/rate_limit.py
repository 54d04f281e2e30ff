"""Rate limit handling for GitHub API calls.

One RateLimitGovernor is owned by a single collection run and every API call
of that run goes through it, so attempt counts and the last seen quota never
leak between runs. All waiting happens here and is interruptible through the
run's cancellation event.
"""

import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Mapping, Optional

from loguru import logger

from .config import (
    INITIAL_BACKOFF_DELAY,
    LOW_QUOTA_THRESHOLD,
    MAX_BACKOFF_ATTEMPTS,
    RATE_LIMIT_REMAINING_HEADER,
    RATE_LIMIT_RESET_HEADER,
    RATE_LIMIT_RESET_BUFFER,
    RETRY_AFTER_HEADER,
    SEARCH_API_DELAY,
)
from .exceptions import AuthenticationFailed, Cancelled, HTTPStatusError, RateLimited
from .http_client import ApiResponse
from .models import RateLimitInfo

RATE_LIMIT_STATUSES = (403, 429)


def get_header(headers: Optional[Mapping[str, str]], name: str) -> Optional[str]:
    if not headers:
        return None
    value = headers.get(name)
    if value is None:
        lowered = name.lower()
        for key, candidate in headers.items():
            if key.lower() == lowered:
                return candidate
    return value


def parse_rate_limit_headers(headers: Optional[Mapping[str, str]]) -> Optional[RateLimitInfo]:
    """Return quota info, or None when either header is missing or unparseable."""
    remaining = get_header(headers, RATE_LIMIT_REMAINING_HEADER)
    reset = get_header(headers, RATE_LIMIT_RESET_HEADER)
    if remaining is None or reset is None:
        return None
    try:
        return RateLimitInfo(
            remaining=max(0, int(remaining)),
            reset_at=datetime.fromtimestamp(int(float(reset)), tz=timezone.utc),
        )
    except (TypeError, ValueError, OverflowError):
        logger.warning(f"Ignoring malformed rate limit headers: remaining={remaining!r} reset={reset!r}")
        return None


def parse_retry_after(headers: Optional[Mapping[str, str]]) -> Optional[float]:
    value = get_header(headers, RETRY_AFTER_HEADER)
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


def mentions_rate_limit(body: str) -> bool:
    return "rate limit" in (body or "").lower()


class RateLimitGovernor:
    """Decides whether a failed call waits, retries or gives up.

    ``sleep`` follows ``threading.Event.wait`` semantics: it blocks for the
    given number of seconds and returns True when woken by cancellation.
    """

    def __init__(self, cancel_event: Optional[threading.Event] = None,
                 sleep: Optional[Callable[[float], bool]] = None,
                 clock: Optional[Callable[[], float]] = None,
                 max_attempts: int = MAX_BACKOFF_ATTEMPTS,
                 initial_delay: float = INITIAL_BACKOFF_DELAY,
                 reset_buffer: float = RATE_LIMIT_RESET_BUFFER,
                 search_delay: float = SEARCH_API_DELAY):
        self.cancel_event = cancel_event if cancel_event is not None else threading.Event()
        self._sleep = sleep if sleep is not None else self.cancel_event.wait
        self._clock = clock if clock is not None else time.time
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.reset_buffer = reset_buffer
        self.search_delay = search_delay

        self.last_info: Optional[RateLimitInfo] = None
        self.total_waited = 0.0
        self.retries = 0

    def check_cancelled(self) -> None:
        if self.cancel_event.is_set():
            raise Cancelled()

    def pause(self, seconds: float, reason: str = "") -> None:
        """Suspend for ``seconds``; raise Cancelled if the run is cancelled."""
        self.check_cancelled()
        if seconds <= 0:
            return
        logger.debug(f"Sleeping {seconds:.1f}s{f' ({reason})' if reason else ''}")
        interrupted = self._sleep(seconds)
        self.total_waited += seconds
        if interrupted:
            raise Cancelled(f"cancelled while waiting{f' for {reason}' if reason else ''}")
        self.check_cancelled()

    def backoff_delay(self, attempt: int) -> float:
        """initial_delay * 2^attempt, attempt being 0-indexed."""
        return self.initial_delay * (2 ** attempt)

    def reset_wait(self, info: RateLimitInfo) -> float:
        """Seconds until the quota resets, plus the safety buffer."""
        now = datetime.fromtimestamp(self._clock(), tz=timezone.utc)
        return max(0.0, (info.reset_at - now).total_seconds()) + self.reset_buffer

    def wait_for_search(self) -> None:
        """Fixed delay between consecutive search calls (30 requests/minute)."""
        self.pause(self.search_delay, "search API spacing")

    def observe(self, headers: Optional[Mapping[str, str]]) -> Optional[RateLimitInfo]:
        info = parse_rate_limit_headers(headers)
        if info is not None:
            self.last_info = info
            if info.remaining <= LOW_QUOTA_THRESHOLD:
                logger.warning(
                    f"GitHub quota low: {info.remaining} requests left, resets at {info.reset_at.isoformat()}"
                )
        return info

    def _retry_delay(self, error: HTTPStatusError, info: Optional[RateLimitInfo], attempt: int) -> float:
        """Seconds to wait before retrying ``error``; raises if it is not retryable."""
        status = error.status_code

        if status == 401:
            raise AuthenticationFailed(error.body or "bad credentials") from error

        if status in RATE_LIMIT_STATUSES:
            retry_after = parse_retry_after(error.headers)
            if retry_after is not None:
                return retry_after
            if info is not None and info.remaining == 0:
                return self.reset_wait(info)
            if status == 403 and info is not None and not mentions_rate_limit(error.body):
                # quota headers present and not exhausted: a real permission failure
                raise AuthenticationFailed(error.body or "forbidden") from error
            return self.backoff_delay(attempt)

        if 500 <= status < 600:
            return self.backoff_delay(attempt)

        raise error

    def _reset_at(self, delay: float) -> Optional[datetime]:
        if self.last_info is not None:
            return self.last_info.reset_at
        return datetime.fromtimestamp(self._clock(), tz=timezone.utc) + timedelta(seconds=delay)

    def call(self, operation: Callable[[], ApiResponse], description: str = "request") -> ApiResponse:
        """Run ``operation`` until it succeeds, retrying rate limits and 5xx.

        Raises RateLimited once ``max_attempts`` retries of a rate-limited call
        are used up, AuthenticationFailed for credential problems and the
        original HTTPStatusError for every other failure.
        """
        attempt = 0
        while True:
            self.check_cancelled()
            try:
                response = operation()
            except HTTPStatusError as e:
                info = self.observe(e.headers)
                delay = self._retry_delay(e, info, attempt)

                if attempt >= self.max_attempts:
                    logger.error(f"Giving up on {description} after {attempt} retries (HTTP {e.status_code})")
                    if e.status_code in RATE_LIMIT_STATUSES:
                        raise RateLimited(
                            self._reset_at(delay),
                            f"max retry attempts ({self.max_attempts}) reached for {description}",
                        ) from e
                    raise

                logger.warning(
                    f"HTTP {e.status_code} on {description}; retrying in {delay:.1f}s "
                    f"(attempt {attempt + 1}/{self.max_attempts})"
                )
                self.pause(delay, f"retry of {description}")
                self.retries += 1
                attempt += 1
                continue

            self.observe(response.headers)
            return response
