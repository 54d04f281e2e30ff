"""High-level entry point: collect a user's open source contribution stats."""

import threading
from typing import Callable, Optional

import requests
from loguru import logger

from .aggregator import ContributionAggregator
from .config import SEARCH_QUERY_TEMPLATE, ClientConfig
from .exceptions import Cancelled, DecodeError, HTTPStatusError, PartialResults, RateLimited, UserNotFound
from .http_client import HTTPClient
from .models import IssueHit, RateLimitStatus, Stats
from .pagination import SearchWalker
from .rate_limit import RateLimitGovernor
from .utils import log_performance, parse_repo_url


def build_search_query(username: str) -> str:
    return SEARCH_QUERY_TEMPLATE.format(username=username)


def is_own_repository(hit: IssueHit, username: str) -> bool:
    try:
        owner, _ = parse_repo_url(hit.repository_url)
    except DecodeError:
        return False  # left for the aggregator to record
    return owner.lower() == username.lower()


class OssStatsClient:
    """Builds the transport, rate limiter, walker and aggregator for each run.

    Example:
        with OssStatsClient(ClientConfig(token=token, min_stars=100)) as client:
            stats = client.collect("octocat")
    """

    def __init__(self, config: Optional[ClientConfig] = None,
                 cancel_event: Optional[threading.Event] = None,
                 session: Optional[requests.Session] = None,
                 sleep: Optional[Callable[[float], bool]] = None,
                 clock: Optional[Callable[[], float]] = None):
        self.config = (config or ClientConfig()).validate()
        self.cancel_event = cancel_event if cancel_event is not None else threading.Event()
        self.http = HTTPClient(
            token=self.config.token,
            base_url=self.config.base_url,
            timeout=self.config.timeout,
            retries=self.config.transport_retries,
            cancel_event=self.cancel_event,
            session=session,
        )
        self._sleep = sleep
        self._clock = clock
        if not self.config.token:
            logger.warning("No GitHub token configured; search is limited to 10 requests/minute")

    def cancel(self) -> None:
        """Stop the current run at its next request or wait."""
        self.cancel_event.set()

    def new_governor(self) -> RateLimitGovernor:
        return RateLimitGovernor(cancel_event=self.cancel_event, sleep=self._sleep, clock=self._clock)

    def _partial_stats(self, aggregator: ContributionAggregator, username: str) -> Optional[Stats]:
        if not len(aggregator):
            return None
        return aggregator.build(username, self.config.sort_by)

    @log_performance
    def collect(self, username: str) -> Stats:
        """Collect merged PR stats for ``username`` in repositories they do not own.

        Raises UserNotFound, AuthenticationFailed, RateLimited, Cancelled, or
        PartialResults when some enrichment calls failed (its ``stats`` is
        still usable).
        """
        governor = self.new_governor()
        walker = SearchWalker(self.http, governor, per_page=self.config.per_page, limit=self.config.max_prs)
        aggregator = ContributionAggregator(
            self.http,
            governor,
            include_loc=self.config.include_loc,
            include_repo_details=self.config.include_repo_details,
            min_stars=self.config.min_stars,
        )

        logger.info(f"Collecting merged pull requests for {username}")
        own_skipped = 0
        try:
            for hit in walker.walk(build_search_query(username)):
                if self.config.exclude_own_repos and is_own_repository(hit, username):
                    own_skipped += 1
                    continue
                aggregator.add(hit)
        except (RateLimited, Cancelled) as e:
            e.stats = self._partial_stats(aggregator, username)
            logger.warning(f"Stopped after {walker.yielded} pull requests: {e}")
            raise
        except HTTPStatusError as e:
            # search answers 422 when the author: qualifier names an unknown user
            if e.status_code == 422 and walker.total_count is None:
                raise UserNotFound(username) from e
            raise

        if not walker.total_count:
            raise UserNotFound(username)

        if own_skipped:
            logger.info(f"Skipped {own_skipped} pull requests to {username}'s own repositories")

        stats = aggregator.build(username, self.config.sort_by)
        logger.info(
            f"Found {stats.summary.total_prs_merged} merged PRs across "
            f"{stats.summary.total_projects} projects from {aggregator.hits_seen} search hits "
            f"({self.http.request_count} requests, {governor.retries} retries, "
            f"{governor.total_waited:.0f}s waiting)"
        )
        if aggregator.errors:
            raise PartialResults(stats, aggregator.errors, f"{len(aggregator.errors)} detail requests failed")
        return stats

    def get_rate_limit(self) -> RateLimitStatus:
        """Current core and search quota for the configured credential."""
        governor = self.new_governor()
        return governor.call(
            lambda: self.http.get_json("/rate_limit", model=RateLimitStatus),
            description="rate limit status",
        ).data

    def close(self):
        self.http.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
