"""Link header parsing and the search result walker."""

import re
from typing import Dict, Iterator, Optional, Tuple

from loguru import logger

from .config import LINK_HEADER, SEARCH_PER_PAGE, SEARCH_RESULT_CAP
from .http_client import HTTPClient
from .models import IssueHit, SearchPage
from .rate_limit import RateLimitGovernor, get_header

SEARCH_ISSUES_PATH = "/search/issues"

# <url>; rel="name" with the separator and quotes optional
LINK_SEGMENT_PATTERN = re.compile(r'<\s*([^>]*?)\s*>\s*;?\s*rel\s*=\s*"?([^",;\s]+)"?')


def parse_link_header(value: Optional[str]) -> Dict[str, str]:
    """Map rel -> URL from a Link header, dropping malformed segments."""
    links: Dict[str, str] = {}
    if not value:
        return links

    for segment in value.split(","):
        segment = segment.strip()
        if not segment:
            continue
        match = LINK_SEGMENT_PATTERN.search(segment)
        if not match or not match.group(1):
            logger.debug(f"Skipping malformed Link segment: {segment!r}")
            continue
        url, rel = match.groups()
        links[rel] = url

    return links


class SearchWalker:
    """Walks search/issues pages lazily, one request at a time."""

    def __init__(self, http: HTTPClient, governor: RateLimitGovernor,
                 per_page: int = SEARCH_PER_PAGE, limit: Optional[int] = None):
        self.http = http
        self.governor = governor
        self.per_page = per_page
        self.limit = min(limit, SEARCH_RESULT_CAP) if limit else SEARCH_RESULT_CAP

        self.total_count: Optional[int] = None
        self.incomplete = False
        self.pages_fetched = 0
        self.yielded = 0

    def fetch_page(self, query: str, page: int) -> Tuple[SearchPage, Dict[str, str]]:
        params = {
            "q": query,
            "page": page,
            "per_page": self.per_page,
            "sort": "updated",
            "order": "desc",
        }
        response = self.governor.call(
            lambda: self.http.get_json(SEARCH_ISSUES_PATH, params=params, model=SearchPage),
            description=f"search page {page}",
        )
        return response.data, parse_link_header(get_header(response.headers, LINK_HEADER))

    def walk(self, query: str) -> Iterator[IssueHit]:
        """Yield hits page by page until the last page, the limit or total_count.

        Errors from the rate limiter propagate to the consumer; hits already
        yielded stay with the consumer.
        """
        self.total_count = None
        self.incomplete = False
        self.pages_fetched = 0
        self.yielded = 0

        page = 1
        while True:
            if page > 1:
                self.governor.wait_for_search()

            result, links = self.fetch_page(query, page)
            self.pages_fetched += 1
            if self.total_count is None:
                self.total_count = result.total_count
                logger.info(f"Search matched {result.total_count} pull requests")
            if result.incomplete_results and not self.incomplete:
                self.incomplete = True
                logger.warning("GitHub reported incomplete search results; counts may be low")

            logger.debug(f"Page {page}: {len(result.items)} hits")
            for hit in result.items:
                if self.yielded >= self.limit:
                    return
                self.yielded += 1
                yield hit

            if len(result.items) < self.per_page:
                return
            if self.yielded >= self.limit:
                logger.info(f"Reached PR limit of {self.limit}")
                return
            if self.yielded >= result.total_count:
                return
            if links and "next" not in links:
                return
            page += 1
