"""Folds merged pull request hits into per-repository contributions."""

from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional

from loguru import logger

from .config import DEFAULT_SORT_BY
from .exceptions import AuthenticationFailed, Cancelled, OssStatsError, RateLimited
from .http_client import HTTPClient
from .models import (
    Contribution,
    IssueHit,
    PullRequestDetail,
    RepositoryDetail,
    Stats,
    Summary,
)
from .rate_limit import RateLimitGovernor
from .utils import parse_repo_url

# errors that end the run instead of being recorded against a single PR
FATAL_ERRORS = (RateLimited, AuthenticationFailed, Cancelled)

SORT_FIELDS: Dict[str, Callable[[Contribution], int]] = {
    "prs": lambda c: c.prs_merged,
    "stars": lambda c: c.stars,
    "commits": lambda c: c.commits,
}


def sort_contributions(contributions: List[Contribution], sort_by: str = DEFAULT_SORT_BY) -> List[Contribution]:
    """Descending by the chosen metric, ties by repository name ascending."""
    metric = SORT_FIELDS[sort_by]
    return sorted(contributions, key=lambda c: (-metric(c), c.repo_full_name))


class ContributionAggregator:
    """Accumulates one run's contributions; owned by a single collect call."""

    def __init__(self, http: HTTPClient, governor: RateLimitGovernor,
                 include_loc: bool = True, include_repo_details: bool = True,
                 min_stars: int = 0):
        self.http = http
        self.governor = governor
        self.include_loc = include_loc
        self.include_repo_details = include_repo_details
        self.min_stars = min_stars

        self._contributions: Dict[str, Contribution] = {}
        self._repo_cache: Dict[str, Optional[RepositoryDetail]] = {}
        self.errors: List[Exception] = []
        self.hits_seen = 0
        self.hits_skipped = 0

    @property
    def contributions(self) -> List[Contribution]:
        return list(self._contributions.values())

    def __len__(self) -> int:
        return len(self._contributions)

    def add(self, hit: IssueHit) -> Optional[Contribution]:
        """Fold one search hit; returns the updated contribution or None if skipped."""
        self.hits_seen += 1
        merged_at = hit.merged_at
        if merged_at is None:
            self.hits_skipped += 1
            logger.debug(f"Skipping #{hit.number}: not merged")
            return None

        try:
            owner, repo_name = parse_repo_url(hit.repository_url)
        except OssStatsError as e:
            self.hits_skipped += 1
            logger.warning(f"Skipping #{hit.number}: {e}")
            self.errors.append(e)
            return None

        full_name = f"{owner}/{repo_name}"
        contribution = self._contributions.get(full_name)
        is_new = contribution is None
        if is_new:
            contribution = Contribution(
                repo_full_name=full_name,
                owner=owner,
                repo_name=repo_name,
                repo_url=f"https://github.com/{full_name}",
            )
        contribution.record_merge(merged_at)

        if is_new:
            # stored only once it holds a merge
            self._contributions[full_name] = contribution
            if self.include_repo_details:
                detail = self._fetch_repository(owner, repo_name)
                if detail is not None:
                    contribution.apply_repository(detail)

        if self.include_loc:
            detail = self._fetch_pull_request(owner, repo_name, hit.number)
            if detail is not None:
                contribution.add_pull_request(detail)

        return contribution

    def _fetch_repository(self, owner: str, repo_name: str) -> Optional[RepositoryDetail]:
        full_name = f"{owner}/{repo_name}"
        if full_name in self._repo_cache:
            return self._repo_cache[full_name]

        detail = None
        try:
            detail = self.governor.call(
                lambda: self.http.get_json(f"/repos/{owner}/{repo_name}", model=RepositoryDetail),
                description=f"repository {full_name}",
            ).data
        except FATAL_ERRORS:
            raise
        except OssStatsError as e:
            logger.warning(f"Could not fetch repository {full_name}: {e}")
            self.errors.append(e)

        self._repo_cache[full_name] = detail
        return detail

    def _fetch_pull_request(self, owner: str, repo_name: str, number: int) -> Optional[PullRequestDetail]:
        try:
            return self.governor.call(
                lambda: self.http.get_json(f"/repos/{owner}/{repo_name}/pulls/{number}", model=PullRequestDetail),
                description=f"pull request {owner}/{repo_name}#{number}",
            ).data
        except FATAL_ERRORS:
            raise
        except OssStatsError as e:
            logger.warning(f"Could not fetch {owner}/{repo_name}#{number}, counting it without line stats: {e}")
            self.errors.append(e)
            return None

    def _meets_star_threshold(self, contribution: Contribution) -> bool:
        if self.min_stars <= 0:
            return True
        # repositories whose metadata could not be fetched have unknown stars and are kept
        if self._repo_cache.get(contribution.repo_full_name) is None:
            return True
        return contribution.stars >= self.min_stars

    def build(self, username: str, sort_by: str = DEFAULT_SORT_BY,
              generated_at: Optional[datetime] = None) -> Stats:
        """Snapshot the current contributions into an immutable Stats."""
        kept = [replace(c) for c in self._contributions.values() if self._meets_star_threshold(c)]
        dropped = len(self._contributions) - len(kept)
        if dropped:
            logger.info(f"Excluded {dropped} repositories below {self.min_stars} stars")

        contributions = sort_contributions(kept, sort_by)
        return Stats(
            username=username,
            generated_at=generated_at or datetime.now(timezone.utc),
            summary=Summary.from_contributions(contributions),
            contributions=contributions,
        )

    def fold(self, hits: Iterable[IssueHit], username: str, sort_by: str = DEFAULT_SORT_BY) -> Stats:
        for hit in hits:
            self.add(hit)
        return self.build(username, sort_by)
