"""Data models for the OSS stats collector."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from dataclasses_json import LetterCase, Undefined, config, dataclass_json

from .utils import format_timestamp, parse_timestamp


def timestamp_field(**kwargs):
    """Dataclass field serialized as a GitHub-style ISO timestamp."""
    return field(metadata=config(encoder=format_timestamp, decoder=parse_timestamp), **kwargs)


# ---------------------------------------------------------------------------
# GitHub API payloads
# ---------------------------------------------------------------------------

@dataclass_json(undefined=Undefined.EXCLUDE)
@dataclass
class User:
    """A GitHub account as embedded in API payloads."""
    login: str = ""
    id: int = 0
    type: str = ""


@dataclass_json(undefined=Undefined.EXCLUDE)
@dataclass
class PullRequestRef:
    """The pull_request reference on a search hit; only present for PRs."""
    url: str = ""
    html_url: str = ""
    merged_at: Optional[datetime] = timestamp_field(default=None)


@dataclass_json(undefined=Undefined.EXCLUDE)
@dataclass
class IssueHit:
    """One entry of a search/issues result page."""
    number: int
    title: str
    state: str  # open, closed
    created_at: datetime = timestamp_field()
    updated_at: datetime = timestamp_field()
    closed_at: Optional[datetime] = timestamp_field(default=None)
    pull_request: Optional[PullRequestRef] = None
    repository_url: str = ""
    html_url: str = ""
    user: User = field(default_factory=User)

    @property
    def merged_at(self) -> Optional[datetime]:
        if self.pull_request is None:
            return None
        return self.pull_request.merged_at

    @property
    def author(self) -> str:
        return self.user.login


@dataclass_json(undefined=Undefined.EXCLUDE)
@dataclass
class SearchPage:
    """A single page of search/issues results."""
    total_count: int
    incomplete_results: bool = False
    items: List[IssueHit] = field(default_factory=list)


@dataclass_json(undefined=Undefined.EXCLUDE)
@dataclass
class PullRequestDetail:
    """The subset of /repos/{owner}/{repo}/pulls/{number} we use."""
    number: int
    merged: bool = False
    merged_at: Optional[datetime] = timestamp_field(default=None)
    commits: int = 0
    additions: int = 0
    deletions: int = 0
    changed_files: int = 0
    html_url: str = ""


@dataclass_json(undefined=Undefined.EXCLUDE)
@dataclass
class RepositoryDetail:
    """The subset of /repos/{owner}/{repo} we use."""
    name: str
    full_name: str
    description: Optional[str] = None
    html_url: str = ""
    stargazers_count: int = 0
    fork: bool = False
    language: Optional[str] = None
    owner: User = field(default_factory=User)


@dataclass_json(undefined=Undefined.EXCLUDE)
@dataclass
class RateLimitBucket:
    """One resource bucket of the /rate_limit endpoint."""
    limit: int = 0
    remaining: int = 0
    reset: int = 0  # Unix timestamp
    used: int = 0


@dataclass_json(undefined=Undefined.EXCLUDE)
@dataclass
class RateLimitResources:
    core: RateLimitBucket = field(default_factory=RateLimitBucket)
    search: RateLimitBucket = field(default_factory=RateLimitBucket)


@dataclass_json(undefined=Undefined.EXCLUDE)
@dataclass
class RateLimitStatus:
    """Response of the /rate_limit endpoint."""
    resources: RateLimitResources = field(default_factory=RateLimitResources)


@dataclass(frozen=True)
class RateLimitInfo:
    """Quota state read from one response's headers."""
    remaining: int
    reset_at: datetime


# ---------------------------------------------------------------------------
# Aggregated statistics
# ---------------------------------------------------------------------------

@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class Contribution:
    """A user's merged work in one external repository."""
    repo_full_name: str  # owner/repo
    owner: str
    repo_name: str
    description: str = ""
    repo_url: str = field(default="", metadata=config(field_name="repoURL"))
    stars: int = 0
    prs_merged: int = 0
    commits: int = 0
    additions: int = 0
    deletions: int = 0
    first_contribution_at: Optional[datetime] = timestamp_field(default=None)
    last_contribution_at: Optional[datetime] = timestamp_field(default=None)

    def record_merge(self, merged_at: datetime) -> None:
        """Count one merged PR and widen the contribution window to include it."""
        self.prs_merged += 1
        if self.first_contribution_at is None or merged_at < self.first_contribution_at:
            self.first_contribution_at = merged_at
        if self.last_contribution_at is None or merged_at > self.last_contribution_at:
            self.last_contribution_at = merged_at

    def add_pull_request(self, detail: PullRequestDetail) -> None:
        self.commits += detail.commits
        self.additions += detail.additions
        self.deletions += detail.deletions

    def apply_repository(self, detail: RepositoryDetail) -> None:
        self.stars = detail.stargazers_count
        self.description = detail.description or ""
        if detail.html_url:
            self.repo_url = detail.html_url


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass(frozen=True)
class Summary:
    """Totals across all contributions."""
    total_projects: int = 0
    total_prs_merged: int = field(default=0, metadata=config(field_name="totalPRsMerged"))
    total_commits: int = 0
    total_additions: int = 0
    total_deletions: int = 0

    @classmethod
    def from_contributions(cls, contributions: List[Contribution]) -> "Summary":
        return cls(
            total_projects=len(contributions),
            total_prs_merged=sum(c.prs_merged for c in contributions),
            total_commits=sum(c.commits for c in contributions),
            total_additions=sum(c.additions for c in contributions),
            total_deletions=sum(c.deletions for c in contributions),
        )


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass(frozen=True)
class Stats:
    """Finished result of one collection run."""
    username: str
    generated_at: datetime = timestamp_field()
    summary: Summary = field(default_factory=Summary)
    contributions: List[Contribution] = field(default_factory=list)
