"""Configuration settings for the OSS stats collector."""

import os
from dataclasses import dataclass
from typing import Optional

from .exceptions import ConfigurationError

# GitHub API
GITHUB_API_BASE_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"
GITHUB_ACCEPT_HEADER = "application/vnd.github+json"
USER_AGENT = "gh-oss-stats-py"

DEFAULT_HEADERS = {
    "Accept": GITHUB_ACCEPT_HEADER,
    "X-GitHub-Api-Version": GITHUB_API_VERSION,
    "User-Agent": USER_AGENT,
}

# Rate limit headers
RATE_LIMIT_REMAINING_HEADER = "X-RateLimit-Remaining"
RATE_LIMIT_RESET_HEADER = "X-RateLimit-Reset"
RETRY_AFTER_HEADER = "Retry-After"
LINK_HEADER = "Link"

# Rate limit policy
SEARCH_API_DELAY = 2.0  # seconds between search calls (30 requests/minute)
MAX_BACKOFF_ATTEMPTS = 5
INITIAL_BACKOFF_DELAY = 1.0  # seconds
RATE_LIMIT_RESET_BUFFER = 5.0  # seconds added on top of the reset time
LOW_QUOTA_THRESHOLD = 10

# Search
SEARCH_QUERY_TEMPLATE = "author:{username} is:pr is:merged archived:false"
SEARCH_PER_PAGE = 100  # GitHub maximum
SEARCH_RESULT_CAP = 1000  # GitHub never returns more than this for a query

# Request configuration
REQUEST_TIMEOUT = float(os.getenv("OSS_STATS_TIMEOUT", "30"))
TRANSPORT_RETRIES = 3
TRANSPORT_RETRY_DELAY = 1  # seconds

# Collection defaults
GITHUB_TOKEN = os.getenv("GITHUB_TOKEN", "")
DEFAULT_MAX_PRS = int(os.getenv("OSS_STATS_MAX_PRS", "500"))
DEFAULT_MIN_STARS = int(os.getenv("OSS_STATS_MIN_STARS", "0"))

SORT_KEYS = ("prs", "stars", "commits")
DEFAULT_SORT_BY = "prs"

# Badge
BADGE_STYLES = ("summary", "compact")
BADGE_THEMES = ("dark", "light")
DEFAULT_BADGE_STYLE = "summary"
DEFAULT_BADGE_THEME = "dark"
DEFAULT_BADGE_LIMIT = 5
DEFAULT_BADGE_OUTPUT = "badge.svg"

# Logging configuration
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", "")
LOG_FORMAT = "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"


@dataclass(frozen=True)
class ClientConfig:
    """Options for a single collection run, fixed at construction."""
    token: Optional[str] = None
    timeout: float = REQUEST_TIMEOUT
    include_loc: bool = True  # fetch commits/additions/deletions per PR
    include_repo_details: bool = True  # fetch stars/description per repository
    min_stars: int = DEFAULT_MIN_STARS
    max_prs: int = DEFAULT_MAX_PRS
    per_page: int = SEARCH_PER_PAGE
    sort_by: str = DEFAULT_SORT_BY
    exclude_own_repos: bool = True
    transport_retries: int = TRANSPORT_RETRIES
    base_url: str = GITHUB_API_BASE_URL

    def validate(self) -> "ClientConfig":
        """Raise ConfigurationError on the first invalid field."""
        if self.timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout}")
        if self.min_stars < 0:
            raise ConfigurationError(f"min_stars must be >= 0, got {self.min_stars}")
        if self.min_stars > 0 and not self.include_repo_details:
            raise ConfigurationError("min_stars needs include_repo_details to know star counts")
        if self.max_prs <= 0:
            raise ConfigurationError(f"max_prs must be positive, got {self.max_prs}")
        if not 1 <= self.per_page <= SEARCH_PER_PAGE:
            raise ConfigurationError(
                f"per_page must be between 1 and {SEARCH_PER_PAGE}, got {self.per_page}"
            )
        if self.sort_by not in SORT_KEYS:
            raise ConfigurationError(
                f"sort_by must be one of {', '.join(SORT_KEYS)}, got {self.sort_by!r}"
            )
        if self.transport_retries < 1:
            raise ConfigurationError(
                f"transport_retries must be >= 1, got {self.transport_retries}"
            )
        if not self.base_url.startswith(("http://", "https://")):
            raise ConfigurationError(f"base_url must be an http(s) URL, got {self.base_url!r}")
        return self
