"""Command line interface for the OSS stats collector."""

import signal
import sys
from datetime import datetime, timezone
from typing import Optional

import click
from loguru import logger

from .__version__ import __version__
from .badge import render_badge
from .client import OssStatsClient
from .config import (
    BADGE_STYLES,
    BADGE_THEMES,
    DEFAULT_BADGE_LIMIT,
    DEFAULT_BADGE_OUTPUT,
    DEFAULT_BADGE_STYLE,
    DEFAULT_BADGE_THEME,
    DEFAULT_MAX_PRS,
    DEFAULT_MIN_STARS,
    DEFAULT_SORT_BY,
    LOG_FILE,
    LOG_FORMAT,
    LOG_LEVEL,
    REQUEST_TIMEOUT,
    SORT_KEYS,
    ClientConfig,
)
from .exceptions import (
    AuthenticationFailed,
    Cancelled,
    ConfigurationError,
    OssStatsError,
    PartialResults,
    RateLimited,
    UserNotFound,
)
from .io_handler import InputHandler, OutputHandler
from .models import Stats
from .utils import format_timestamp


def setup_logging(log_level: str = LOG_LEVEL, log_file: Optional[str] = LOG_FILE):
    """Setup logging configuration."""
    # Remove default logger
    logger.remove()

    # stdout carries the stats JSON, so the console sink goes to stderr
    logger.add(
        sys.stderr,
        format=LOG_FORMAT,
        level=log_level,
        colorize=True
    )

    if log_file:
        logger.add(
            log_file,
            format=LOG_FORMAT,
            level=log_level,
            rotation="10 MB",
            retention="7 days"
        )


def badge_options(func):
    """Options shared by every command that can render a badge."""
    func = click.option('--badge-limit', type=int, default=DEFAULT_BADGE_LIMIT, show_default=True,
                        help='Number of contributions listed on the badge')(func)
    func = click.option('--badge-output', default=DEFAULT_BADGE_OUTPUT, show_default=True,
                        help='Badge output file')(func)
    func = click.option('--badge-theme', type=click.Choice(BADGE_THEMES), default=DEFAULT_BADGE_THEME,
                        show_default=True, help='Badge colour theme')(func)
    func = click.option('--badge-style', type=click.Choice(BADGE_STYLES), default=DEFAULT_BADGE_STYLE,
                        show_default=True, help='Badge layout')(func)
    return func


def log_options(func):
    func = click.option('--log-file', default=LOG_FILE or None, help='Also log to this file')(func)
    func = click.option('--log-level', '-l', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR']),
                        default=LOG_LEVEL, show_default=True, help='Logging level')(func)
    return func


def write_outputs(stats: Stats, output: Optional[str], badge: bool, badge_style: str, badge_theme: str,
                  badge_output: str, badge_limit: int, sort_by: str = DEFAULT_SORT_BY) -> bool:
    ok = True
    if output:
        ok = OutputHandler.save_stats(stats, output)
    else:
        click.echo(OutputHandler.stats_to_json(stats))

    if badge:
        svg = render_badge(stats, style=badge_style, theme=badge_theme, limit=badge_limit, sort_by=sort_by)
        ok = OutputHandler.save_badge(svg, badge_output) and ok
    return ok


@click.group()
@click.version_option(__version__, prog_name='gh-oss-stats')
def main():
    """GitHub open source contribution stats.

    Collects merged pull requests a user authored in repositories they do not
    own and summarises them as JSON and, optionally, an SVG badge.
    """


@main.command()
@click.argument('username')
@click.option('--token', '-t', envvar='GITHUB_TOKEN', default=None,
              help='GitHub token (default: $GITHUB_TOKEN)')
@click.option('--min-stars', '-s', type=int, default=DEFAULT_MIN_STARS, show_default=True,
              help='Drop repositories with fewer stars')
@click.option('--max-prs', '-m', type=int, default=DEFAULT_MAX_PRS, show_default=True,
              help='Maximum number of merged PRs to fetch')
@click.option('--sort', 'sort_by', type=click.Choice(SORT_KEYS), default=DEFAULT_SORT_BY, show_default=True,
              help='Order contributions by')
@click.option('--no-loc', is_flag=True, help='Skip per-PR commit and line counts')
@click.option('--no-repo-details', is_flag=True, help='Skip repository stars and description')
@click.option('--include-own', is_flag=True, help="Keep PRs to the user's own repositories")
@click.option('--timeout', type=float, default=REQUEST_TIMEOUT, show_default=True,
              help='Per-request timeout in seconds')
@click.option('--output', '-o', default=None, help='Write stats JSON here instead of stdout')
@click.option('--badge', is_flag=True, help='Also render an SVG badge')
@badge_options
@log_options
def collect(username: str, token: Optional[str], min_stars: int, max_prs: int, sort_by: str, no_loc: bool,
            no_repo_details: bool, include_own: bool, timeout: float, output: Optional[str], badge: bool,
            badge_style: str, badge_theme: str, badge_output: str, badge_limit: int,
            log_level: str, log_file: Optional[str]):
    """Collect stats for USERNAME from the GitHub API.

    Example usage:

        gh-oss-stats collect octocat --min-stars 100 -o stats.json --badge
    """
    setup_logging(log_level, log_file)

    try:
        config = ClientConfig(
            token=token,
            timeout=timeout,
            include_loc=not no_loc,
            include_repo_details=not no_repo_details,
            min_stars=min_stars,
            max_prs=max_prs,
            sort_by=sort_by,
            exclude_own_repos=not include_own,
        ).validate()
        client = OssStatsClient(config)
    except ConfigurationError as e:
        raise click.BadParameter(str(e))

    def _interrupt(signum, frame):
        logger.warning("Interrupted; finishing with what has been collected so far")
        client.cancel()

    previous_handler = signal.signal(signal.SIGINT, _interrupt)
    stats: Optional[Stats] = None
    exit_code = 0
    try:
        with client:
            stats = client.collect(username)
    except PartialResults as e:
        logger.warning(f"{e}; line counts or repository details are incomplete")
        for error in e.errors:
            logger.debug(f"  {error}")
        stats = e.stats
    except RateLimited as e:
        reset = e.reset_at.isoformat() if e.reset_at else "unknown"
        logger.error(f"GitHub rate limit exhausted; try again after {reset}")
        stats, exit_code = e.stats, 1
    except Cancelled as e:
        logger.error(f"Collection cancelled: {e}")
        stats, exit_code = e.stats, 1
    except UserNotFound as e:
        logger.error(f"No merged pull requests found for {e.username}")
        sys.exit(1)
    except AuthenticationFailed as e:
        logger.error(f"{e}; check the token passed with --token or $GITHUB_TOKEN")
        sys.exit(1)
    except OssStatsError as e:
        logger.error(f"Collection failed: {e}")
        sys.exit(1)
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    if stats is not None:
        if exit_code:
            logger.warning("Writing partial stats")
        if not write_outputs(stats, output, badge, badge_style, badge_theme, badge_output, badge_limit, sort_by):
            exit_code = 1
    sys.exit(exit_code)


@main.command()
@click.argument('stats_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--sort', 'sort_by', type=click.Choice(SORT_KEYS), default=DEFAULT_SORT_BY, show_default=True,
              help='Order contributions by')
@badge_options
@log_options
def badge(stats_file: str, sort_by: str, badge_style: str, badge_theme: str, badge_output: str,
          badge_limit: int, log_level: str, log_file: Optional[str]):
    """Render a badge from a STATS_FILE written by `collect`."""
    setup_logging(log_level, log_file)

    stats = InputHandler.load_stats(stats_file)
    if stats is None:
        sys.exit(1)

    svg = render_badge(stats, style=badge_style, theme=badge_theme, limit=badge_limit, sort_by=sort_by)
    if not OutputHandler.save_badge(svg, badge_output):
        sys.exit(1)


@main.command('rate-limit')
@click.option('--token', '-t', envvar='GITHUB_TOKEN', default=None,
              help='GitHub token (default: $GITHUB_TOKEN)')
@log_options
def rate_limit(token: Optional[str], log_level: str, log_file: Optional[str]):
    """Show the remaining core and search quota."""
    setup_logging(log_level, log_file)

    try:
        with OssStatsClient(ClientConfig(token=token)) as client:
            status = client.get_rate_limit()
    except OssStatsError as e:
        logger.error(f"Could not read rate limit: {e}")
        sys.exit(1)

    for name, bucket in (("core", status.resources.core), ("search", status.resources.search)):
        reset = format_timestamp(datetime.fromtimestamp(bucket.reset, tz=timezone.utc))
        click.echo(f"{name:<7} {bucket.remaining}/{bucket.limit} remaining, resets at {reset}")


if __name__ == '__main__':
    main()
