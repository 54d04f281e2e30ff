"""
Tests for the click command line interface.
"""

import json
import sys
from datetime import datetime, timezone

import pytest
from click.testing import CliRunner
from loguru import logger

from ossstats import cli
from ossstats.exceptions import PartialResults, UserNotFound
from ossstats.io_handler import OutputHandler
from ossstats.models import Contribution, Stats, Summary


def sample_stats():
    contributions = [
        Contribution(repo_full_name="octo/widgets", owner="octo", repo_name="widgets", prs_merged=2,
                     first_contribution_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
                     last_contribution_at=datetime(2024, 3, 1, tzinfo=timezone.utc)),
    ]
    return Stats(
        username="alice",
        generated_at=datetime(2024, 6, 1, tzinfo=timezone.utc),
        summary=Summary.from_contributions(contributions),
        contributions=contributions,
    )


class FakeClient:
    """Replaces OssStatsClient; ``outcome`` is returned or raised by collect."""
    outcome = None
    config = None

    def __init__(self, config):
        FakeClient.config = config

    def collect(self, username):
        if isinstance(FakeClient.outcome, Exception):
            raise FakeClient.outcome
        return FakeClient.outcome

    def cancel(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *args):
        pass


@pytest.fixture(autouse=True)
def restore_logging():
    """The CLI points loguru at the runner's stderr; put the default sink back."""
    yield
    logger.remove()
    logger.add(sys.stderr)


@pytest.fixture
def runner(monkeypatch):
    monkeypatch.setattr(cli, "OssStatsClient", FakeClient)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    return CliRunner()


def test_collect_prints_stats_json(runner):
    FakeClient.outcome = sample_stats()

    result = runner.invoke(cli.main, ["collect", "alice", "--min-stars", "50", "--no-loc"])

    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["summary"]["totalPRsMerged"] == 2
    assert FakeClient.config.min_stars == 50
    assert FakeClient.config.include_loc is False
    assert FakeClient.config.exclude_own_repos is True


def test_collect_writes_output_and_badge(runner, tmp_path):
    FakeClient.outcome = sample_stats()
    output = tmp_path / "stats.json"
    badge = tmp_path / "badge.svg"

    result = runner.invoke(cli.main, ["collect", "alice", "-o", str(output),
                                      "--badge", "--badge-output", str(badge)])

    assert result.exit_code == 0, result.output
    assert json.loads(output.read_text())["username"] == "alice"
    assert badge.read_text().startswith("<svg")


def test_partial_results_still_written(runner):
    FakeClient.outcome = PartialResults(sample_stats(), [RuntimeError("boom")])

    result = runner.invoke(cli.main, ["collect", "alice"])

    assert result.exit_code == 0
    assert json.loads(result.stdout)["username"] == "alice"


def test_user_not_found_exits_nonzero(runner):
    FakeClient.outcome = UserNotFound("ghost")

    result = runner.invoke(cli.main, ["collect", "ghost"])

    assert result.exit_code == 1
    assert result.stdout == ""


def test_invalid_config_is_usage_error(runner):
    result = runner.invoke(cli.main, ["collect", "alice", "--max-prs", "0"])

    assert result.exit_code == 2


def test_badge_from_saved_stats(runner, tmp_path):
    stats_file = tmp_path / "stats.json"
    assert OutputHandler.save_stats(sample_stats(), str(stats_file))
    badge = tmp_path / "out" / "badge.svg"

    result = runner.invoke(cli.main, ["badge", str(stats_file), "--badge-style", "compact",
                                      "--badge-output", str(badge)])

    assert result.exit_code == 0, result.output
    assert "2 PRs" in badge.read_text()


def test_badge_from_invalid_file(runner, tmp_path):
    stats_file = tmp_path / "stats.json"
    stats_file.write_text("{not json")

    result = runner.invoke(cli.main, ["badge", str(stats_file)])

    assert result.exit_code == 1


def test_version(runner):
    result = runner.invoke(cli.main, ["--version"])

    assert result.exit_code == 0
    assert "gh-oss-stats" in result.output
