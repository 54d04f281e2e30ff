"""
Tests for SVG badge rendering.
"""

from datetime import datetime, timezone

import pytest

from ossstats.badge import render_badge
from ossstats.exceptions import ConfigurationError
from ossstats.models import Contribution, Stats, Summary


@pytest.fixture
def stats():
    contributions = [
        Contribution(repo_full_name="octo/widgets", owner="octo", repo_name="widgets",
                     stars=1200, prs_merged=4, additions=900, deletions=300),
        Contribution(repo_full_name="acme/<tools>", owner="acme", repo_name="<tools>",
                     stars=10, prs_merged=1, additions=50, deletions=5),
    ]
    return Stats(
        username="alice",
        generated_at=datetime(2024, 6, 1, tzinfo=timezone.utc),
        summary=Summary.from_contributions(contributions),
        contributions=contributions,
    )


def test_summary_badge_shows_totals_and_top_repositories(stats):
    svg = render_badge(stats)

    assert svg.startswith("<svg")
    assert "@alice" in svg
    assert ">2</text>" in svg  # projects
    assert ">5</text>" in svg  # PRs merged
    assert ">1.3k</text>" in svg  # lines changed
    assert "octo/widgets" in svg
    assert "acme/&lt;tools&gt;" in svg
    assert "<tools>" not in svg


def test_limit_restricts_listed_repositories(stats):
    svg = render_badge(stats, limit=1)

    assert "octo/widgets" in svg
    assert "acme/" not in svg


def test_compact_badge(stats):
    svg = render_badge(stats, style="compact", theme="light")

    assert "5 PRs · 2 projects" in svg
    assert "#ffffff" in svg


@pytest.mark.parametrize("options", [{"style": "huge"}, {"theme": "neon"}])
def test_unknown_style_or_theme(stats, options):
    with pytest.raises(ConfigurationError):
        render_badge(stats, **options)
