"""SVG badge rendering for collected stats."""

from string import Template
from typing import Dict
from xml.sax.saxutils import escape

from .aggregator import sort_contributions
from .config import (
    BADGE_STYLES,
    BADGE_THEMES,
    DEFAULT_BADGE_LIMIT,
    DEFAULT_BADGE_STYLE,
    DEFAULT_BADGE_THEME,
    DEFAULT_SORT_BY,
)
from .exceptions import ConfigurationError
from .models import Stats
from .utils import format_count

THEMES: Dict[str, Dict[str, str]] = {
    "dark": {
        "background": "#0d1117",
        "background_alt": "#161b22",
        "text": "#e6edf3",
        "text_secondary": "#8b949e",
        "accent": "#2f81f7",
    },
    "light": {
        "background": "#ffffff",
        "background_alt": "#f6f8fa",
        "text": "#1f2328",
        "text_secondary": "#656d76",
        "accent": "#0969da",
    },
}

_STYLE = """  <defs>
    <style>
      text { font-family: system-ui, -apple-system, "Segoe UI", Helvetica, Arial, sans-serif; }
      .bg { fill: $background; }
      .card { fill: $background_alt; }
      .title { font-size: 18px; font-weight: 700; fill: $text; }
      .subtitle { font-size: 12px; fill: $text_secondary; }
      .value { font-size: 26px; font-weight: 700; fill: $text; }
      .label { font-size: 11px; fill: $text_secondary; }
      .row { font-size: 12px; fill: $text; }
      .accent { fill: $accent; }
    </style>
  </defs>
"""

SUMMARY_TEMPLATE = Template("""<svg width="400" height="$height" viewBox="0 0 400 $height" xmlns="http://www.w3.org/2000/svg" role="img" aria-label="Open Source Contribution Summary">
""" + _STYLE + """  <rect class="bg" width="400" height="$height" rx="16"/>
  <text class="title" x="28" y="42">@$username</text>
  <text class="subtitle" x="28" y="62">open source contributions</text>
  <rect class="card" x="22" y="91" width="108" height="70" rx="10"/>
  <rect class="card" x="146" y="91" width="108" height="70" rx="10"/>
  <rect class="card" x="270" y="91" width="108" height="70" rx="10"/>
  <text class="value" x="76" y="123" text-anchor="middle">$projects</text>
  <text class="label" x="76" y="144" text-anchor="middle">PROJECTS</text>
  <text class="value" x="200" y="123" text-anchor="middle">$prs</text>
  <text class="label" x="200" y="144" text-anchor="middle">PRS MERGED</text>
  <text class="value" x="324" y="123" text-anchor="middle">$lines</text>
  <text class="label" x="324" y="144" text-anchor="middle">LINES CHANGED</text>
$rows</svg>
""")

ROW_TEMPLATE = Template(
    '  <text class="row" x="28" y="$y">$repo</text>\n'
    '  <text class="row accent" x="372" y="$y" text-anchor="end">$prs PRs</text>\n'
)

COMPACT_TEMPLATE = Template("""<svg width="280" height="32" viewBox="0 0 280 32" xmlns="http://www.w3.org/2000/svg" role="img" aria-label="OSS Contributions">
""" + _STYLE + """  <rect class="bg" width="280" height="32" rx="6"/>
  <rect class="accent" width="96" height="32" rx="6"/>
  <text class="row" x="48" y="21" text-anchor="middle">OSS</text>
  <text class="row" x="188" y="21" text-anchor="middle">$prs PRs · $projects projects</text>
</svg>
""")

ROW_HEIGHT = 22
ROWS_TOP = 196


def render_badge(stats: Stats, style: str = DEFAULT_BADGE_STYLE, theme: str = DEFAULT_BADGE_THEME,
                 limit: int = DEFAULT_BADGE_LIMIT, sort_by: str = DEFAULT_SORT_BY) -> str:
    """Render ``stats`` as an SVG document.

    The summary style lists the top ``limit`` contributions under the totals.
    """
    if style not in BADGE_STYLES:
        raise ConfigurationError(f"unknown badge style {style!r}; expected one of {', '.join(BADGE_STYLES)}")
    if theme not in BADGE_THEMES:
        raise ConfigurationError(f"unknown badge theme {theme!r}; expected one of {', '.join(BADGE_THEMES)}")

    summary = stats.summary
    values = dict(THEMES[theme])
    values.update(
        username=escape(stats.username),
        projects=format_count(summary.total_projects),
        prs=format_count(summary.total_prs_merged),
        lines=format_count(summary.total_additions + summary.total_deletions),
    )

    if style == "compact":
        return COMPACT_TEMPLATE.substitute(values)

    top = sort_contributions(stats.contributions, sort_by)[:max(0, limit)]
    rows = "".join(
        ROW_TEMPLATE.substitute(
            y=ROWS_TOP + i * ROW_HEIGHT,
            repo=escape(c.repo_full_name),
            prs=c.prs_merged,
        )
        for i, c in enumerate(top)
    )
    values.update(rows=rows, height=ROWS_TOP - 12 + len(top) * ROW_HEIGHT if top else 200)
    return SUMMARY_TEMPLATE.substitute(values)
