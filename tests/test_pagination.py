"""
Unit tests for Link header parsing and the search walker.
"""

import pytest

from ossstats.exceptions import RateLimited
from ossstats.pagination import SEARCH_ISSUES_PATH, SearchWalker, parse_link_header

from .conftest import FakeResponse, make_item, search_page

NEXT_LINK = '<https://api.github.com/search/issues?q=x&page=2>; rel="next", ' \
            '<https://api.github.com/search/issues?q=x&page=5>; rel="last"'


def link(page, last):
    base = "https://api.github.com/search/issues?q=x"
    parts = []
    if page < last:
        parts.append(f'<{base}&page={page + 1}>; rel="next"')
    parts.append(f'<{base}&page={last}>; rel="last"')
    if page > 1:
        parts.append(f'<{base}&page=1>; rel="first"')
    return {"Link": ", ".join(parts)}


class TestParseLinkHeader:

    def test_standard_header(self):
        links = parse_link_header(NEXT_LINK)

        assert links == {
            "next": "https://api.github.com/search/issues?q=x&page=2",
            "last": "https://api.github.com/search/issues?q=x&page=5",
        }

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_empty_header(self, value):
        assert parse_link_header(value) == {}

    def test_tolerates_missing_separator_and_whitespace(self):
        links = parse_link_header('< https://a/2 >  rel="next" ,<https://a/9>;rel=last')

        assert links == {"next": "https://a/2", "last": "https://a/9"}

    def test_drops_malformed_segments(self):
        links = parse_link_header('garbage, <>; rel="prev", <https://a/2>; rel="next",')

        assert links == {"next": "https://a/2"}


class TestSearchWalker:

    def test_walks_all_pages_with_search_delay_between(self, http, session, governor, sleeper):
        session.add(
            SEARCH_ISSUES_PATH,
            search_page([make_item(1), make_item(2)], total_count=3, headers=link(1, 2)),
            search_page([make_item(3)], total_count=3, headers=link(2, 2)),
        )
        walker = SearchWalker(http, governor, per_page=2)

        hits = list(walker.walk("author:alice is:pr is:merged archived:false"))

        assert [hit.number for hit in hits] == [1, 2, 3]
        assert walker.total_count == 3
        assert walker.pages_fetched == 2
        assert sleeper.waits == [2.0]

        pages = [params["page"] for _, _, params in session.calls_to(SEARCH_ISSUES_PATH)]
        assert pages == [1, 2]
        first = session.calls_to(SEARCH_ISSUES_PATH)[0][2]
        assert first["q"] == "author:alice is:pr is:merged archived:false"
        assert first["per_page"] == 2
        assert first["sort"] == "updated"
        assert first["order"] == "desc"

    def test_short_page_ends_walk(self, http, session, governor):
        session.add(SEARCH_ISSUES_PATH, search_page([make_item(1)], total_count=50, headers=link(1, 3)))
        walker = SearchWalker(http, governor, per_page=2)

        assert len(list(walker.walk("q"))) == 1
        assert walker.pages_fetched == 1

    def test_limit_stops_mid_page(self, http, session, governor):
        session.add(
            SEARCH_ISSUES_PATH,
            search_page([make_item(1), make_item(2)], total_count=10, headers=link(1, 5)),
            search_page([make_item(3), make_item(4)], total_count=10, headers=link(2, 5)),
        )
        walker = SearchWalker(http, governor, per_page=2, limit=3)

        hits = list(walker.walk("q"))

        assert [hit.number for hit in hits] == [1, 2, 3]
        assert walker.pages_fetched == 2

    def test_total_count_reached_stops_before_next_page(self, http, session, governor, sleeper):
        session.add(SEARCH_ISSUES_PATH, search_page([make_item(1), make_item(2)], total_count=2, headers=link(1, 2)))
        walker = SearchWalker(http, governor, per_page=2)

        assert len(list(walker.walk("q"))) == 2
        assert walker.pages_fetched == 1
        assert sleeper.waits == []

    def test_missing_next_relation_ends_walk(self, http, session, governor):
        session.add(SEARCH_ISSUES_PATH, search_page([make_item(1), make_item(2)], total_count=10, headers=link(2, 2)))
        walker = SearchWalker(http, governor, per_page=2)

        assert len(list(walker.walk("q"))) == 2
        assert walker.pages_fetched == 1

    def test_empty_result(self, http, session, governor):
        session.add(SEARCH_ISSUES_PATH, search_page([], total_count=0))
        walker = SearchWalker(http, governor)

        assert list(walker.walk("q")) == []
        assert walker.total_count == 0

    def test_limit_is_capped_at_search_maximum(self, http, governor):
        assert SearchWalker(http, governor, limit=5000).limit == 1000
        assert SearchWalker(http, governor).limit == 1000

    def test_rate_limit_keeps_hits_already_yielded(self, http, session, governor, sleeper):
        session.add(
            SEARCH_ISSUES_PATH,
            search_page([make_item(1), make_item(2)], total_count=4, headers=link(1, 2)),
            FakeResponse(403, {"message": "API rate limit exceeded"}),
        )
        walker = SearchWalker(http, governor, per_page=2)
        received = []

        with pytest.raises(RateLimited):
            for hit in walker.walk("q"):
                received.append(hit.number)

        assert received == [1, 2]
        # search spacing, then 1, 2, 4, 8, 16 backoff
        assert sleeper.waits == [2.0, 1, 2, 4, 8, 16]
