"""
Shared fakes for the collector tests: an in-memory requests session and a
sleeper that records waits instead of blocking.
"""

import json
from urllib.parse import urlsplit

import pytest
from requests.structures import CaseInsensitiveDict

from ossstats.http_client import HTTPClient
from ossstats.rate_limit import RateLimitGovernor

NOW = 1_700_000_000.0


class FakeResponse:
    def __init__(self, status_code=200, payload=None, headers=None, text=None, url=""):
        self.status_code = status_code
        self.headers = CaseInsensitiveDict(headers or {})
        self.url = url
        if text is None:
            text = json.dumps(payload if payload is not None else {})
        self.text = text

    def json(self):
        return json.loads(self.text)


class FakeSession:
    """Routes requests by URL path to queued responses.

    Each path serves its queue in order and keeps repeating the last entry.
    Queue entries that are exceptions are raised instead of returned.
    """

    def __init__(self):
        self.headers = {}
        self.routes = {}
        self.calls = []
        self.closed = False

    def add(self, path, *responses):
        self.routes.setdefault(path, []).extend(responses)
        return self

    def request(self, method, url, params=None, json=None, timeout=None):
        path = urlsplit(url).path
        self.calls.append((method, path, dict(params or {})))
        queue = self.routes.get(path)
        if not queue:
            return FakeResponse(404, {"message": "Not Found"}, url=url)
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, Exception):
            raise response
        response.url = response.url or url
        return response

    def calls_to(self, path):
        return [call for call in self.calls if call[1] == path]

    def close(self):
        self.closed = True


class RecordingSleeper:
    """Stands in for threading.Event.wait; never blocks, never interrupted."""

    def __init__(self):
        self.waits = []

    def __call__(self, seconds):
        self.waits.append(seconds)
        return False


def make_item(number, repo="octo/widgets", merged_at="2024-01-01T00:00:00Z", user="alice"):
    """A search/issues item as GitHub returns it."""
    pull_request = {
        "url": f"https://api.github.com/repos/{repo}/pulls/{number}",
        "html_url": f"https://github.com/{repo}/pull/{number}",
        "merged_at": merged_at,
    }
    return {
        "number": number,
        "title": f"Change #{number}",
        "state": "closed",
        "created_at": "2023-12-01T10:00:00Z",
        "updated_at": "2024-03-02T10:00:00Z",
        "closed_at": merged_at,
        "pull_request": pull_request,
        "repository_url": f"https://api.github.com/repos/{repo}",
        "html_url": f"https://github.com/{repo}/pull/{number}",
        "user": {"login": user, "id": 1, "type": "User"},
        "labels": [],
    }


def search_page(items, total_count=None, headers=None):
    payload = {
        "total_count": len(items) if total_count is None else total_count,
        "incomplete_results": False,
        "items": items,
    }
    return FakeResponse(200, payload, headers=headers)


def pr_detail(number, commits=1, additions=10, deletions=2):
    return FakeResponse(200, {
        "number": number,
        "merged": True,
        "merged_at": "2024-01-01T00:00:00Z",
        "commits": commits,
        "additions": additions,
        "deletions": deletions,
        "changed_files": 1,
    })


def repo_detail(full_name, stars=100, description="A repository"):
    owner, name = full_name.split("/")
    return FakeResponse(200, {
        "name": name,
        "full_name": full_name,
        "description": description,
        "html_url": f"https://github.com/{full_name}",
        "stargazers_count": stars,
        "fork": False,
        "owner": {"login": owner, "id": 2, "type": "Organization"},
    })


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def sleeper():
    return RecordingSleeper()


@pytest.fixture
def http(session):
    client = HTTPClient(token="test-token", session=session, retries=1)
    yield client
    client.close()


@pytest.fixture
def governor(sleeper):
    return RateLimitGovernor(sleep=sleeper, clock=lambda: NOW)
