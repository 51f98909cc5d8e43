"""
Shared test fixtures: an in-memory GitHub transport and record builders
"""

import copy
import threading
from typing import Any, Callable, Dict, List, Optional, Union
from urllib.parse import parse_qsl, urlsplit

import pytest

from contriblens.client import GithubClient
from contriblens.config import DEFAULT_CONFIG, Configuration
from contriblens.errors import ResourceNotFoundError

Route = Union[List[Any], Dict[str, Any], Exception, Callable[[Dict[str, str]], Any]]


class FakeResponse:
    def __init__(self, payload: Any, status_code: int = 200) -> None:
        self._payload = payload
        self.status_code = status_code
        self.text = repr(payload)

    def json(self) -> Any:
        return copy.deepcopy(self._payload)


class FakeTransport:
    """
    Serves canned payloads keyed by endpoint path.

    A list route is paginated with the page/per_page query parameters, a callable
    route receives the decoded query parameters, an exception route is raised and
    an unknown path answers 404.
    """

    def __init__(self, routes: Optional[Dict[str, Route]] = None) -> None:
        self.routes: Dict[str, Route] = dict(routes or {})
        self.calls: List[str] = []
        self.requests_made = 0
        self._lock = threading.Lock()

    def add(self, path: str, route: Route) -> None:
        self.routes[path] = route

    def calls_to(self, path: str) -> List[str]:
        return [call for call in self.calls if urlsplit(call).path == path]

    def get_json(self, endpoint: str) -> Any:
        with self._lock:
            self.calls.append(endpoint)
            self.requests_made += 1

        parsed = urlsplit(endpoint)
        params = dict(parse_qsl(parsed.query))
        if parsed.path not in self.routes:
            raise ResourceNotFoundError("Resource not found", status_code=404, endpoint=endpoint)

        route = self.routes[parsed.path]
        if isinstance(route, Exception):
            raise route
        payload = route(params) if callable(route) else route
        if isinstance(payload, Exception):
            raise payload
        if isinstance(payload, list):
            page = int(params.get("page", 1))
            per_page = int(params.get("per_page", 100))
            payload = payload[(page - 1) * per_page:page * per_page]
        return copy.deepcopy(payload)

    def get(self, endpoint: str, headers: Optional[Dict[str, str]] = None) -> FakeResponse:
        return FakeResponse(self.get_json(endpoint))


def search_route(results: Dict[str, List[Dict[str, Any]]]) -> Callable[[Dict[str, str]], Dict[str, Any]]:
    """Search endpoint answering each query string with its items (unknown queries match nothing)"""

    def route(params: Dict[str, str]) -> Dict[str, Any]:
        items = results.get(params["q"], [])
        return {"total_count": len(items), "items": items}

    return route


def repo_payload(repo_id: int, name: str, org: str = "acme") -> Dict[str, Any]:
    return {"id": repo_id, "name": name, "full_name": f"{org}/{name}"}


def commit_payload(sha: str, date: str, login: str = "jdoe", message: str = "Update") -> Dict[str, Any]:
    return {
        "sha": sha,
        "author": {"login": login},
        "commit": {"author": {"name": login, "date": date}, "message": message},
    }


def pull_payload(number: int, created_at: str, login: str = "jdoe", title: str = "Change") -> Dict[str, Any]:
    return {
        "number": number,
        "user": {"login": login},
        "created_at": created_at,
        "state": "open",
        "title": title,
        "merged_at": None,
    }


def review_payload(review_id: int, submitted_at: str, login: str = "jdoe",
                   state: str = "APPROVED", body: str = "LGTM") -> Dict[str, Any]:
    return {
        "id": review_id,
        "user": {"login": login},
        "state": state,
        "body": body,
        "submitted_at": submitted_at,
    }


def issue_payload(issue_id: int, number: int, created_at: str, login: str = "jdoe",
                  is_pull_request: bool = False) -> Dict[str, Any]:
    data = {
        "id": issue_id,
        "number": number,
        "user": {"login": login},
        "created_at": created_at,
        "state": "open",
        "title": f"Issue {number}",
    }
    if is_pull_request:
        data["pull_request"] = {"url": f"https://api.github.com/repos/acme/widgets/pulls/{number}"}
    return data


def comment_payload(comment_id: int, created_at: str, login: str = "jdoe", body: str = "Nice",
                    review_id: Optional[int] = None) -> Dict[str, Any]:
    data = {
        "id": comment_id,
        "user": {"login": login},
        "created_at": created_at,
        "body": body,
    }
    if review_id is not None:
        data["pull_request_review_id"] = review_id
    return data


@pytest.fixture
def config(tmp_path) -> Configuration:
    """Configuration for tests: no sleeping, no commit enrichment, data under tmp_path"""
    test_config: Configuration = DEFAULT_CONFIG.copy()
    test_config.update({
        "GITHUB_TOKEN": "test-token",
        "GITHUB_ORG": "acme",
        "DATA_DIRECTORY": str(tmp_path / "data"),
        "DISABLE_SLEEP": True,
        "MAX_PARALLEL_WORKERS": 2,
        "ENRICH_COMMIT_STATS": False,
    })
    return test_config


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def client(config, transport) -> GithubClient:
    return GithubClient(config, transport=transport)


@pytest.fixture
def widgets_transport(transport) -> FakeTransport:
    """
    acme/widgets: three commits by jdoe (one before 2025-01-01), one PR by jdoe
    with two reviews (one by jdoe) and no issues or comments.
    """
    base = "/repos/acme/widgets"
    transport.add(f"{base}/commits", [
        commit_payload("a1", "2025-01-05T10:00:00Z"),
        commit_payload("b2", "2025-01-20T23:59:59Z"),
        commit_payload("c3", "2024-12-31T23:59:59Z"),
    ])
    transport.add(f"{base}/pulls", [pull_payload(7, "2025-01-10T09:00:00Z")])
    transport.add(f"{base}/pulls/7/reviews", [
        review_payload(701, "2025-01-11T12:00:00Z", login="jdoe"),
        review_payload(702, "2025-01-12T12:00:00Z", login="alice"),
    ])
    transport.add(f"{base}/issues", [])
    transport.add(f"{base}/issues/comments", [])
    transport.add(f"{base}/pulls/comments", [])
    return transport
