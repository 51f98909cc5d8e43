"""
GitHub API Transport Module

This module provides the low level access to the GitHub REST and search APIs:
- RateLimiter: fixed delay between consecutive calls of one API class
- HttpTransport: authenticated requests, status code mapping and retries
  on transient connection failures
- PaginatedFetcher: drives a REST list endpoint page by page
- SearchPaginator: drives a search endpoint within the 1000 result cap
"""

import threading
import time
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import urlencode

import requests
from requests.adapters import HTTPAdapter
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from contriblens.config import Configuration
from contriblens.console import logger
from contriblens.errors import (
    ApiError,
    AuthenticationError,
    NetworkError,
    RateLimitError,
    RecordFormatError,
    ResourceNotFoundError,
)

GITHUB_API_URL = "https://api.github.com"
PER_PAGE = 100
SEARCH_RESULT_CAP = 1000


class RateLimiter:
    """
    Blocks the calling thread for a fixed delay between calls.

    One instance is shared by every fetch stream of the same API class; concurrent
    callers each sleep independently rather than coordinating a token bucket.
    """

    def __init__(self, delay: float, disabled: bool = False, name: str = "standard") -> None:
        self.delay = delay
        self.disabled = disabled
        self.name = name

    @classmethod
    def standard(cls, config: Configuration) -> "RateLimiter":
        """Short delay used between REST pages"""
        return cls(config["STANDARD_DELAY"], disabled=config["DISABLE_SLEEP"], name="standard")

    @classmethod
    def search(cls, config: Configuration) -> "RateLimiter":
        """Longer delay reflecting the stricter limits of the search API"""
        return cls(config["SEARCH_DELAY"], disabled=config["DISABLE_SLEEP"], name="search")

    def wait(self) -> None:
        if not self.disabled and self.delay > 0:
            time.sleep(self.delay)


class HttpTransport:
    """
    Issues authenticated requests against the GitHub API.

    Status codes are mapped to exactly one outcome: 200/201 return the response,
    401/403/404 raise AuthenticationError/RateLimitError/ResourceNotFoundError and
    anything else raises ApiError. HTTP errors are never retried; connection
    resets (also mid-body), TLS errors and timeouts are retried with a linearly
    increasing backoff. Any other requests failure surfaces as NetworkError.
    """

    RETRYABLE_ERRORS = (
        requests.exceptions.ConnectionError,
        requests.exceptions.Timeout,
        requests.exceptions.ChunkedEncodingError,
    )

    def __init__(
            self,
            token: str,
            base_url: str = GITHUB_API_URL,
            timeout: Tuple[float, float] = (30.0, 120.0),
            max_retries: int = 3,
            retry_backoff: float = 2.0,
            disable_sleep: bool = False,
            pool_size: int = 10,
            session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff
        self.disable_sleep = disable_sleep
        self.requests_made = 0
        self._counter_lock = threading.Lock()

        self.session = session or requests.Session()
        if session is None:
            adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size)
            self.session.mount("https://", adapter)
            self.session.mount("http://", adapter)
        self.session.headers.update({
            'Authorization': f'token {token}',
            'Accept': 'application/vnd.github.v3+json',
            'User-Agent': 'GHContribLens/1.0',
        })

    @classmethod
    def from_config(cls, config: Configuration) -> "HttpTransport":
        # Each worker runs up to five fetch streams concurrently
        pool_size = max(10, config["MAX_PARALLEL_WORKERS"] * 6)
        return cls(
            token=config["GITHUB_TOKEN"],
            timeout=(config["CONNECT_TIMEOUT"], config["READ_TIMEOUT"]),
            max_retries=config["MAX_RETRIES"],
            retry_backoff=config["RETRY_BACKOFF"],
            disable_sleep=config["DISABLE_SLEEP"],
            pool_size=pool_size,
        )

    def get(self, endpoint: str, headers: Optional[Dict[str, str]] = None) -> requests.Response:
        """GET an endpoint path (with optional query string) relative to the API root"""
        return self._request("GET", endpoint, headers=headers)

    def post(self, endpoint: str, body: Any, headers: Optional[Dict[str, str]] = None) -> requests.Response:
        """POST a JSON body to an endpoint path relative to the API root"""
        return self._request("POST", endpoint, headers=headers, json=body)

    def get_json(self, endpoint: str) -> Any:
        """GET an endpoint and decode its JSON body"""
        response = self.get(endpoint)
        try:
            return response.json()
        except ValueError:
            raise ApiError(
                "GitHub API returned a non-JSON body",
                status_code=response.status_code,
                endpoint=endpoint,
                body=response.text[:500],
            ) from None

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> requests.Response:
        url = f"{self.base_url}{endpoint}"
        retrying = Retrying(
            retry=retry_if_exception_type(self.RETRYABLE_ERRORS),
            wait=wait_incrementing(start=self.retry_backoff, increment=self.retry_backoff),
            stop=stop_after_attempt(self.max_retries + 1),
            sleep=self._sleep,
            before_sleep=self._log_retry(endpoint),
            reraise=True,
        )
        try:
            response = retrying(self._send, method, url, endpoint, **kwargs)
        except self.RETRYABLE_ERRORS as e:
            raise NetworkError(
                f"Request failed after {self.max_retries} retries: {e}",
                endpoint=endpoint,
            ) from e
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"Request failed: {e}", endpoint=endpoint) from e
        return self.handle_response(response, endpoint)

    def _send(self, method: str, url: str, endpoint: str, **kwargs: Any) -> requests.Response:
        logger.debug(f"{method} {endpoint}")
        response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        with self._counter_lock:
            self.requests_made += 1
        return response

    def _sleep(self, seconds: float) -> None:
        if not self.disable_sleep:
            time.sleep(seconds)

    def _log_retry(self, endpoint: str) -> Callable[[RetryCallState], None]:
        def log(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception()
            logger.warning(
                f"Connection problem on {endpoint} ({type(error).__name__}), "
                f"retry {retry_state.attempt_number}/{self.max_retries} "
                f"in {retry_state.next_action.sleep:.0f}s"
            )
        return log

    @staticmethod
    def handle_response(response: requests.Response, endpoint: str) -> requests.Response:
        """Map a response status code to a return value or a typed error"""
        status = response.status_code
        if status in (200, 201):
            return response
        if status == 401:
            raise AuthenticationError("Invalid GitHub token", status_code=401, endpoint=endpoint)
        if status == 403:
            raise RateLimitError(
                "Rate limit exceeded or insufficient permissions",
                status_code=403,
                endpoint=endpoint,
                body=response.text,
            )
        if status == 404:
            raise ResourceNotFoundError("Resource not found", status_code=404, endpoint=endpoint)
        raise ApiError(
            f"GitHub API error: {response.text}",
            status_code=status,
            endpoint=endpoint,
            body=response.text,
        )


def with_query(endpoint: str, params: Dict[str, Any]) -> str:
    """Append query parameters to an endpoint that may already carry some"""
    params = {key: value for key, value in params.items() if value is not None}
    if not params:
        return endpoint
    separator = "&" if "?" in endpoint else "?"
    return f"{endpoint}{separator}{urlencode(params)}"


class PaginatedFetcher:
    """
    Fetches every page of a REST list endpoint.

    Pages are requested from 1 upwards until an empty page is returned; the
    result is a fully materialized list.
    """

    def __init__(self, transport: HttpTransport, rate_limiter: RateLimiter) -> None:
        self.transport = transport
        self.rate_limiter = rate_limiter

    def fetch_all(self, endpoint: str, per_page: int = PER_PAGE) -> List[Dict[str, Any]]:
        results: List[Dict[str, Any]] = []
        page = 1
        while True:
            data = self.transport.get_json(with_query(endpoint, {"page": page, "per_page": per_page}))
            if not isinstance(data, list):
                raise RecordFormatError(f"Expected a list from {endpoint}, got {type(data).__name__}")
            if not data:
                break
            results.extend(data)
            page += 1
            self.rate_limiter.wait()
        return results


class SearchPaginator:
    """
    Fetches the pages of a search endpoint (``/search/repositories`` or ``/search/issues``).

    Stops on an empty page, once ``total_count`` items are gathered, or at the
    platform's 1000 result cap; truncation at the cap is logged as a warning.
    """

    def __init__(self, transport: HttpTransport, rate_limiter: RateLimiter) -> None:
        self.transport = transport
        self.rate_limiter = rate_limiter

    def search(self, kind: str, query: str, per_page: int = PER_PAGE) -> List[Dict[str, Any]]:
        results: List[Dict[str, Any]] = []
        page = 1
        while True:
            endpoint = f"/search/{kind}?" + urlencode({"q": query, "page": page, "per_page": per_page})
            data = self.transport.get_json(endpoint)
            items = data.get("items") or []
            if not items:
                break

            results.extend(items)
            total_count = data.get("total_count", len(results))
            if len(results) >= total_count:
                break
            if len(results) >= SEARCH_RESULT_CAP:
                logger.warning(
                    f"Search '{query}' matched {total_count} results; "
                    f"only the first {SEARCH_RESULT_CAP} are available"
                )
                break

            page += 1
            self.rate_limiter.wait()
        return results[:SEARCH_RESULT_CAP]
