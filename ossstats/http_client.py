"""HTTP transport for the GitHub REST API with connection-level retries."""

import threading
from typing import Any, Dict, Mapping, NamedTuple, Optional

import requests
from loguru import logger
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .config import (
    DEFAULT_HEADERS,
    GITHUB_API_BASE_URL,
    REQUEST_TIMEOUT,
    TRANSPORT_RETRIES,
    TRANSPORT_RETRY_DELAY,
)
from .exceptions import Cancelled, DecodeError, HTTPStatusError, NotFoundError, TransportError


class ApiResponse(NamedTuple):
    """Decoded body plus the response metadata the rate limiter needs."""
    data: Any
    status_code: int
    headers: Mapping[str, str]
    url: str


class HTTPClient:
    """Authenticated requests session bound to one API origin."""

    def __init__(self, token: Optional[str] = None, base_url: str = GITHUB_API_BASE_URL,
                 timeout: float = REQUEST_TIMEOUT, retries: int = TRANSPORT_RETRIES,
                 cancel_event: Optional[threading.Event] = None,
                 session: Optional[requests.Session] = None):
        self.session = session if session is not None else requests.Session()
        self.session.headers.update(DEFAULT_HEADERS)
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retries = retries
        self.cancel_event = cancel_event if cancel_event is not None else threading.Event()
        self.request_count = 0

    def _sleep(self, seconds: float) -> None:
        """tenacity sleep hook; wakes early when the run is cancelled."""
        if self.cancel_event.wait(seconds):
            raise Cancelled("cancelled while retrying a failed connection")

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return self.base_url + path

    def _send(self, method: str, url: str, params: Optional[Dict[str, Any]],
              body: Optional[Any]) -> requests.Response:
        self.request_count += 1
        logger.debug(f"{method} {url} params={params}")
        return self.session.request(method, url, params=params, json=body, timeout=self.timeout)

    def execute(self, method: str, path: str, params: Optional[Dict[str, Any]] = None,
                body: Optional[Any] = None) -> requests.Response:
        """Send a request and return the raw response whatever its status."""
        if self.cancel_event.is_set():
            raise Cancelled()

        url = self._url(path)
        retrying = Retrying(
            stop=stop_after_attempt(self.retries),
            wait=wait_exponential(multiplier=TRANSPORT_RETRY_DELAY, max=30),
            retry=retry_if_exception_type((requests.Timeout, requests.ConnectionError)),
            sleep=self._sleep,
            reraise=True,
        )
        try:
            return retrying(self._send, method, url, params, body)
        except requests.Timeout as e:
            logger.warning(f"Request timed out for {url}: {e}")
            raise TransportError(f"timeout after {self.retries} attempts: {url}") from e
        except requests.RequestException as e:
            logger.warning(f"Request failed for {url}: {e}")
            raise TransportError(f"request failed: {url}: {e}") from e

    def get_json(self, path: str, params: Optional[Dict[str, Any]] = None,
                 model: Optional[Any] = None) -> ApiResponse:
        """GET and decode a JSON body, optionally into a dataclass_json model.

        Statuses >= 400 raise HTTPStatusError carrying the raw body and headers.
        """
        response = self.execute("GET", path, params=params)

        if response.status_code >= 400:
            error_cls = NotFoundError if response.status_code == 404 else HTTPStatusError
            raise error_cls(response.status_code, response.text, response.headers, response.url)

        try:
            payload = response.json()
        except ValueError as e:
            raise DecodeError(f"invalid JSON from {response.url}: {e}") from e

        if model is not None:
            try:
                payload = model.from_dict(payload)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                raise DecodeError(f"unexpected {model.__name__} payload from {response.url}: {e}") from e

        return ApiResponse(payload, response.status_code, response.headers, response.url)

    def close(self):
        """Close the session."""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
