"""
HTTP Fetcher with bounded retry.

Wraps a `requests.Session` GET in the retry decorator and reports the outcome
as an explicit `FetchResult`, so callers can decide per outcome whether to
continue, skip or abort instead of relying on exception control flow.

Outcomes:
- OK: body retrieved
- ABORTED: the caller's cancel event was set; never retried
- EXHAUSTED: every attempt failed; wraps the last underlying error
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import requests

from .retry import RetryExhaustedError, retry_with_backoff

logger = logging.getLogger(__name__)

# Constants
REQUEST_TIMEOUT_SECONDS = 30
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_INITIAL_DELAY = 1.0
DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    ),
    "Accept-Language": "pt-BR,pt;q=0.9",
}


class FetchError(Exception):
    """Base class for fetch failures."""

    pass


class FetchAbortedError(FetchError):
    """Raised when the caller cancelled the fetch."""

    pass


class FetchExhaustedError(FetchError):
    """Raised when all attempts failed. `last_error` holds the final cause."""

    def __init__(self, url: str, attempts: int, last_error: Optional[BaseException]):
        super().__init__(f"Fetch of {url} exhausted after {attempts} attempts: {last_error}")
        self.url = url
        self.attempts = attempts
        self.last_error = last_error


class FetchStatus(str, Enum):
    OK = "ok"
    ABORTED = "aborted"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class FetchResult:
    """Outcome of a page fetch."""

    url: str
    status: FetchStatus
    body: Optional[str] = None
    error: Optional[FetchError] = None

    @property
    def ok(self) -> bool:
        return self.status is FetchStatus.OK


class Fetcher:
    """
    HTTP GET with bounded exponential-backoff retry.

    Each call makes up to `max_attempts` requests, waiting
    `initial_delay * 2^(attempt-1)` seconds after each failed attempt.
    Setting `cancel_event` aborts pending and future fetches; backoff waits
    are interrupted as soon as the event is set.

    One instance is shared by concurrent sources and the logo pool. Unless a
    session is injected, each thread gets its own `requests.Session`.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        cancel_event: Optional[threading.Event] = None,
    ):
        """
        Initialize the fetcher.

        Args:
            session: HTTP session shared by every thread (default: one
                     new session per thread)
            max_attempts: Total attempts per URL (default: 3)
            initial_delay: Delay in seconds after the first failure (default: 1.0)
            timeout: Per-request timeout in seconds
            cancel_event: Event the caller sets to cancel in-flight work
        """
        self._shared_session = session
        if session is not None:
            session.headers.update(DEFAULT_HEADERS)
        self._local = threading.local()
        self._count_lock = threading.Lock()
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.timeout = timeout
        self.cancel_event = cancel_event or threading.Event()
        self.request_count = 0

    @property
    def session(self) -> requests.Session:
        if self._shared_session is not None:
            return self._shared_session

        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            session.headers.update(DEFAULT_HEADERS)
            self._local.session = session
        return session

    def _check_cancelled(self, url: str) -> None:
        if self.cancel_event.is_set():
            raise FetchAbortedError(f"Fetch of {url} aborted by caller")

    def _wait(self, delay: float) -> None:
        # Event.wait returns early when the run is cancelled
        self.cancel_event.wait(delay)

    def _get(self, url: str) -> requests.Response:
        self._check_cancelled(url)
        with self._count_lock:
            self.request_count += 1
            request_number = self.request_count

        logger.debug("GET %s", url, extra={"url": url, "request_count": request_number})

        response = self.session.get(url, timeout=self.timeout)
        response.raise_for_status()
        return response

    def _get_with_retry(self, url: str) -> requests.Response:
        retrying_get = retry_with_backoff(
            max_attempts=self.max_attempts,
            initial_delay=self.initial_delay,
            backoff_factor=2.0,
            exceptions=(requests.exceptions.RequestException,),
            sleep=self._wait,
        )(self._get)

        try:
            return retrying_get(url)
        except RetryExhaustedError as e:
            self._check_cancelled(url)
            logger.error(
                "Fetch exhausted",
                extra={"url": url, "attempts": e.attempts, "error": str(e.last_error)},
            )
            raise FetchExhaustedError(url, e.attempts, e.last_error) from e.last_error

    def fetch(self, url: str) -> str:
        """
        Fetch a URL and return its decoded body.

        Raises:
            FetchAbortedError: If the cancel event is set
            FetchExhaustedError: If every attempt failed
        """
        return self._get_with_retry(url).text

    def fetch_bytes(self, url: str) -> bytes:
        """Fetch a URL and return its raw body (used for images)."""
        return self._get_with_retry(url).content

    def fetch_page(self, url: str) -> FetchResult:
        """Fetch a URL and report the outcome as a FetchResult."""
        try:
            return FetchResult(url=url, status=FetchStatus.OK, body=self.fetch(url))
        except FetchAbortedError as e:
            logger.warning("Fetch aborted", extra={"url": url})
            return FetchResult(url=url, status=FetchStatus.ABORTED, error=e)
        except FetchExhaustedError as e:
            return FetchResult(url=url, status=FetchStatus.EXHAUSTED, error=e)
