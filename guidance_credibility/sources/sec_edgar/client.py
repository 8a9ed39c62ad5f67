"""
HTTP client for SEC EDGAR with ordered request spacing and a disk cache.

All requests to sec.gov hosts pass through one RequestQueue so that bursts
serialize in submission order and never exceed the EDGAR fair-access rate
(about 10 requests per second). JSON endpoints are cached on disk with a
time-to-live; when a live fetch fails, an expired entry is served instead
of failing outright.
"""

import json
import threading
import time
from pathlib import Path
from typing import Any, Callable, TypeVar
from urllib.parse import urlparse

import requests

from guidance_credibility.errors import ParseFailureError, UpstreamUnavailableError

T = TypeVar("T")

SUBMISSIONS_URL = "https://data.sec.gov/submissions/CIK{cik}.json"
COMPANY_CONCEPT_URL = "https://data.sec.gov/api/xbrl/companyconcept/CIK{cik}/us-gaap/{tag}.json"


class RequestQueue:
    """
    Serializes calls in arrival order with a minimum spacing between starts.

    Each caller takes a ticket and waits until it is served. The queue holds
    the turn while the submitted function runs, so a burst of submissions
    executes one at a time, in order, none dropped.
    """

    def __init__(
        self,
        min_interval: float = 0.1,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        verbose: bool = False,
    ):
        """
        Initialize the request queue.

        Args:
            min_interval: Minimum seconds between the start of two requests
            clock: Monotonic clock used to measure spacing
            sleep: Function used to wait out the remaining interval
            verbose: Whether to print queue depth messages
        """
        self.min_interval = min_interval
        self.verbose = verbose
        self._clock = clock
        self._sleep = sleep
        self._condition = threading.Condition()
        self._next_ticket = 0
        self._serving = 0
        self._last_started: float | None = None

    def _log(self, message: str) -> None:
        """Print a message if verbose mode is enabled."""
        if self.verbose:
            print(message)

    @property
    def pending(self) -> int:
        """Number of submissions not yet finished."""
        with self._condition:
            return self._next_ticket - self._serving

    def submit(self, fn: Callable[[], T]) -> T:
        """
        Run fn once every earlier submission has finished and the spacing allows.

        Returns:
            Whatever fn returns; exceptions from fn propagate to the caller
            after the turn is released.
        """
        with self._condition:
            ticket = self._next_ticket
            self._next_ticket += 1
            while ticket != self._serving:
                self._condition.wait()

        try:
            if self._last_started is not None:
                wait = self.min_interval - (self._clock() - self._last_started)
                if wait > 0:
                    self._sleep(wait)
            self._last_started = self._clock()
            self._log(f"[SEC_THROTTLE] queued={self.pending - 1}")
            return fn()
        finally:
            with self._condition:
                self._serving += 1
                self._condition.notify_all()


class ResponseCache:
    """
    File-per-key cache with a time-to-live and a stale read path.

    Entries live at {directory}/{key}; freshness is judged by file mtime.
    """

    def __init__(
        self,
        directory: Path | str,
        ttl_seconds: float = 24 * 60 * 60,
        clock: Callable[[], float] = time.time,
    ):
        self.directory = Path(directory)
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def path_for(self, key: str) -> Path:
        return self.directory / key.replace("/", "_")

    def get(self, key: str) -> str | None:
        """Return the entry if it exists and is younger than the TTL."""
        path = self.path_for(key)
        if not path.exists():
            return None
        if self._clock() - path.stat().st_mtime > self.ttl_seconds:
            return None
        return path.read_text(encoding="utf-8")

    def get_stale(self, key: str) -> str | None:
        """Return the entry regardless of age."""
        path = self.path_for(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def put(self, key: str, content: str) -> Path:
        """Write an entry, replacing any previous one."""
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        tmp_path.write_text(content, encoding="utf-8")
        tmp_path.replace(path)
        return path


class SecClient:
    """
    Fetches SEC EDGAR JSON and documents.

    This class handles:
    - Sending the EDGAR identity as User-Agent on every request
    - Funnelling sec.gov requests through the shared RequestQueue
    - Read-through caching of submissions and company-concept JSON
    - Falling back to stale cache entries when EDGAR is unavailable
    """

    def __init__(
        self,
        user_agent: str,
        queue: RequestQueue,
        cache: ResponseCache,
        session: requests.Session | None = None,
        timeout: float = 30.0,
        verbose: bool = False,
    ):
        """
        Initialize the SEC client.

        Args:
            user_agent: EDGAR identity string (name and email)
            queue: Request queue shared by every sec.gov call site
            cache: Disk cache for JSON endpoints
            session: Optional requests session (a new one is created if omitted)
            timeout: Transport timeout in seconds
            verbose: Whether to print progress messages
        """
        self.queue = queue
        self.cache = cache
        self.timeout = timeout
        self.verbose = verbose
        self.session = session or requests.Session()
        self.headers = {
            "User-Agent": user_agent,
            "Accept-Encoding": "gzip, deflate",
        }

    def _log(self, message: str) -> None:
        """Print a message if verbose mode is enabled."""
        if self.verbose:
            print(message)

    @staticmethod
    def is_sec_host(url: str) -> bool:
        host = urlparse(url).hostname or ""
        return host == "sec.gov" or host.endswith(".sec.gov")

    def _get(self, url: str) -> requests.Response:
        try:
            response = self.session.get(url, headers=self.headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamUnavailableError(url, reason=str(e)) from e
        if not 200 <= response.status_code < 300:
            raise UpstreamUnavailableError(url, status=response.status_code)
        return response

    def fetch(self, url: str) -> tuple[bytes, str]:
        """
        Fetch a document.

        Returns:
            Tuple of (raw content, content type header value)

        Raises:
            UpstreamUnavailableError: On transport failure or non-2xx status
        """
        if self.is_sec_host(url):
            response = self.queue.submit(lambda: self._get(url))
        else:
            response = self._get(url)
        content_type = response.headers.get("Content-Type", "")
        return response.content, content_type

    def get_text(self, url: str) -> str:
        """Fetch a document and decode it as text."""
        content, _ = self.fetch(url)
        return content.decode("utf-8", errors="replace")

    def get_json_cached(self, key: str, url: str) -> Any:
        """
        Read-through JSON fetch with stale fallback.

        Args:
            key: Cache key (endpoint + identifier)
            url: Endpoint URL

        Returns:
            Decoded JSON payload

        Raises:
            UpstreamUnavailableError: If the fetch fails and nothing is cached
            ParseFailureError: If the payload is not valid JSON
        """
        cached = self.cache.get(key)
        if cached is not None:
            return self._decode(cached, url)

        try:
            text = self.get_text(url)
        except UpstreamUnavailableError as e:
            stale = self.cache.get_stale(key)
            if stale is None:
                raise
            self._log(f"  Serving stale cache for {key} ({e})")
            return self._decode(stale, url)

        payload = self._decode(text, url)
        self.cache.put(key, text)
        return payload

    @staticmethod
    def _decode(text: str, url: str) -> Any:
        try:
            return json.loads(text) if text else {}
        except json.JSONDecodeError as e:
            raise ParseFailureError(f"Malformed JSON from {url}: {e}") from e

    def get_submissions(self, cik: str) -> dict:
        """Filing index for a company (10-digit CIK)."""
        return self.get_json_cached(
            f"submissions-{cik}.json", SUBMISSIONS_URL.format(cik=cik)
        )

    def get_company_concept(self, cik: str, tag: str) -> dict:
        """Full reported series of one us-gaap tag for a company."""
        return self.get_json_cached(
            f"concept-{cik}-{tag}.json", self.concept_url(cik, tag)
        )

    @staticmethod
    def concept_url(cik: str, tag: str) -> str:
        return COMPANY_CONCEPT_URL.format(cik=cik, tag=tag)
