# src/source_monitor/extractors/request_manager.py
import threading
import time
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import urlparse

import requests
import requests_cache
from pybreaker import CircuitBreaker, CircuitBreakerError
from tenacity import Retrying, stop_after_attempt, wait_exponential, retry_if_exception_type

from ..types import Config
from ..exceptions import FetchError
from ..constants import COMMON_HEADERS, DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)

# Statuses worth retrying; other 4xx answers will not change on a retry
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class TransientFetchError(FetchError):
    """A failure that may succeed on retry (network error, 5xx, 429)."""
    pass


@dataclass
class FetchedPage:
    url: str
    content: str
    raw: bytes
    status: int
    content_type: str
    from_cache: bool = False


class RequestManager:
    """
    Manages HTTP requests for all scrapers:
    - Connection pooling (via requests.Session)
    - Politeness delay between requests
    - Bounded retry with exponential backoff (via `tenacity`)
    - Optional response caching (via `requests-cache`)
    - One circuit breaker per host so a failing site does not block the others
    """

    def __init__(self, config: Config, session: Optional[requests.Session] = None):
        self.config = config
        self.scraper_config = config.get("scraper", {}) or {}
        self.caching_config = (config.get("advanced", {}) or {}).get("caching", {}) or {}

        self.user_agent = self.scraper_config.get("user_agent") or DEFAULT_USER_AGENT
        self.timeout = float(self.scraper_config.get("request_timeout", 30))
        self.max_retries = max(1, int(self.scraper_config.get("max_retries", 3)))
        self.retry_delay = float(self.scraper_config.get("retry_delay", 1.0))
        self.retry_max_wait = float(self.scraper_config.get("retry_max_wait", 30))
        self.request_delay = float(self.scraper_config.get("request_delay", 0.0))

        self._cb_fail_max = int(self.scraper_config.get("circuit_breaker_fail_max", 5))
        self._cb_reset_timeout = int(self.scraper_config.get("circuit_breaker_reset_timeout", 300))
        self._breakers: Dict[str, CircuitBreaker] = {}
        self._lock = threading.Lock()
        self.last_request_time = 0.0

        self.session = session if session is not None else self._create_session()
        self.session.headers.update(COMMON_HEADERS)
        self.session.headers["User-Agent"] = self.user_agent
        logger.debug(
            f"RequestManager ready: timeout={self.timeout}s, max_retries={self.max_retries}, "
            f"retry_delay={self.retry_delay}s, breaker fail_max={self._cb_fail_max}"
        )

    def _create_session(self) -> requests.Session:
        if self.caching_config.get("enabled", False):
            cache_name = self.caching_config.get("cache_name", "data/cache/http_cache")
            Path(cache_name).parent.mkdir(parents=True, exist_ok=True)
            session = requests_cache.CachedSession(
                cache_name=str(cache_name),
                backend=self.caching_config.get("backend", "sqlite"),
                expire_after=self.caching_config.get("expire_after", 3600),
                allowable_codes=[200],
            )
            logger.info(f"HTTP Caching enabled. Backend: {self.caching_config.get('backend', 'sqlite')}, Name: {cache_name}")
        else:
            session = requests.Session()
            logger.debug("HTTP Caching disabled.")
        return session

    def _breaker_for(self, url: str) -> CircuitBreaker:
        host = urlparse(url).netloc.lower()
        with self._lock:
            breaker = self._breakers.get(host)
            if breaker is None:
                breaker = CircuitBreaker(
                    fail_max=self._cb_fail_max,
                    reset_timeout=self._cb_reset_timeout,
                    name=host or "default",
                )
                self._breakers[host] = breaker
            return breaker

    def _throttle(self, url: str):
        if self.request_delay <= 0:
            return
        with self._lock:
            elapsed = time.monotonic() - self.last_request_time
            if elapsed < self.request_delay:
                sleep_time = self.request_delay - elapsed
                logger.debug(f"Rate limiting: sleeping for {sleep_time:.2f}s before request to {url}")
                time.sleep(sleep_time)
            self.last_request_time = time.monotonic()

    def _get_once(self, url: str) -> requests.Response:
        """Single GET attempt. Raises TransientFetchError for retryable failures."""
        self._throttle(url)
        logger.debug(f"Making GET request to {url}")
        try:
            response = self.session.get(url, timeout=self.timeout)
        except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
            raise TransientFetchError(f"Network error for {url}: {e}", url=url) from e
        except requests.exceptions.RequestException as e:
            raise FetchError(f"Request failed for {url}: {e}", url=url) from e

        status = response.status_code
        if status in RETRYABLE_STATUS_CODES:
            raise TransientFetchError(f"Server returned {status} for {url}", status_code=status, url=url)
        if status >= 400:
            raise FetchError(f"HTTP error {status} for {url}", status_code=status, url=url)
        return response

    def _get_with_retries(self, url: str) -> requests.Response:
        retrying = Retrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=self.retry_delay, max=self.retry_max_wait),
            retry=retry_if_exception_type(TransientFetchError),
            reraise=True,
            before_sleep=lambda retry_state: logger.warning(
                f"Retrying request for URL '{url}' due to "
                f"{retry_state.outcome.exception().__class__.__name__}: {retry_state.outcome.exception()}, "
                f"attempt {retry_state.attempt_number}/{self.max_retries}..."
            ),
        )
        return retrying(self._get_once, url)

    def get(self, url: str) -> requests.Response:
        """GET with retries, guarded by the host's circuit breaker. Raises FetchError."""
        breaker = self._breaker_for(url)
        try:
            return breaker.call(self._get_with_retries, url)
        except CircuitBreakerError as e:
            logger.error(f"Circuit breaker open for {urlparse(url).netloc}; skipping request to {url}")
            raise FetchError(f"Circuit breaker open, preventing request to {url}", url=url) from e

    def fetch(self, url: str) -> FetchedPage:
        response = self.get(url)
        content_type = response.headers.get("Content-Type", "")
        from_cache = bool(getattr(response, "from_cache", False))
        logger.info(f"Successfully fetched {url}. Status: {response.status_code}. Cached: {from_cache}")
        return FetchedPage(
            url=url,
            content=response.text,
            raw=response.content,
            status=response.status_code,
            content_type=content_type,
            from_cache=from_cache,
        )

    def close(self):
        """Clean up resources."""
        logger.debug("Closing RequestManager session.")
        if hasattr(self.session, 'close'):
            self.session.close()
