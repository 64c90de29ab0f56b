# src/wsg_check/crawler/services/http_client_service.py
import asyncio
import logging
from typing import Dict, List, Optional
from urllib.parse import urljoin

import aiohttp

from wsg_check.core.errors import Err, Ok, Result, RetrievalError, RetrievalErrorKind
from wsg_check.core.managers.config_manager import config_manager
from wsg_check.crawler.model import FetchOutcome, RedirectHop
from wsg_check.crawler.services.generate_default_user_agent_service import generate_default_user_agent
from wsg_check.crawler.services.robots_txt_service import RobotsTxtService
from wsg_check.crawler.utils.url_utils import UrlUtils

logger = logging.getLogger(__name__)

REDIRECT_STATUSES = (301, 302, 303, 307, 308)


class HttpClientService:
    """
    Performs single-page retrievals for a check run.

    Owns the aiohttp session, the response cache (keyed by the requested URL)
    and the robots.txt policy cache. Both caches live as long as the instance.
    Failures are returned as `Err(RetrievalError)` values, never raised.
    """

    def __init__(
            self,
            timeout: Optional[float] = None,
            user_agent: Optional[str] = None,
            follow_redirects: Optional[bool] = None,
            max_redirects: Optional[int] = None,
            max_retries: Optional[int] = None,
            retry_delay: Optional[float] = None,
            robots_timeout: Optional[float] = None,
    ):
        self.timeout = float(timeout if timeout is not None else config_manager.get_nested("session.time_out", 30))
        self.user_agent = user_agent or generate_default_user_agent()
        self.follow_redirects = (
            follow_redirects if follow_redirects is not None
            else bool(config_manager.get_nested("session.follow_redirects", True))
        )
        self.max_redirects = int(
            max_redirects if max_redirects is not None else config_manager.get_nested("session.max_redirects", 10)
        )
        self.max_retries = int(
            max_retries if max_retries is not None else config_manager.get_nested("session.max_retries", 2)
        )
        self.retry_delay = float(
            retry_delay if retry_delay is not None else config_manager.get_nested("session.retry_delay", 0.5)
        )
        self.robots_timeout = float(
            robots_timeout if robots_timeout is not None else config_manager.get_nested("robots_txt.time_out", 5)
        )

        self.session: Optional[aiohttp.ClientSession] = None
        self.robots: Optional[RobotsTxtService] = None
        self._cache: Dict[str, FetchOutcome] = {}
        self._fetch_locks: Dict[str, asyncio.Lock] = {}

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def initialize(self):
        if not self.session or self.session.closed:
            timeout_obj = aiohttp.ClientTimeout(total=self.timeout)
            default_headers = {
                'Accept-Encoding': 'gzip, deflate',
                'User-Agent': self.user_agent
            }
            self.session = aiohttp.ClientSession(timeout=timeout_obj, headers=default_headers)
            self.robots = RobotsTxtService(self.session, self.user_agent, timeout=self.robots_timeout)
            logger.debug("HttpClientService: Session initialized (timeout=%ss).", self.timeout)

    async def close(self):
        if self.session and not self.session.closed:
            await self.session.close()
            logger.debug("HttpClientService: Session closed.")

    # --- Cache management ---

    @property
    def cached_urls(self) -> List[str]:
        return list(self._cache)

    def clear_cache(self) -> None:
        """Evicts every cached response."""
        self._cache.clear()
        self._fetch_locks = {url: lock for url, lock in self._fetch_locks.items() if lock.locked()}

    def clear_robots_cache(self) -> None:
        """Evicts every cached robots.txt policy."""
        if self.robots:
            self.robots.clear_cache()

    # --- Public fetch ---

    async def fetch(self, url: str, ignore_robots: bool = False) -> Result[FetchOutcome, RetrievalError]:
        """
        Fetches `url`, following and recording redirects.

        Args:
            url: Absolute http(s) URL to retrieve.
            ignore_robots: Skip the robots.txt check.

        Returns:
            Ok(FetchOutcome) for any terminal response (including 4xx/5xx), or
            Err(RetrievalError) for network, timeout, redirect and robots failures.
        """
        cached = self._cache.get(url)
        if cached is not None:
            logger.debug("Cache hit for %s", url)
            return Ok(cached.model_copy(update={"from_cache": True}))

        if not UrlUtils.is_http_url(url):
            return Err(RetrievalError(
                f"Not an absolute http(s) URL: {url}", url, RetrievalErrorKind.INVALID_URL
            ))

        lock = self._fetch_locks.setdefault(url, asyncio.Lock())
        try:
            async with lock:
                return await self._fetch_uncached(url, ignore_robots)
        finally:
            # Waiters still hold a reference; later callers hit the cache
            if not lock.locked() and self._fetch_locks.get(url) is lock:
                del self._fetch_locks[url]

    # --- Internals ---

    async def _fetch_uncached(self, url: str, ignore_robots: bool) -> Result[FetchOutcome, RetrievalError]:
        cached = self._cache.get(url)
        if cached is not None:
            return Ok(cached.model_copy(update={"from_cache": True}))

        await self.initialize()

        if not ignore_robots and not await self.robots.can_fetch(url):
            return Err(RetrievalError(
                f"URL disallowed by robots.txt: {url}", url, RetrievalErrorKind.BLOCKED
            ))

        try:
            outcome = await self._fetch_with_retry(url)
        except RetrievalError as e:
            logger.warning("Fetch failed for %s (%s): %s", url, e.kind.value, e)
            return Err(e)

        self._cache[url] = outcome
        return Ok(outcome)

    async def _fetch_with_retry(self, url: str) -> FetchOutcome:
        attempt = 0
        while True:
            try:
                return await self._fetch_following_redirects(url)
            except RetrievalError as e:
                if attempt >= self.max_retries or not e.is_retryable:
                    raise
                attempt += 1
                delay = self.retry_delay * attempt
                logger.info(
                    "Retrying %s in %.2fs (attempt %d/%d): %s",
                    url, delay, attempt, self.max_retries, e
                )
                await asyncio.sleep(delay)

    async def _fetch_following_redirects(self, start_url: str) -> FetchOutcome:
        redirect_chain: List[RedirectHop] = []
        current_url = start_url

        while True:
            try:
                async with self.session.get(
                        current_url,
                        allow_redirects=False,
                        timeout=aiohttp.ClientTimeout(total=self.timeout)
                ) as response:
                    status = response.status
                    location = response.headers.get("Location")

                    if status in REDIRECT_STATUSES and self.follow_redirects:
                        if not location:
                            raise RetrievalError(
                                f"Redirect response ({status}) missing Location header at {current_url}",
                                start_url, RetrievalErrorKind.PROTOCOL
                            )
                        if len(redirect_chain) >= self.max_redirects:
                            raise RetrievalError(
                                f"Too many redirects (> {self.max_redirects}) for {start_url}",
                                start_url, RetrievalErrorKind.TOO_MANY_REDIRECTS
                            )
                        redirect_chain.append(
                            RedirectHop(url=current_url, status_code=status, location=location)
                        )
                        current_url = urljoin(current_url, location)
                        continue

                    body = await self._read_body(response)
                    return self._build_outcome(start_url, current_url, response, body, redirect_chain)

            except asyncio.TimeoutError as e:
                raise RetrievalError(
                    f"Timed out after {self.timeout}s fetching {current_url}",
                    start_url, RetrievalErrorKind.TIMEOUT, cause=e
                ) from e
            except aiohttp.ClientError as e:
                raise RetrievalError(
                    f"Failed to fetch {current_url}: {type(e).__name__} - {e}",
                    start_url, RetrievalErrorKind.NETWORK, cause=e
                ) from e

    @staticmethod
    async def _read_body(response: aiohttp.ClientResponse) -> str:
        try:
            return await response.text()
        except (UnicodeDecodeError, LookupError):
            content_bytes = await response.read()
            return content_bytes.decode('utf-8', errors='replace')

    @staticmethod
    def _build_outcome(
            original_url: str,
            final_url: str,
            response: aiohttp.ClientResponse,
            body: str,
            redirect_chain: List[RedirectHop]
    ) -> FetchOutcome:
        headers: Dict[str, str] = {}
        for key, value in response.headers.items():
            name = key.lower()
            headers[name] = f"{headers[name]}, {value}" if name in headers else value

        body_bytes = len(body.encode("utf-8"))
        try:
            content_length = int(headers.get("content-length", ""))
        except ValueError:
            content_length = body_bytes

        return FetchOutcome(
            url=final_url,
            original_url=original_url,
            status_code=response.status,
            headers=headers,
            body=body,
            redirect_chain=tuple(redirect_chain),
            from_cache=False,
            body_bytes=body_bytes,
            content_length=content_length,
            content_encoding=headers.get("content-encoding"),
            content_type=headers.get("content-type"),
        )
