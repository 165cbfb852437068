import asyncio
import logging
import random
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests

from ..errors import TransientSourceError
from ..models.job import JobRecord, sort_newest_first
from ..utils.retry import RetryConfig, with_retry

LOGGER = logging.getLogger(__name__)

# Job boards block the default python-requests agent, so rotate real browser ones
USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.2 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
]

DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_RESULTS = 25


def random_user_agent() -> str:
    return random.choice(USER_AGENTS)


@dataclass
class ScraperConfig:
    keywords: str
    location: str
    max_results: int = DEFAULT_MAX_RESULTS
    timeout: Optional[float] = None  # seconds; None means the scraper's default


@dataclass
class ScraperResult:
    source: str
    jobs: List[JobRecord] = field(default_factory=list)
    total_found: int = 0
    scraped_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    duration: int = 0  # milliseconds
    errors: List[str] = field(default_factory=list)

    @classmethod
    def failed(cls, source: str, error: str) -> "ScraperResult":
        return cls(source=source, errors=[error])


class BaseScraper:
    """
    One external job board. Subclasses implement `fetch_jobs`; `scrape` wraps it
    so that transport or parse failures end up in `ScraperResult.errors` instead
    of propagating.
    """

    source: str = ""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, retry_config: Optional[RetryConfig] = None):
        self.timeout = timeout
        self.retry_config = retry_config or RetryConfig()

    async def fetch_jobs(self, config: ScraperConfig) -> List[JobRecord]:
        raise NotImplementedError

    async def scrape(self, config: ScraperConfig) -> ScraperResult:
        started = time.monotonic()
        jobs: List[JobRecord] = []
        errors: List[str] = []

        try:
            jobs = await self.fetch_jobs(config)
            LOGGER.info(
                "%s scrape completed: keywords=%r location=%r found=%d",
                self.source, config.keywords, config.location, len(jobs),
            )
        except TransientSourceError as exc:
            errors.append(str(exc))
            LOGGER.error("%s scrape failed: %s", self.source, exc)

        ordered = sort_newest_first(jobs)
        return ScraperResult(
            source=self.source,
            jobs=ordered[: config.max_results],
            total_found=len(jobs),
            duration=int((time.monotonic() - started) * 1000),
            errors=errors,
        )

    # --- HTTP helpers ---

    def _timeout_for(self, config: ScraperConfig) -> float:
        return config.timeout or self.timeout

    def _headers(self, accept: str = "application/json") -> Dict[str, str]:
        return {
            "User-Agent": random_user_agent(),
            "Accept": accept,
            "Accept-Language": "en-US,en;q=0.5",
        }

    async def _get(
        self,
        url: str,
        timeout: float,
        params: Optional[Dict[str, Any]] = None,
        accept: str = "application/json",
        retry: bool = True,
    ) -> requests.Response:
        """
        GET in a worker thread; any transport error or non-2xx status becomes
        TransientSourceError. Retried with `self.retry_config` unless retry=False.
        """
        if not retry:
            return await self._get_once(url, timeout, params, accept)
        return await with_retry(
            lambda: self._get_once(url, timeout, params, accept),
            self.retry_config,
            f"{self.source} fetch",
        )

    async def _get_once(
        self,
        url: str,
        timeout: float,
        params: Optional[Dict[str, Any]],
        accept: str,
    ) -> requests.Response:
        try:
            response = await asyncio.to_thread(
                requests.get,
                url,
                params=params,
                headers=self._headers(accept),
                timeout=timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise TransientSourceError(self.source, f"request failed: {exc}") from exc
        return response

    async def _get_json(self, url: str, timeout: float, params: Optional[Dict[str, Any]] = None) -> Any:
        response = await self._get(url, timeout, params=params)
        try:
            return response.json()
        except ValueError as exc:
            raise TransientSourceError(self.source, f"returned invalid JSON: {exc}") from exc

    async def _get_text(
        self,
        url: str,
        timeout: float,
        params: Optional[Dict[str, Any]] = None,
        retry: bool = True,
    ) -> str:
        response = await self._get(
            url,
            timeout,
            params=params,
            accept="text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            retry=retry,
        )
        return response.text
