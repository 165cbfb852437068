import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Iterable, List

from ..errors import ConfigurationError
from ..models.job import JobRecord, dedupe_jobs
from ..utils.retry import RetryConfig
from .arbeitnow import ArbeitnowScraper
from .base import BaseScraper, ScraperConfig, ScraperResult
from .jobicy import JobicyScraper
from .linkedin import LinkedInScraper
from .remoteok import RemoteOKScraper
from .weworkremotely import WeWorkRemotelyScraper

LOGGER = logging.getLogger(__name__)

DEFAULT_RATE_LIMIT_DELAY = 2.0  # seconds


class ScraperService:
    """
    Runs scrapers one source at a time with a pause between sources.
    A failing source yields an empty result carrying its error and never
    stops the remaining sources.
    """

    def __init__(
        self,
        scrapers: Iterable[BaseScraper],
        rate_limit_delay: float = DEFAULT_RATE_LIMIT_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._scrapers: Dict[str, BaseScraper] = {}
        for scraper in scrapers:
            self._scrapers[scraper.source] = scraper
        self.rate_limit_delay = rate_limit_delay
        self._sleep = sleep

    def __contains__(self, source: str) -> bool:
        return source in self._scrapers

    @property
    def sources(self) -> List[str]:
        return list(self._scrapers)

    def get_scraper(self, source: str) -> BaseScraper:
        scraper = self._scrapers.get(source)
        if scraper is None:
            raise ConfigurationError(f"Unknown scraper source: {source}")
        return scraper

    async def scrape_source(self, source: str, config: ScraperConfig) -> ScraperResult:
        return await self.get_scraper(source).scrape(config)

    async def scrape_multiple(self, sources: List[str], config: ScraperConfig) -> Dict[str, ScraperResult]:
        # Resolve every source up front so a typo fails before any network call
        for source in sources:
            self.get_scraper(source)

        results: Dict[str, ScraperResult] = {}
        for index, source in enumerate(sources):
            try:
                results[source] = await self.scrape_source(source, config)
            except Exception as exc:
                LOGGER.error("Failed to scrape %s: %s", source, exc)
                results[source] = ScraperResult.failed(source, str(exc) or type(exc).__name__)

            # Rate limit between sources
            if index < len(sources) - 1 and self.rate_limit_delay > 0:
                await self._sleep(self.rate_limit_delay)

        return results

    async def scrape_combined(self, sources: List[str], config: ScraperConfig) -> "CombinedScrape":
        started = time.monotonic()
        results = await self.scrape_multiple(sources, config)

        all_jobs: List[JobRecord] = []
        for result in results.values():
            all_jobs.extend(result.jobs)
        unique_jobs = dedupe_jobs(all_jobs)

        duration = int((time.monotonic() - started) * 1000)
        LOGGER.info(
            "Scraped %d sources: %d jobs (%d after dedup) in %dms",
            len(sources), len(all_jobs), len(unique_jobs), duration,
        )
        return CombinedScrape(jobs=unique_jobs, results=results, duration=duration)

    async def scrape_all(self, config: ScraperConfig) -> "CombinedScrape":
        return await self.scrape_combined(self.sources, config)


@dataclass
class CombinedScrape:
    jobs: List[JobRecord]
    results: Dict[str, ScraperResult]
    duration: int  # milliseconds

    @property
    def errors(self) -> List[str]:
        return [error for result in self.results.values() for error in result.errors]


def default_scrapers(timeout: float = 30.0, retry_attempts: int = 3) -> List[BaseScraper]:
    retry_config = RetryConfig(max_attempts=retry_attempts)
    return [
        LinkedInScraper(timeout=timeout, retry_config=retry_config),
        RemoteOKScraper(timeout=timeout, retry_config=retry_config),
        ArbeitnowScraper(timeout=timeout, retry_config=retry_config),
        JobicyScraper(timeout=timeout, retry_config=retry_config),
        WeWorkRemotelyScraper(timeout=timeout, retry_config=retry_config),
    ]


def create_scraper_service(settings=None) -> ScraperService:
    if settings is None:
        return ScraperService(default_scrapers())
    return ScraperService(
        default_scrapers(settings.scraper_timeout, settings.scraper_retry_attempts),
        rate_limit_delay=settings.scraper_rate_limit_delay,
    )

