import pytest

from conftest import FakeScraper, SleepRecorder
from jobflow.errors import ConfigurationError, TransientSourceError
from jobflow.platforms.base import ScraperConfig
from jobflow.platforms.orchestrator import ScraperService

CONFIG = ScraperConfig(keywords="engineer", location="Remote", max_results=25)


class TestScraperService:
    @pytest.mark.asyncio
    async def test_failing_source_does_not_affect_others(self, make_job):
        broken = FakeScraper("a", error=RuntimeError("connection reset"))
        working = FakeScraper("b", jobs=[make_job(f"Engineer {i}", source="b") for i in range(3)])
        service = ScraperService([broken, working], sleep=SleepRecorder())

        combined = await service.scrape_combined(["a", "b"], CONFIG)

        assert len(combined.jobs) == 3
        assert combined.errors == ["connection reset"]
        assert combined.results["a"].jobs == []
        assert combined.results["b"].errors == []

    @pytest.mark.asyncio
    async def test_transient_errors_are_reported_by_the_scraper(self):
        flaky = FakeScraper("a", error=TransientSourceError("a", "timed out"))
        service = ScraperService([flaky], sleep=SleepRecorder())

        results = await service.scrape_multiple(["a"], CONFIG)

        assert results["a"].jobs == []
        assert results["a"].errors == ["a: timed out"]

    @pytest.mark.asyncio
    async def test_rate_limit_sleeps_between_sources_only(self):
        sleep = SleepRecorder()
        service = ScraperService([FakeScraper("a"), FakeScraper("b"), FakeScraper("c")], rate_limit_delay=2.0, sleep=sleep)

        await service.scrape_all(CONFIG)

        assert sleep.delays == [2.0, 2.0]

    @pytest.mark.asyncio
    async def test_combined_results_are_deduplicated(self, make_job):
        a = FakeScraper("a", jobs=[make_job("Python Dev", company="Acme", source="a")])
        b = FakeScraper("b", jobs=[make_job("python dev", company="ACME", source="b"), make_job("Go Dev", source="b")])
        service = ScraperService([a, b], sleep=SleepRecorder())

        combined = await service.scrape_combined(["a", "b"], CONFIG)

        assert [(job.title, job.source) for job in combined.jobs] == [("Python Dev", "a"), ("Go Dev", "b")]

    @pytest.mark.asyncio
    async def test_unknown_source_fails_before_scraping(self):
        known = FakeScraper("a")
        service = ScraperService([known], sleep=SleepRecorder())

        with pytest.raises(ConfigurationError, match="Unknown scraper source: nope"):
            await service.scrape_multiple(["a", "nope"], CONFIG)
        assert known.calls == []

    @pytest.mark.asyncio
    async def test_results_are_capped_at_max_results(self, make_job):
        many = FakeScraper("a", jobs=[make_job(f"Job {i}", source="a") for i in range(10)])
        service = ScraperService([many], sleep=SleepRecorder())

        result = await service.scrape_source("a", ScraperConfig(keywords="", location="", max_results=4))

        assert len(result.jobs) == 4
        assert result.total_found == 10

    def test_membership_and_sources(self):
        service = ScraperService([FakeScraper("a"), FakeScraper("b")])
        assert "a" in service
        assert "z" not in service
        assert service.sources == ["a", "b"]
