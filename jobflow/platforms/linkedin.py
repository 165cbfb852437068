import json
import logging
from typing import Any, List

from bs4 import BeautifulSoup

from ..errors import TransientSourceError
from ..models.job import JobRecord
from ..utils.cleaning import clean_html, clean_text, parse_posted_at
from .base import BaseScraper, ScraperConfig

SEARCH_URL = "https://www.linkedin.com/jobs/search"
GUEST_API_URL = "https://www.linkedin.com/jobs-guest/jobs/api/seeMoreJobPostings/search"
NO_DESCRIPTION = "LinkedIn Job - Click link to view full details."

LOGGER = logging.getLogger(__name__)


def _job_from_posting(posting: dict, default_location: str) -> JobRecord:
    address = (posting.get("jobLocation") or {}).get("address") or {}
    title = clean_text(posting.get("title"))
    company = clean_text((posting.get("hiringOrganization") or {}).get("name")) or "Unknown"
    location = clean_text(address.get("addressLocality") or address.get("addressRegion") or default_location)
    return JobRecord(
        title=title,
        company=company,
        location=location,
        description=clean_html(posting.get("description")) or NO_DESCRIPTION,
        url=posting.get("url") or "",
        source="linkedin",
        posted_at=parse_posted_at(posting.get("datePosted")),
    )


def _postings(data: Any) -> List[dict]:
    items = data if isinstance(data, list) else [data]
    return [item for item in items if isinstance(item, dict) and item.get("@type") == "JobPosting"]


def parse_linkedin_html(html: str, location: str) -> List[JobRecord]:
    """
    Reads JobPosting JSON-LD blocks first; when the page has none, falls back
    to the visible search cards.
    """
    soup = BeautifulSoup(html, "html.parser")
    jobs: List[JobRecord] = []

    for script in soup.find_all("script", type="application/ld+json"):
        try:
            data = json.loads(script.string or "")
        except ValueError:
            continue
        for posting in _postings(data):
            job = _job_from_posting(posting, location)
            if job.title:
                jobs.append(job)

    if jobs:
        return jobs

    for card in soup.select(".base-card, .job-search-card, li"):
        title_tag = card.select_one(".base-search-card__title, .job-search-card__title")
        company_tag = card.select_one(".base-search-card__subtitle, .job-search-card__subtitle")
        loc_tag = card.select_one(".job-search-card__location")
        anchor_tag = card.select_one("a.base-card__full-link, a.job-search-card__link-wrapper")
        date_tag = card.find("time")

        if not title_tag or not anchor_tag or not anchor_tag.get("href"):
            continue

        # Clean up URL (remove tracking params)
        clean_url = anchor_tag["href"].split("?")[0]
        if any(job.url == clean_url for job in jobs):
            continue

        jobs.append(
            JobRecord(
                title=clean_text(title_tag.get_text()),
                company=clean_text(company_tag.get_text()) if company_tag else "Unknown",
                location=clean_text(loc_tag.get_text()) if loc_tag else location,
                description=NO_DESCRIPTION,
                url=clean_url,
                source="linkedin",
                posted_at=parse_posted_at(date_tag.get("datetime")) if date_tag else None,
            )
        )

    return jobs


class LinkedInScraper(BaseScraper):
    """
    Public job search page, retried with backoff. When every attempt fails the
    guest API (same cards, lighter endpoint) is tried once before giving up.
    """

    source = "linkedin"

    async def fetch_jobs(self, config: ScraperConfig) -> List[JobRecord]:
        timeout = self._timeout_for(config)
        params = {"keywords": config.keywords, "location": config.location, "start": 0}

        try:
            html = await self._get_text(SEARCH_URL, timeout, params=params)
        except TransientSourceError as exc:
            LOGGER.warning("LinkedIn search page unavailable (%s), trying guest API", exc)
            html = await self._get_text(GUEST_API_URL, timeout, params=params, retry=False)

        return parse_linkedin_html(html, config.location)
