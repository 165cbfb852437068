from typing import Any, List

from ..errors import TransientSourceError
from ..models.job import JobRecord
from ..utils.cleaning import clean_html, clean_text, parse_posted_at
from ..utils.filtering import detect_experience_level
from .base import BaseScraper, ScraperConfig

ARBEITNOW_API_URL = "https://www.arbeitnow.com/api/job-board-api"


def parse_arbeitnow_payload(payload: Any, keywords: str, location: str) -> List[JobRecord]:
    if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
        raise TransientSourceError("arbeitnow", "payload has no 'data' list")

    keywords_lower = keywords.lower()
    location_lower = location.lower()
    jobs: List[JobRecord] = []

    for item in payload["data"]:
        title = item.get("title") or ""
        tags = item.get("tags") or []
        job_location = item.get("location") or ""
        remote = bool(item.get("remote"))

        matches_keyword = (
            keywords_lower in title.lower()
            or keywords_lower in (item.get("description") or "").lower()
            or keywords_lower in " ".join(tags).lower()
        )
        matches_location = (
            location in ("All", "")
            or (location == "Remote" and remote)
            or location_lower in job_location.lower()
        )
        if not (title and matches_keyword and matches_location):
            continue

        jobs.append(
            JobRecord(
                title=clean_text(title),
                company=clean_text(item.get("company_name")) or "Unknown",
                location="Remote" if remote else clean_text(job_location),
                description=clean_html((item.get("description") or "")[:1000]),
                url=item.get("url") or "",
                source="arbeitnow",
                posted_at=parse_posted_at(item.get("created_at")),
                experience_level=detect_experience_level(title),
                tags=list(tags),
            )
        )

    return jobs


class ArbeitnowScraper(BaseScraper):
    source = "arbeitnow"

    async def fetch_jobs(self, config: ScraperConfig) -> List[JobRecord]:
        payload = await self._get_json(ARBEITNOW_API_URL, self._timeout_for(config))
        return parse_arbeitnow_payload(payload, config.keywords, config.location)
