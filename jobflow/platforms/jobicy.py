from typing import Any, List

from ..errors import TransientSourceError
from ..models.job import JobRecord
from ..utils.cleaning import clean_html, clean_text, parse_posted_at
from ..utils.filtering import detect_experience_level
from .base import BaseScraper, ScraperConfig

JOBICY_API_URL = "https://jobicy.com/api/v2/remote-jobs"


def parse_jobicy_payload(payload: Any, location: str) -> List[JobRecord]:
    if not isinstance(payload, dict):
        raise TransientSourceError("jobicy", f"payload unexpected type: {type(payload).__name__}")

    location_lower = location.lower()
    jobs: List[JobRecord] = []

    for item in payload.get("jobs") or []:
        geo = item.get("jobGeo") or ""
        geo_lower = geo.lower()
        matches_location = (
            location in ("All", "Remote", "")
            or location_lower in geo_lower
            or "worldwide" in geo_lower
            or "anywhere" in geo_lower
        )
        if not matches_location or not item.get("jobTitle"):
            continue

        level = detect_experience_level(item.get("jobLevel") or "")
        jobs.append(
            JobRecord(
                title=clean_text(item.get("jobTitle")),
                company=clean_text(item.get("companyName")) or "Unknown",
                location=geo or "Remote",
                description=clean_html(item.get("jobDescription") or item.get("jobExcerpt") or ""),
                url=item.get("url") or "",
                source="jobicy",
                posted_at=parse_posted_at(item.get("pubDate")),
                experience_level=level,
                tags=list(item.get("jobIndustry") or []),
            )
        )

    return jobs


class JobicyScraper(BaseScraper):
    source = "jobicy"

    async def fetch_jobs(self, config: ScraperConfig) -> List[JobRecord]:
        params = {"count": min(config.max_results * 2, 50), "tag": config.keywords}
        payload = await self._get_json(JOBICY_API_URL, self._timeout_for(config), params=params)
        return parse_jobicy_payload(payload, config.location)
