import logging
from typing import Any, Dict, List

from ..errors import TransientSourceError
from ..models.job import JobRecord
from ..utils.cleaning import DESCRIPTION_LIMIT, clean_html, clean_text, parse_posted_at
from .base import BaseScraper, ScraperConfig

REMOTEOK_API_URL = "https://remoteok.com/api"
LOGGER = logging.getLogger(__name__)


def _format_salary(item: Dict[str, Any]):
    salary_min = item.get("salary_min")
    salary_max = item.get("salary_max")
    if salary_min and salary_max:
        return f"${salary_min / 1000:.0f}k - ${salary_max / 1000:.0f}k"
    if salary_min:
        return f"${salary_min / 1000:.0f}k+"
    return None


def parse_remoteok_payload(payload: Any, keywords: str) -> List[JobRecord]:
    """
    Converts the RemoteOK API list into JobRecords.
    Any keyword word matching position, company, tags or description keeps the job.
    """
    if not isinstance(payload, list):
        raise TransientSourceError("remoteok", f"payload unexpected type: {type(payload).__name__}")

    keyword_parts = keywords.lower().split()
    jobs: List[JobRecord] = []

    # The first element is a legal notice, not a job; the position check drops it
    for item in payload:
        if not isinstance(item, dict) or not item.get("position") or not item.get("company"):
            continue

        tags = item.get("tags") or []
        search_text = " ".join(
            [item["position"], item["company"], " ".join(tags), item.get("description") or ""]
        ).lower()
        if keyword_parts and not any(part in search_text for part in keyword_parts):
            continue

        posted_at = parse_posted_at(item.get("date")) or parse_posted_at(item.get("epoch"))
        jobs.append(
            JobRecord(
                title=clean_text(item["position"]),
                company=clean_text(item["company"]),
                location=item.get("location") or "Remote",
                description=clean_html(item.get("description") or "")[:DESCRIPTION_LIMIT] or "No description available",
                url=item.get("url") or f"https://remoteok.com/remote-jobs/{item.get('id')}",
                source="remoteok",
                posted_at=posted_at,
                salary=_format_salary(item),
                tags=list(tags),
            )
        )

    return jobs


class RemoteOKScraper(BaseScraper):
    source = "remoteok"

    async def fetch_jobs(self, config: ScraperConfig) -> List[JobRecord]:
        payload = await self._get_json(REMOTEOK_API_URL, self._timeout_for(config))
        return parse_remoteok_payload(payload, config.keywords)
