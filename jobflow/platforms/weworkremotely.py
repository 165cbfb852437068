from typing import List

import feedparser

from ..models.job import JobRecord
from ..utils.cleaning import clean_html, clean_text, parse_posted_at
from .base import BaseScraper, ScraperConfig

RSS_URL = "https://weworkremotely.com/categories/remote-programming-jobs.rss"


def parse_wwr_feed(feed_text: str, keywords: str) -> List[JobRecord]:
    feed = feedparser.parse(feed_text)
    keyword_parts = keywords.lower().split()
    jobs: List[JobRecord] = []

    for entry in feed.entries:
        raw_title = entry.get("title", "")
        company = "Unknown"
        title = raw_title

        # Strategy A: 'author' field (common in RSS)
        if entry.get("author"):
            company = entry.author
        # Strategy B: title is "Company: Role"
        elif ":" in raw_title:
            head, _, tail = raw_title.partition(":")
            # Heuristic: company is usually the shorter part at the start
            if len(head) < 50:
                company, title = head.strip(), tail.strip()

        description = clean_html(entry.get("description", ""))
        text = f"{title} {description}".lower()
        if keyword_parts and not any(part in text for part in keyword_parts):
            continue

        jobs.append(
            JobRecord(
                title=clean_text(title),
                company=clean_text(company),
                location=clean_text(entry.get("region", "")) or "Remote",
                description=description,
                url=entry.get("link", ""),
                source="weworkremotely",
                posted_at=parse_posted_at(entry.get("published")),
            )
        )

    return jobs


class WeWorkRemotelyScraper(BaseScraper):
    source = "weworkremotely"

    async def fetch_jobs(self, config: ScraperConfig) -> List[JobRecord]:
        feed_text = await self._get_text(RSS_URL, self._timeout_for(config))
        return parse_wwr_feed(feed_text, config.keywords)
