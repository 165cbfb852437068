import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from ..models.job import JobRecord
from .cleaning import parse_minimum_salary, parse_salary_amount

LOGGER = logging.getLogger(__name__)

EXPERIENCE_KEYWORDS = [
    ("senior", ("senior", "sr.", "lead", "principal", "staff")),
    ("entry", ("junior", "jr.", "entry", "intern", "fresher", "graduate")),
    ("mid", ("mid", "intermediate")),
]

DATE_WINDOWS = {
    "24h": timedelta(hours=24),
    "week": timedelta(days=7),
    "month": timedelta(days=30),
}

# Label (lowercased, spaces removed) -> criteria field
LABEL_ALIASES = {
    "title": "title",
    "company": "company",
    "location": "location",
    "salary": "salary",
    "source": "source",
    "experience": "experience",
    "level": "experience",
    "experiencelevel": "experience",
    "date": "date",
    "posted": "date",
    "dateposted": "date",
}


def detect_experience_level(text: str) -> str:
    """Maps free text to senior / entry / mid, or 'any' when nothing matches."""
    lowered = (text or "").lower()
    for level, keywords in EXPERIENCE_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return level
    return "any"


@dataclass
class FilterCriteria:
    """
    Structured form of the "Label: v1, v2" strings a filter node is configured with.
    Values inside one field are OR'd; fields are AND'd.
    """
    title_keywords: List[str] = field(default_factory=list)
    company_keywords: List[str] = field(default_factory=list)
    location_keywords: List[str] = field(default_factory=list)
    min_salary: Optional[int] = None
    sources: List[str] = field(default_factory=list)
    experience_level: Optional[str] = None
    date_posted: Optional[str] = None

    @classmethod
    def parse(cls, filters: Iterable[str]) -> "FilterCriteria":
        criteria = cls()

        for raw in filters or []:
            if not isinstance(raw, str) or ":" not in raw:
                LOGGER.warning("Ignoring malformed filter %r (expected 'Label: value, ...')", raw)
                continue

            label, _, value = raw.partition(":")
            key = LABEL_ALIASES.get("".join(label.lower().split()))
            values = [v.strip().lower() for v in value.split(",") if v.strip()]

            if key is None:
                LOGGER.warning("Ignoring filter with unknown label %r", label.strip())
            elif key == "title":
                criteria.title_keywords.extend(values)
            elif key == "company":
                criteria.company_keywords.extend(values)
            elif key == "location":
                criteria.location_keywords.extend(values)
            elif key == "salary":
                criteria.min_salary = parse_minimum_salary(value)
            elif key == "source":
                criteria.sources.extend(values)
            elif key == "experience" and values:
                criteria.experience_level = values[0]
            elif key == "date" and values:
                criteria.date_posted = values[0]

        return criteria

    @property
    def is_empty(self) -> bool:
        return not (
            self.title_keywords or self.company_keywords or self.location_keywords
            or self.min_salary or self.sources
            or (self.experience_level and self.experience_level != "any")
            or (self.date_posted and self.date_posted != "any")
        )

    def matches(self, job: JobRecord, now: Optional[datetime] = None) -> bool:
        if self.title_keywords and not _contains_any(job.title, self.title_keywords):
            return False

        if self.company_keywords and not _contains_any(job.company, self.company_keywords):
            return False

        if self.location_keywords and not _contains_any(job.location, self.location_keywords):
            return False

        # Jobs that don't advertise a salary are kept
        if self.min_salary and job.salary:
            if parse_salary_amount(job.salary) < self.min_salary:
                return False

        if self.sources and job.source.lower() not in self.sources:
            return False

        if self.experience_level and self.experience_level != "any":
            detected = detect_experience_level(f"{job.title} {job.description or ''}")
            if detected not in (self.experience_level, "any"):
                return False

        window = DATE_WINDOWS.get(self.date_posted or "")
        if window is not None:
            now = now or datetime.now(timezone.utc)
            posted = job.posted_at or now
            if posted.tzinfo is None:
                posted = posted.replace(tzinfo=timezone.utc)
            if now - posted > window:
                return False

        return True

    def apply(self, jobs: List[JobRecord], now: Optional[datetime] = None) -> List[JobRecord]:
        return [job for job in jobs if self.matches(job, now=now)]

    def describe(self) -> dict:
        return {
            "title": self.title_keywords,
            "company": self.company_keywords,
            "location": self.location_keywords,
            "minSalary": self.min_salary,
            "sources": self.sources,
            "experienceLevel": self.experience_level,
            "datePosted": self.date_posted,
        }


def _contains_any(text: Optional[str], keywords: List[str]) -> bool:
    lowered = (text or "").lower()
    return any(keyword in lowered for keyword in keywords)
