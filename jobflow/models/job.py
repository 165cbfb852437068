# jobflow/models/job.py
import hashlib
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


def make_job_uid(source: str, title: str, company: str, location: str) -> str:
    """Stable fingerprint of a posting: same source/title/company/location, same uid."""
    data = f"{title}_{company}_{location}".lower()
    digest = hashlib.sha1(data.encode("utf-8")).hexdigest()[:16]
    return f"{source}_{digest}"


@dataclass
class JobRecord:
    title: str
    company: str
    location: str
    url: str
    source: str             # "linkedin", "remoteok", "arbeitnow", ...
    description: str = ""   # Cleaned text (no HTML)
    posted_at: Optional[datetime] = None
    salary: Optional[str] = None   # Raw text, e.g. "$50k - $80k"
    experience_level: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    uid: str = ""

    def __post_init__(self):
        if not self.uid:
            self.uid = make_job_uid(self.source, self.title, self.company, self.location)

    @property
    def dedup_key(self) -> str:
        return f"{self.title.lower()}-{self.company.lower()}"

    def to_dict(self) -> dict:
        return {
            "uid": self.uid,
            "title": self.title,
            "company": self.company,
            "location": self.location,
            "salary": self.salary,
            "postedAt": self.posted_at.isoformat() if self.posted_at else None,
            "description": self.description,
            "url": self.url,
            "source": self.source,
            "experienceLevel": self.experience_level,
            "tags": list(self.tags),
        }


def sort_newest_first(jobs: List[JobRecord]) -> List[JobRecord]:
    """Sort by posted_at descending; jobs without a date go last."""
    def key(job: JobRecord) -> float:
        return job.posted_at.timestamp() if job.posted_at else 0.0

    return sorted(jobs, key=key, reverse=True)


def dedupe_jobs(jobs: List[JobRecord]) -> List[JobRecord]:
    """Drop repeated title+company pairs (case-insensitive), first occurrence wins."""
    seen = set()
    unique = []
    for job in jobs:
        key = job.dedup_key
        if key in seen:
            continue
        seen.add(key)
        unique.append(job)
    return unique
