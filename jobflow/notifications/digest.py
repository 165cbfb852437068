from typing import List

from ..models.job import JobRecord

PREVIEW_LENGTH = 200


def digest_subject(jobs: List[JobRecord]) -> str:
    return f"Your Daily Job Digest - {len(jobs)} New Jobs"


def render_digest_text(jobs: List[JobRecord], workflow_id: str) -> str:
    """Plain-text body listing every job, newest first as given."""
    lines = [f"{len(jobs)} new jobs from workflow {workflow_id}", ""]
    for index, job in enumerate(jobs, start=1):
        lines.append(f"{index}. {job.title} - {job.company} ({job.location})")
        details = [job.source]
        if job.salary:
            details.append(job.salary)
        if job.posted_at:
            details.append(job.posted_at.strftime("%Y-%m-%d"))
        lines.append("   " + " | ".join(details))
        if job.url:
            lines.append(f"   {job.url}")
        if job.description:
            preview = job.description[:PREVIEW_LENGTH]
            if len(job.description) > PREVIEW_LENGTH:
                preview += "..."
            lines.append(f"   {preview}")
        lines.append("")
    return "\n".join(lines)
