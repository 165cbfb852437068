import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from jobflow.errors import NotificationError
from jobflow.graph.executor import WorkflowExecutor
from jobflow.graph.handlers import create_handler_registry
from jobflow.models.job import JobRecord
from jobflow.models.workflow import Workflow
from jobflow.platforms.base import BaseScraper
from jobflow.platforms.orchestrator import ScraperService
from jobflow.utils.persistence import InMemoryStore


class FakeScraper(BaseScraper):
    """Returns canned jobs. With a gate, holds inside fetch_jobs until the gate is set."""

    def __init__(self, source, jobs=None, error=None, gate=None):
        super().__init__(timeout=1.0)
        self.source = source
        self.jobs = list(jobs or [])
        self.error = error
        self.gate = gate
        self.started = asyncio.Event()
        self.calls = []

    async def fetch_jobs(self, config):
        self.calls.append(config)
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return list(self.jobs)


class FakeNotifier:
    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []

    async def send_digest(self, recipients, jobs, workflow_id):
        if self.fail:
            raise NotificationError("SMTP relay refused the message")
        self.sent.append((recipients, list(jobs), workflow_id))


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture
def make_job():
    def _make(title, company="Acme", location="Remote", source="linkedin", **kwargs):
        return JobRecord(title=title, company=company, location=location, url=f"https://jobs.example/{title}", source=source, **kwargs)
    return _make


@pytest.fixture
def sample_jobs(make_job):
    now = datetime.now(timezone.utc)
    return [
        make_job("Backend Engineer", company="Acme", posted_at=now - timedelta(hours=2)),
        make_job("Frontend Engineer", company="Globex", posted_at=now - timedelta(hours=1)),
        make_job("Designer", company="Initech", posted_at=now - timedelta(days=1)),
        make_job("  backend   engineer ", company="ACME", posted_at=now - timedelta(hours=3)),
    ]


@pytest.fixture
def workflow_factory():
    def _build(
        workflow_id="wf_1",
        user_id="user_1",
        source_id="linkedin",
        filters=None,
        recipients="a@b.com",
        status="published",
        is_active=True,
        deactivates_at=None,
        schedule=None,
    ):
        if deactivates_at is None:
            deactivates_at = datetime.now(timezone.utc) + timedelta(days=7)
        email_metadata = {"recipients": recipients}
        if schedule:
            email_metadata["schedule"] = schedule
        return Workflow.from_dict({
            "workflowId": workflow_id,
            "title": f"Alerts {workflow_id}",
            "status": status,
            "userId": user_id,
            "isActive": is_active,
            "deactivatesAt": deactivates_at.isoformat(),
            "nodes": [
                {"id": "trigger", "data": {"type": "trigger"}},
                {"id": "source", "data": {"type": "job-source", "sourceId": source_id,
                                          "metadata": {"keywords": "engineer", "location": "Remote"}}},
                {"id": "normalize", "data": {"type": "normalize-data", "metadata": {"removeDuplicates": "Yes"}}},
                {"id": "filter", "data": {"type": "filter",
                                          "metadata": {"filters": filters if filters is not None else ["Title: engineer"]}}},
                {"id": "email", "data": {"type": "daily-email", "metadata": email_metadata}},
            ],
            # Listed out of order on purpose; execution follows the edges
            "edges": [
                {"source": "filter", "target": "email"},
                {"source": "trigger", "target": "source"},
                {"source": "normalize", "target": "filter"},
                {"source": "source", "target": "normalize"},
            ],
        })
    return _build


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def linkedin(sample_jobs):
    return FakeScraper("linkedin", jobs=sample_jobs)


@pytest.fixture
def scrapers(linkedin):
    return ScraperService([linkedin], rate_limit_delay=0)


@pytest.fixture
def executor(store, scrapers, notifier):
    return WorkflowExecutor(store, create_handler_registry(scrapers, notifier))
