import asyncio
import datetime as dt

import pytest

from jobflow.errors import ConcurrencyConflictError
from jobflow.models.execution import TriggeredBy
from jobflow.scheduling.scheduler import WorkflowScheduler


class RecordingExecutor:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    async def execute(self, workflow_id, triggered_by=TriggeredBy.MANUAL, user_id=None):
        self.calls.append((workflow_id, triggered_by))
        if self.error is not None:
            raise self.error
        return "execution"


@pytest.fixture
def recording_executor():
    return RecordingExecutor()


@pytest.fixture
def scheduler(recording_executor, store):
    return WorkflowScheduler(recording_executor, store, poll_seconds=3600)


class TestRegistry:
    def test_entries_are_registered_but_not_armed_while_stopped(self, scheduler, workflow_factory):
        entry = scheduler.schedule_workflow(workflow_factory())

        assert entry is not None
        assert not entry.armed
        assert scheduler.status() == {
            "is_running": False,
            "scheduled_count": 1,
            "entries": [{"workflow_id": "wf_1", "schedule": "daily-9am"}],
        }

    def test_inactive_workflows_are_not_scheduled(self, scheduler, workflow_factory):
        assert scheduler.schedule_workflow(workflow_factory(status="draft")) is None
        assert scheduler.schedule_workflow(workflow_factory("wf_2", is_active=False)) is None
        assert scheduler.status()["scheduled_count"] == 0

    def test_rescheduling_replaces_the_entry(self, scheduler, workflow_factory):
        scheduler.schedule_workflow(workflow_factory(schedule="Daily at 9 AM"))
        scheduler.schedule_workflow(workflow_factory(schedule="Weekly"))

        assert scheduler.status()["entries"] == [{"workflow_id": "wf_1", "schedule": "weekly"}]

    def test_unschedule(self, scheduler, workflow_factory):
        scheduler.schedule_workflow(workflow_factory())

        assert scheduler.unschedule_workflow("wf_1") is True
        assert scheduler.unschedule_workflow("wf_1") is False
        assert scheduler.entries == {}


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_arms_rules_in_the_configured_timezone(self, scheduler, store, workflow_factory):
        await store.save_workflow(workflow_factory("wf_am", schedule="daily-9am"))
        await store.save_workflow(workflow_factory("wf_pm", schedule="Daily at 6 PM"))
        await store.save_workflow(workflow_factory("wf_week", schedule="weekly"))

        await scheduler.start()
        try:
            entries = scheduler.entries
            am, pm, week = entries["wf_am"].job, entries["wf_pm"].job, entries["wf_week"].job

            assert (am.unit, am.at_time) == ("days", dt.time(9, 0))
            assert (pm.unit, pm.at_time) == ("days", dt.time(18, 0))
            assert (week.unit, week.start_day, week.at_time) == ("weeks", "monday", dt.time(9, 0))
            assert str(am.at_time_zone) == "Asia/Kolkata"
        finally:
            await scheduler.stop()

    @pytest.mark.asyncio
    async def test_stop_keeps_registry_and_start_resumes(self, scheduler, store, workflow_factory):
        await store.save_workflow(workflow_factory())

        await scheduler.start()
        await scheduler.start()
        assert scheduler.entries["wf_1"].armed

        await scheduler.stop()
        await scheduler.stop()
        assert scheduler.status()["is_running"] is False
        assert scheduler.status()["scheduled_count"] == 1
        assert not scheduler.entries["wf_1"].armed

        await scheduler.start()
        assert scheduler.entries["wf_1"].armed
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_refresh_follows_storage(self, scheduler, store, workflow_factory):
        await store.save_workflow(workflow_factory("wf_1"))
        await scheduler.refresh()
        assert list(scheduler.entries) == ["wf_1"]

        await store.delete_workflow("wf_1")
        await store.save_workflow(workflow_factory("wf_2"))
        await scheduler.refresh()
        assert list(scheduler.entries) == ["wf_2"]


class TestFiring:
    @pytest.mark.asyncio
    async def test_trigger_runs_as_scheduled(self, scheduler, recording_executor):
        assert await scheduler.trigger("wf_1") == "execution"
        assert recording_executor.calls == [("wf_1", TriggeredBy.SCHEDULE)]

    @pytest.mark.asyncio
    async def test_trigger_swallows_run_failures(self, store):
        executor = RecordingExecutor(error=ConcurrencyConflictError("This workflow is already running", "wf_1"))
        scheduler = WorkflowScheduler(executor, store)

        assert await scheduler.trigger("wf_1") is None
        assert len(executor.calls) == 1

    @pytest.mark.asyncio
    async def test_sweep_deactivates_expired_workflows(self, scheduler, store, workflow_factory):
        expired = workflow_factory("wf_old", deactivates_at=dt.datetime.now(dt.timezone.utc) - dt.timedelta(hours=1))
        await store.save_workflow(expired)
        await store.save_workflow(workflow_factory("wf_new"))
        scheduler.schedule_workflow(expired)

        count = await scheduler.sweep_expired()

        assert count == 1
        assert (await store.get_workflow("wf_old")).is_active is False
        assert list(scheduler.entries) == ["wf_new"]


def make_due(job):
    job.next_run = dt.datetime.now() - dt.timedelta(minutes=1)


class TestDueJobs:
    @pytest.mark.asyncio
    async def test_due_slot_fires_one_scheduled_run_and_hourly_sweep(
        self, scheduler, recording_executor, store, workflow_factory
    ):
        expired = workflow_factory("wf_old", deactivates_at=dt.datetime.now(dt.timezone.utc) - dt.timedelta(hours=1))
        await store.save_workflow(workflow_factory("wf_1"))
        await store.save_workflow(expired)

        await scheduler.start()
        try:
            assert scheduler._sweep_job is not None
            assert scheduler._sweep_job.unit == "hours"
            make_due(scheduler.entries["wf_1"].job)
            make_due(scheduler._sweep_job)

            started = scheduler.run_pending()
            assert len(started) == 2
            await asyncio.gather(*started)

            # Only wf_1 was due; wf_old is swept instead of run
            assert recording_executor.calls == [("wf_1", TriggeredBy.SCHEDULE)]
            assert (await store.get_workflow("wf_old")).is_active is False
            assert list(scheduler.entries) == ["wf_1"]
            assert scheduler.entries["wf_1"].armed

            # Both jobs moved on to their next slot
            assert scheduler.run_pending() == []
        finally:
            await scheduler.stop()

    @pytest.mark.asyncio
    async def test_failed_run_leaves_the_slot_armed(self, store, workflow_factory):
        executor = RecordingExecutor(error=RuntimeError("source down"))
        scheduler = WorkflowScheduler(executor, store, poll_seconds=3600)
        await store.save_workflow(workflow_factory())

        await scheduler.start()
        try:
            job = scheduler.entries["wf_1"].job
            make_due(job)

            started = scheduler.run_pending()
            assert await asyncio.gather(*started) == [None]

            assert executor.calls == [("wf_1", TriggeredBy.SCHEDULE)]
            entry = scheduler.entries["wf_1"]
            assert entry.armed
            assert entry.job is job
            assert job.next_run > dt.datetime.now()
        finally:
            await scheduler.stop()
