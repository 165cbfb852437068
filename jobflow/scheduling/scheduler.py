import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set

import schedule

from ..models.execution import Execution, TriggeredBy
from ..models.workflow import Schedule, Workflow

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "Asia/Kolkata"

# schedule tag -> (interval unit on schedule.Job, time of day)
SCHEDULE_RULES = {
    Schedule.DAILY_9AM: ("day", "09:00"),
    Schedule.DAILY_6PM: ("day", "18:00"),
    Schedule.WEEKLY: ("monday", "09:00"),
}


@dataclass
class ScheduledEntry:
    workflow_id: str
    schedule: Schedule
    job: Optional[schedule.Job] = None

    @property
    def armed(self) -> bool:
        return self.job is not None


class WorkflowScheduler:
    """
    Fires published, active workflows on their daily or weekly slot.

    Jobs live on a private `schedule.Scheduler`; a polling task on the event
    loop calls `run_pending`, and each firing becomes its own asyncio task so a
    slow run never holds up the others.
    """

    def __init__(self, executor, store, timezone: str = DEFAULT_TIMEZONE, poll_seconds: float = 30.0):
        self.executor = executor
        self.store = store
        self.timezone = timezone
        self.poll_seconds = poll_seconds

        self._scheduler = schedule.Scheduler()
        self._entries: Dict[str, ScheduledEntry] = {}
        self._sweep_job: Optional[schedule.Job] = None
        self._poll_task: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()
        self.is_running = False

    @property
    def entries(self) -> Dict[str, ScheduledEntry]:
        return dict(self._entries)

    # --- registry ---

    def schedule_workflow(self, workflow: Workflow) -> Optional[ScheduledEntry]:
        self.unschedule_workflow(workflow.workflow_id)
        if not workflow.is_schedulable:
            LOGGER.info("Workflow %s is not published and active, not scheduling", workflow.workflow_id)
            return None

        entry = ScheduledEntry(workflow_id=workflow.workflow_id, schedule=workflow.schedule)
        self._entries[workflow.workflow_id] = entry
        if self.is_running:
            self._arm(entry)
        LOGGER.info("Scheduled workflow %s (%s)", workflow.workflow_id, workflow.schedule.value)
        return entry

    def unschedule_workflow(self, workflow_id: str) -> bool:
        entry = self._entries.pop(workflow_id, None)
        if entry is None:
            return False
        self._disarm(entry)
        LOGGER.info("Unscheduled workflow %s", workflow_id)
        return True

    def _arm(self, entry: ScheduledEntry) -> None:
        if entry.armed:
            return
        unit, at_time = SCHEDULE_RULES[entry.schedule]
        every = getattr(self._scheduler.every(), unit)
        entry.job = every.at(at_time, self.timezone).do(self._fire, entry.workflow_id)

    def _disarm(self, entry: ScheduledEntry) -> None:
        if entry.job is not None:
            self._scheduler.cancel_job(entry.job)
            entry.job = None

    # --- firing ---

    def _spawn(self, coro) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _fire(self, workflow_id: str) -> None:
        self._spawn(self.trigger(workflow_id))

    def _fire_sweep(self) -> None:
        self._spawn(self._safe_sweep())

    async def trigger(self, workflow_id: str) -> Optional[Execution]:
        """Runs a workflow as a scheduled run. Failures are logged, never raised."""
        LOGGER.info("Scheduled run firing for workflow %s", workflow_id)
        try:
            return await self.executor.execute(workflow_id, triggered_by=TriggeredBy.SCHEDULE)
        except Exception as exc:
            LOGGER.error("Scheduled run of workflow %s failed: %s", workflow_id, exc)
            return None

    async def sweep_expired(self) -> int:
        """Deactivates workflows whose activation window has passed, then rebuilds the registry."""
        expired = await self.store.list_expired()
        for workflow in expired:
            await self.store.deactivate(workflow.workflow_id)
            LOGGER.info("Workflow %s expired, deactivated", workflow.workflow_id)
        await self.refresh()
        return len(expired)

    async def _safe_sweep(self) -> None:
        try:
            await self.sweep_expired()
        except Exception as exc:
            LOGGER.error("Expiry sweep failed: %s", exc)

    def run_pending(self) -> List[asyncio.Task]:
        """Fires every job that is due and returns the runs it started."""
        before = set(self._tasks)
        self._scheduler.run_pending()
        return [task for task in self._tasks if task not in before]

    async def _poll(self) -> None:
        while True:
            self.run_pending()
            await asyncio.sleep(self.poll_seconds)

    # --- control ---

    async def refresh(self) -> None:
        for entry in list(self._entries.values()):
            self._disarm(entry)
        self._entries.clear()

        for workflow in await self.store.list_schedulable():
            self.schedule_workflow(workflow)
        LOGGER.info("Scheduler refreshed: %d workflow(s) scheduled", len(self._entries))

    async def start(self) -> None:
        if self.is_running:
            return
        self.is_running = True
        await self.refresh()
        self._sweep_job = self._scheduler.every().hour.do(self._fire_sweep)
        self._poll_task = asyncio.ensure_future(self._poll())
        LOGGER.info("Scheduler started (timezone=%s)", self.timezone)

    async def stop(self) -> None:
        if not self.is_running:
            return
        self.is_running = False

        for entry in self._entries.values():
            self._disarm(entry)
        if self._sweep_job is not None:
            self._scheduler.cancel_job(self._sweep_job)
            self._sweep_job = None

        if self._poll_task is not None:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            self._poll_task = None
        LOGGER.info("Scheduler stopped")

    def status(self) -> Dict[str, Any]:
        return {
            "is_running": self.is_running,
            "scheduled_count": len(self._entries),
            "entries": [
                {"workflow_id": entry.workflow_id, "schedule": entry.schedule.value}
                for entry in self._entries.values()
            ],
        }
