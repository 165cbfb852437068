from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from ..errors import CancellationError, ConcurrencyConflictError


class CancellationToken:
    """Set by a stop request; the executor checks it between nodes."""

    def __init__(self):
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise CancellationError("Workflow execution was stopped")


@dataclass
class RunningWorkflow:
    workflow_id: str
    execution_id: Optional[str] = None
    user_id: Optional[str] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    token: CancellationToken = field(default_factory=CancellationToken)


class RunTracker:
    """
    In-process record of which workflows, and which users, have a run in progress.

    `reserve` checks and registers in one synchronous step, so two coroutines
    cannot both pass the check between await points.
    """

    def __init__(self):
        self._by_workflow: Dict[str, RunningWorkflow] = {}
        self._by_user: Dict[str, str] = {}

    def is_running(self, workflow_id: str) -> bool:
        return workflow_id in self._by_workflow

    def get(self, workflow_id: str) -> Optional[RunningWorkflow]:
        return self._by_workflow.get(workflow_id)

    def for_user(self, user_id: Optional[str]) -> Optional[RunningWorkflow]:
        if not user_id:
            return None
        workflow_id = self._by_user.get(user_id)
        return self._by_workflow.get(workflow_id) if workflow_id else None

    def running(self) -> List[RunningWorkflow]:
        return list(self._by_workflow.values())

    def check_available(self, workflow_id: str, user_id: Optional[str] = None) -> None:
        if workflow_id in self._by_workflow:
            raise ConcurrencyConflictError("This workflow is already running", workflow_id)

        existing = self.for_user(user_id)
        if existing is not None:
            raise ConcurrencyConflictError(
                f"You already have a workflow running: {existing.workflow_id}. "
                "Stop it first or wait for it to complete.",
                existing.workflow_id,
            )

    def reserve(self, workflow_id: str, user_id: Optional[str] = None) -> RunningWorkflow:
        self.check_available(workflow_id, user_id)
        running = RunningWorkflow(workflow_id=workflow_id, user_id=user_id)
        self._by_workflow[workflow_id] = running
        if user_id:
            self._by_user[user_id] = workflow_id
        return running

    def release(self, running: RunningWorkflow) -> None:
        """Removes the entry only if it is still this run's; a newer run is left alone."""
        if self._by_workflow.get(running.workflow_id) is running:
            del self._by_workflow[running.workflow_id]
        if running.user_id and self._by_user.get(running.user_id) == running.workflow_id:
            if running.workflow_id not in self._by_workflow:
                del self._by_user[running.user_id]
