import json
import logging
import os
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from ..models.execution import (
    Execution,
    ExecutionStatus,
    NodeLog,
    TriggeredBy,
    new_execution_id,
)
from ..models.workflow import Workflow

LOGGER = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryStore:
    """
    Workflow and execution records kept in dicts.

    Execution rows are finalized at most once: `finalize` only applies while the
    row is still running, so a stop request and a natural completion cannot
    overwrite each other.
    """

    def __init__(self, workflows: Optional[Iterable[Workflow]] = None):
        self._workflows: Dict[str, Workflow] = {}
        self._executions: Dict[str, Execution] = {}
        for workflow in workflows or []:
            self._workflows[workflow.workflow_id] = workflow

    def _changed(self) -> None:
        """Hook for subclasses that persist somewhere."""

    # --- workflows ---

    async def get_workflow(self, workflow_id: str) -> Optional[Workflow]:
        return self._workflows.get(workflow_id)

    async def save_workflow(self, workflow: Workflow) -> None:
        self._workflows[workflow.workflow_id] = workflow
        self._changed()

    async def delete_workflow(self, workflow_id: str) -> None:
        self._workflows.pop(workflow_id, None)
        for execution_id in [e.execution_id for e in self._executions.values() if e.workflow_id == workflow_id]:
            del self._executions[execution_id]
        self._changed()

    async def list_workflows(self) -> List[Workflow]:
        return list(self._workflows.values())

    async def list_schedulable(self) -> List[Workflow]:
        return [w for w in self._workflows.values() if w.is_schedulable]

    async def list_expired(self, now: Optional[datetime] = None) -> List[Workflow]:
        now = now or _utcnow()
        return [w for w in self._workflows.values() if w.is_active and w.is_expired(now)]

    async def deactivate(self, workflow_id: str) -> None:
        workflow = self._workflows.get(workflow_id)
        if workflow is None:
            return
        workflow.deactivate()
        self._changed()
        LOGGER.info("Workflow deactivated: %s", workflow_id)

    async def record_run(self, workflow_id: str, at: Optional[datetime] = None) -> None:
        workflow = self._workflows.get(workflow_id)
        if workflow is None:
            return
        workflow.last_executed_at = at or _utcnow()
        workflow.execution_count += 1
        self._changed()

    # --- executions ---

    async def create_running(self, workflow_id: str, triggered_by: TriggeredBy) -> str:
        execution = Execution(
            execution_id=new_execution_id(),
            workflow_id=workflow_id,
            triggered_by=triggered_by,
            status=ExecutionStatus.RUNNING,
        )
        self._executions[execution.execution_id] = execution
        self._changed()
        return execution.execution_id

    async def append_node_log(self, execution_id: str, log: NodeLog) -> None:
        execution = self._executions.get(execution_id)
        if execution is None:
            return
        execution.node_logs.append(log)
        self._changed()

    async def finalize(
        self,
        execution_id: str,
        status: ExecutionStatus,
        error: Optional[str] = None,
        jobs_scraped: Optional[int] = None,
        jobs_filtered: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> bool:
        execution = self._executions.get(execution_id)
        if execution is None or execution.is_finished:
            return False

        execution.finish(status, error=error, now=now)
        if jobs_scraped is not None:
            execution.jobs_scraped = jobs_scraped
        if jobs_filtered is not None:
            execution.jobs_filtered = jobs_filtered
        self._changed()
        return True

    async def get_execution(self, execution_id: str) -> Optional[Execution]:
        return self._executions.get(execution_id)

    async def list_executions(self, workflow_id: str, limit: int = 10) -> List[Execution]:
        executions = [e for e in self._executions.values() if e.workflow_id == workflow_id]
        executions.sort(key=lambda e: e.started_at, reverse=True)
        return executions[:limit]


class JsonFileStore(InMemoryStore):
    """InMemoryStore that rewrites one JSON file after every change."""

    def __init__(self, path: str):
        super().__init__()
        self.path = path
        self._load()

    def _load(self) -> None:
        if not os.path.exists(self.path):
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            raise ValueError(f"Could not read store file {self.path}: {exc}") from exc

        for raw in data.get("workflows", []):
            workflow = Workflow.from_dict(raw)
            self._workflows[workflow.workflow_id] = workflow
        for raw in data.get("executions", []):
            execution = Execution.from_dict(raw)
            self._executions[execution.execution_id] = execution

    def _changed(self) -> None:
        data = {
            "workflows": [w.to_dict() for w in self._workflows.values()],
            "executions": [e.to_dict() for e in self._executions.values()],
        }
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, self.path)
