# jobflow/models/execution.py
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from ..utils.cleaning import parse_posted_at


class ExecutionStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class TriggeredBy(str, Enum):
    SCHEDULE = "schedule"
    MANUAL = "manual"
    API = "api"


def new_execution_id() -> str:
    return f"exec_{uuid.uuid4().hex[:8]}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class NodeLog:
    node_id: str
    node_type: str
    status: ExecutionStatus = ExecutionStatus.PENDING
    started_at: datetime = field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None
    input_count: int = 0
    output_count: int = 0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodeId": self.node_id,
            "nodeType": self.node_type,
            "status": self.status.value,
            "startedAt": _iso(self.started_at),
            "completedAt": _iso(self.completed_at),
            "inputCount": self.input_count,
            "outputCount": self.output_count,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NodeLog":
        return cls(
            node_id=data["nodeId"],
            node_type=data["nodeType"],
            status=ExecutionStatus(data.get("status", "pending")),
            started_at=parse_posted_at(data.get("startedAt")) or _utcnow(),
            completed_at=parse_posted_at(data.get("completedAt")),
            input_count=data.get("inputCount", 0),
            output_count=data.get("outputCount", 0),
            error=data.get("error"),
        )


@dataclass
class Execution:
    execution_id: str
    workflow_id: str
    triggered_by: TriggeredBy = TriggeredBy.MANUAL
    status: ExecutionStatus = ExecutionStatus.RUNNING
    started_at: datetime = field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None
    duration: Optional[int] = None  # milliseconds
    node_logs: List[NodeLog] = field(default_factory=list)
    jobs_scraped: int = 0
    jobs_filtered: int = 0
    error: Optional[str] = None

    @property
    def is_finished(self) -> bool:
        return self.status in (ExecutionStatus.COMPLETED, ExecutionStatus.FAILED)

    def finish(self, status: ExecutionStatus, error: Optional[str] = None, now: Optional[datetime] = None) -> None:
        self.status = status
        self.completed_at = now or _utcnow()
        self.duration = int((self.completed_at - self.started_at).total_seconds() * 1000)
        if error is not None:
            self.error = error

    def to_dict(self) -> Dict[str, Any]:
        return {
            "executionId": self.execution_id,
            "workflowId": self.workflow_id,
            "triggeredBy": self.triggered_by.value,
            "status": self.status.value,
            "startedAt": _iso(self.started_at),
            "completedAt": _iso(self.completed_at),
            "duration": self.duration,
            "nodeLogs": [log.to_dict() for log in self.node_logs],
            "jobsScraped": self.jobs_scraped,
            "jobsFiltered": self.jobs_filtered,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Execution":
        return cls(
            execution_id=data["executionId"],
            workflow_id=data["workflowId"],
            triggered_by=TriggeredBy(data.get("triggeredBy", "manual")),
            status=ExecutionStatus(data.get("status", "running")),
            started_at=parse_posted_at(data.get("startedAt")) or _utcnow(),
            completed_at=parse_posted_at(data.get("completedAt")),
            duration=data.get("duration"),
            node_logs=[NodeLog.from_dict(log) for log in data.get("nodeLogs") or []],
            jobs_scraped=data.get("jobsScraped", 0),
            jobs_filtered=data.get("jobsFiltered", 0),
            error=data.get("error"),
        )
