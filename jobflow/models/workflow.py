# jobflow/models/workflow.py
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from ..errors import ConfigurationError
from ..utils.cleaning import parse_posted_at
from ..utils.filtering import FilterCriteria


class NodeType(str, Enum):
    TRIGGER = "trigger"
    JOB_SOURCE = "job-source"
    NORMALIZE = "normalize-data"
    FILTER = "filter"
    DAILY_EMAIL = "daily-email"


class Schedule(str, Enum):
    DAILY_9AM = "daily-9am"
    DAILY_6PM = "daily-6pm"
    WEEKLY = "weekly"


class WorkflowStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    PAUSED = "paused"


# Labels the workflow editor stores in the email node's metadata
SCHEDULE_LABELS = {
    "daily at 9 am": Schedule.DAILY_9AM,
    "daily at 6 pm": Schedule.DAILY_6PM,
    "weekly": Schedule.WEEKLY,
}

DEFAULT_KEYWORDS = "software engineer"
DEFAULT_LOCATION = "India"


def parse_schedule(value: Optional[str]) -> Schedule:
    if not value:
        return Schedule.DAILY_9AM
    try:
        return Schedule(value)
    except ValueError:
        return SCHEDULE_LABELS.get(value.strip().lower(), Schedule.DAILY_9AM)


# --- Node kinds ---

@dataclass
class TriggerNode:
    id: str
    type = NodeType.TRIGGER


@dataclass
class JobSourceNode:
    id: str
    source_id: Optional[str]
    keywords: str = DEFAULT_KEYWORDS
    location: str = DEFAULT_LOCATION
    type = NodeType.JOB_SOURCE


@dataclass
class NormalizeNode:
    id: str
    remove_duplicates: bool = True
    type = NodeType.NORMALIZE


@dataclass
class FilterNode:
    id: str
    criteria: FilterCriteria = field(default_factory=FilterCriteria)
    raw_filters: List[str] = field(default_factory=list)
    type = NodeType.FILTER


@dataclass
class DailyEmailNode:
    id: str
    recipients: str = ""
    schedule: Schedule = Schedule.DAILY_9AM
    type = NodeType.DAILY_EMAIL


WorkflowNode = Union[TriggerNode, JobSourceNode, NormalizeNode, FilterNode, DailyEmailNode]


def _flag(value: Any, default: bool = True) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() not in ("no", "false", "off", "0")
    return bool(value)


def parse_node(raw: Dict[str, Any]) -> WorkflowNode:
    """
    Builds a typed node from the editor's JSON shape:
    {"id": ..., "data": {"type": "job-source", "sourceId": ..., "metadata": {...}}}
    """
    node_id = raw.get("id")
    if not node_id:
        raise ConfigurationError(f"Workflow node without an id: {raw!r}")

    data = raw.get("data") or {}
    metadata = data.get("metadata") or {}
    node_type = data.get("type") or raw.get("type")

    try:
        kind = NodeType(node_type)
    except ValueError:
        raise ConfigurationError(f"Unknown node type {node_type!r} on node {node_id}") from None

    if kind is NodeType.TRIGGER:
        return TriggerNode(id=node_id)

    if kind is NodeType.JOB_SOURCE:
        # "jobType" is the older name of the field
        return JobSourceNode(
            id=node_id,
            source_id=data.get("sourceId") or data.get("jobType") or metadata.get("sourceId"),
            keywords=metadata.get("keywords") or metadata.get("jobType") or DEFAULT_KEYWORDS,
            location=metadata.get("location") or DEFAULT_LOCATION,
        )

    if kind is NodeType.NORMALIZE:
        return NormalizeNode(id=node_id, remove_duplicates=_flag(metadata.get("removeDuplicates")))

    if kind is NodeType.FILTER:
        filters = metadata.get("filters") or []
        if not isinstance(filters, list):
            raise ConfigurationError(f"Filter node {node_id}: 'filters' must be a list of strings")
        return FilterNode(id=node_id, criteria=FilterCriteria.parse(filters), raw_filters=list(filters))

    return DailyEmailNode(
        id=node_id,
        recipients=(metadata.get("recipients") or "").strip(),
        schedule=parse_schedule(metadata.get("schedule")),
    )


def node_to_dict(node: WorkflowNode) -> Dict[str, Any]:
    data: Dict[str, Any] = {"type": node.type.value, "metadata": {}}
    if isinstance(node, JobSourceNode):
        data["sourceId"] = node.source_id
        data["metadata"] = {"keywords": node.keywords, "location": node.location}
    elif isinstance(node, NormalizeNode):
        data["metadata"] = {"removeDuplicates": "Yes" if node.remove_duplicates else "No"}
    elif isinstance(node, FilterNode):
        data["metadata"] = {"filters": list(node.raw_filters)}
    elif isinstance(node, DailyEmailNode):
        data["metadata"] = {"recipients": node.recipients, "schedule": node.schedule.value}
    return {"id": node.id, "data": data}


@dataclass
class Edge:
    source: str
    target: str


# --- Workflow ---

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class Workflow:
    workflow_id: str
    title: str = ""
    status: WorkflowStatus = WorkflowStatus.DRAFT
    user_id: Optional[str] = None
    nodes: List[WorkflowNode] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)
    is_active: bool = False
    activated_at: Optional[datetime] = None
    deactivates_at: Optional[datetime] = None
    schedule: Schedule = Schedule.DAILY_9AM
    last_executed_at: Optional[datetime] = None
    execution_count: int = 0

    @property
    def is_published(self) -> bool:
        return self.status is WorkflowStatus.PUBLISHED

    @property
    def is_schedulable(self) -> bool:
        return self.is_published and self.is_active

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.deactivates_at is None:
            return False
        return self.deactivates_at < (now or _utcnow())

    def activate(self, duration: timedelta, now: Optional[datetime] = None) -> None:
        now = now or _utcnow()
        self.is_active = True
        self.activated_at = now
        self.deactivates_at = now + duration

    def deactivate(self) -> None:
        self.is_active = False
        self.activated_at = None
        self.deactivates_at = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Workflow":
        nodes = [parse_node(raw) for raw in data.get("nodes") or []]
        edges = [Edge(source=e["source"], target=e["target"]) for e in data.get("edges") or []]

        # An email node carries the schedule unless the workflow sets one directly
        schedule = data.get("schedule")
        if schedule:
            parsed_schedule = parse_schedule(schedule)
        else:
            email_nodes = [n for n in nodes if isinstance(n, DailyEmailNode)]
            parsed_schedule = email_nodes[0].schedule if email_nodes else Schedule.DAILY_9AM

        return cls(
            workflow_id=data["workflowId"],
            title=data.get("title", ""),
            status=WorkflowStatus(data.get("status", WorkflowStatus.DRAFT.value)),
            user_id=data.get("userId"),
            nodes=nodes,
            edges=edges,
            is_active=bool(data.get("isActive", False)),
            activated_at=parse_posted_at(data.get("activatedAt")),
            deactivates_at=parse_posted_at(data.get("deactivatesAt")),
            schedule=parsed_schedule,
            last_executed_at=parse_posted_at(data.get("lastExecutedAt")),
            execution_count=int(data.get("executionCount", 0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "workflowId": self.workflow_id,
            "title": self.title,
            "status": self.status.value,
            "userId": self.user_id,
            "nodes": [node_to_dict(node) for node in self.nodes],
            "edges": [{"source": e.source, "target": e.target} for e in self.edges],
            "isActive": self.is_active,
            "activatedAt": _iso(self.activated_at),
            "deactivatesAt": _iso(self.deactivates_at),
            "schedule": self.schedule.value,
            "lastExecutedAt": _iso(self.last_executed_at),
            "executionCount": self.execution_count,
        }
