# jobflow/graph/state.py
from dataclasses import dataclass, field
from typing import Any, List, Optional, TypedDict

from ..models.execution import NodeLog
from ..models.job import JobRecord


class RunState(TypedDict):
    # The in-flight job list handed from one node to the next
    jobs: List[JobRecord]


@dataclass
class ExecutionContext:
    """Everything one run carries between nodes. Discarded once the run is persisted."""
    workflow_id: str
    execution_id: str
    user_id: Optional[str] = None
    jobs: List[JobRecord] = field(default_factory=list)
    logs: List[NodeLog] = field(default_factory=list)
    failed_node: Optional[Any] = None
