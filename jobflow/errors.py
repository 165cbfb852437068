"""Exceptions raised by the workflow engine and its collaborators."""
from typing import List, Optional


class JobflowError(Exception):
    """Base class for every error raised by jobflow."""


class ConfigurationError(JobflowError):
    """A node or workflow is missing a required field. Fatal, never retried."""


class TransientSourceError(JobflowError):
    """A single source fetch failed (timeout, bad status, unparsable body)."""

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source


class ConcurrencyConflictError(JobflowError):
    """The workflow, or another workflow of the same user, is already running."""

    def __init__(self, message: str, conflicting_workflow_id: str):
        super().__init__(message)
        self.conflicting_workflow_id = conflicting_workflow_id


class WorkflowNotFoundError(JobflowError):
    def __init__(self, workflow_id: str):
        super().__init__(f"Workflow not found: {workflow_id}")
        self.workflow_id = workflow_id


class WorkflowNotActiveError(JobflowError):
    def __init__(self, workflow_id: str):
        super().__init__(
            "This workflow is not active. Please publish and activate it before running."
        )
        self.workflow_id = workflow_id


class ExpiredWorkflowError(JobflowError):
    def __init__(self, workflow_id: str):
        super().__init__("This workflow has expired. Please reactivate it to run.")
        self.workflow_id = workflow_id


class CancellationError(JobflowError):
    """The run was stopped between two nodes."""


class NodeHandlerError(JobflowError):
    """Any other failure inside a node handler. Fails the whole run."""

    def __init__(self, node_id: str, node_type: str, message: str):
        super().__init__(f"Node '{node_id}' ({node_type}) failed: {message}")
        self.node_id = node_id
        self.node_type = node_type


class NotificationError(JobflowError):
    """A digest could not be delivered."""


class CycleDetectedError(JobflowError):
    def __init__(self, node_ids: List[str], message: Optional[str] = None):
        super().__init__(message or f"Workflow graph has nodes that can never run (cycle or unknown upstream): {', '.join(node_ids)}")
        self.node_ids = node_ids
