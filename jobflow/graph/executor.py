import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional

from ..errors import (
    CancellationError,
    ConfigurationError,
    ExpiredWorkflowError,
    NodeHandlerError,
    WorkflowNotActiveError,
    WorkflowNotFoundError,
)
from ..models.execution import Execution, ExecutionStatus, NodeLog, TriggeredBy
from ..models.workflow import Workflow, WorkflowNode
from .handlers import HandlerRegistry
from .sorter import get_execution_order
from .state import ExecutionContext, RunState
from .tracker import RunningWorkflow, RunTracker
from .workflow import create_graph

LOGGER = logging.getLogger(__name__)

STOPPED_MESSAGE = "Workflow stopped by user"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WorkflowExecutor:
    """
    Runs one workflow at a time per workflow id and per user.

    A run goes: exclusivity checks, activation checks, a `running` execution
    row, then every node in dependency order through a langgraph chain. The
    execution row ends `completed` or `failed`; the tracker entry is always
    released.
    """

    def __init__(self, store, handlers: HandlerRegistry, tracker: Optional[RunTracker] = None):
        self.store = store
        self.handlers = handlers
        self.tracker = tracker or RunTracker()

    # --- status ---

    def running_workflows(self) -> List[RunningWorkflow]:
        return self.tracker.running()

    def is_running(self, workflow_id: str) -> bool:
        return self.tracker.is_running(workflow_id)

    def user_running_workflow(self, user_id: str) -> Optional[str]:
        running = self.tracker.for_user(user_id)
        return running.workflow_id if running else None

    async def get_execution(self, execution_id: str) -> Optional[Execution]:
        return await self.store.get_execution(execution_id)

    async def get_execution_history(self, workflow_id: str, limit: int = 10) -> List[Execution]:
        return await self.store.list_executions(workflow_id, limit=limit)

    # --- run ---

    async def _load_runnable(self, workflow_id: str) -> Workflow:
        workflow = await self.store.get_workflow(workflow_id)
        if workflow is None:
            raise WorkflowNotFoundError(workflow_id)
        if not (workflow.is_published and workflow.is_active):
            raise WorkflowNotActiveError(workflow_id)
        if workflow.is_expired():
            await self.store.deactivate(workflow_id)
            LOGGER.warning("Workflow %s has expired and was deactivated", workflow_id)
            raise ExpiredWorkflowError(workflow_id)
        return workflow

    async def execute(
        self,
        workflow_id: str,
        triggered_by: TriggeredBy = TriggeredBy.MANUAL,
        user_id: Optional[str] = None,
    ) -> Execution:
        # Check and register with no await in between
        running = self.tracker.reserve(workflow_id, user_id)
        try:
            workflow = await self._load_runnable(workflow_id)
            execution_id = await self.store.create_running(workflow_id, triggered_by)
            running.execution_id = execution_id
            LOGGER.info(
                "Starting workflow %s (execution=%s, triggered_by=%s)",
                workflow_id, execution_id, triggered_by.value,
            )

            context = ExecutionContext(workflow_id=workflow_id, execution_id=execution_id, user_id=user_id)
            await self._run_nodes(workflow, context, running)
            completed = await self.store.finalize(
                execution_id,
                ExecutionStatus.COMPLETED,
                jobs_scraped=len(context.jobs),
                jobs_filtered=len(context.jobs),
            )
            # A stop that landed during the last node already closed the row
            if completed:
                await self.store.record_run(workflow_id)
                LOGGER.info("Workflow %s completed with %d jobs", workflow_id, len(context.jobs))
            return await self.store.get_execution(execution_id)
        finally:
            self.tracker.release(running)

    async def _run_nodes(self, workflow: Workflow, context: ExecutionContext, running: RunningWorkflow) -> None:
        ordered = get_execution_order(workflow.nodes, workflow.edges)
        if not ordered:
            LOGGER.warning("Workflow %s has no runnable nodes", workflow.workflow_id)
            return

        async def run_node(node: WorkflowNode, state: RunState) -> dict:
            running.token.raise_if_cancelled()
            context.jobs = list(state["jobs"])

            log = NodeLog(
                node_id=node.id,
                node_type=node.type.value,
                status=ExecutionStatus.RUNNING,
                input_count=len(context.jobs),
            )
            try:
                await self.handlers.dispatch(node, context)
            except Exception as exc:
                context.failed_node = node
                log.status = ExecutionStatus.FAILED
                log.error = str(exc)
                await self._record_log(context, log)
                raise

            log.status = ExecutionStatus.COMPLETED
            await self._record_log(context, log)
            return {"jobs": context.jobs}

        app = create_graph(ordered, run_node)
        try:
            await app.ainvoke({"jobs": []}, config={"recursion_limit": len(ordered) + 5})
        except CancellationError:
            LOGGER.info("Workflow %s stopped before completion", workflow.workflow_id)
            await self.store.finalize(context.execution_id, ExecutionStatus.FAILED, error=STOPPED_MESSAGE)
            raise
        except Exception as exc:
            node = context.failed_node
            if node is None:
                message = f"Workflow run failed: {exc}"
            else:
                message = str(NodeHandlerError(node.id, node.type.value, str(exc)))
            LOGGER.error("Workflow %s failed: %s", workflow.workflow_id, message)
            await self.store.finalize(context.execution_id, ExecutionStatus.FAILED, error=message)
            if node is None or isinstance(exc, (ConfigurationError, NodeHandlerError)):
                raise
            raise NodeHandlerError(node.id, node.type.value, str(exc)) from exc
        except asyncio.CancelledError:
            await self.store.finalize(context.execution_id, ExecutionStatus.FAILED, error=STOPPED_MESSAGE)
            raise

    async def _record_log(self, context: ExecutionContext, log: NodeLog) -> None:
        log.output_count = len(context.jobs)
        log.completed_at = _utcnow()
        context.logs.append(log)
        await self.store.append_node_log(context.execution_id, log)

    # --- stop ---

    async def stop(self, workflow_id: str) -> bool:
        """Signals a run to stop before its next node. Returns False if nothing was running."""
        running = self.tracker.get(workflow_id)
        if running is None:
            return False

        running.token.cancel()
        if running.execution_id:
            await self.store.finalize(running.execution_id, ExecutionStatus.FAILED, error=STOPPED_MESSAGE)
        self.tracker.release(running)
        LOGGER.info("Workflow %s stopped by user", workflow_id)
        return True
