from typing import Awaitable, Callable, Sequence

from langgraph.graph import StateGraph, END

from ..models.workflow import WorkflowNode
from .state import RunState

NodeRunner = Callable[[WorkflowNode, RunState], Awaitable[dict]]


def step_name(index: int) -> str:
    # Node ids come from user configuration and may clash with langgraph's reserved names
    return f"step_{index}"


def _make_step(node: WorkflowNode, run_node: NodeRunner):
    async def step(state: RunState):
        return await run_node(node, state)

    return step


def create_graph(nodes: Sequence[WorkflowNode], run_node: NodeRunner):
    """
    Compiles an already-sorted node list into a straight chain:
    step_0 -> step_1 -> ... -> END. Each step hands the node to `run_node`
    and gets back the state update {"jobs": [...]}.
    """
    if not nodes:
        raise ValueError("Cannot build a graph with no nodes")

    workflow = StateGraph(RunState)

    names = []
    for index, node in enumerate(nodes):
        name = step_name(index)
        workflow.add_node(name, _make_step(node, run_node))
        names.append(name)

    workflow.set_entry_point(names[0])
    for current, following in zip(names, names[1:]):
        workflow.add_edge(current, following)
    workflow.add_edge(names[-1], END)

    return workflow.compile()
