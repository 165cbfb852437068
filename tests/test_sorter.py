import logging

import pytest

from jobflow.errors import CycleDetectedError
from jobflow.graph.sorter import get_execution_order
from jobflow.models.workflow import Edge, FilterNode, NormalizeNode, TriggerNode


def ids(nodes):
    return [node.id for node in nodes]


class TestExecutionOrder:
    def test_follows_edges_not_list_order(self):
        nodes = [NormalizeNode("c"), TriggerNode("a"), FilterNode("b")]
        edges = [Edge("a", "b"), Edge("b", "c")]

        assert ids(get_execution_order(nodes, edges)) == ["a", "b", "c"]

    def test_order_is_deterministic(self):
        nodes = [TriggerNode("root"), NormalizeNode("x"), NormalizeNode("y"), FilterNode("z")]
        edges = [Edge("root", "y"), Edge("root", "x"), Edge("x", "z"), Edge("y", "z")]

        first = ids(get_execution_order(nodes, edges))
        assert first == ["root", "y", "x", "z"]
        assert ids(get_execution_order(nodes, edges)) == first

    def test_nodes_without_edges_run_in_list_order(self):
        nodes = [TriggerNode("a"), NormalizeNode("b")]
        assert ids(get_execution_order(nodes, [])) == ["a", "b"]

    def test_cycle_members_are_dropped_with_warning(self, caplog):
        nodes = [TriggerNode("a"), NormalizeNode("b"), FilterNode("c")]
        edges = [Edge("a", "b"), Edge("b", "c"), Edge("c", "b")]

        with caplog.at_level(logging.WARNING, logger="jobflow.graph.sorter"):
            order = get_execution_order(nodes, edges)

        assert ids(order) == ["a"]
        assert "b, c" in caplog.text

    def test_strict_mode_raises_on_cycle(self):
        nodes = [NormalizeNode("b"), FilterNode("c")]
        edges = [Edge("b", "c"), Edge("c", "b")]

        with pytest.raises(CycleDetectedError) as exc_info:
            get_execution_order(nodes, edges, strict=True)
        assert exc_info.value.node_ids == ["b", "c"]

    def test_edges_to_unknown_nodes_are_ignored(self):
        nodes = [TriggerNode("a"), NormalizeNode("b")]
        edges = [Edge("a", "ghost"), Edge("a", "b")]

        assert ids(get_execution_order(nodes, edges)) == ["a", "b"]

    def test_edge_from_unknown_node_holds_its_target_back(self, caplog):
        nodes = [TriggerNode("a"), NormalizeNode("b"), FilterNode("c")]
        edges = [Edge("ghost", "b"), Edge("b", "c")]

        with caplog.at_level(logging.WARNING, logger="jobflow.graph.sorter"):
            order = get_execution_order(nodes, edges)

        assert ids(order) == ["a"]
        assert "b, c" in caplog.text
