"""
Unit tests for next-node resolution.
"""
import pytest

from zapflow.flow.navigator import next_node, find_list_option, outgoing_edges
from zapflow.models.flow import Flow, NodeTrigger


@pytest.fixture
def branching_flow():
    """Message node with two handle-less edges plus a list with explicit targets."""
    return Flow(
        id="branching",
        nodes=[
            {"id": "start", "type": "start"},
            {"id": "msg", "type": "message", "data": {"label": "Oi"}},
            {
                "id": "menu",
                "type": "list",
                "data": {
                    "label": "Menu",
                    "options": [
                        {"id": "opt1", "text": "Vendas", "proximoNoId": "sales"},
                        {"id": "opt2", "text": "Suporte"}
                    ]
                }
            },
            {"id": "first", "type": "message"},
            {"id": "second", "type": "message"},
            {"id": "sales", "type": "message"},
            {"id": "support", "type": "message"},
            {"id": "other", "type": "message"}
        ],
        edges=[
            {"id": "e1", "source": "start", "target": "msg"},
            {"id": "e2", "source": "msg", "target": "first"},
            {"id": "e3", "source": "msg", "target": "second"},
            {"id": "e4", "source": "menu", "target": "other"},
            {"id": "e5", "source": "menu", "target": "support", "sourceHandle": "opt2"}
        ]
    )


class TestResolutionOrder:
    """Tests for the layered resolution rules."""

    def test_trigger_override_wins(self, branching_flow):
        trigger = NodeTrigger(tipo="texto", valor="x", proximoNoId="second")
        assert next_node(branching_flow, "msg", selector="opt1", trigger=trigger) == "second"

    def test_option_next_node_beats_edges(self, branching_flow):
        assert next_node(branching_flow, "menu", selector="opt1") == "sales"

    def test_option_matched_by_text(self, branching_flow):
        assert next_node(branching_flow, "menu", selector="vendas") == "sales"

    def test_handle_edge_matches_selector(self, branching_flow):
        assert next_node(branching_flow, "menu", selector="opt2") == "support"

    def test_falls_back_to_first_edge(self, branching_flow):
        """Unknown selector with handle-less edges takes the first declared edge."""
        assert next_node(branching_flow, "msg", selector="B") == "first"

    def test_no_selector_takes_first_edge(self, branching_flow):
        assert next_node(branching_flow, "start") == "msg"

    def test_unmatched_list_selector_falls_back(self, branching_flow):
        assert next_node(branching_flow, "menu", selector="nada") == "other"

    def test_dead_end_returns_none(self, branching_flow):
        assert next_node(branching_flow, "sales") is None

    def test_unknown_node_returns_none(self, branching_flow):
        assert next_node(branching_flow, "missing") is None

    def test_trigger_without_override_uses_edges(self, branching_flow):
        trigger = NodeTrigger(tipo="qualquer")
        assert next_node(branching_flow, "msg", trigger=trigger) == "first"


class TestHelpers:
    """Tests for navigator helpers."""

    def test_outgoing_edges_keep_declaration_order(self, branching_flow):
        assert [e.target for e in outgoing_edges(branching_flow, "msg")] == ["first", "second"]

    def test_find_list_option_uses_first_line(self, branching_flow):
        menu = branching_flow.get_node("menu")
        option = find_list_option(menu, "Suporte\nFale com a equipe")
        assert option is not None
        assert option.id == "opt2"

    def test_find_list_option_ignores_other_node_types(self, branching_flow):
        assert find_list_option(branching_flow.get_node("msg"), "opt1") is None
