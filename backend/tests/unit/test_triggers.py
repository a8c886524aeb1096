"""
Unit tests for TriggerMatcher.
"""
import re
import pytest

from zapflow.core.exceptions import InvalidTriggerPatternError
from zapflow.flow.triggers import TriggerMatcher, load_flow_triggers
from zapflow.models.flow import FlowTriggerRecord
from zapflow.services.database import InMemoryFlowRepository
from zapflow.models.flow import Flow


@pytest.fixture
def matcher():
    return TriggerMatcher()


class TestKeywordTriggers:
    """Tests for exact keyword triggers."""

    def test_exact_match_is_case_insensitive(self, matcher):
        """Keywords should match regardless of case and surrounding spaces."""
        matcher.add_trigger("Ola", "flow-1")
        assert matcher.resolve("  OLA ") == "flow-1"

    def test_partial_text_does_not_match(self, matcher):
        """Keywords require equality, not containment."""
        matcher.add_trigger("ola", "flow-1")
        assert matcher.resolve("ola tudo bem") is None

    def test_no_rules_returns_none(self, matcher):
        assert matcher.resolve("qualquer coisa") is None

    def test_first_registered_wins(self, matcher):
        """Registration order breaks ties among specific rules."""
        matcher.add_trigger("menu", "flow-1")
        matcher.add_pattern("^men", "flow-2")
        assert matcher.resolve("menu") == "flow-1"


class TestPatternTriggers:
    """Tests for regular expression triggers."""

    def test_pattern_is_case_insensitive(self, matcher):
        matcher.add_pattern(r"^pedido\s+\d+$", "orders")
        assert matcher.resolve("PEDIDO 123") == "orders"
        assert matcher.resolve("pedido abc") is None

    def test_compiled_pattern_gets_ignorecase(self, matcher):
        matcher.add_trigger(re.compile("promo"), "promo")
        assert matcher.resolve("PROMOção") == "promo"

    def test_invalid_pattern_is_rejected_eagerly(self, matcher):
        """Invalid expressions fail at registration, not at lookup."""
        with pytest.raises(InvalidTriggerPatternError):
            matcher.add_pattern("([a-z", "broken")
        assert len(matcher) == 0


class TestWildcardTriggers:
    """Tests for wildcard triggers."""

    def test_wildcard_has_lowest_priority(self, matcher):
        """Specific rules win even when the wildcard was registered first."""
        matcher.add_trigger("*", "default")
        matcher.add_trigger("suporte", "support")
        assert matcher.resolve("suporte") == "support"
        assert matcher.resolve("outra coisa") == "default"

    def test_wildcard_ignores_empty_messages(self, matcher):
        matcher.add_trigger("*", "default")
        assert matcher.resolve("   ") is None

    def test_match_all_pattern_is_wildcard(self, matcher):
        matcher.add_pattern(".*", "default")
        matcher.add_trigger("vendas", "sales")
        assert matcher.list_triggers()[0]["is_wildcard"] is True
        assert matcher.resolve("vendas") == "sales"

    def test_first_wildcard_wins(self, matcher):
        matcher.add_trigger("*", "first")
        matcher.add_trigger("*", "second")
        assert matcher.resolve("oi") == "first"


class TestAddRemove:
    """Tests for runtime registry changes."""

    def test_add_then_remove_restores_rule_set(self, matcher):
        """Removing a flow's triggers leaves the registry as it was."""
        matcher.add_trigger("menu", "flow-1")
        before = matcher.list_triggers()

        matcher.add_trigger("ola", "flow-2")
        assert matcher.resolve("ola") == "flow-2"

        removed = matcher.remove_trigger("flow-2")

        assert removed == 1
        assert matcher.list_triggers() == before
        assert matcher.resolve("ola") is None

    def test_remove_all_rules_of_flow(self, matcher):
        matcher.add_trigger("a", "flow-1")
        matcher.add_trigger("b", "flow-2")
        matcher.add_pattern("^c", "flow-1")

        assert matcher.remove_trigger("flow-1") == 2
        assert [t["flow_id"] for t in matcher.list_triggers()] == ["flow-2"]

    def test_list_triggers_shape(self, matcher):
        matcher.add_trigger("Ola", "flow-1")
        matcher.add_pattern("^x", "flow-2")

        assert matcher.list_triggers() == [
            {"keyword": "ola", "flow_id": "flow-1", "is_regex": False, "is_wildcard": False},
            {"keyword": "^x", "flow_id": "flow-2", "is_regex": True, "is_wildcard": False},
        ]


class TestLoading:
    """Tests for loading persisted trigger records."""

    def test_load_records_translates_wildcard_and_skips_bad_regex(self, matcher):
        matcher.add_trigger("antigo", "old")

        loaded = matcher.load_records([
            FlowTriggerRecord(flow_id="f1", type="text", value="Oi"),
            FlowTriggerRecord(flow_id="f2", type="regex", value="(broken"),
            FlowTriggerRecord(flow_id="f3", type="regex", value="^preço"),
            FlowTriggerRecord(flow_id="f4", type="text", value="*"),
        ])

        assert loaded == 3
        assert matcher.resolve("antigo") == "f4"
        assert matcher.resolve("oi") == "f1"
        assert matcher.resolve("Preço do produto") == "f3"

    async def test_load_flow_triggers_uses_active_flows_only(self, matcher):
        repository = InMemoryFlowRepository(
            flows=[Flow(id="on", active=True), Flow(id="off", active=False)],
            triggers=[
                FlowTriggerRecord(flowId="on", type="text", value="ligado"),
                FlowTriggerRecord(flowId="off", type="text", value="desligado"),
            ]
        )

        loaded = await load_flow_triggers(repository, matcher)

        assert loaded == 1
        assert matcher.resolve("ligado") == "on"
        assert matcher.resolve("desligado") is None

    async def test_storage_failure_leaves_matcher_empty(self, matcher):
        class BrokenRepository:
            async def list_active_triggers(self):
                raise RuntimeError("database offline")

        matcher.add_trigger("oi", "flow-1")
        assert await load_flow_triggers(BrokenRepository(), matcher) == 0
        assert len(matcher) == 0
