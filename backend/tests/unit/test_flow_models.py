"""
Unit tests for flow configuration models.
"""
from zapflow.models.flow import (
    Flow,
    FlowNode,
    ListNode,
    ProductNode,
    NodeTriggerType,
    BotMessages,
    build_node,
    create_sample_flow,
)
from zapflow.models.product import Product


class TestNodeParsing:
    """Tests for typed node parsing."""

    def test_builder_aliases(self):
        node = build_node({
            "id": "ask",
            "type": "conditional",
            "data": {
                "label": "Continuar?",
                "aguardaResposta": True,
                "gatilhos": [
                    {"tipo": "texto", "valor": "sim", "resposta": "Ok", "proximoNoId": "yes"},
                    {"tipo": "regex", "valor": "^n"},
                    {"tipo": "qualquer"}
                ]
            }
        })

        assert node.data.awaits_response is True
        assert [t.type for t in node.data.triggers] == [
            NodeTriggerType.TEXT, NodeTriggerType.PATTERN, NodeTriggerType.ANY
        ]
        assert node.data.triggers[0].reply == "Ok"
        assert node.data.triggers[0].next_node_id == "yes"

    def test_unknown_trigger_type_does_not_break_flow(self):
        flow = Flow(
            id="f",
            nodes=[{
                "id": "ask",
                "type": "conditional",
                "data": {"gatilhos": [{"tipo": "texto", "valor": "sim"}, {"tipo": "", "valor": ""}, {"valor": "x"}]}
            }]
        )

        triggers = flow.get_node("ask").data.triggers
        assert [t.type for t in triggers] == [NodeTriggerType.TEXT, None, None]
        assert [t.is_valid for t in triggers] == [True, False, False]
        assert not triggers[1].matches("")

    def test_known_types_get_typed_models(self):
        assert isinstance(build_node({"id": "l", "type": "list"}), ListNode)
        product = build_node({"id": "p", "type": "PRODUCT", "data": {"productId": "42"}})
        assert isinstance(product, ProductNode)
        assert product.data.product_id == "42"
        assert product.data.show_price is True

    def test_unknown_type_is_kept(self):
        node = build_node({"id": "x", "type": "webhook", "data": {"url": "http://x"}})

        assert type(node) is FlowNode
        assert node.type == "webhook"
        assert node.node_type is None

    def test_list_options(self):
        node = build_node({
            "id": "menu",
            "type": "list",
            "data": {"options": [{"id": "A", "text": "Red", "proximoNoId": "red"}]}
        })
        assert node.data.options[0].next_node_id == "red"


class TestFlow:
    """Tests for the flow graph."""

    def test_lookups(self, list_flow):
        assert list_flow.get_start_node().id == "start"
        assert isinstance(list_flow.get_node("menu"), ListNode)
        assert list_flow.get_node("missing") is None
        assert [e.source_handle for e in list_flow.outgoing_edges("menu")] == ["A", "B"]

    def test_flow_without_start(self):
        flow = Flow(id="f", nodes=[{"id": "m", "type": "message"}])
        assert flow.get_start_node() is None

    def test_typed_data_survives_dump(self, list_flow):
        dumped = list_flow.model_dump()
        assert dumped["nodes"][1]["data"]["options"][0]["id"] == "A"

    def test_sample_flow_is_wired(self):
        flow = create_sample_flow()
        start = flow.get_start_node()
        assert flow.outgoing_edges(start.id)[0].target == "welcome"


class TestMessagesAndProducts:
    """Tests for user-facing texts and products."""

    def test_unsupported_node_template(self):
        text = BotMessages().unsupported_node.format(node_type="webhook")
        assert text.endswith("webhook")

    def test_messages_can_be_overridden(self):
        messages = BotMessages(conversation_finished="Tchau")
        assert messages.conversation_finished == "Tchau"

    def test_formatted_price(self):
        assert Product(id="1", name="Café", price=12.5).formatted_price == "R$ 12.50"
        assert Product(id="1", name="Café").formatted_price is None

    def test_product_aliases(self):
        product = Product(id="1", name="Café", imageUrl="http://img/1.png")
        assert product.image_url == "http://img/1.png"
