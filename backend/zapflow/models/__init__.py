from .flow import (
    # Node types
    NodeType,
    NodeTriggerType,

    # Flow models
    Position,
    NodeTrigger,
    ListOption,
    NodeData,
    ListNodeData,
    ConditionalNodeData,
    ProductNodeData,
    FlowNode,
    StartNode,
    MessageNode,
    ListNode,
    ConditionalNode,
    ProductNode,
    EndNode,
    FlowEdge,
    Flow,
    FlowTriggerRecord,
    BotMessages,

    # Utility functions
    build_node,
    create_sample_flow,
    DEFAULT_START_LABEL,
    DEFAULT_END_LABEL
)
from .product import Product
from .webhook import (
    WebhookPayload,
    IncomingMessage,
    IncomingMessageRequest,
    parse_webhook,
    extract_message_text
)

__all__ = [
    "NodeType",
    "NodeTriggerType",
    "Position",
    "NodeTrigger",
    "ListOption",
    "NodeData",
    "ListNodeData",
    "ConditionalNodeData",
    "ProductNodeData",
    "FlowNode",
    "StartNode",
    "MessageNode",
    "ListNode",
    "ConditionalNode",
    "ProductNode",
    "EndNode",
    "FlowEdge",
    "Flow",
    "FlowTriggerRecord",
    "BotMessages",
    "build_node",
    "create_sample_flow",
    "DEFAULT_START_LABEL",
    "DEFAULT_END_LABEL",
    "Product",
    "WebhookPayload",
    "IncomingMessage",
    "IncomingMessageRequest",
    "parse_webhook",
    "extract_message_text",
]
