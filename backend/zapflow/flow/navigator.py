"""
Graph Navigator - Decides which node comes after the current one.
"""
import logging
from typing import List, Optional

from ..models.flow import Flow, FlowEdge, FlowNode, ListOption, NodeTrigger, NodeType

logger = logging.getLogger(__name__)


def outgoing_edges(flow: Flow, node_id: str) -> List[FlowEdge]:
    """Edges leaving a node, in declaration order"""
    return flow.outgoing_edges(node_id)


def find_list_option(node: Optional[FlowNode], selector: Optional[str]) -> Optional[ListOption]:
    """
    Find the list option a reply refers to.

    The first line of the reply is compared with each option's id first and
    then with its text, case-insensitively.
    """
    if node is None or selector is None or node.type != NodeType.LIST.value:
        return None

    options = getattr(node.data, "options", None) or []
    normalized = str(selector).strip().lower()
    first_line = normalized.split("\n", 1)[0].strip()

    for option in options:
        if option.id.strip().lower() in (normalized, first_line):
            return option

    for option in options:
        if option.text.strip().lower() in (normalized, first_line):
            return option

    return None


def next_node(
    flow: Flow,
    from_node_id: str,
    selector: Optional[str] = None,
    trigger: Optional[NodeTrigger] = None
) -> Optional[str]:
    """
    Resolve the next node ID.

    Resolution order (first match wins):
    1. Explicit next node of the satisfied node trigger
    2. Explicit next node of the list option named by the selector
    3. Outgoing edge whose source handle equals the selector
    4. First outgoing edge
    5. None (dead end)
    """
    if trigger is not None and trigger.next_node_id:
        return trigger.next_node_id

    source = flow.get_node(from_node_id)

    if selector is not None:
        option = find_list_option(source, selector)
        if option is not None and option.next_node_id:
            return option.next_node_id

    edges = outgoing_edges(flow, from_node_id)

    if selector is not None:
        for edge in edges:
            if edge.source_handle is not None and edge.source_handle == selector:
                return edge.target

    if not edges:
        return None

    if (
        selector is not None
        and source is not None
        and source.type in (NodeType.LIST.value, NodeType.CONDITIONAL.value)
        and len(edges) > 1
    ):
        logger.warning(
            f"No edge of node '{from_node_id}' matches handle '{selector}', "
            f"falling back to first edge -> '{edges[0].target}' [flow: {flow.id}]"
        )

    return edges[0].target
