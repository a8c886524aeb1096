"""
Flow Validator - Advisory diagnostics for flow graphs

The engine never calls this; it degrades gracefully on malformed flows.
Diagnostics help flow authors find problems before users do.
"""
import logging
from typing import Tuple, List, Dict, Any, Set, Optional, Iterable
from datetime import datetime

from ..models.flow import Flow, NodeType, NodeTriggerType, FlowTriggerRecord

logger = logging.getLogger(__name__)


class FlowValidationError:
    """Represents a validation error"""

    def __init__(
        self,
        code: str,
        message: str,
        node_id: Optional[str] = None,
        severity: str = "error"  # error, warning, info
    ):
        self.code = code
        self.message = message
        self.node_id = node_id
        self.severity = severity
        self.timestamp = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "node_id": self.node_id,
            "severity": self.severity,
            "timestamp": self.timestamp.isoformat()
        }

    def __str__(self) -> str:
        node_info = f" [Node: {self.node_id}]" if self.node_id else ""
        return f"[{self.severity.upper()}] {self.code}: {self.message}{node_info}"


class FlowValidator:
    """
    Diagnoses flow graphs.

    Checks:
    - Exactly one start node, with an outgoing connection
    - Edges pointing at existing nodes
    - List options wired to a handle edge or an explicit next node
    - Non-end nodes without a way forward (dead ends)
    - Nodes unreachable from the start node
    - Node triggers with invalid patterns
    - Flows without flow-level triggers (when triggers are given)
    """

    @classmethod
    def validate(
        cls,
        flow: Flow,
        triggers: Optional[Iterable[FlowTriggerRecord]] = None
    ) -> Tuple[bool, List[FlowValidationError]]:
        """
        Validate a flow.

        Args:
            flow: Flow to diagnose
            triggers: Flow-level triggers; when given, a flow without any is reported

        Returns:
            Tuple of (is_valid, list of errors)
        """
        errors: List[FlowValidationError] = []
        node_ids = {node.id for node in flow.nodes}

        # 1. Start node
        errors.extend(cls._validate_start(flow))

        # 2. Edge validation
        errors.extend(cls._validate_edges(flow, node_ids))

        # 3. Node validation
        errors.extend(cls._validate_list_options(flow))
        errors.extend(cls._detect_dead_ends(flow))
        errors.extend(cls._validate_node_triggers(flow))

        # 4. Reachability
        errors.extend(cls._detect_orphan_nodes(flow))

        # 5. Flow-level triggers
        if triggers is not None and not any(t.flow_id == flow.id for t in triggers):
            errors.append(FlowValidationError(
                "NO_TRIGGERS",
                "Flow has no triggers and will only start as a fallback",
                severity="warning"
            ))

        is_valid = not any(e.severity == "error" for e in errors)

        if errors:
            logger.info(f"Flow {flow.id} diagnostics found {len(errors)} issues")

        return is_valid, errors

    @classmethod
    def _validate_start(cls, flow: Flow) -> List[FlowValidationError]:
        errors = []
        start_nodes = [node for node in flow.nodes if node.type == NodeType.START.value]

        if not start_nodes:
            errors.append(FlowValidationError(
                "NO_START_NODE",
                "Flow must have exactly one node of type 'start'"
            ))
            return errors

        if len(start_nodes) > 1:
            errors.append(FlowValidationError(
                "MULTIPLE_START_NODES",
                f"Flow has {len(start_nodes)} start nodes; only the first one is used",
                start_nodes[1].id,
                severity="warning"
            ))

        if not flow.outgoing_edges(start_nodes[0].id):
            errors.append(FlowValidationError(
                "START_NOT_CONNECTED",
                "Start node has no outgoing connection",
                start_nodes[0].id
            ))

        return errors

    @classmethod
    def _validate_edges(cls, flow: Flow, node_ids: Set[str]) -> List[FlowValidationError]:
        """Validate edges reference existing nodes"""
        errors = []

        for edge in flow.edges:
            if edge.source not in node_ids:
                errors.append(FlowValidationError(
                    "INVALID_EDGE_SOURCE",
                    f"Edge '{edge.id}' starts at unknown node '{edge.source}'"
                ))
            if edge.target not in node_ids:
                errors.append(FlowValidationError(
                    "INVALID_EDGE_TARGET",
                    f"Edge '{edge.id}' points to unknown node '{edge.target}'",
                    edge.source
                ))

        return errors

    @classmethod
    def _validate_list_options(cls, flow: Flow) -> List[FlowValidationError]:
        errors = []

        for node in flow.nodes:
            if node.type != NodeType.LIST.value:
                continue

            options = node.data.options
            if not options:
                errors.append(FlowValidationError(
                    "EMPTY_LIST",
                    "List node has no options",
                    node.id
                ))
                continue

            handles = {edge.source_handle for edge in flow.outgoing_edges(node.id)}
            for option in options:
                if option.next_node_id or option.id in handles:
                    continue
                errors.append(FlowValidationError(
                    "UNWIRED_LIST_OPTION",
                    f"Option '{option.text}' has no connection; replies will follow the first edge",
                    node.id,
                    severity="warning"
                ))

        return errors

    @classmethod
    def _detect_dead_ends(cls, flow: Flow) -> List[FlowValidationError]:
        """Non-end nodes with neither an edge nor a trigger override"""
        errors = []

        for node in flow.nodes:
            if node.type == NodeType.END.value:
                continue
            if flow.outgoing_edges(node.id):
                continue
            if any(trigger.next_node_id for trigger in node.data.triggers):
                continue
            if node.type == NodeType.LIST.value and any(o.next_node_id for o in node.data.options):
                continue

            errors.append(FlowValidationError(
                "DEAD_END",
                "Node has no outgoing connection and is not an end node",
                node.id,
                severity="warning"
            ))

        return errors

    @classmethod
    def _validate_node_triggers(cls, flow: Flow) -> List[FlowValidationError]:
        errors = []

        for node in flow.nodes:
            for trigger in node.data.triggers:
                if trigger.type is None:
                    errors.append(FlowValidationError(
                        "INVALID_TRIGGER_TYPE",
                        f"Trigger '{trigger.value or ''}' has an unknown type and never matches",
                        node.id
                    ))
                elif trigger.type == NodeTriggerType.PATTERN and not trigger.is_valid:
                    errors.append(FlowValidationError(
                        "INVALID_TRIGGER_PATTERN",
                        f"Pattern '{trigger.value}' does not compile: {trigger.error}",
                        node.id
                    ))

        return errors

    @classmethod
    def _detect_orphan_nodes(cls, flow: Flow) -> List[FlowValidationError]:
        """Detect nodes that are not reachable from the start node"""
        errors = []
        start_node = flow.get_start_node()

        if start_node is None or not flow.nodes:
            return errors

        # Build adjacency list
        adjacency: Dict[str, List[str]] = {node.id: [] for node in flow.nodes}
        for edge in flow.edges:
            adjacency.setdefault(edge.source, []).append(edge.target)
        for node in flow.nodes:
            for trigger in node.data.triggers:
                if trigger.next_node_id:
                    adjacency[node.id].append(trigger.next_node_id)
            if node.type == NodeType.LIST.value:
                adjacency[node.id].extend(o.next_node_id for o in node.data.options if o.next_node_id)

        # BFS to find all reachable nodes
        reachable = set()
        queue = [start_node.id]

        while queue:
            current = queue.pop(0)
            if current in reachable:
                continue
            reachable.add(current)

            for next_id in adjacency.get(current, []):
                if next_id not in reachable:
                    queue.append(next_id)

        for node in flow.nodes:
            if node.id not in reachable:
                errors.append(FlowValidationError(
                    "ORPHAN_NODE",
                    f"Node '{node.id}' is not reachable from start node",
                    node.id,
                    severity="warning"
                ))

        return errors


# Singleton-style function for convenience
def validate_flow(
    flow: Flow,
    triggers: Optional[Iterable[FlowTriggerRecord]] = None
) -> Tuple[bool, List[FlowValidationError]]:
    """Convenience function to validate a flow"""
    return FlowValidator.validate(flow, triggers)
