"""
Conversation Session - per-user execution state for a running flow
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional, Any, Dict, List
from enum import Enum

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """State of a live session (no session means awaiting a trigger)"""
    ACTIVE_NODE = "active_node"
    AWAITING_CLARIFICATION = "awaiting_clarification"


@dataclass
class NodeVisit:
    """Record of a node visit"""
    node_id: str
    timestamp: datetime


@dataclass
class ConversationSession:
    """
    In-memory conversation state of one user.

    This class tracks:
    - Owning flow and current node
    - Visited nodes history
    - Responses expected by the current node
    - The node to return to after an out-of-context clarification
    """

    # Identifiers
    user_id: str
    flow_id: str
    current_node_id: str
    instance_name: Optional[str] = None

    # Current state
    state: SessionState = SessionState.ACTIVE_NODE
    previous_node_id: Optional[str] = None

    # History
    history: List[NodeVisit] = field(default_factory=list)

    # Conversation variables
    context: Dict[str, Any] = field(default_factory=dict)

    # Response expectations for the current node
    expected_responses: List[str] = field(default_factory=list)
    awaiting_response: bool = False
    active_triggers: List[Any] = field(default_factory=list)

    # Timing
    started_at: datetime = field(default_factory=datetime.now)
    last_interaction: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        if not self.history:
            self.history.append(NodeVisit(node_id=self.current_node_id, timestamp=self.started_at))

    def move_to_node(self, node_id: str) -> None:
        """
        Move to a new node in the flow.

        Expectations of the node being left are cleared; the handler of the
        new node sets its own.
        """
        self.current_node_id = node_id
        self.history.append(NodeVisit(node_id=node_id, timestamp=datetime.now()))
        self.expected_responses = []
        self.awaiting_response = False
        self.active_triggers = []
        self.last_interaction = datetime.now()

        logger.debug(f"Session moved to node '{node_id}' [user: {self.user_id}]")

    def touch(self) -> None:
        """Reset the inactivity window"""
        self.last_interaction = datetime.now()

    def await_responses(self, expected: List[str], triggers: Optional[List[Any]] = None) -> None:
        """Mark the current node as waiting for user input"""
        self.expected_responses = list(expected)
        self.active_triggers = list(triggers or [])
        self.awaiting_response = True

    def is_expired(self, timeout_seconds: int, now: Optional[datetime] = None) -> bool:
        """Check if the session has been idle longer than the timeout"""
        now = now or datetime.now()
        return now - self.last_interaction > timedelta(seconds=timeout_seconds)

    @property
    def is_awaiting_clarification(self) -> bool:
        return self.state == SessionState.AWAITING_CLARIFICATION

    def begin_clarification(self, clarification_responses: List[str]) -> None:
        """Remember the current node and wait for a yes/no answer"""
        self.previous_node_id = self.current_node_id
        self.state = SessionState.AWAITING_CLARIFICATION
        self.expected_responses = list(clarification_responses)
        self.awaiting_response = True
        self.touch()

        logger.info(
            f"Out-of-context reply at node '{self.current_node_id}' "
            f"[user: {self.user_id}]"
        )

    def end_clarification(self) -> Optional[str]:
        """
        Leave the clarification state.

        Returns:
            The node that was active before the clarification
        """
        restored = self.previous_node_id or self.current_node_id
        self.current_node_id = restored
        self.previous_node_id = None
        self.state = SessionState.ACTIVE_NODE
        self.expected_responses = []
        self.awaiting_response = False
        self.touch()
        return restored

    def set_variable(self, name: str, value: Any) -> None:
        """Set a conversation variable"""
        self.context[name] = value

    def get_variable(self, name: str, default: Any = None) -> Any:
        """Get a conversation variable"""
        return self.context.get(name, default)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "user_id": self.user_id,
            "flow_id": self.flow_id,
            "current_node_id": self.current_node_id,
            "instance_name": self.instance_name,
            "state": self.state.value,
            "previous_node_id": self.previous_node_id,
            "expected_responses": self.expected_responses,
            "awaiting_response": self.awaiting_response,
            "context": self.context,
            "history": [
                {"node_id": v.node_id, "timestamp": v.timestamp.isoformat()}
                for v in self.history
            ],
            "started_at": self.started_at.isoformat(),
            "last_interaction": self.last_interaction.isoformat(),
        }
