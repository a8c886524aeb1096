"""
Flow execution module

Components:
- ConversationEngine: per-user state machine walking flow graphs
- TriggerMatcher: resolves inbound messages to flows
- Navigator: next-node resolution over edges, options and node triggers
- ConversationSession: in-memory state of one conversation
- ResponseEvaluator: in-context checks and node trigger matching
- FlowValidator: advisory diagnostics for flow authors
"""
from .session import ConversationSession, SessionState, NodeVisit
from .result import FlowExecutionResult
from .evaluator import (
    ResponseEvaluator,
    CLARIFICATION_RESPONSES,
    AFFIRMATIVE_TOKENS,
    CART_RESPONSES
)
from .triggers import TriggerMatcher, TriggerRule, compile_pattern, load_flow_triggers
from .navigator import next_node, outgoing_edges, find_list_option
from .validator import FlowValidator, FlowValidationError, validate_flow
from .engine import ConversationEngine, create_conversation_engine, format_product_message

__all__ = [
    # Engine
    "ConversationEngine",
    "create_conversation_engine",
    "format_product_message",

    # Session
    "ConversationSession",
    "SessionState",
    "NodeVisit",

    # Results
    "FlowExecutionResult",

    # Evaluation
    "ResponseEvaluator",
    "CLARIFICATION_RESPONSES",
    "AFFIRMATIVE_TOKENS",
    "CART_RESPONSES",

    # Triggers
    "TriggerMatcher",
    "TriggerRule",
    "compile_pattern",
    "load_flow_triggers",

    # Navigation
    "next_node",
    "outgoing_edges",
    "find_list_option",

    # Validation
    "FlowValidator",
    "FlowValidationError",
    "validate_flow",
]
