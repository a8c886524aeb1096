"""
Response Evaluator - Deterministic evaluation of user replies against what
the current node expects.

Decides whether a reply is in the context of the current node, which node
trigger it satisfies and whether a clarification answer is affirmative.
"""
import re
import logging
from functools import lru_cache
from typing import Any, Iterable, List, Optional

from ..models.flow import NodeTrigger, NodeTriggerType

logger = logging.getLogger(__name__)


# Answers offered while asking whether to end the conversation
CLARIFICATION_RESPONSES: List[str] = ["sim", "não", "nao", "yes", "no"]

# Answers that confirm ending the conversation
AFFIRMATIVE_TOKENS = frozenset({"sim", "yes", "s", "y"})

# Replies accepted by a product node that offers the cart
CART_RESPONSES: List[str] = ["adicionar", "comprar", "quero"]


@lru_cache(maxsize=512)
def _compile_expected(value: str) -> Optional[re.Pattern]:
    try:
        return re.compile(value, re.IGNORECASE)
    except re.error as e:
        logger.debug(f"Expected response '{value}' is not a valid pattern: {e}")
        return None


class ResponseEvaluator:
    """
    Evaluates user replies. All evaluations are pure Python and never raise
    on malformed patterns.
    """

    @staticmethod
    def _normalize_string(value: Any) -> str:
        """
        Normalize a value to lowercase string for comparison.
        """
        if value is None:
            return ""
        return str(value).strip().lower()

    @classmethod
    def first_line(cls, response: str) -> str:
        """First line of a reply, normalized (list replies append a description)"""
        normalized = cls._normalize_string(response)
        return normalized.split("\n", 1)[0].strip()

    @classmethod
    def is_in_context(cls, response: str, expected_responses: Iterable[str]) -> bool:
        """
        Check a reply against the expected responses of the current node.

        A reply is in context when it equals an expected value, its first line
        equals one, it starts with one, or it matches one used as a regular
        expression. No expected values means no constraint.
        """
        expected = [cls._normalize_string(e) for e in expected_responses if e is not None]
        expected = [e for e in expected if e]
        if not expected:
            return True

        normalized = cls._normalize_string(response)
        first_line = cls.first_line(response)

        for value in expected:
            if normalized == value or first_line == value:
                return True
            if normalized.startswith(value):
                return True

            pattern = _compile_expected(value)
            if pattern is not None and (pattern.search(normalized) or pattern.search(first_line)):
                return True

        return False

    @classmethod
    def is_out_of_context(cls, response: str, expected_responses: Iterable[str]) -> bool:
        return not cls.is_in_context(response, expected_responses)

    @staticmethod
    def match_trigger(response: str, triggers: Iterable[NodeTrigger]) -> Optional[NodeTrigger]:
        """
        Find the first node trigger satisfied by a reply.

        Triggers are evaluated in declaration order; unknown types and invalid
        patterns never match and are skipped.
        """
        for trigger in triggers:
            if not trigger.is_valid:
                logger.warning(
                    f"Skipping node trigger '{trigger.value}': {trigger.error}"
                )
                continue
            if trigger.matches(response):
                return trigger
        return None

    @staticmethod
    def expected_from_triggers(triggers: Iterable[NodeTrigger]) -> List[str]:
        """
        Expected responses derived from node triggers.

        An 'any' trigger accepts every reply, so its presence leaves the set
        empty. Triggers that can never match are left out.
        """
        triggers = [trigger for trigger in triggers if trigger.is_valid]
        if any(trigger.type == NodeTriggerType.ANY for trigger in triggers):
            return []
        return [trigger.value for trigger in triggers if trigger.value]

    @classmethod
    def is_affirmative(cls, response: str) -> bool:
        return cls._normalize_string(response) in AFFIRMATIVE_TOKENS
