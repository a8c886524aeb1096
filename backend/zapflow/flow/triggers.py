"""
Trigger Matcher - Resolves an inbound message to the flow it should start.

Rules are kept in registration order. Specific rules (keywords and patterns)
are tested first and the first match wins; wildcard rules are only tested
when no specific rule matched.
"""
import re
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Union

from ..core.exceptions import InvalidTriggerPatternError
from ..models.flow import FlowTriggerRecord

logger = logging.getLogger(__name__)

WILDCARD = "*"

# Patterns that accept anything are handled as wildcards
WILDCARD_PATTERNS = frozenset({".*", "."})


@dataclass
class TriggerRule:
    """A single flow-level trigger"""
    flow_id: str
    keyword: Optional[str] = None
    pattern: Optional[re.Pattern] = None
    is_wildcard: bool = False

    def matches(self, message: str) -> bool:
        normalized = message.strip().lower()
        if self.is_wildcard:
            return bool(normalized)
        if self.pattern is not None:
            return self.pattern.search(normalized) is not None
        return normalized == self.keyword

    def to_dict(self) -> Dict[str, Any]:
        if self.is_wildcard:
            keyword = WILDCARD
        elif self.pattern is not None:
            keyword = self.pattern.pattern
        else:
            keyword = self.keyword
        return {
            "keyword": keyword,
            "flow_id": self.flow_id,
            "is_regex": self.pattern is not None,
            "is_wildcard": self.is_wildcard,
        }


def compile_pattern(pattern: str) -> re.Pattern:
    """
    Compile a user-supplied trigger pattern (case-insensitive).

    Raises:
        InvalidTriggerPatternError: If the expression does not compile
    """
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as e:
        raise InvalidTriggerPatternError(pattern, str(e)) from e


class TriggerMatcher:
    """
    Ordered, priority-tiered registry of flow triggers.

    Usage:
        matcher = TriggerMatcher()
        matcher.add_trigger("ola", "flow-1")
        matcher.add_pattern(r"^pedido\\s+\\d+$", "flow-2")
        matcher.add_trigger("*", "default-flow")
        flow_id = matcher.resolve("Ola")
    """

    def __init__(self):
        self._rules: List[TriggerRule] = []

    def __len__(self) -> int:
        return len(self._rules)

    def add_trigger(self, matcher: Union[str, re.Pattern], flow_id: str) -> TriggerRule:
        """
        Append a trigger.

        Args:
            matcher: Keyword (exact, case-insensitive), compiled pattern or "*"
            flow_id: Flow started by this trigger
        """
        if isinstance(matcher, re.Pattern):
            if matcher.pattern in WILDCARD_PATTERNS:
                rule = TriggerRule(flow_id=flow_id, is_wildcard=True)
            else:
                if not matcher.flags & re.IGNORECASE:
                    matcher = re.compile(matcher.pattern, matcher.flags | re.IGNORECASE)
                rule = TriggerRule(flow_id=flow_id, pattern=matcher)
        else:
            keyword = str(matcher).strip().lower()
            if keyword == WILDCARD:
                rule = TriggerRule(flow_id=flow_id, is_wildcard=True)
            else:
                rule = TriggerRule(flow_id=flow_id, keyword=keyword)

        self._rules.append(rule)
        logger.debug(f"Trigger added for flow {flow_id}: {rule.to_dict()['keyword']}")
        return rule

    def add_pattern(self, pattern: str, flow_id: str) -> TriggerRule:
        """
        Compile and append a pattern trigger.

        Raises:
            InvalidTriggerPatternError: If the pattern does not compile
        """
        return self.add_trigger(compile_pattern(pattern), flow_id)

    def remove_trigger(self, flow_id: str) -> int:
        """Remove every trigger of a flow. Returns the number removed."""
        before = len(self._rules)
        self._rules = [rule for rule in self._rules if rule.flow_id != flow_id]
        removed = before - len(self._rules)
        logger.debug(f"Removed {removed} trigger(s) for flow {flow_id}")
        return removed

    def clear(self) -> None:
        self._rules = []

    def list_triggers(self) -> List[Dict[str, Any]]:
        return [rule.to_dict() for rule in self._rules]

    def resolve(self, message: str) -> Optional[str]:
        """
        Resolve a message to a flow ID.

        Returns:
            Flow ID of the first matching rule, or None
        """
        if message is None:
            return None

        for rule in self._rules:
            if not rule.is_wildcard and rule.matches(message):
                logger.info(f"Specific trigger matched for flow {rule.flow_id}")
                return rule.flow_id

        for rule in self._rules:
            if rule.is_wildcard and rule.matches(message):
                logger.info(f"Wildcard trigger matched for flow {rule.flow_id}")
                return rule.flow_id

        return None

    def load_records(self, records: Iterable[FlowTriggerRecord]) -> int:
        """
        Replace all rules with persisted trigger records.

        Invalid regex records are logged and skipped.

        Returns:
            Number of rules loaded
        """
        self.clear()

        for record in records:
            if record.type == "regex":
                try:
                    self.add_pattern(record.value, record.flow_id)
                except InvalidTriggerPatternError as e:
                    logger.error(f"Skipping trigger of flow {record.flow_id}: {e}")
            else:
                self.add_trigger(record.value, record.flow_id)

        logger.info(f"Loaded {len(self._rules)} flow triggers")
        return len(self._rules)


async def load_flow_triggers(repository, matcher: TriggerMatcher) -> int:
    """
    Load triggers of every active flow into the matcher.

    Storage failures are logged and leave the matcher empty.
    """
    try:
        records = await repository.list_active_triggers()
    except Exception as e:
        logger.exception(f"Error loading flow triggers: {e}")
        matcher.clear()
        return 0

    return matcher.load_records(records)
