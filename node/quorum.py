"""
File: node/quorum.py
Majority detection over the messages collected for one round.
"""
from collections import Counter
from typing import Dict, Iterable, Optional

from common.models import ConsensusMessage, UNKNOWN, Value
from node.config import ConfigurationError

# Deterministic enumeration order for threshold checks
VALUE_ORDER = (0, 1, UNKNOWN)


def majority_threshold(total_nodes: int) -> int:
    """
    Minimum number of equal values considered a majority: floor(n / 2) + 1.

    Raises:
        ConfigurationError: if total_nodes < 1
    """
    if total_nodes < 1:
        raise ConfigurationError(f"total_nodes must be >= 1, got {total_nodes}")
    return total_nodes // 2 + 1

def value_counts(messages: Iterable[ConsensusMessage]) -> Dict[Value, int]:
    """Tally of each value ("?" included) among the messages."""
    counts = Counter(message.value for message in messages)
    return {value: counts[value] for value in VALUE_ORDER if counts[value]}

def evaluate_threshold(messages: Iterable[ConsensusMessage], threshold: int,
                       require_decisive: bool) -> Optional[Value]:
    """
    Return the first value (in 0, 1, "?" order) whose count reaches threshold.

    With require_decisive the unknown value is never returned, even when it
    is the only one reaching the threshold.
    """
    counts = value_counts(messages)
    for value in VALUE_ORDER:
        if require_decisive and value == UNKNOWN:
            continue
        if counts.get(value, 0) >= threshold:
            return value
    return None


class QuorumEvaluator:
    """Majority evaluator bound to a fixed cluster size."""

    def __init__(self, total_nodes: int):
        self.total_nodes = total_nodes
        self.threshold = majority_threshold(total_nodes)

    def evaluate(self, messages: Iterable[ConsensusMessage], require_decisive: bool) -> Optional[Value]:
        return evaluate_threshold(messages, self.threshold, require_decisive)

    def has_decisive_majority(self, messages: Iterable[ConsensusMessage]) -> bool:
        """True when 0 or 1 already reaches the threshold."""
        return self.evaluate(messages, require_decisive=True) is not None
