"""
File: node/tests/unit/test_quorum.py
Unit tests for the majority evaluator.
"""
import pytest

from common.models import ConsensusMessage, MessageType, UNKNOWN
from node.config import ConfigurationError
from node.quorum import QuorumEvaluator, evaluate_threshold, majority_threshold, value_counts


def votes(*values, kind=MessageType.VOTE, round_number=0):
    """Build one message per value, senders numbered from 0."""
    return [
        ConsensusMessage(kind=kind, sender=i, round=round_number, value=value)
        for i, value in enumerate(values)
    ]

@pytest.mark.parametrize("total, expected", [(1, 1), (2, 2), (3, 2), (4, 3), (5, 3), (10, 6)])
def test_majority_threshold(total, expected):
    """Threshold is floor(n / 2) + 1."""
    assert majority_threshold(total) == expected

@pytest.mark.parametrize("total", [0, -3])
def test_majority_threshold_rejects_empty_cluster(total):
    with pytest.raises(ConfigurationError):
        majority_threshold(total)

def test_value_counts_includes_unknown():
    counts = value_counts(votes(1, UNKNOWN, 1, 0, UNKNOWN))
    assert counts == {0: 1, 1: 2, UNKNOWN: 2}

def test_evaluate_returns_majority_bit():
    assert evaluate_threshold(votes(1, 1, 0), 2, require_decisive=True) == 1
    assert evaluate_threshold(votes(0, 1, 0), 2, require_decisive=False) == 0

def test_evaluate_without_majority():
    assert evaluate_threshold(votes(1, 0, UNKNOWN), 2, require_decisive=False) is None
    assert evaluate_threshold(votes(1, 0), 2, require_decisive=True) is None
    assert evaluate_threshold([], 1, require_decisive=True) is None

def test_unknown_majority_is_never_decisive():
    """A majority of "?" only qualifies when decisiveness is not required."""
    messages = votes(UNKNOWN, UNKNOWN, 1)
    assert evaluate_threshold(messages, 2, require_decisive=True) is None
    assert evaluate_threshold(messages, 2, require_decisive=False) == UNKNOWN

def test_several_values_reaching_low_threshold_use_fixed_order():
    """Below a true majority, the first value in 0, 1, "?" order wins."""
    messages = votes(UNKNOWN, 1, 0, 1, 0, UNKNOWN)
    assert evaluate_threshold(messages, 2, require_decisive=False) == 0
    assert evaluate_threshold(list(reversed(messages)), 2, require_decisive=False) == 0

def test_evaluation_is_deterministic():
    messages = votes(1, 0, 1, 1, 0)
    evaluator = QuorumEvaluator(5)
    first = evaluator.evaluate(messages, require_decisive=True)
    second = evaluator.evaluate(messages, require_decisive=True)
    assert first == second == 1

def test_evaluator_threshold_and_decisive_majority():
    evaluator = QuorumEvaluator(4)
    assert evaluator.threshold == 3
    assert not evaluator.has_decisive_majority(votes(1, 1, 0, 0))
    assert evaluator.has_decisive_majority(votes(0, 0, 0))
    assert not evaluator.has_decisive_majority(votes(UNKNOWN, UNKNOWN, UNKNOWN))
