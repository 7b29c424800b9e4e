"""Emotional significance weighting and review prioritisation."""

from memoria.significance.priority_manager import PriorityManager
from memoria.significance.strategies import (
    BalancedSamplingStrategy,
    HighSignificanceFocusStrategy,
    QueueStrategy,
    SignificanceWeightedStrategy,
    select_queue_strategy,
)
from memoria.significance.weighter import SignificanceWeighter

__all__ = [
    "SignificanceWeighter",
    "PriorityManager",
    "QueueStrategy",
    "HighSignificanceFocusStrategy",
    "BalancedSamplingStrategy",
    "SignificanceWeightedStrategy",
    "select_queue_strategy",
]
